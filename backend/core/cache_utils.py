"""
Caching utilities for expensive list and dashboard queries
Uses Redis (django-redis) in production; any Django cache backend works
"""
from django.core.cache import cache
import hashlib
import logging

logger = logging.getLogger(__name__)

# Cache TTLs (in seconds)
PRODUCTS_LIST_CACHE_TTL = 120  # 2 minutes
CATEGORIES_CACHE_TTL = 600  # 10 minutes
DASHBOARD_CACHE_TTL = 300  # 5 minutes

PRODUCTS_LIST_PREFIX = "products_list"
CATEGORIES_PREFIX = "categories_list"
DASHBOARD_PREFIX = "dashboard_kpis"


def make_cache_key(prefix, *args, **kwargs):
    """Generate a unique cache key from arguments"""
    key_data = f"{prefix}:{args}:{sorted(kwargs.items())}"
    # Hash it to keep key length reasonable
    key_hash = hashlib.md5(key_data.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def _registry_key(prefix):
    return f"{prefix}:__keys__"


def cache_set(prefix, cache_key, data, ttl):
    """Store a value and remember its key under the prefix registry"""
    cache.set(cache_key, data, ttl)
    keys = cache.get(_registry_key(prefix)) or []
    if cache_key not in keys:
        keys.append(cache_key)
        cache.set(_registry_key(prefix), keys, None)
    logger.debug(f"Cached {prefix}: {cache_key}")


def invalidate_cache_pattern(pattern):
    """
    Invalidate all cache keys for a prefix.

    Redis backends are scanned with SCAN; other backends fall back to the
    keys recorded by cache_set.
    """
    try:
        from django_redis import get_redis_connection
        redis_conn = get_redis_connection("default")
    except NotImplementedError:
        keys = cache.get(_registry_key(pattern)) or []
        cache.delete_many(keys + [_registry_key(pattern)])
        logger.debug(f"Invalidated {len(keys)} tracked cache keys for: {pattern}")
        return

    try:
        keys = []
        cursor = 0
        while True:
            cursor, partial_keys = redis_conn.scan(cursor, match=f"*{pattern}*", count=100)
            keys.extend(partial_keys)
            if cursor == 0:
                break

        if keys:
            redis_conn.delete(*keys)
            logger.info(f"Invalidated {len(keys)} cache keys matching pattern: {pattern}")
    except Exception as e:
        logger.warning(f"Could not invalidate cache pattern {pattern}: {str(e)}")


def get_cached_products_list(filters_dict):
    """
    Get cached products list with filters
    Returns tuple: (cached_data, cache_key)
    """
    cache_key = make_cache_key(PRODUCTS_LIST_PREFIX, **filters_dict)
    return cache.get(cache_key), cache_key


def cache_products_list(cache_key, data, ttl=PRODUCTS_LIST_CACHE_TTL):
    cache_set(PRODUCTS_LIST_PREFIX, cache_key, data, ttl)


def get_cached_categories(active_only=True):
    cache_key = make_cache_key(CATEGORIES_PREFIX, active_only)
    return cache.get(cache_key), cache_key


def cache_categories(cache_key, data, ttl=CATEGORIES_CACHE_TTL):
    cache_set(CATEGORIES_PREFIX, cache_key, data, ttl)


def get_cached_dashboard_kpis(report, *args):
    """Get cached dashboard data for a report name and its parameters"""
    cache_key = make_cache_key(DASHBOARD_PREFIX, report, *args)
    return cache.get(cache_key), cache_key


def cache_dashboard_kpis(cache_key, data, ttl=DASHBOARD_CACHE_TTL):
    cache_set(DASHBOARD_PREFIX, cache_key, data, ttl)


def invalidate_products_cache():
    """Invalidate all products-related cache"""
    invalidate_cache_pattern(PRODUCTS_LIST_PREFIX)
    invalidate_cache_pattern(CATEGORIES_PREFIX)
    logger.info("Invalidated products cache")


def invalidate_dashboard_cache():
    """Invalidate dashboard KPIs cache"""
    invalidate_cache_pattern(DASHBOARD_PREFIX)
    logger.info("Invalidated dashboard cache")
