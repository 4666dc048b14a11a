"""
Cache invalidation signals
Automatically invalidate cache when data changes
"""
from django.db import transaction
from django.db.models.signals import post_save, post_delete
from django.dispatch import receiver
import logging
import threading
from contextlib import contextmanager

from .cache_utils import invalidate_products_cache, invalidate_dashboard_cache

logger = logging.getLogger(__name__)

# Thread-local storage to track signal suspension
_thread_locals = threading.local()

CATALOG_MODELS = {'Product', 'ProductVariant', 'VariantOption', 'Category'}
DASHBOARD_MODELS = {'Order', 'OrderItem', 'Review'}


@contextmanager
def suspend_cache_signals():
    """
    Context manager to temporarily suspend cache invalidation signals.
    Useful for bulk operations to prevent excessive cache clearing.
    Remember to manually invalidate cache after the block!
    """
    try:
        _thread_locals.suspended = True
        yield
    finally:
        _thread_locals.suspended = False


def is_suspended():
    return getattr(_thread_locals, 'suspended', False)


@receiver([post_save, post_delete])
def invalidate_catalog_cache(sender, instance, **kwargs):
    """Invalidate product and category lists when catalog rows change"""
    if is_suspended() or sender.__name__ not in CATALOG_MODELS:
        return
    # Invalidate after commit so the cache is not repopulated with stale rows
    transaction.on_commit(invalidate_products_cache)


@receiver([post_save, post_delete])
def invalidate_order_cache(sender, instance, **kwargs):
    """Invalidate dashboard data when orders or reviews change"""
    if is_suspended() or sender.__name__ not in DASHBOARD_MODELS:
        return
    transaction.on_commit(invalidate_dashboard_cache)
