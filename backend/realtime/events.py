"""
Fire-and-forget change notifications.

Each event is published as JSON on a Redis pub/sub channel per room
(``<prefix>:adminRoom``, ``<prefix>:publicRoom``, ``<prefix>:user_<id>``) and
appended to a bounded buffer in the cache so clients can poll for it.
Clients treat an event as a hint to re-fetch over REST; there is no
acknowledgement, ordering or replay guarantee.
"""
import json
import logging

from django.conf import settings
from django.core.cache import cache
from django.core.serializers.json import DjangoJSONEncoder
from django.utils import timezone

logger = logging.getLogger(__name__)

ADMIN_ROOM = 'adminRoom'
PUBLIC_ROOM = 'publicRoom'

EVENTS_BUFFER_KEY = 'realtime:events'
EVENTS_SEQUENCE_KEY = 'realtime:sequence'

# Event names
ORDER_CREATED = 'orderCreated'
ORDER_STATUS_UPDATED = 'orderStatusUpdated'
PRODUCT_CREATED = 'productCreated'
PRODUCT_UPDATED = 'productUpdated'
PRODUCT_DELETED = 'productDeleted'
CATEGORY_CREATED = 'categoryCreated'
CATEGORY_UPDATED = 'categoryUpdated'
CATEGORY_DELETED = 'categoryDeleted'
DISCOUNT_CREATED = 'discountCreated'
DISCOUNT_APPLIED = 'discountApplied'
REVIEW_ADDED = 'reviewAdded'
WISHLIST_UPDATED = 'wishlistUpdated'
BANNER_UPDATED = 'bannerUpdated'


def user_room(user_id):
    return f'user_{user_id}'


def device_room(device_id):
    return f'device_{device_id}'


def channel_name(room):
    return f"{settings.REALTIME_CHANNEL_PREFIX}:{room}"


def _next_event_id():
    cache.add(EVENTS_SEQUENCE_KEY, 0, None)
    try:
        return cache.incr(EVENTS_SEQUENCE_KEY)
    except ValueError:
        # Sequence was evicted between add and incr
        cache.set(EVENTS_SEQUENCE_KEY, 1, None)
        return 1


def _buffer_events(envelopes):
    events = cache.get(EVENTS_BUFFER_KEY) or []
    events.extend(envelopes)
    cache.set(EVENTS_BUFFER_KEY, events[-settings.REALTIME_BUFFER_SIZE:], None)


def _publish_to_redis(envelopes):
    try:
        from django_redis import get_redis_connection
        redis_conn = get_redis_connection("default")
    except NotImplementedError:
        logger.debug("Cache backend is not Redis; events kept in the poll buffer only")
        return

    for envelope in envelopes:
        redis_conn.publish(channel_name(envelope['room']), json.dumps(envelope, cls=DjangoJSONEncoder))


def publish_event(event, data, rooms):
    """
    Publish ``event`` with ``data`` to each room in ``rooms``.

    Never raises: a failure is logged and the triggering request carries on.
    Returns the envelopes that were buffered.
    """
    if isinstance(rooms, str):
        rooms = [rooms]

    try:
        # Round-trip through the encoder so Decimals and datetimes are plain JSON
        payload = json.loads(json.dumps(data, cls=DjangoJSONEncoder))
        timestamp = timezone.now().isoformat()
        envelopes = [
            {
                'id': _next_event_id(),
                'event': event,
                'room': room,
                'data': payload,
                'timestamp': timestamp,
            }
            for room in rooms
        ]
        _buffer_events(envelopes)
        _publish_to_redis(envelopes)
        logger.debug(f"Published {event} to {', '.join(rooms)}")
        return envelopes
    except Exception as e:
        logger.warning(f"Could not publish event {event} to {rooms}: {str(e)}")
        return []


def get_recent_events(rooms, since=0):
    """Buffered events for the given rooms with an id greater than ``since``"""
    rooms = set(rooms)
    events = cache.get(EVENTS_BUFFER_KEY) or []
    return [envelope for envelope in events if envelope['room'] in rooms and envelope['id'] > since]


def rooms_for_user(user, device_id=None):
    """Rooms a requester is allowed to read"""
    if user is None or not user.is_authenticated:
        return [PUBLIC_ROOM, device_room(device_id)] if device_id else [PUBLIC_ROOM]
    if user.is_admin_user:
        return [ADMIN_ROOM, PUBLIC_ROOM, user_room(user.pk)]
    return [PUBLIC_ROOM, user_room(user.pk)]
