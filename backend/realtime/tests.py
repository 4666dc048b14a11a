"""
Test suite for Realtime module
Tests: event buffering, room access and the polling endpoint
"""
from unittest import mock

from django.core.cache import cache
from django.test import TestCase, override_settings
from rest_framework import status
from decimal import Decimal
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.realtime.events import (
    publish_event, get_recent_events, rooms_for_user, user_room, device_room,
    ADMIN_ROOM, PUBLIC_ROOM,
)


class PublishEventTests(TestCase):
    """Test publishing into the poll buffer"""

    def setUp(self):
        cache.clear()

    def test_one_envelope_per_room(self):
        envelopes = publish_event('productUpdated', {'id': 1}, [ADMIN_ROOM, PUBLIC_ROOM])
        self.assertEqual(len(envelopes), 2)
        self.assertEqual({e['room'] for e in envelopes}, {ADMIN_ROOM, PUBLIC_ROOM})
        self.assertLess(envelopes[0]['id'], envelopes[1]['id'])

    def test_single_room_string(self):
        publish_event('bannerUpdated', {'id': 3}, PUBLIC_ROOM)
        events = get_recent_events([PUBLIC_ROOM])
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0]['data'], {'id': 3})

    def test_payload_is_plain_json(self):
        publish_event('discountApplied', {'amount': Decimal('9.50')}, ADMIN_ROOM)
        self.assertEqual(get_recent_events([ADMIN_ROOM])[0]['data'], {'amount': '9.50'})

    def test_filter_by_room_and_since(self):
        first = publish_event('a', {}, PUBLIC_ROOM)[0]
        publish_event('b', {}, ADMIN_ROOM)
        publish_event('c', {}, PUBLIC_ROOM)
        events = get_recent_events([PUBLIC_ROOM], since=first['id'])
        self.assertEqual([e['event'] for e in events], ['c'])

    @override_settings(REALTIME_BUFFER_SIZE=3)
    def test_buffer_is_bounded(self):
        for index in range(5):
            publish_event(f'event{index}', {}, PUBLIC_ROOM)
        events = get_recent_events([PUBLIC_ROOM])
        self.assertEqual([e['event'] for e in events], ['event2', 'event3', 'event4'])

    def test_failure_never_raises(self):
        with mock.patch('backend.realtime.events._buffer_events', side_effect=RuntimeError('cache down')):
            self.assertEqual(publish_event('orderCreated', {'id': 1}, ADMIN_ROOM), [])


class RoomAccessTests(TestCase):
    """Test which rooms a caller may read"""

    def test_anonymous(self):
        self.assertEqual(rooms_for_user(None), [PUBLIC_ROOM])
        self.assertEqual(rooms_for_user(None, 'dev-1'), [PUBLIC_ROOM, device_room('dev-1')])

    def test_customer(self):
        user = TestDataFactory.create_user()
        self.assertEqual(rooms_for_user(user), [PUBLIC_ROOM, user_room(user.id)])

    def test_admin(self):
        admin = TestDataFactory.create_admin()
        self.assertEqual(rooms_for_user(admin), [ADMIN_ROOM, PUBLIC_ROOM, user_room(admin.id)])


class EventListAPITests(TestCase):
    """Test the polling endpoint"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        publish_event('productUpdated', {'id': 1}, PUBLIC_ROOM)
        publish_event('orderCreated', {'order_id': 'ORD-1'}, ADMIN_ROOM)
        publish_event('orderStatusUpdated', {'order_id': 'ORD-2'}, user_room(self.user.id))
        publish_event('wishlistUpdated', {'item_count': 1}, device_room('dev-9'))

    def test_anonymous_sees_public_only(self):
        response = AuthenticatedAPIClient().get('/api/v1/events/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([e['event'] for e in response.data['events']], ['productUpdated'])

    def test_device_header(self):
        client = AuthenticatedAPIClient()
        client.credentials(HTTP_X_DEVICE_ID='dev-9')
        response = client.get('/api/v1/events/')
        self.assertEqual([e['event'] for e in response.data['events']], ['productUpdated', 'wishlistUpdated'])

    def test_user_sees_own_room(self):
        client = AuthenticatedAPIClient().authenticate_user(self.user)
        response = client.get('/api/v1/events/')
        self.assertEqual([e['event'] for e in response.data['events']], ['productUpdated', 'orderStatusUpdated'])
        other = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user())
        response = other.get('/api/v1/events/')
        self.assertEqual([e['event'] for e in response.data['events']], ['productUpdated'])

    def test_admin_sees_admin_room(self):
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_admin())
        response = client.get('/api/v1/events/')
        self.assertIn('orderCreated', [e['event'] for e in response.data['events']])

    def test_since_and_last_id(self):
        client = AuthenticatedAPIClient()
        first = client.get('/api/v1/events/')
        last_id = first.data['last_id']
        publish_event('productDeleted', {'id': 1}, PUBLIC_ROOM)
        response = client.get(f'/api/v1/events/?since={last_id}')
        self.assertEqual([e['event'] for e in response.data['events']], ['productDeleted'])

        response = client.get(f'/api/v1/events/?since={response.data["last_id"]}')
        self.assertEqual(response.data['events'], [])
        self.assertGreater(response.data['last_id'], last_id)
