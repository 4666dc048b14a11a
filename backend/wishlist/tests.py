"""
Test suite for Wishlist module
Tests: user and device owned wishlists, duplicates, variant checks and removal
"""
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.wishlist.models import Wishlist, WishlistItem
from backend.realtime.events import get_recent_events, user_room, device_room


class DeviceWishlistTests(TestCase):
    """Anonymous wishlists keyed by device id"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.client.credentials(HTTP_X_DEVICE_ID='device-abc')
        self.product = TestDataFactory.create_product()

    def test_empty_wishlist(self):
        response = self.client.get('/api/v1/wishlist/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['items'], [])
        self.assertFalse(Wishlist.objects.exists())

    def test_add_item(self):
        response = self.client.post('/api/v1/wishlist/items/', {'product_id': self.product.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['device_id'], 'device-abc')
        self.assertEqual(response.data['items'][0]['product']['id'], self.product.id)
        events = get_recent_events([device_room('device-abc')])
        self.assertEqual(events[-1]['event'], 'wishlistUpdated')

    def test_device_id_param(self):
        client = AuthenticatedAPIClient()
        response = client.post('/api/v1/wishlist/items/?device_id=device-xyz', {'product_id': self.product.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(Wishlist.objects.filter(device_id='device-xyz').exists())

    def test_duplicate_rejected(self):
        self.client.post('/api/v1/wishlist/items/', {'product_id': self.product.id}, format='json')
        response = self.client.post('/api/v1/wishlist/items/', {'product_id': self.product.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(WishlistItem.objects.count(), 1)

    def test_same_product_different_variants(self):
        first = TestDataFactory.create_variant(self.product, color='Red')
        second = TestDataFactory.create_variant(self.product, color='Blue')
        self.client.post('/api/v1/wishlist/items/', {'product_id': self.product.id, 'variant_id': first.id}, format='json')
        response = self.client.post('/api/v1/wishlist/items/', {'product_id': self.product.id, 'variant_id': second.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['item_count'], 2)

    def test_variant_of_other_product_rejected(self):
        variant = TestDataFactory.create_variant(TestDataFactory.create_product())
        response = self.client.post('/api/v1/wishlist/items/', {'product_id': self.product.id, 'variant_id': variant.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_remove_item(self):
        self.client.post('/api/v1/wishlist/items/', {'product_id': self.product.id}, format='json')
        response = self.client.delete(f'/api/v1/wishlist/items/{self.product.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['items'], [])

    def test_remove_missing_item(self):
        response = self.client.delete(f'/api/v1/wishlist/items/{self.product.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_remove_with_malformed_variant_id(self):
        self.client.post('/api/v1/wishlist/items/', {'product_id': self.product.id}, format='json')
        response = self.client.delete(f'/api/v1/wishlist/items/{self.product.id}/?variant_id=abc')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.client.get('/api/v1/wishlist/').data['item_count'], 1)

    def test_no_owner_rejected(self):
        client = AuthenticatedAPIClient()
        self.assertEqual(client.get('/api/v1/wishlist/').status_code, status.HTTP_400_BAD_REQUEST)
        response = client.post('/api/v1/wishlist/items/', {'product_id': self.product.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = client.delete(f'/api/v1/wishlist/items/{self.product.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class UserWishlistTests(TestCase):
    """Wishlists of signed-in users"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product()

    def test_add_uses_user_wishlist(self):
        response = self.client.post('/api/v1/wishlist/items/', {'product_id': self.product.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        wishlist = Wishlist.objects.get()
        self.assertEqual(wishlist.user, self.user)
        self.assertIsNone(wishlist.device_id)
        events = get_recent_events([user_room(self.user.id)])
        self.assertEqual(events[-1]['event'], 'wishlistUpdated')

    def test_one_wishlist_per_user(self):
        self.client.post('/api/v1/wishlist/items/', {'product_id': self.product.id}, format='json')
        self.client.post('/api/v1/wishlist/items/', {'product_id': TestDataFactory.create_product().id}, format='json')
        self.assertEqual(Wishlist.objects.count(), 1)
        response = self.client.get('/api/v1/wishlist/')
        self.assertEqual(response.data['item_count'], 2)

    def test_remove_by_variant(self):
        red = TestDataFactory.create_variant(self.product, color='Red')
        blue = TestDataFactory.create_variant(self.product, color='Blue')
        self.client.post('/api/v1/wishlist/items/', {'product_id': self.product.id, 'variant_id': red.id}, format='json')
        self.client.post('/api/v1/wishlist/items/', {'product_id': self.product.id, 'variant_id': blue.id}, format='json')
        response = self.client.delete(f'/api/v1/wishlist/items/{self.product.id}/?variant_id={red.id}')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['item_count'], 1)
        self.assertEqual(response.data['items'][0]['variant_color'], 'Blue')
