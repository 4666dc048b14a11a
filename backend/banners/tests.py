"""
Test suite for Banners module
Tests: active banner listing, admin banner CRUD and hero image uploads
"""
from io import BytesIO

from django.core.cache import cache
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase
from PIL import Image
from rest_framework import status
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.banners.models import Banner, HeroImage
from backend.realtime.events import get_recent_events, PUBLIC_ROOM


def make_png(name='slide.png', size=(20, 10)):
    buffer = BytesIO()
    Image.new('RGB', size, color=(200, 30, 30)).save(buffer, format='PNG')
    return SimpleUploadedFile(name, buffer.getvalue(), content_type='image/png')


class BannerAPITests(TestCase):
    """Test public banner endpoints"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        Banner.objects.create(title='Low', image_url='https://cdn.test/low.jpg', priority=1)
        Banner.objects.create(title='High', image_url='https://cdn.test/high.jpg', priority=5)
        Banner.objects.create(title='Mini', image_url='https://cdn.test/mini.jpg', position='mini-banner')
        Banner.objects.create(title='Off', image_url='https://cdn.test/off.jpg', is_active=False)

    def test_active_banners_by_priority(self):
        response = self.client.get('/api/v1/banners/active/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        titles = [banner['title'] for banner in response.data]
        self.assertEqual(titles[:2], ['High', 'Low'])
        self.assertNotIn('Off', titles)

    def test_position_filter(self):
        response = self.client.get('/api/v1/banners/active/?position=mini-banner')
        self.assertEqual([banner['title'] for banner in response.data], ['Mini'])


class AdminBannerAPITests(TestCase):
    """Test banner management endpoints"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_admin())

    def test_create_banner(self):
        response = self.client.post('/api/v1/admin/banners/', {
            'title': 'Summer Sale',
            'image_url': 'https://cdn.test/summer.jpg',
            'video_urls': ['https://cdn.test/summer.mp4'],
            'priority': 3,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        event = get_recent_events([PUBLIC_ROOM])[-1]
        self.assertEqual(event['event'], 'bannerUpdated')
        self.assertEqual(event['data'], {'action': 'created', 'id': response.data['id']})

    def test_invalid_video_urls(self):
        response = self.client.post('/api/v1/admin/banners/', {
            'title': 'Broken',
            'image_url': 'https://cdn.test/broken.jpg',
            'video_urls': 'https://cdn.test/not-a-list.mp4',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_and_delete(self):
        banner = Banner.objects.create(title='Old', image_url='https://cdn.test/old.jpg')
        response = self.client.patch(f'/api/v1/admin/banners/{banner.id}/', {'is_active': False}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data['is_active'])

        response = self.client.delete(f'/api/v1/admin/banners/{banner.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Banner.objects.exists())
        self.assertEqual(get_recent_events([PUBLIC_ROOM])[-1]['data']['action'], 'deleted')

    def test_customer_forbidden(self):
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user())
        response = client.get('/api/v1/admin/banners/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class HeroImageAPITests(TestCase):
    """Test hero image upload endpoints"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_admin())

    def test_upload_hero_image(self):
        response = self.client.post('/api/v1/admin/hero-images/', {
            'image': make_png(),
            'title': 'Slide one',
            'order': 2,
        }, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertIn('hero_images/', response.data['image_url'])
        self.assertTrue(response.data['image_url'].startswith('http'))

    def test_upload_requires_image(self):
        response = self.client.post('/api/v1/admin/hero-images/', {'title': 'No file'}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Image file is required')

    def test_list_in_display_order(self):
        HeroImage.objects.create(image=make_png('b.png'), title='Second', order=2)
        HeroImage.objects.create(image=make_png('a.png'), title='First', order=1)
        self.client.logout()
        response = self.client.get('/api/v1/hero-images/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([image['title'] for image in response.data], ['First', 'Second'])

    def test_update_without_new_image(self):
        hero_image = HeroImage.objects.create(image=make_png(), title='Before')
        response = self.client.patch(f'/api/v1/admin/hero-images/{hero_image.id}/', {'title': 'After'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['title'], 'After')

    def test_delete_hero_image(self):
        hero_image = HeroImage.objects.create(image=make_png(), title='Gone')
        response = self.client.delete(f'/api/v1/admin/hero-images/{hero_image.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(HeroImage.objects.exists())
