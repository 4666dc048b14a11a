"""
Test suite for Reviews module
Tests: review creation, rating aggregation, ownership, votes and moderation
"""
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from decimal import Decimal
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.reviews.models import Review, update_product_rating
from backend.realtime.events import get_recent_events, PUBLIC_ROOM, ADMIN_ROOM


class RatingAggregationTests(TestCase):
    """Test product rating recomputation"""

    def setUp(self):
        self.product = TestDataFactory.create_product()

    def test_average_rounded_to_one_decimal(self):
        for rating in (5, 4, 4):
            TestDataFactory.create_review(TestDataFactory.create_user(), self.product, rating=rating)
        average, total = update_product_rating(self.product.id)
        self.product.refresh_from_db()
        self.assertEqual(average, Decimal('4.3'))
        self.assertEqual(self.product.average_rating, Decimal('4.3'))
        self.assertEqual(self.product.num_reviews, 3)

    def test_flagged_reviews_excluded(self):
        TestDataFactory.create_review(TestDataFactory.create_user(), self.product, rating=5)
        TestDataFactory.create_review(TestDataFactory.create_user(), self.product, rating=1, is_flagged=True)
        update_product_rating(self.product.id)
        self.product.refresh_from_db()
        self.assertEqual(self.product.average_rating, Decimal('5.0'))
        self.assertEqual(self.product.num_reviews, 1)

    def test_no_reviews_resets_to_zero(self):
        update_product_rating(self.product.id)
        self.product.refresh_from_db()
        self.assertEqual(self.product.average_rating, Decimal('0.0'))
        self.assertEqual(self.product.num_reviews, 0)


class ReviewAPITests(TestCase):
    """Test customer review endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product()
        self.url = f'/api/v1/products/{self.product.id}/reviews/'

    def test_create_review(self):
        response = self.client.post(self.url, {'rating': 4, 'comment': 'Solid phone'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertFalse(response.data['verified_purchase'])
        self.product.refresh_from_db()
        self.assertEqual(self.product.average_rating, Decimal('4.0'))
        self.assertEqual(self.product.num_reviews, 1)

        public_events = get_recent_events([PUBLIC_ROOM])
        admin_events = get_recent_events([ADMIN_ROOM])
        self.assertEqual(public_events[-1]['event'], 'reviewAdded')
        self.assertEqual(admin_events[-1]['event'], 'reviewAdded')

    def test_create_review_verified_purchase(self):
        order = TestDataFactory.create_order(self.user, self.product, status='delivered')
        response = self.client.post(self.url, {'rating': 5}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['verified_purchase'])
        self.assertEqual(response.data['order'], order.id)

    def test_undelivered_order_not_verified(self):
        TestDataFactory.create_order(self.user, self.product, status='shipped')
        response = self.client.post(self.url, {'rating': 5}, format='json')
        self.assertFalse(response.data['verified_purchase'])

    def test_duplicate_review_rejected(self):
        self.client.post(self.url, {'rating': 4}, format='json')
        response = self.client.post(self.url, {'rating': 2}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('already reviewed', response.data['error'])

    def test_rating_out_of_range(self):
        response = self.client.post(self.url, {'rating': 6}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.post(self.url, {'rating': 0}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_comment_too_long(self):
        response = self.client.post(self.url, {'rating': 3, 'comment': 'x' * 1001}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_hides_flagged(self):
        TestDataFactory.create_review(TestDataFactory.create_user(), self.product, rating=5)
        TestDataFactory.create_review(TestDataFactory.create_user(), self.product, rating=1, is_flagged=True)
        self.client.logout()
        response = self.client.get(self.url)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

    def test_list_rating_filter(self):
        TestDataFactory.create_review(TestDataFactory.create_user(), self.product, rating=5)
        TestDataFactory.create_review(TestDataFactory.create_user(), self.product, rating=3)
        response = self.client.get(f'{self.url}?rating=3')
        self.assertEqual(response.data['count'], 1)
        response = self.client.get(f'{self.url}?rating=abc')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_create_requires_authentication(self):
        self.client.logout()
        response = self.client.post(self.url, {'rating': 4}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_owner_can_update(self):
        review = TestDataFactory.create_review(self.user, self.product, rating=2)
        response = self.client.patch(f'/api/v1/reviews/{review.id}/', {'rating': 4}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.product.refresh_from_db()
        self.assertEqual(self.product.average_rating, Decimal('4.0'))

    def test_other_user_cannot_update_or_delete(self):
        review = TestDataFactory.create_review(TestDataFactory.create_user(), self.product)
        response = self.client.patch(f'/api/v1/reviews/{review.id}/', {'rating': 1}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        response = self.client.delete(f'/api/v1/reviews/{review.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_owner_can_delete(self):
        review = TestDataFactory.create_review(self.user, self.product, rating=5)
        update_product_rating(self.product.id)
        response = self.client.delete(f'/api/v1/reviews/{review.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.product.refresh_from_db()
        self.assertEqual(self.product.num_reviews, 0)

    def test_my_reviews(self):
        TestDataFactory.create_review(self.user, self.product)
        TestDataFactory.create_review(TestDataFactory.create_user(), self.product)
        response = self.client.get('/api/v1/reviews/mine/')
        self.assertEqual(response.data['count'], 1)

    def test_vote(self):
        review = TestDataFactory.create_review(TestDataFactory.create_user(), self.product)
        self.client.post(f'/api/v1/reviews/{review.id}/vote/', {'helpful': True}, format='json')
        response = self.client.post(f'/api/v1/reviews/{review.id}/vote/', {'helpful': False}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['helpful_count'], 1)
        self.assertEqual(response.data['unhelpful_count'], 1)


class AdminReviewAPITests(TestCase):
    """Test review moderation endpoints"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_admin())
        self.product = TestDataFactory.create_product()
        self.review = TestDataFactory.create_review(TestDataFactory.create_user(), self.product, rating=1)
        TestDataFactory.create_review(TestDataFactory.create_user(), self.product, rating=5)
        update_product_rating(self.product.id)

    def test_flag_recomputes_rating(self):
        response = self.client.patch(f'/api/v1/admin/reviews/{self.review.id}/flag/', {'is_flagged': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['is_flagged'])
        self.product.refresh_from_db()
        self.assertEqual(self.product.average_rating, Decimal('5.0'))
        self.assertEqual(self.product.num_reviews, 1)

    def test_list_flagged_filter(self):
        Review.objects.filter(pk=self.review.pk).update(is_flagged=True)
        response = self.client.get('/api/v1/admin/reviews/?flagged=true')
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/admin/reviews/')
        self.assertEqual(response.data['count'], 2)

    def test_admin_delete(self):
        response = self.client.delete(f'/api/v1/admin/reviews/{self.review.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.product.refresh_from_db()
        self.assertEqual(self.product.num_reviews, 1)

    def test_customer_cannot_moderate(self):
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user())
        response = client.patch(f'/api/v1/admin/reviews/{self.review.id}/flag/', {'is_flagged': True}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
