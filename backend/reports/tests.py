"""
Test suite for Reports module
Tests: dashboard totals, sales chart grouping, top products, category sales and caching
"""
from django.core.cache import cache
from django.test import TestCase, override_settings
from rest_framework import status
from decimal import Decimal
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class ReportsTests(TestCase):
    """Test report endpoints"""

    def setUp(self):
        cache.clear()
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)

        self.phones = TestDataFactory.create_category(name='Phones')
        self.cases = TestDataFactory.create_category(name='Cases')
        self.phone = TestDataFactory.create_product(title='Phone X', category=self.phones, price=Decimal('500.00'), stock=20)
        self.case = TestDataFactory.create_product(title='Case Y', category=self.cases, price=Decimal('20.00'), stock=2)

        self.customer = TestDataFactory.create_user()
        TestDataFactory.create_order(self.customer, self.phone, quantity=1, status='delivered')
        TestDataFactory.create_order(self.customer, self.case, quantity=3, status='pending')
        TestDataFactory.create_order(self.customer, self.phone, quantity=2, status='cancelled')

    def test_dashboard(self):
        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        totals = response.data['totals']
        self.assertEqual(totals['revenue'], 560.0)
        self.assertEqual(totals['orders'], 3)
        self.assertEqual(totals['customers'], 1)
        self.assertEqual(totals['products'], 2)
        self.assertEqual(response.data['orders_by_status']['cancelled'], 1)
        self.assertEqual(response.data['orders_by_status']['shipped'], 0)

    @override_settings(LOW_STOCK_THRESHOLD=5)
    def test_dashboard_low_stock_and_flagged_reviews(self):
        TestDataFactory.create_review(self.customer, self.phone, is_flagged=True)
        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.data['low_stock_count'], 1)
        self.assertEqual(response.data['pending_reviews_count'], 1)

    def test_dashboard_cached(self):
        first = self.client.get('/api/v1/reports/dashboard/')
        second = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(first['X-Cache'], 'MISS')
        self.assertEqual(second['X-Cache'], 'HIT')

    def test_dashboard_cache_cleared_when_orders_change(self):
        self.client.get('/api/v1/reports/dashboard/')
        with self.captureOnCommitCallbacks(execute=True):
            TestDataFactory.create_order(self.customer, self.case)
        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response['X-Cache'], 'MISS')
        self.assertEqual(response.data['totals']['orders'], 4)

    def test_dashboard_invalid_date(self):
        response = self.client.get('/api/v1/reports/dashboard/?date_from=yesterday')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_dashboard_requires_admin(self):
        client = AuthenticatedAPIClient().authenticate_user(self.customer)
        response = client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_sales_chart_by_day(self):
        response = self.client.get('/api/v1/reports/sales-chart/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['group_by'], 'day')
        self.assertEqual(len(response.data['data']), 1)
        point = response.data['data'][0]
        self.assertEqual(point['orders'], 2)
        self.assertEqual(point['revenue'], 560.0)

    def test_sales_chart_by_month(self):
        response = self.client.get('/api/v1/reports/sales-chart/?group_by=month')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['data'][0]['period']), 7)

    def test_sales_chart_invalid_grouping(self):
        response = self.client.get('/api/v1/reports/sales-chart/?group_by=week')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_sales_chart_with_date_range(self):
        response = self.client.get('/api/v1/reports/sales-chart/?date_from=2020-01-01&date_to=2020-12-31')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['data'], [])

    def test_top_products(self):
        response = self.client.get('/api/v1/reports/top-products/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        products = response.data['products']
        self.assertEqual(products[0]['product_id'], self.case.id)
        self.assertEqual(products[0]['quantity_sold'], 3)
        self.assertEqual(products[0]['revenue'], 60.0)
        self.assertEqual(products[1]['product_id'], self.phone.id)
        self.assertEqual(products[1]['quantity_sold'], 1)

    def test_top_products_limit(self):
        response = self.client.get('/api/v1/reports/top-products/?limit=1')
        self.assertEqual(len(response.data['products']), 1)

    def test_category_sales(self):
        response = self.client.get('/api/v1/reports/category-sales/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        categories = response.data['categories']
        self.assertEqual(categories[0]['name'], 'Phones')
        self.assertEqual(categories[0]['revenue'], 500.0)
        self.assertEqual(categories[1]['name'], 'Cases')
        self.assertEqual(categories[1]['revenue'], 60.0)
