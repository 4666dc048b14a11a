"""
Test suite for Pricing module
Tests: discount rules and amounts, the apply endpoint, sale pricing and sale status windows
"""
from io import StringIO

from django.core.cache import cache
from django.core.management import call_command
from django.test import TestCase, override_settings
from django.utils import timezone
from rest_framework import status
from datetime import timedelta
from decimal import Decimal
from backend.core.exceptions import DiscountInvalid
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.pricing.models import Discount, Sale, SaleItem, refresh_sale_statuses
from backend.realtime.events import get_recent_events, ADMIN_ROOM


class DiscountModelTests(TestCase):
    """Test discount applicability and amounts"""

    def test_percentage_amount(self):
        discount = TestDataFactory.create_discount(value=Decimal('15.00'))
        self.assertEqual(discount.calculate(Decimal('199.99')), Decimal('30.00'))

    def test_fixed_amount_capped_at_total(self):
        discount = TestDataFactory.create_discount(type='fixed', value=Decimal('50.00'))
        self.assertEqual(discount.calculate(Decimal('80.00')), Decimal('50.00'))
        self.assertEqual(discount.calculate(Decimal('30.00')), Decimal('30.00'))

    def test_code_uppercased_on_save(self):
        discount = TestDataFactory.create_discount(code=' spring-5 ')
        self.assertEqual(discount.code, 'SPRING-5')

    def test_inactive(self):
        discount = TestDataFactory.create_discount(is_active=False)
        with self.assertRaises(DiscountInvalid):
            discount.calculate(Decimal('100.00'))

    def test_date_window(self):
        now = timezone.now()
        future = TestDataFactory.create_discount(start_date=now + timedelta(days=1))
        with self.assertRaisesMessage(DiscountInvalid, 'not yet valid'):
            future.calculate(Decimal('100.00'))
        expired = TestDataFactory.create_discount(start_date=now - timedelta(days=5), end_date=now - timedelta(days=1))
        with self.assertRaisesMessage(DiscountInvalid, 'expired'):
            expired.calculate(Decimal('100.00'))

    def test_usage_limit(self):
        discount = TestDataFactory.create_discount(usage_limit=1)
        discount.record_use()
        discount.refresh_from_db()
        self.assertEqual(discount.used_count, 1)
        with self.assertRaisesMessage(DiscountInvalid, 'usage limit'):
            discount.calculate(Decimal('100.00'))

    def test_minimum_order_amount(self):
        discount = TestDataFactory.create_discount(min_order_amount=Decimal('500.00'))
        with self.assertRaises(DiscountInvalid) as ctx:
            discount.calculate(Decimal('499.99'))
        self.assertEqual(ctx.exception.detail, {'min_order_amount': '500.00'})
        self.assertEqual(discount.calculate(Decimal('500.00')), Decimal('50.00'))

    def test_product_restriction(self):
        included = TestDataFactory.create_product()
        other = TestDataFactory.create_product()
        discount = TestDataFactory.create_discount(applicable_to='products')
        discount.products.add(included)
        with self.assertRaises(DiscountInvalid):
            discount.calculate(Decimal('100.00'), [other.id])
        self.assertEqual(discount.calculate(Decimal('100.00'), [other.id, included.id]), Decimal('10.00'))

    def test_category_restriction(self):
        phones = TestDataFactory.create_category(name='Phones')
        phone = TestDataFactory.create_product(category=phones)
        other = TestDataFactory.create_product()
        discount = TestDataFactory.create_discount(applicable_to='categories')
        discount.categories.add(phones)
        with self.assertRaises(DiscountInvalid):
            discount.calculate(Decimal('100.00'), [other.id])
        self.assertEqual(discount.calculate(Decimal('100.00'), [phone.id]), Decimal('10.00'))


class DiscountAPITests(TestCase):
    """Test discount apply and management endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def test_apply_discount(self):
        TestDataFactory.create_discount(code='TENOFF')
        response = self.client.post('/api/v1/discounts/apply/', {'code': 'tenoff', 'order_total': '200.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['discount_amount'], '20.00')
        self.assertEqual(response.data['final_total'], '180.00')

        event = get_recent_events([ADMIN_ROOM])[-1]
        self.assertEqual(event['event'], 'discountApplied')
        self.assertEqual(event['data']['user_id'], self.user.id)

    def test_apply_unknown_code(self):
        response = self.client.post('/api/v1/discounts/apply/', {'code': 'NOPE', 'order_total': '10.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Invalid discount code')

    def test_apply_rule_failure(self):
        TestDataFactory.create_discount(code='BIGSPEND', min_order_amount=Decimal('1000.00'))
        response = self.client.post('/api/v1/discounts/apply/', {'code': 'BIGSPEND', 'order_total': '10.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Minimum order amount', response.data['error'])
        self.assertEqual(response.data['detail']['min_order_amount'], '1000.00')

    def test_apply_does_not_consume_use(self):
        discount = TestDataFactory.create_discount(code='ONCE', usage_limit=1)
        self.client.post('/api/v1/discounts/apply/', {'code': 'ONCE', 'order_total': '50.00'}, format='json')
        discount.refresh_from_db()
        self.assertEqual(discount.used_count, 0)

    def test_apply_requires_authentication(self):
        self.client.logout()
        response = self.client.post('/api/v1/discounts/apply/', {'code': 'X', 'order_total': '1.00'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_admin_create_discount(self):
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_admin())
        now = timezone.now()
        response = client.post('/api/v1/admin/discounts/', {
            'code': 'new-year',
            'type': 'percentage',
            'value': '25.00',
            'start_date': now.isoformat(),
            'end_date': (now + timedelta(days=3)).isoformat(),
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['code'], 'NEW-YEAR')
        self.assertTrue(Discount.objects.filter(code='NEW-YEAR').exists())
        self.assertEqual(get_recent_events([ADMIN_ROOM])[-1]['event'], 'discountCreated')

    def test_admin_create_validation(self):
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_admin())
        TestDataFactory.create_discount(code='TAKEN')
        now = timezone.now()
        base = {
            'type': 'percentage',
            'start_date': now.isoformat(),
            'end_date': (now + timedelta(days=3)).isoformat(),
        }
        response = client.post('/api/v1/admin/discounts/', {**base, 'code': 'taken', 'value': '5.00'}, format='json')
        self.assertIn('code', response.data)
        response = client.post('/api/v1/admin/discounts/', {**base, 'code': 'HUGE', 'value': '150.00'}, format='json')
        self.assertIn('value', response.data)
        response = client.post('/api/v1/admin/discounts/', {
            **base, 'code': 'BACKWARDS', 'value': '5.00', 'end_date': (now - timedelta(days=1)).isoformat(),
        }, format='json')
        self.assertIn('end_date', response.data)
        response = client.post('/api/v1/admin/discounts/', {
            **base, 'code': 'PICKY', 'value': '5.00', 'applicable_to': 'products',
        }, format='json')
        self.assertIn('products', response.data)

    def test_customer_cannot_manage(self):
        response = self.client.get('/api/v1/admin/discounts/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class SaleModelTests(TestCase):
    """Test sale statuses and sale prices"""

    def setUp(self):
        self.now = timezone.now()

    def _sale(self, status='scheduled', start=-1, end=1, **extra):
        return Sale.objects.create(
            title='Weekend', type='weekend_deal', status=status,
            start_date=self.now + timedelta(days=start),
            end_date=self.now + timedelta(days=end),
            **extra
        )

    def test_status_follows_window(self):
        self.assertEqual(self._sale().status, 'active')
        self.assertEqual(self._sale(start=1, end=2).status, 'scheduled')
        self.assertEqual(self._sale(start=-3, end=-1).status, 'expired')

    def test_manual_statuses_kept(self):
        self.assertEqual(self._sale(status='draft').status, 'draft')
        self.assertEqual(self._sale(status='cancelled').status, 'cancelled')

    def test_refresh_sale_statuses(self):
        upcoming = self._sale(start=1, end=2)
        running = self._sale()
        Sale.objects.filter(pk=upcoming.pk).update(start_date=self.now - timedelta(hours=1))
        Sale.objects.filter(pk=running.pk).update(end_date=self.now - timedelta(minutes=1))

        self.assertEqual(refresh_sale_statuses(), 2)
        upcoming.refresh_from_db()
        running.refresh_from_db()
        self.assertEqual(upcoming.status, 'active')
        self.assertEqual(running.status, 'expired')

    def test_update_sale_statuses_command(self):
        sale = self._sale(start=1, end=2)
        Sale.objects.filter(pk=sale.pk).update(start_date=self.now - timedelta(hours=1))
        out = StringIO()
        call_command('update_sale_statuses', stdout=out)
        self.assertIn('Updated 1 sale(s)', out.getvalue())
        sale.refresh_from_db()
        self.assertEqual(sale.status, 'active')

    def test_sale_price_percentage_with_cap(self):
        sale = self._sale()
        product = TestDataFactory.create_product(price=Decimal('200.00'))
        item = SaleItem.objects.create(sale=sale, product=product, discount_type='percentage',
                                       discount_value=Decimal('50.00'), max_discount_amount=Decimal('30.00'),
                                       original_price=Decimal('200.00'))
        self.assertEqual(item.sale_price, Decimal('170.00'))

    def test_sale_price_fixed_and_remaining(self):
        sale = self._sale()
        product = TestDataFactory.create_product()
        item = SaleItem.objects.create(sale=sale, product=product, discount_type='fixed',
                                       discount_value=Decimal('25.00'), original_price=Decimal('100.00'),
                                       stock_limit=10, sold_count=4)
        self.assertEqual(item.sale_price, Decimal('75.00'))
        self.assertEqual(item.remaining, 6)


class SaleAPITests(TestCase):
    """Test sale endpoints"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_admin())
        self.now = timezone.now()
        self.product = TestDataFactory.create_product(price=Decimal('100.00'))

    def _payload(self, **overrides):
        payload = {
            'title': 'Flash Friday',
            'type': 'flash_sale',
            'status': 'scheduled',
            'start_date': (self.now - timedelta(hours=1)).isoformat(),
            'end_date': (self.now + timedelta(hours=5)).isoformat(),
            'items': [{'product': self.product.id, 'discount_type': 'percentage', 'discount_value': '20.00'}],
        }
        payload.update(overrides)
        return payload

    def test_create_sale_with_items(self):
        response = self.client.post('/api/v1/admin/sales/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'active')
        item = response.data['items'][0]
        self.assertEqual(item['original_price'], '100.00')
        self.assertEqual(item['sale_price'], '80.00')

    def test_active_sales_public(self):
        self.client.post('/api/v1/admin/sales/', self._payload(), format='json')
        self.client.post('/api/v1/admin/sales/', self._payload(title='Later', type='mega_sale', start_date=(self.now + timedelta(days=1)).isoformat(),
                                                               end_date=(self.now + timedelta(days=2)).isoformat()), format='json')
        response = AuthenticatedAPIClient().get('/api/v1/sales/active/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([sale['title'] for sale in response.data], ['Flash Friday'])

    def test_public_sale_detail(self):
        running = self.client.post('/api/v1/admin/sales/', self._payload(), format='json').data['id']
        draft = self.client.post('/api/v1/admin/sales/', self._payload(title='Draft', type='mega_sale', status='draft'),
                                 format='json').data['id']
        response = AuthenticatedAPIClient().get(f'/api/v1/sales/{running}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['title'], 'Flash Friday')
        self.assertEqual(len(response.data['items']), 1)
        response = AuthenticatedAPIClient().get(f'/api/v1/sales/{draft}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_sale_page_data(self):
        other = TestDataFactory.create_product(title='Headphones', price=Decimal('200.00'))
        self.client.post('/api/v1/admin/sales/', self._payload(priority=2), format='json')
        items = [
            {'product': self.product.id, 'discount_type': 'percentage', 'discount_value': '50.00'},
            {'product': other.id, 'discount_type': 'fixed', 'discount_value': '20.00'},
        ]
        self.client.post('/api/v1/admin/sales/', self._payload(title='Mega Week', type='mega_sale', priority=1, items=items),
                         format='json')

        client = AuthenticatedAPIClient()
        response = client.get('/api/v1/sales/page-data/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)
        cards = {card['id']: card['sale_info'] for card in response.data['results']}
        # The better of the two deals wins
        self.assertEqual(cards[self.product.id]['sale_title'], 'Mega Week')
        self.assertEqual(cards[self.product.id]['sale_price'], '50.00')
        self.assertEqual(cards[other.id]['sale_price'], '180.00')
        self.assertEqual({row['type'] for row in response.data['summary']}, {'flash_sale', 'mega_sale'})

        response = client.get('/api/v1/sales/page-data/?type=flash_sale&limit=1')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['sale_info']['sale_price'], '80.00')

        response = client.get('/api/v1/sales/page-data/?sortBy=priority&order=asc')
        self.assertEqual(response.data['results'][0]['sale_info']['sale_title'], 'Mega Week')
        response = client.get('/api/v1/sales/page-data/?sortBy=price')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    @override_settings(SALES_CONFIG={'MAX_ITEMS_PER_SALE': 50, 'MAX_DISCOUNT_PERCENTAGE': 90, 'MAX_ACTIVE_FLASH_SALES': 1})
    def test_active_flash_sale_limit(self):
        first = self.client.post('/api/v1/admin/sales/', self._payload(), format='json')
        self.assertEqual(first.status_code, status.HTTP_201_CREATED)
        second = self.client.post('/api/v1/admin/sales/', self._payload(title='Another flash'), format='json')
        self.assertEqual(second.status_code, status.HTTP_400_BAD_REQUEST)

    @override_settings(SALES_CONFIG={'MAX_ITEMS_PER_SALE': 1, 'MAX_DISCOUNT_PERCENTAGE': 90, 'MAX_ACTIVE_FLASH_SALES': 5})
    def test_items_per_sale_limit(self):
        other = TestDataFactory.create_product()
        items = [
            {'product': self.product.id, 'discount_type': 'percentage', 'discount_value': '10.00'},
            {'product': other.id, 'discount_type': 'percentage', 'discount_value': '10.00'},
        ]
        response = self.client.post('/api/v1/admin/sales/', self._payload(items=items), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('items', response.data)

    def test_discount_percentage_limit(self):
        items = [{'product': self.product.id, 'discount_type': 'percentage', 'discount_value': '95.00'}]
        response = self.client.post('/api/v1/admin/sales/', self._payload(items=items), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_duplicate_product_in_sale(self):
        item = {'product': self.product.id, 'discount_type': 'fixed', 'discount_value': '5.00'}
        response = self.client.post('/api/v1/admin/sales/', self._payload(items=[item, item]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cancel_sale(self):
        sale_id = self.client.post('/api/v1/admin/sales/', self._payload(), format='json').data['id']
        response = self.client.patch(f'/api/v1/admin/sales/{sale_id}/', {'status': 'cancelled'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'cancelled')
        self.assertEqual(AuthenticatedAPIClient().get('/api/v1/sales/active/').data, [])
