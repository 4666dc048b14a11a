"""
Test suite for Orders module
Tests: order placement, stock handling, discounts, cancellation, admin status changes and invoices
"""
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from decimal import Decimal
from backend.core.exceptions import InsufficientStock, OrderStateError, StorefrontError
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient, SHIPPING_ADDRESS
from backend.orders.models import Order
from backend.orders.services import place_order, restore_stock, update_order_status, cancel_order
from backend.realtime.events import get_recent_events, ADMIN_ROOM, user_room


class OrderModelTests(TestCase):
    """Test Order and OrderItem model methods"""

    def setUp(self):
        self.user = TestDataFactory.create_user()

    def test_total_amount_computed_on_save(self):
        order = TestDataFactory.create_order(self.user, TestDataFactory.create_product(price=Decimal('50.00')), quantity=2)
        order.shipping_total = Decimal('7.00')
        order.discount_amount = Decimal('10.00')
        order.save()
        self.assertEqual(order.total_amount, Decimal('97.00'))

    def test_total_amount_never_negative(self):
        order = TestDataFactory.create_order(self.user, TestDataFactory.create_product(price=Decimal('5.00')))
        order.discount_amount = Decimal('50.00')
        order.save()
        self.assertEqual(order.total_amount, Decimal('0.00'))

    def test_item_unit_price_prefers_discount_price(self):
        product = TestDataFactory.create_product(price=Decimal('100.00'), discount_price=Decimal('80.00'))
        order = TestDataFactory.create_order(self.user, product, quantity=3)
        item = order.items.get()
        self.assertEqual(item.unit_price, Decimal('80.00'))
        self.assertEqual(item.line_total, Decimal('240.00'))

    def test_billing_address_falls_back_to_shipping(self):
        order = TestDataFactory.create_order(self.user)
        self.assertTrue(order.billing_same_as_shipping)
        self.assertEqual(order.address('billing'), order.address('shipping'))
        self.assertEqual(order.address('shipping')['city'], SHIPPING_ADDRESS['city'])


class OrderServiceTests(TestCase):
    """Test placement and stock bookkeeping"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.product = TestDataFactory.create_product(price=Decimal('100.00'), stock=10, shipping_cost=Decimal('5.00'))

    def test_place_order_takes_stock_and_totals(self):
        order = place_order(self.user, [{'product_id': self.product.id, 'quantity': 2}], SHIPPING_ADDRESS)
        self.assertTrue(order.order_id.startswith('ORD-'))
        self.assertEqual(len(order.order_id), 12)
        self.assertEqual(order.subtotal, Decimal('200.00'))
        self.assertEqual(order.shipping_total, Decimal('10.00'))
        self.assertEqual(order.total_amount, Decimal('210.00'))
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 8)

        item = order.items.get()
        self.assertEqual(item.variant_type, 'simple')
        self.assertEqual(item.item_name, self.product.title)
        self.assertEqual(item.sku, self.product.sku)

    def test_insufficient_stock_leaves_nothing_behind(self):
        with self.assertRaises(InsufficientStock):
            place_order(self.user, [{'product_id': self.product.id, 'quantity': 11}], SHIPPING_ADDRESS)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)
        self.assertFalse(Order.objects.exists())

    def test_option_line_takes_option_stock(self):
        product = TestDataFactory.create_product(price=None, stock=0)
        variant = TestDataFactory.create_variant(product, color='Black', price=None, stock=0)
        option = TestDataFactory.create_option(variant, value='256GB', price=Decimal('300.00'), discount_price=Decimal('280.00'), stock=4)

        order = place_order(
            self.user,
            [{'product_id': product.id, 'variant_id': variant.id, 'option_id': option.id, 'quantity': 1}],
            SHIPPING_ADDRESS,
        )
        item = order.items.get()
        self.assertEqual(item.variant_type, 'storage')
        self.assertEqual(item.color, 'Black')
        self.assertEqual(item.option_value, '256GB')
        self.assertEqual(order.subtotal, Decimal('280.00'))
        option.refresh_from_db()
        self.assertEqual(option.stock, 3)

    def test_product_with_variants_requires_variant(self):
        TestDataFactory.create_variant(self.product)
        with self.assertRaises(StorefrontError) as ctx:
            place_order(self.user, [{'product_id': self.product.id, 'quantity': 1}], SHIPPING_ADDRESS)
        self.assertIn('Select a variant', str(ctx.exception))

    def test_discount_applied_and_usage_recorded(self):
        discount = TestDataFactory.create_discount(code='SAVE10', value=Decimal('10.00'))
        order = place_order(
            self.user, [{'product_id': self.product.id, 'quantity': 2}], SHIPPING_ADDRESS, discount_code='save10'
        )
        self.assertEqual(order.discount_amount, Decimal('20.00'))
        self.assertEqual(order.total_amount, Decimal('190.00'))
        discount.refresh_from_db()
        self.assertEqual(discount.used_count, 1)

    def test_restore_stock_only_once(self):
        order = place_order(self.user, [{'product_id': self.product.id, 'quantity': 3}], SHIPPING_ADDRESS)
        self.assertTrue(restore_stock(order))
        self.assertFalse(restore_stock(order))
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)

    def test_cancel_rejected_after_shipping(self):
        order = TestDataFactory.create_order(self.user, self.product, status='shipped')
        with self.assertRaises(OrderStateError):
            cancel_order(order)

    def test_cancel_reads_current_status(self):
        order = TestDataFactory.create_order(self.user, self.product)
        Order.objects.filter(pk=order.pk).update(status='shipped')
        with self.assertRaises(OrderStateError):
            cancel_order(order)
        order.refresh_from_db()
        self.assertEqual(order.status, 'shipped')
        self.assertFalse(order.stock_restored)

    def test_lines_on_same_option_share_its_stock(self):
        product = TestDataFactory.create_product(price=None, stock=0)
        variant = TestDataFactory.create_variant(product, price=None, stock=0)
        option = TestDataFactory.create_option(variant, stock=5)
        lines = [
            {'product_id': product.id, 'option_id': option.id, 'quantity': 3},
            {'product_id': product.id, 'variant_id': variant.id, 'option_id': option.id, 'quantity': 3},
        ]
        with self.assertRaises(InsufficientStock):
            place_order(self.user, lines, SHIPPING_ADDRESS)
        option.refresh_from_db()
        self.assertEqual(option.stock, 5)
        self.assertFalse(Order.objects.exists())

    def test_delivered_cash_on_delivery_marks_paid(self):
        order = TestDataFactory.create_order(self.user, self.product)
        update_order_status(order, 'delivered')
        order.refresh_from_db()
        self.assertEqual(order.payment_status, 'paid')

    def test_delivered_card_payment_left_alone(self):
        order = TestDataFactory.create_order(self.user, self.product, payment_method='credit_card')
        update_order_status(order, 'delivered')
        order.refresh_from_db()
        self.assertEqual(order.payment_status, 'pending')


class OrderAPITests(TestCase):
    """Test customer order endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product(price=Decimal('100.00'), stock=10)

    def _place(self, quantity=1, **extra):
        payload = {
            'items': [{'product_id': self.product.id, 'quantity': quantity}],
            'shipping_address': SHIPPING_ADDRESS,
        }
        payload.update(extra)
        return self.client.post('/api/v1/orders/', payload, format='json')

    def test_place_order(self):
        response = self._place(quantity=2)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], 'pending')
        self.assertEqual(response.data['payment_method'], 'cash_on_delivery')
        self.assertEqual(Decimal(response.data['total_amount']), Decimal('200.00'))
        self.assertEqual(len(response.data['items']), 1)
        self.assertNotIn('admin_notes', response.data)

    def test_place_order_emits_order_created(self):
        response = self._place()
        order_id = response.data['order_id']
        admin_events = get_recent_events([ADMIN_ROOM])
        user_events = get_recent_events([user_room(self.user.id)])
        self.assertTrue(any(e['event'] == 'orderCreated' and e['data']['order_id'] == order_id for e in admin_events))
        self.assertTrue(any(e['event'] == 'orderCreated' for e in user_events))

    def test_place_order_insufficient_stock(self):
        response = self._place(quantity=50)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Insufficient stock', response.data['error'])

    def test_place_order_same_option_twice_over_stock(self):
        product = TestDataFactory.create_product(price=None, stock=0)
        variant = TestDataFactory.create_variant(product, price=None, stock=0)
        option = TestDataFactory.create_option(variant, stock=5)
        response = self.client.post('/api/v1/orders/', {
            'items': [
                {'product_id': product.id, 'option_id': option.id, 'quantity': 3},
                {'product_id': product.id, 'variant_id': variant.id, 'option_id': option.id, 'quantity': 3},
            ],
            'shipping_address': SHIPPING_ADDRESS,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Insufficient stock', response.data['error'])
        option.refresh_from_db()
        self.assertEqual(option.stock, 5)

    def test_place_order_invalid_discount_rolls_back(self):
        response = self._place(quantity=2, discount_code='NOPE')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)
        self.assertFalse(Order.objects.exists())

    def test_place_order_requires_items(self):
        response = self.client.post('/api/v1/orders/', {'items': [], 'shipping_address': SHIPPING_ADDRESS}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_place_order_requires_address(self):
        response = self.client.post('/api/v1/orders/', {
            'items': [{'product_id': self.product.id, 'quantity': 1}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('shipping_address', response.data)

    def test_requires_authentication(self):
        self.client.logout()
        response = self._place()
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_my_orders_only_lists_own(self):
        TestDataFactory.create_order(self.user, self.product)
        TestDataFactory.create_order(TestDataFactory.create_user(), self.product)
        response = self.client.get('/api/v1/orders/mine/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)

    def test_my_orders_status_filter(self):
        TestDataFactory.create_order(self.user, self.product, status='pending')
        TestDataFactory.create_order(self.user, self.product, status='delivered')
        response = self.client.get('/api/v1/orders/mine/?status=delivered')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['status'], 'delivered')

    def test_order_detail_owner_and_stranger(self):
        order = TestDataFactory.create_order(self.user, self.product)
        response = self.client.get(f'/api/v1/orders/{order.order_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        stranger = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user())
        response = stranger.get(f'/api/v1/orders/{order.order_id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        admin = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_admin())
        response = admin.get(f'/api/v1/orders/{order.order_id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_order_detail_not_found(self):
        response = self.client.get('/api/v1/orders/ORD-MISSING1/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_cancel_restores_stock(self):
        order_id = self._place(quantity=3).data['order_id']
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 7)

        response = self.client.post(f'/api/v1/orders/{order_id}/cancel/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'cancelled')
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)
        events = get_recent_events([user_room(self.user.id)])
        self.assertEqual(events[-1]['event'], 'orderStatusUpdated')

    def test_cancel_after_variant_edit_restores_variant_stock(self):
        product = TestDataFactory.create_product(price=None, stock=0)
        variant = TestDataFactory.create_variant(product, stock=5)
        response = self.client.post('/api/v1/orders/', {
            'items': [{'product_id': product.id, 'variant_id': variant.id, 'quantity': 2}],
            'shipping_address': SHIPPING_ADDRESS,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        order_id = response.data['order_id']

        admin = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_admin())
        response = admin.patch(f'/api/v1/admin/products/{product.id}/', {
            'variants': [{'id': variant.id, 'stock': 3}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = self.client.post(f'/api/v1/orders/{order_id}/cancel/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        product.refresh_from_db()
        variant.refresh_from_db()
        self.assertEqual(product.stock, 0)
        self.assertEqual(variant.stock, 5)

    def test_cancel_shipped_order_rejected(self):
        order = TestDataFactory.create_order(self.user, self.product, status='shipped')
        response = self.client.post(f'/api/v1/orders/{order.order_id}/cancel/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cancel_other_users_order_forbidden(self):
        order = TestDataFactory.create_order(TestDataFactory.create_user(), self.product)
        response = self.client.post(f'/api/v1/orders/{order.order_id}/cancel/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_invoice_pdf(self):
        order_id = self._place(quantity=2).data['order_id']
        response = self.client.get(f'/api/v1/orders/{order_id}/invoice/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], 'application/pdf')
        self.assertIn(order_id, response['Content-Disposition'])
        self.assertTrue(response.content.startswith(b'%PDF'))


class AdminOrderAPITests(TestCase):
    """Test admin order endpoints"""

    def setUp(self):
        cache.clear()
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.admin)
        self.customer = TestDataFactory.create_user(email='buyer@test.com')
        self.product = TestDataFactory.create_product(stock=10)

    def test_admin_list_requires_admin(self):
        client = AuthenticatedAPIClient().authenticate_user(self.customer)
        response = client.get('/api/v1/admin/orders/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_list_filters(self):
        first = TestDataFactory.create_order(self.customer, self.product, status='pending')
        TestDataFactory.create_order(TestDataFactory.create_user(), self.product, status='shipped')

        response = self.client.get('/api/v1/admin/orders/')
        self.assertEqual(response.data['count'], 2)
        response = self.client.get('/api/v1/admin/orders/?status=shipped')
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/admin/orders/?search=buyer@')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['order_id'], first.order_id)
        response = self.client.get(f'/api/v1/admin/orders/?user={self.customer.id}')
        self.assertEqual(response.data['count'], 1)

    def test_admin_list_date_filters(self):
        TestDataFactory.create_order(self.customer, self.product)
        response = self.client.get('/api/v1/admin/orders/?date_from=2000-01-01')
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/admin/orders/?date_to=2000-01-01')
        self.assertEqual(response.data['count'], 0)

    def test_admin_list_malformed_params(self):
        response = self.client.get('/api/v1/admin/orders/?date_from=garbage')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get('/api/v1/admin/orders/?date_to=2024-13-45')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        response = self.client.get('/api/v1/admin/orders/?user=abc')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_status_update_with_tracking(self):
        order = TestDataFactory.create_order(self.customer, self.product)
        response = self.client.patch(f'/api/v1/admin/orders/{order.order_id}/status/', {
            'status': 'shipped',
            'tracking_number': 'TRK123',
            'carrier': 'TCS',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], 'shipped')
        self.assertEqual(response.data['tracking_number'], 'TRK123')
        events = get_recent_events([user_room(self.customer.id)])
        self.assertEqual(events[-1]['event'], 'orderStatusUpdated')
        self.assertEqual(events[-1]['data']['status'], 'shipped')

    def test_status_update_invalid_status(self):
        order = TestDataFactory.create_order(self.customer, self.product)
        response = self.client.patch(f'/api/v1/admin/orders/{order.order_id}/status/', {'status': 'lost'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cancel_via_admin_restores_stock_once(self):
        order = place_order(self.customer, [{'product_id': self.product.id, 'quantity': 4}], SHIPPING_ADDRESS)
        url = f'/api/v1/admin/orders/{order.order_id}/status/'
        self.client.patch(url, {'status': 'cancelled'}, format='json')
        self.client.patch(url, {'status': 'pending'}, format='json')
        self.client.patch(url, {'status': 'cancelled'}, format='json')
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)

    def test_status_change_audit_logged(self):
        from backend.core.models import AuditLog
        order = TestDataFactory.create_order(self.customer, self.product)
        self.client.patch(f'/api/v1/admin/orders/{order.order_id}/status/', {'status': 'processing'}, format='json')
        log = AuditLog.objects.get(model_name='Order', object_id=str(order.id))
        self.assertEqual(log.action, 'status_change')
        self.assertEqual(log.changes['status']['new'], 'processing')

    def test_notifications_returns_latest_ten(self):
        for _ in range(12):
            TestDataFactory.create_order(self.customer, self.product)
        response = self.client.get('/api/v1/admin/orders/notifications/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 10)
