"""
Test suite for Cart module
Tests: lazy cart creation, line quantities, stock checks and checkout
"""
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from decimal import Decimal
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient, SHIPPING_ADDRESS
from backend.cart.models import Cart, CartItem
from backend.orders.models import Order
from backend.realtime.events import get_recent_events, ADMIN_ROOM, user_room


class CartModelTests(TestCase):
    """Test cart totals"""

    def setUp(self):
        self.user = TestDataFactory.create_user()
        self.cart = Cart.objects.create(user=self.user, cart_id='CART-TEST0001')

    def test_totals_include_shipping(self):
        product = TestDataFactory.create_product(price=Decimal('100.00'), discount_price=Decimal('90.00'), shipping_cost=Decimal('5.00'))
        CartItem.objects.create(cart=self.cart, product=product, quantity=2)
        totals = self.cart.totals()
        self.assertEqual(totals['subtotal'], Decimal('180.00'))
        self.assertEqual(totals['shipping_total'], Decimal('10.00'))
        self.assertEqual(totals['total'], Decimal('190.00'))
        self.assertEqual(totals['item_count'], 2)

    def test_option_line_priced_from_option(self):
        product = TestDataFactory.create_product(price=None, stock=0)
        variant = TestDataFactory.create_variant(product, price=None, stock=0)
        option = TestDataFactory.create_option(variant, price=Decimal('250.00'))
        item = CartItem.objects.create(cart=self.cart, product=product, variant=variant, option=option, quantity=1)
        self.assertEqual(item.unit_price, Decimal('250.00'))
        self.assertEqual(item.available_stock, option.stock)


class CartAPITests(TestCase):
    """Test cart endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product(price=Decimal('50.00'), stock=5, shipping_cost=Decimal('2.00'))

    def _add(self, quantity=1, product=None, **extra):
        payload = {'product_id': (product or self.product).id, 'quantity': quantity}
        payload.update(extra)
        return self.client.post('/api/v1/cart/items/', payload, format='json')

    def test_get_creates_cart_lazily(self):
        self.assertFalse(Cart.objects.filter(user=self.user).exists())
        response = self.client.get('/api/v1/cart/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data['cart_id'].startswith('CART-'))
        self.assertEqual(response.data['items'], [])
        self.assertEqual(response.data['total'], '0.00')

    def test_add_item(self):
        response = self._add(quantity=2)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data['items']), 1)
        self.assertEqual(response.data['subtotal'], '100.00')
        self.assertEqual(response.data['shipping_total'], '4.00')
        self.assertEqual(response.data['total'], '104.00')

    def test_add_existing_line_sets_quantity(self):
        self._add(quantity=2)
        response = self._add(quantity=3)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(CartItem.objects.get().quantity, 3)

    def test_add_insufficient_stock(self):
        response = self._add(quantity=6)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Insufficient stock', response.data['error'])
        self.assertFalse(CartItem.objects.exists())

    def test_add_variant_from_other_product_rejected(self):
        other = TestDataFactory.create_product()
        variant = TestDataFactory.create_variant(other)
        response = self._add(variant_id=variant.id)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_add_zero_quantity_rejected(self):
        response = self._add(quantity=0)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_update_quantity(self):
        self._add(quantity=1)
        response = self.client.put(f'/api/v1/cart/items/{self.product.id}/', {'quantity': 4}, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['items'][0]['quantity'], 4)

    def test_update_beyond_stock_rejected(self):
        self._add(quantity=1)
        response = self.client.put(f'/api/v1/cart/items/{self.product.id}/', {'quantity': 9}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(CartItem.objects.get().quantity, 1)

    def test_update_missing_line(self):
        response = self.client.put(f'/api/v1/cart/items/{self.product.id}/', {'quantity': 1}, format='json')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_remove_item(self):
        self._add()
        response = self.client.delete(f'/api/v1/cart/items/{self.product.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['items'], [])

    def test_clear_cart(self):
        self._add()
        self._add(product=TestDataFactory.create_product())
        response = self.client.delete('/api/v1/cart/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(CartItem.objects.exists())

    def test_checkout(self):
        self._add(quantity=2)
        response = self.client.post('/api/v1/cart/checkout/', {
            'shipping_address': SHIPPING_ADDRESS,
            'payment_method': 'bank_transfer',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['payment_method'], 'bank_transfer')
        self.assertEqual(Decimal(response.data['total_amount']), Decimal('104.00'))

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 3)
        self.assertFalse(CartItem.objects.exists())

        order_id = response.data['order_id']
        self.assertTrue(any(e['data']['order_id'] == order_id for e in get_recent_events([ADMIN_ROOM])))
        self.assertTrue(any(e['event'] == 'orderCreated' for e in get_recent_events([user_room(self.user.id)])))

    def test_checkout_with_discount(self):
        TestDataFactory.create_discount(code='FLAT10', type='fixed', value=Decimal('10.00'))
        self._add(quantity=2)
        response = self.client.post('/api/v1/cart/checkout/', {
            'shipping_address': SHIPPING_ADDRESS,
            'discount_code': 'FLAT10',
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['discount_amount']), Decimal('10.00'))
        self.assertEqual(response.data['discount_code'], 'FLAT10')

    def test_checkout_empty_cart(self):
        response = self.client.post('/api/v1/cart/checkout/', {'shipping_address': SHIPPING_ADDRESS}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error'], 'Cart is empty')

    def test_checkout_revalidates_stock(self):
        self._add(quantity=3)
        self.product.stock = 1
        self.product.save()
        response = self.client.post('/api/v1/cart/checkout/', {'shipping_address': SHIPPING_ADDRESS}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Order.objects.exists())
        self.assertEqual(CartItem.objects.count(), 1)

    def test_requires_authentication(self):
        self.client.logout()
        response = self.client.get('/api/v1/cart/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)
