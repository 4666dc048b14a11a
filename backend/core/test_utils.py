"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from backend.catalog.models import Category, Product, ProductVariant, VariantOption
from backend.orders.models import Order, OrderItem
from backend.pricing.models import Discount
from backend.reviews.models import Review
from decimal import Decimal
from django.utils import timezone
from datetime import timedelta
import random
import string

User = get_user_model()

SHIPPING_ADDRESS = {
    'full_name': 'Test Customer',
    'address_line1': '1 Test Street',
    'address_line2': '',
    'city': 'Lahore',
    'state': 'Punjab',
    'postal_code': '54000',
    'country': 'Pakistan',
    'phone': '03001234567',
}


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(email=None, password='testpass123', name='Test User', role=User.ROLE_USER, **extra):
        """Create a test user"""
        if not email:
            email = f'user_{TestDataFactory.random_string(6).lower()}@test.com'
        return User.objects.create_user(email=email, password=password, name=name, role=role, **extra)

    @staticmethod
    def create_admin(email=None, password='testpass123'):
        """Create a user with the admin role"""
        if not email:
            email = f'admin_{TestDataFactory.random_string(6).lower()}@test.com'
        return TestDataFactory.create_user(email=email, password=password, name='Test Admin', role=User.ROLE_ADMIN)

    @staticmethod
    def create_category(name=None, parent=None, is_active=True):
        """Create a test category"""
        if not name:
            name = f'Category {TestDataFactory.random_string(6)}'
        return Category.objects.create(name=name, parent=parent, is_active=is_active)

    @staticmethod
    def create_product(title=None, category=None, price=Decimal('100.00'), discount_price=None,
                       stock=10, shipping_cost=Decimal('0.00'), brand='TestBrand', **extra):
        """Create a simple product priced on the base item"""
        if not title:
            title = f'Product {TestDataFactory.random_string(6)}'
        if category is None:
            category = TestDataFactory.create_category()
        return Product.objects.create(
            title=title,
            description='A product used in tests',
            brand=brand,
            category=category,
            price=price,
            discount_price=discount_price,
            stock=stock,
            shipping_cost=shipping_cost,
            **extra
        )

    @staticmethod
    def create_variant(product, color=None, price=Decimal('120.00'), discount_price=None, stock=5):
        """Create a color variant priced directly"""
        return ProductVariant.objects.create(
            product=product,
            color=color or f'Color {TestDataFactory.random_string(4)}',
            price=price,
            discount_price=discount_price,
            stock=stock,
        )

    @staticmethod
    def create_option(variant, value=None, kind=VariantOption.KIND_STORAGE, price=Decimal('150.00'),
                      discount_price=None, stock=5):
        """Create a storage or size option under a variant"""
        return VariantOption.objects.create(
            variant=variant,
            kind=kind,
            value=value or f'{random.randint(1, 9)}{TestDataFactory.random_string(3)}',
            price=price,
            discount_price=discount_price,
            stock=stock,
        )

    @staticmethod
    def create_discount(code=None, type='percentage', value=Decimal('10.00'), **extra):
        """Create a discount valid from yesterday to next week"""
        if not code:
            code = f'SAVE-{TestDataFactory.random_string(6).upper()}'
        now = timezone.now()
        extra.setdefault('start_date', now - timedelta(days=1))
        extra.setdefault('end_date', now + timedelta(days=7))
        return Discount.objects.create(code=code, type=type, value=value, **extra)

    @staticmethod
    def create_order(user, product=None, quantity=1, status='pending', payment_method='cash_on_delivery'):
        """Create an order row with one item without touching stock"""
        if product is None:
            product = TestDataFactory.create_product()
        price = product.unit_price
        order = Order.objects.create(
            order_id=f'ORD-{TestDataFactory.random_string(8).upper()}',
            user=user,
            subtotal=price * quantity,
            shipping_total=product.shipping_cost * quantity,
            status=status,
            payment_method=payment_method,
            **{f'shipping_{field}': value for field, value in SHIPPING_ADDRESS.items()}
        )
        OrderItem.objects.create(
            order=order,
            product=product,
            item_name=product.title,
            sku=product.sku,
            price=product.price,
            discount_price=product.discount_price,
            quantity=quantity,
            shipping_cost=product.shipping_cost * quantity,
        )
        return order

    @staticmethod
    def create_review(user, product, rating=5, comment='Great product', is_flagged=False):
        """Create a review row"""
        return Review.objects.create(user=user, product=product, rating=rating, comment=comment, is_flagged=is_flagged)


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
