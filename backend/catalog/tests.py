"""
Test suite for Catalog module
Tests: category tree, product listing filters, stock visibility, admin CRUD and caching
"""
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from decimal import Decimal
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.catalog.models import Category, Product, ProductVariant, VariantOption
from backend.catalog.utils import generate_unique_sku, delete_category_tree
from backend.realtime.events import get_recent_events, PUBLIC_ROOM, ADMIN_ROOM


class CatalogModelTests(TestCase):
    """Test slugs, SKUs and stock helpers"""

    def test_slug_generated_and_unique(self):
        first = TestDataFactory.create_product(title='Galaxy Phone')
        second = TestDataFactory.create_product(title='Galaxy Phone')
        self.assertEqual(first.slug, 'galaxy-phone')
        self.assertEqual(second.slug, 'galaxy-phone-1')

    def test_sku_format(self):
        sku = generate_unique_sku('Apple', 'iPhone 15')
        self.assertRegex(sku, r'^APP-IPH-\d{4}$')

    def test_sku_fallbacks(self):
        sku = generate_unique_sku('', '!!')
        self.assertTrue(sku.startswith('GEN-PRD-'))

    def test_total_stock_includes_variants_and_options(self):
        product = TestDataFactory.create_product(stock=2)
        variant = TestDataFactory.create_variant(product, stock=3)
        TestDataFactory.create_option(variant, stock=4)
        self.assertEqual(product.total_stock(), 9)

    def test_in_stock_queryset(self):
        simple = TestDataFactory.create_product(stock=1)
        variant_only = TestDataFactory.create_product(price=None, stock=0)
        TestDataFactory.create_variant(variant_only, stock=2)
        sold_out = TestDataFactory.create_product(stock=0)

        in_stock = set(Product.objects.in_stock().values_list('id', flat=True))
        self.assertEqual(in_stock, {simple.id, variant_only.id})
        self.assertEqual(list(Product.objects.out_of_stock()), [sold_out])

    def test_public_excludes_inactive(self):
        TestDataFactory.create_product(is_active=False)
        active = TestDataFactory.create_product()
        self.assertEqual(list(Product.objects.public()), [active])

    def test_descendant_ids(self):
        root = TestDataFactory.create_category(name='Electronics')
        child = TestDataFactory.create_category(name='Phones', parent=root)
        grandchild = TestDataFactory.create_category(name='Android', parent=child)
        self.assertEqual(root.get_descendant_ids(), [root.id, child.id, grandchild.id])

    def test_delete_category_tree(self):
        root = TestDataFactory.create_category(name='Electronics')
        child = TestDataFactory.create_category(name='Phones', parent=root)
        TestDataFactory.create_product(category=root)
        TestDataFactory.create_product(category=child)
        summary = delete_category_tree(root)
        self.assertEqual(summary, {'categories_deleted': 2, 'products_deleted': 2})
        self.assertFalse(Category.objects.exists())
        self.assertFalse(Product.objects.exists())


class CategoryAPITests(TestCase):
    """Test public category endpoints"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.root = TestDataFactory.create_category(name='Electronics')
        self.child = TestDataFactory.create_category(name='Phones', parent=self.root)
        TestDataFactory.create_category(name='Hidden', is_active=False)

    def test_list_active_categories(self):
        response = self.client.get('/api/v1/categories/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        names = [category['name'] for category in response.data]
        self.assertEqual(names, ['Electronics', 'Phones'])
        self.assertEqual(response.data[1]['parent_name'], 'Electronics')

    def test_list_is_cached(self):
        first = self.client.get('/api/v1/categories/')
        second = self.client.get('/api/v1/categories/')
        self.assertEqual(first['X-Cache'], 'MISS')
        self.assertEqual(second['X-Cache'], 'HIT')

    def test_cache_invalidated_on_change(self):
        self.client.get('/api/v1/categories/')
        with self.captureOnCommitCallbacks(execute=True):
            TestDataFactory.create_category(name='Laptops')
        response = self.client.get('/api/v1/categories/')
        self.assertEqual(response['X-Cache'], 'MISS')
        self.assertEqual(len(response.data), 3)

    def test_inactive_category_not_found(self):
        hidden = Category.objects.get(name='Hidden')
        response = self.client.get(f'/api/v1/categories/{hidden.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_category_products_include_subcategories(self):
        in_root = TestDataFactory.create_product(category=self.root)
        in_child = TestDataFactory.create_product(category=self.child)
        TestDataFactory.create_product(category=self.child, stock=0)
        TestDataFactory.create_product()

        response = self.client.get(f'/api/v1/categories/{self.root.id}/products/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['category']['name'], 'Electronics')
        ids = {product['id'] for product in response.data['results']}
        self.assertEqual(ids, {in_root.id, in_child.id})


class AdminCategoryAPITests(TestCase):
    """Test category management endpoints"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_admin())

    def test_create_category(self):
        response = self.client.post('/api/v1/admin/categories/', {'name': 'Home Audio'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['slug'], 'home-audio')
        events = get_recent_events([PUBLIC_ROOM])
        self.assertEqual(events[-1]['event'], 'categoryCreated')

    def test_duplicate_name_rejected(self):
        TestDataFactory.create_category(name='Audio')
        response = self.client.post('/api/v1/admin/categories/', {'name': 'Audio'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cannot_move_under_own_subcategory(self):
        root = TestDataFactory.create_category(name='Electronics')
        child = TestDataFactory.create_category(name='Phones', parent=root)
        response = self.client.patch(f'/api/v1/admin/categories/{root.id}/', {'parent': child.id}, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('parent', response.data)

    def test_delete_removes_subtree(self):
        root = TestDataFactory.create_category(name='Electronics')
        child = TestDataFactory.create_category(name='Phones', parent=root)
        TestDataFactory.create_product(category=child)
        keep = TestDataFactory.create_product()

        response = self.client.delete(f'/api/v1/admin/categories/{root.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Category.objects.filter(pk__in=[root.id, child.id]).exists())
        self.assertEqual(list(Product.objects.all()), [keep])

        event = get_recent_events([ADMIN_ROOM])[-1]
        self.assertEqual(event['event'], 'categoryDeleted')
        self.assertEqual(event['data']['categories_deleted'], 2)
        self.assertEqual(event['data']['products_deleted'], 1)

    def test_customer_forbidden(self):
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user())
        response = client.post('/api/v1/admin/categories/', {'name': 'Nope'}, format='json')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class ProductAPITests(TestCase):
    """Test public product endpoints"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.phones = TestDataFactory.create_category(name='Phones')
        self.cheap = TestDataFactory.create_product(title='Budget Phone', category=self.phones,
                                                    price=Decimal('100.00'), brand='Nokia')
        self.pricey = TestDataFactory.create_product(title='Flagship Phone', category=self.phones,
                                                     price=Decimal('900.00'), brand='Samsung', is_featured=True)
        self.sold_out = TestDataFactory.create_product(title='Old Phone', category=self.phones, stock=0)

    def test_list_hides_out_of_stock(self):
        response = self.client.get('/api/v1/products/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)
        ids = {product['id'] for product in response.data['results']}
        self.assertNotIn(self.sold_out.id, ids)

    def test_list_is_cached_per_query(self):
        self.assertEqual(self.client.get('/api/v1/products/')['X-Cache'], 'MISS')
        self.assertEqual(self.client.get('/api/v1/products/')['X-Cache'], 'HIT')
        self.assertEqual(self.client.get('/api/v1/products/?page=2')['X-Cache'], 'MISS')

    def test_cache_invalidated_when_product_saved(self):
        self.client.get('/api/v1/products/')
        with self.captureOnCommitCallbacks(execute=True):
            TestDataFactory.create_product(category=self.phones)
        response = self.client.get('/api/v1/products/')
        self.assertEqual(response['X-Cache'], 'MISS')
        self.assertEqual(response.data['count'], 3)

    def test_price_filters_and_sort(self):
        response = self.client.get('/api/v1/products/?min_price=500')
        self.assertEqual([p['id'] for p in response.data['results']], [self.pricey.id])

        response = self.client.get('/api/v1/products/?sort=price_asc')
        self.assertEqual([p['id'] for p in response.data['results']], [self.cheap.id, self.pricey.id])

        response = self.client.get('/api/v1/products/?sort=price_desc')
        self.assertEqual([p['id'] for p in response.data['results']], [self.pricey.id, self.cheap.id])

    def test_price_filters_match_variant_prices(self):
        tablet = TestDataFactory.create_product(title='Tablet', category=self.phones, price=None, stock=0)
        TestDataFactory.create_variant(tablet, color='Grey', price=Decimal('50.00'))
        laptop = TestDataFactory.create_product(title='Laptop', category=self.phones, price=None, stock=0)
        laptop_variant = TestDataFactory.create_variant(laptop, color='Silver', price=None, stock=0)
        TestDataFactory.create_option(laptop_variant, value='512GB', price=Decimal('1500.00'))

        response = self.client.get('/api/v1/products/?min_price=10&max_price=60')
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['id'], tablet.id)
        response = self.client.get('/api/v1/products/?min_price=1000')
        self.assertEqual([p['id'] for p in response.data['results']], [laptop.id])

        response = self.client.get('/api/v1/products/?sort=price_asc')
        self.assertEqual([p['id'] for p in response.data['results']],
                         [tablet.id, self.cheap.id, self.pricey.id, laptop.id])

    def test_brand_and_search_filters(self):
        response = self.client.get('/api/v1/products/?brand=nokia')
        self.assertEqual(response.data['count'], 1)

        response = self.client.get('/api/v1/products/?search=flagship')
        self.assertEqual([p['id'] for p in response.data['results']], [self.pricey.id])

    def test_category_filter_includes_children(self):
        android = TestDataFactory.create_category(name='Android', parent=self.phones)
        product = TestDataFactory.create_product(category=android)
        response = self.client.get(f'/api/v1/products/?category={self.phones.id}')
        self.assertIn(product.id, [p['id'] for p in response.data['results']])

    def test_invalid_filter_value(self):
        response = self.client.get('/api/v1/products/?min_price=cheap')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_pagination(self):
        response = self.client.get('/api/v1/products/?limit=1')
        self.assertEqual(len(response.data['results']), 1)
        self.assertEqual(response.data['next'], 2)
        self.assertIsNone(response.data['previous'])

    def test_featured(self):
        response = self.client.get('/api/v1/products/featured/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['id'] for p in response.data], [self.pricey.id])

    def test_detail_by_id_and_slug(self):
        response = self.client.get(f'/api/v1/products/{self.cheap.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['title'], 'Budget Phone')

        response = self.client.get(f'/api/v1/products/{self.cheap.slug}/')
        self.assertEqual(response.data['id'], self.cheap.id)

    def test_detail_out_of_stock(self):
        response = self.client.get(f'/api/v1/products/{self.sold_out.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error'], 'Product is out of stock')

    def test_detail_variant_stock_counts(self):
        product = TestDataFactory.create_product(price=None, stock=0)
        variant = TestDataFactory.create_variant(product, price=None, stock=0)
        TestDataFactory.create_option(variant, value='256GB', stock=2)
        response = self.client.get(f'/api/v1/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['total_stock'], 2)
        self.assertEqual(response.data['variants'][0]['options'][0]['value'], '256GB')


class AdminProductAPITests(TestCase):
    """Test product management endpoints"""

    def setUp(self):
        cache.clear()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(TestDataFactory.create_admin())
        self.category = TestDataFactory.create_category(name='Phones')

    def _payload(self, **overrides):
        payload = {
            'title': 'Phone Pro',
            'description': 'A very capable phone',
            'brand': 'Apple',
            'category': self.category.id,
            'price': '999.00',
            'stock': 4,
        }
        payload.update(overrides)
        return payload

    def test_create_simple_product(self):
        response = self.client.post('/api/v1/admin/products/', self._payload(), format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertTrue(response.data['sku'].startswith('APP-PHO-'))
        self.assertEqual(response.data['slug'], 'phone-pro')
        self.assertEqual(get_recent_events([PUBLIC_ROOM])[-1]['event'], 'productCreated')

    def test_create_with_variants_and_options(self):
        payload = self._payload(price=None, stock=0, variants=[
            {
                'color': 'Black',
                'sku': 'PP-BLK',
                'options': [
                    {'kind': 'storage', 'value': '128GB', 'price': '999.00', 'stock': 3, 'sku': 'PP-BLK-128'},
                    {'kind': 'storage', 'value': '256GB', 'price': '1099.00', 'stock': 1, 'sku': 'PP-BLK-256'},
                ],
            },
            {'color': 'White', 'price': '949.00', 'stock': 2},
        ])
        response = self.client.post('/api/v1/admin/products/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['total_stock'], 6)
        self.assertEqual(ProductVariant.objects.count(), 2)
        self.assertEqual(VariantOption.objects.count(), 2)

    def test_product_needs_price_or_variants(self):
        response = self.client.post('/api/v1/admin/products/', self._payload(price=None), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_discount_price_must_be_lower(self):
        response = self.client.post('/api/v1/admin/products/', self._payload(discount_price='999.00'), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('discount_price', response.data)

    def test_variant_with_options_cannot_have_price(self):
        payload = self._payload(price=None, variants=[{
            'color': 'Black',
            'price': '10.00',
            'options': [{'kind': 'size', 'value': 'M', 'price': '20.00', 'stock': 1}],
        }])
        response = self.client.post('/api/v1/admin/products/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_variant_cannot_mix_option_kinds(self):
        payload = self._payload(price=None, variants=[{
            'color': 'Black',
            'options': [
                {'kind': 'size', 'value': 'M', 'price': '20.00', 'stock': 1},
                {'kind': 'storage', 'value': '64GB', 'price': '20.00', 'stock': 1},
            ],
        }])
        response = self.client.post('/api/v1/admin/products/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_duplicate_skus_rejected(self):
        payload = self._payload(price=None, variants=[
            {'color': 'Black', 'price': '10.00', 'stock': 1, 'sku': 'DUP-1'},
            {'color': 'White', 'price': '10.00', 'stock': 1, 'sku': 'DUP-1'},
        ])
        response = self.client.post('/api/v1/admin/products/', payload, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Product.objects.exists())

    def test_invalid_json_fields(self):
        response = self.client.post('/api/v1/admin/products/', self._payload(images=[{'alt': 'no url'}]), format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('images', response.data)

    def test_update_replaces_variants(self):
        product = TestDataFactory.create_product(category=self.category, price=None, stock=0)
        TestDataFactory.create_variant(product, color='Red')
        response = self.client.patch(f'/api/v1/admin/products/{product.id}/', {
            'variants': [{'color': 'Green', 'price': '80.00', 'stock': 1}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([v['color'] for v in response.data['variants']], ['Green'])
        self.assertEqual(get_recent_events([ADMIN_ROOM])[-1]['event'], 'productUpdated')

    def test_update_keeps_listed_variants_in_place(self):
        product = TestDataFactory.create_product(category=self.category, price=None, stock=0)
        red = TestDataFactory.create_variant(product, color='Red', stock=5)
        blue = TestDataFactory.create_variant(product, color='Blue')
        option_variant = TestDataFactory.create_variant(product, color='Black', price=None, stock=0)
        small = TestDataFactory.create_option(option_variant, value='64GB', stock=2)
        response = self.client.patch(f'/api/v1/admin/products/{product.id}/', {
            'variants': [
                {'id': red.id, 'stock': 3},
                {'id': option_variant.id, 'options': [{'id': small.id, 'stock': 7}]},
            ],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        red.refresh_from_db()
        small.refresh_from_db()
        self.assertEqual(red.stock, 3)
        self.assertEqual(red.price, Decimal('120.00'))
        self.assertEqual(small.stock, 7)
        self.assertFalse(ProductVariant.objects.filter(pk=blue.id).exists())

    def test_update_rejects_foreign_variant_id(self):
        product = TestDataFactory.create_product(category=self.category, price=None, stock=0)
        TestDataFactory.create_variant(product, color='Red')
        other = TestDataFactory.create_variant(TestDataFactory.create_product(category=self.category), color='Blue')
        response = self.client.patch(f'/api/v1/admin/products/{product.id}/', {
            'variants': [{'id': other.id, 'stock': 1}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_cannot_remove_variant_on_open_order(self):
        product = TestDataFactory.create_product(category=self.category, stock=0)
        red = TestDataFactory.create_variant(product, color='Red')
        customer = TestDataFactory.create_user()
        order = TestDataFactory.create_order(customer, product=product)
        order.items.update(variant=red)
        response = self.client.patch(f'/api/v1/admin/products/{product.id}/', {
            'variants': [{'color': 'Green', 'price': '80.00', 'stock': 1}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(ProductVariant.objects.filter(pk=red.id).exists())

        order.status = 'delivered'
        order.save()
        response = self.client.patch(f'/api/v1/admin/products/{product.id}/', {
            'variants': [{'color': 'Green', 'price': '80.00', 'stock': 1}],
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_admin_list_includes_out_of_stock(self):
        TestDataFactory.create_product(category=self.category, stock=0)
        response = self.client.get('/api/v1/admin/products/')
        self.assertEqual(response.data['count'], 1)

    def test_delete_product(self):
        product = TestDataFactory.create_product(category=self.category)
        response = self.client.delete(f'/api/v1/admin/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Product.objects.exists())
        event = get_recent_events([PUBLIC_ROOM])[-1]
        self.assertEqual(event['event'], 'productDeleted')
        self.assertEqual(event['data']['id'], product.id)
