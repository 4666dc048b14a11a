"""
Management command to add demo categories and products to the database
"""
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction

from backend.catalog.models import Category, Product, ProductVariant, VariantOption
from backend.core.cache_signals import suspend_cache_signals
from backend.core.cache_utils import invalidate_products_cache


CATEGORIES = {
    'Electronics': ['Smartphones', 'Laptops', 'Audio'],
    'Fashion': ['Men', 'Women'],
    'Home & Kitchen': [],
}

PRODUCTS = [
    {
        'title': 'Aurora X5 Smartphone',
        'brand': 'Aurora',
        'category': 'Smartphones',
        'description': 'A 6.5 inch smartphone with a triple camera and all-day battery.',
        'images': [{'url': 'https://images.example.com/aurora-x5.jpg', 'alt': 'Aurora X5'}],
        'specifications': [{'key': 'Display', 'value': '6.5" OLED'}, {'key': 'Battery', 'value': '5000 mAh'}],
        'features': ['5G', 'Fast charging'],
        'is_featured': True,
        'variants': [
            {'color': 'Black', 'options': [('storage', '128GB', '499.00', 15), ('storage', '256GB', '579.00', 8)]},
            {'color': 'Silver', 'options': [('storage', '128GB', '499.00', 5)]},
        ],
    },
    {
        'title': 'Studio Wireless Headphones',
        'brand': 'Sonique',
        'category': 'Audio',
        'description': 'Over-ear wireless headphones with active noise cancelling.',
        'price': '199.00',
        'discount_price': '159.00',
        'stock': 40,
        'is_featured': True,
    },
    {
        'title': 'Classic Cotton T-Shirt',
        'brand': 'Threadline',
        'category': 'Men',
        'description': 'Soft everyday t-shirt made from organic cotton.',
        'variants': [
            {'color': 'White', 'options': [('size', 'M', '19.99', 30), ('size', 'L', '19.99', 25)]},
            {'color': 'Navy', 'options': [('size', 'M', '19.99', 10)]},
        ],
    },
    {
        'title': 'Ceramic Pour-Over Coffee Set',
        'brand': 'Kiln & Co',
        'category': 'Home & Kitchen',
        'description': 'Hand-glazed ceramic dripper with a matching carafe.',
        'price': '45.00',
        'stock': 12,
        'shipping_cost': '5.00',
    },
]


class Command(BaseCommand):
    help = "Adds demo categories and products to the database"

    def add_arguments(self, parser):
        parser.add_argument(
            '--clear',
            action='store_true',
            help='Clear all existing categories and products before seeding',
        )

    def handle(self, *args, **options):
        with suspend_cache_signals(), transaction.atomic():
            if options['clear']:
                self.stdout.write(self.style.WARNING("Clearing all existing categories and products..."))
                Product.objects.all().delete()
                Category.objects.all().delete()

            categories = {}
            for parent_name, children in CATEGORIES.items():
                parent, _ = Category.objects.get_or_create(name=parent_name)
                categories[parent_name] = parent
                for child_name in children:
                    child, _ = Category.objects.get_or_create(name=child_name, defaults={'parent': parent})
                    categories[child_name] = child

            created_count = 0
            for spec in PRODUCTS:
                if Product.objects.filter(title=spec['title']).exists():
                    self.stdout.write(self.style.WARNING(f"  ⊘ Skipped (already exists): {spec['title']}"))
                    continue
                product = Product.objects.create(
                    title=spec['title'],
                    brand=spec['brand'],
                    category=categories[spec['category']],
                    description=spec['description'],
                    price=Decimal(spec['price']) if 'price' in spec else None,
                    discount_price=Decimal(spec['discount_price']) if 'discount_price' in spec else None,
                    stock=spec.get('stock', 0),
                    shipping_cost=Decimal(spec.get('shipping_cost', '0.00')),
                    images=spec.get('images', []),
                    specifications=spec.get('specifications', []),
                    features=spec.get('features', []),
                    is_featured=spec.get('is_featured', False),
                )
                for variant_spec in spec.get('variants', []):
                    variant = ProductVariant.objects.create(product=product, color=variant_spec['color'])
                    for kind, value, price, stock in variant_spec['options']:
                        VariantOption.objects.create(
                            variant=variant, kind=kind, value=value, price=Decimal(price), stock=stock,
                            sku=f"{product.sku}-{variant.color[:3].upper()}-{value}",
                        )
                created_count += 1
                self.stdout.write(self.style.SUCCESS(f"  ✓ Created: {product.title} ({product.sku})"))

        invalidate_products_cache()
        self.stdout.write(f"Products Created: {created_count}")
        self.stdout.write(f"Total Categories in Database: {Category.objects.count()}")
        self.stdout.write(f"Total Products in Database: {Product.objects.count()}")
