"""
Utility functions for catalog operations
"""
import re
import time

from django.utils.text import slugify


def _code_part(value, fallback):
    cleaned = re.sub(r'[^A-Za-z0-9]', '', value or '').upper()
    return cleaned[:3] or fallback


def generate_unique_sku(brand=None, title=None):
    """
    Generate a unique SKU: BRA-TIT-NNNN

    First three letters of the brand and the title, then the last four digits
    of the current timestamp. Collisions get a numeric suffix.
    """
    from .models import Product

    timestamp = str(int(time.time() * 1000))[-4:]
    base = f"{_code_part(brand, 'GEN')}-{_code_part(title, 'PRD')}-{timestamp}"
    sku = base
    counter = 1
    while Product.objects.filter(sku=sku).exists():
        sku = f"{base}-{counter}"
        counter += 1
    return sku


def generate_unique_slug(model, value, instance=None, field='slug'):
    """slugify(value), with -1, -2, ... appended until unused"""
    base = slugify(value or '') or 'item'
    max_length = model._meta.get_field(field).max_length
    base = base[:max_length - 6]
    slug = base
    counter = 1
    queryset = model.objects.all()
    if instance is not None and instance.pk:
        queryset = queryset.exclude(pk=instance.pk)
    while queryset.filter(**{field: slug}).exists():
        slug = f"{base}-{counter}"
        counter += 1
    return slug


def delete_category_tree(category):
    """
    Delete a category with its subcategories and their products.

    Returns a summary of what was removed.
    """
    from .models import Category, Product

    category_ids = category.get_descendant_ids()
    product_count = Product.objects.filter(category_id__in=category_ids).count()
    Product.objects.filter(category_id__in=category_ids).delete()
    # Children first so the self-referencing FK never points at a deleted row
    for category_id in reversed(category_ids):
        Category.objects.filter(pk=category_id).delete()
    return {
        'categories_deleted': len(category_ids),
        'products_deleted': product_count,
    }
