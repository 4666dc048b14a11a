import django_filters
from django.db.models import Q, Min
from django.db.models.functions import Coalesce
from .models import Product

# Where a sellable price can live: the product itself, a color variant or an option
PRICE_FIELDS = ('price', 'variants__price', 'variants__options__price')


def price_range_q(low=None, high=None):
    """Match products with at least one sellable price inside [low, high]"""
    condition = Q()
    for field in PRICE_FIELDS:
        bounds = {}
        if low is not None:
            bounds[f'{field}__gte'] = low
        if high is not None:
            bounds[f'{field}__lte'] = high
        condition |= Q(**bounds)
    return condition


class ProductFilter(django_filters.FilterSet):
    """Filter set for storefront product listing"""
    category = django_filters.NumberFilter(method='filter_category')
    min_price = django_filters.NumberFilter(method='filter_price')
    max_price = django_filters.NumberFilter(method='filter_price')
    brand = django_filters.CharFilter(field_name='brand', lookup_expr='iexact')
    featured = django_filters.BooleanFilter(field_name='is_featured')
    in_stock = django_filters.BooleanFilter(method='filter_in_stock')
    search = django_filters.CharFilter(method='filter_search')

    class Meta:
        model = Product
        fields = ['category', 'brand', 'featured', 'min_price', 'max_price', 'in_stock', 'search']

    def filter_queryset(self, queryset):
        queryset = super().filter_queryset(queryset)
        low = self.form.cleaned_data.get('min_price')
        high = self.form.cleaned_data.get('max_price')
        if low is None and high is None:
            return queryset
        # Both bounds must hold for the same price row
        return queryset.filter(price_range_q(low, high)).distinct()

    def filter_price(self, queryset, name, value):
        # Applied as one range in filter_queryset
        return queryset

    def filter_category(self, queryset, name, value):
        """Products in the category or directly under one of its subcategories"""
        return queryset.filter(Q(category_id=value) | Q(category__parent_id=value))

    def filter_in_stock(self, queryset, name, value):
        if value:
            return queryset.in_stock()
        return queryset.out_of_stock()

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(title__icontains=value) |
            Q(description__icontains=value) |
            Q(brand__icontains=value) |
            Q(sku__icontains=value) |
            Q(variants__sku__icontains=value) |
            Q(variants__options__sku__icontains=value)
        ).distinct()


SORT_ORDERING = {
    'price_asc': ['effective_price', '-created_at'],
    'price_desc': ['-effective_price', '-created_at'],
    'newest': ['-created_at'],
    'rating': ['-average_rating', '-num_reviews'],
}


def apply_sort(queryset, sort):
    if sort not in SORT_ORDERING:
        sort = 'newest'
    if sort.startswith('price_'):
        # Variant-priced products sort by their cheapest variant or option
        queryset = queryset.annotate(
            effective_price=Coalesce('price', Min('variants__price'), Min('variants__options__price'))
        )
    return queryset.order_by(*SORT_ORDERING[sort])
