import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.conf import settings
from django.contrib.auth import get_user_model
from django.db.models import Sum, Count, F, DecimalField, ExpressionWrapper
from django.db.models.functions import Coalesce, TruncDate, TruncMonth
from decimal import Decimal

from backend.catalog.models import Product
from backend.core.cache_utils import get_cached_dashboard_kpis, cache_dashboard_kpis
from backend.core.permissions import IsAdminRole
from backend.core.utils import parse_date_range
from backend.orders.models import Order, OrderItem
from backend.reviews.models import Review

logger = logging.getLogger('backend.reports')

User = get_user_model()

LINE_REVENUE = ExpressionWrapper(
    F('quantity') * Coalesce('discount_price', 'price'),
    output_field=DecimalField(max_digits=14, decimal_places=2),
)


def orders_in_range(date_from, date_to):
    orders = Order.objects.all()
    if date_from:
        orders = orders.filter(created_at__date__gte=date_from)
    if date_to:
        orders = orders.filter(created_at__date__lte=date_to)
    return orders


def invalid_date_response():
    return Response({'error': 'Dates must use the YYYY-MM-DD format'}, status=status.HTTP_400_BAD_REQUEST)


def cached_response(data, cache_hit):
    response = Response(data)
    response['X-Cache'] = 'HIT' if cache_hit else 'MISS'
    return response


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def dashboard(request):
    """Store-wide totals, order status breakdown and stock/review alerts"""
    try:
        date_from, date_to = parse_date_range(request)
    except ValueError:
        return invalid_date_response()

    cached, cache_key = get_cached_dashboard_kpis('dashboard', date_from, date_to)
    if cached is not None:
        return cached_response(cached, True)

    orders = orders_in_range(date_from, date_to)
    revenue = orders.exclude(status='cancelled').aggregate(
        total=Sum('total_amount', output_field=DecimalField())
    )['total'] or Decimal('0.00')

    status_counts = {choice[0]: 0 for choice in Order.STATUS_CHOICES}
    for row in orders.values('status').annotate(count=Count('id')):
        status_counts[row['status']] = row['count']

    threshold = settings.LOW_STOCK_THRESHOLD
    low_stock = 0
    for product in Product.objects.filter(is_active=True).prefetch_related('variants__options'):
        if product.total_stock() <= threshold:
            low_stock += 1

    data = {
        'period': {
            'from': date_from.isoformat() if date_from else None,
            'to': date_to.isoformat() if date_to else None,
        },
        'totals': {
            'revenue': float(revenue),
            'orders': orders.count(),
            'customers': User.objects.filter(role=User.ROLE_USER).count(),
            'products': Product.objects.count(),
        },
        'orders_by_status': status_counts,
        'low_stock_count': low_stock,
        'low_stock_threshold': threshold,
        'pending_reviews_count': Review.objects.filter(is_flagged=True).count(),
    }
    cache_dashboard_kpis(cache_key, data)
    return cached_response(data, False)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def sales_chart(request):
    """Revenue and order count per day or month"""
    group_by = request.query_params.get('group_by', 'day')
    if group_by not in ('day', 'month'):
        return Response({'error': 'group_by must be day or month'}, status=status.HTTP_400_BAD_REQUEST)
    try:
        date_from, date_to = parse_date_range(request, default_days=365 if group_by == 'month' else 30)
    except ValueError:
        return invalid_date_response()

    cached, cache_key = get_cached_dashboard_kpis('sales_chart', group_by, date_from, date_to)
    if cached is not None:
        return cached_response(cached, True)

    trunc = TruncMonth('created_at') if group_by == 'month' else TruncDate('created_at')
    rows = orders_in_range(date_from, date_to).exclude(status='cancelled').annotate(
        period=trunc
    ).values('period').annotate(
        revenue=Sum('total_amount', output_field=DecimalField()),
        orders=Count('id')
    ).order_by('period')

    points = []
    for row in rows:
        period = row['period']
        if group_by == 'month':
            label = period.strftime('%Y-%m')
        else:
            label = period.isoformat()
        points.append({'period': label, 'revenue': float(row['revenue'] or 0), 'orders': row['orders']})

    data = {
        'group_by': group_by,
        'period': {'from': date_from.isoformat(), 'to': date_to.isoformat()},
        'data': points,
    }
    cache_dashboard_kpis(cache_key, data)
    return cached_response(data, False)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def top_products(request):
    """Best sellers by quantity with their revenue"""
    try:
        date_from, date_to = parse_date_range(request, default_days=30)
        limit = min(max(int(request.query_params.get('limit', 10)), 1), 100)
    except ValueError:
        return Response({'error': 'Invalid date or limit'}, status=status.HTTP_400_BAD_REQUEST)

    cached, cache_key = get_cached_dashboard_kpis('top_products', date_from, date_to, limit)
    if cached is not None:
        return cached_response(cached, True)

    orders = orders_in_range(date_from, date_to).exclude(status='cancelled')
    rows = OrderItem.objects.filter(
        order__in=orders, product__isnull=False
    ).values(
        'product__id',
        'product__title',
        'product__sku'
    ).annotate(
        quantity_sold=Sum('quantity'),
        revenue=Sum(LINE_REVENUE)
    ).order_by('-quantity_sold', '-revenue')[:limit]

    data = {
        'period': {'from': date_from.isoformat(), 'to': date_to.isoformat()},
        'products': [
            {
                'product_id': row['product__id'],
                'title': row['product__title'],
                'sku': row['product__sku'],
                'quantity_sold': row['quantity_sold'],
                'revenue': float(row['revenue'] or 0),
            }
            for row in rows
        ],
    }
    cache_dashboard_kpis(cache_key, data)
    return cached_response(data, False)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def category_sales(request):
    """Revenue per product category"""
    try:
        date_from, date_to = parse_date_range(request, default_days=30)
    except ValueError:
        return invalid_date_response()

    cached, cache_key = get_cached_dashboard_kpis('category_sales', date_from, date_to)
    if cached is not None:
        return cached_response(cached, True)

    orders = orders_in_range(date_from, date_to).exclude(status='cancelled')
    rows = OrderItem.objects.filter(
        order__in=orders, product__isnull=False
    ).values(
        'product__category__id',
        'product__category__name'
    ).annotate(
        quantity_sold=Sum('quantity'),
        revenue=Sum(LINE_REVENUE)
    ).order_by('-revenue')

    data = {
        'period': {'from': date_from.isoformat(), 'to': date_to.isoformat()},
        'categories': [
            {
                'category_id': row['product__category__id'],
                'name': row['product__category__name'],
                'quantity_sold': row['quantity_sold'],
                'revenue': float(row['revenue'] or 0),
            }
            for row in rows
        ],
    }
    cache_dashboard_kpis(cache_key, data)
    return cached_response(data, False)
