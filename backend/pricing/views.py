import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from django.db.models import Count
from django.shortcuts import get_object_or_404
from django.utils import timezone
from backend.core.pagination import paginate_queryset
from backend.core.permissions import IsAdminRole
from backend.core.utils import create_audit_log
from backend.realtime.events import publish_event, ADMIN_ROOM, DISCOUNT_CREATED, DISCOUNT_APPLIED
from .models import Discount, Sale, SaleItem, refresh_sale_statuses
from .serializers import DiscountSerializer, DiscountApplySerializer, SaleSerializer, SaleProductCardSerializer

logger = logging.getLogger(__name__)


# Discount views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_discount_list_create(request):
    """List all discounts or create a new discount"""
    if request.method == 'GET':
        discounts = Discount.objects.prefetch_related('products', 'categories')
        is_active = request.query_params.get('is_active')
        if is_active in ('true', 'false'):
            discounts = discounts.filter(is_active=is_active == 'true')
        search = request.query_params.get('search', '').strip()
        if search:
            discounts = discounts.filter(code__icontains=search)
        return Response(paginate_queryset(request, discounts, DiscountSerializer))

    serializer = DiscountSerializer(data=request.data)
    if serializer.is_valid():
        discount = serializer.save(created_by=request.user)
        create_audit_log(request, 'create', 'Discount', discount.id, serializer.data, object_name=discount.code)
        publish_event(DISCOUNT_CREATED, serializer.data, ADMIN_ROOM)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_discount_detail(request, pk):
    """Retrieve, update or delete a discount"""
    discount = get_object_or_404(Discount, pk=pk)

    if request.method == 'GET':
        return Response(DiscountSerializer(discount).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = DiscountSerializer(discount, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(request, 'update', 'Discount', discount.id, dict(request.data), object_name=discount.code)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        discount_id, code = discount.id, discount.code
        discount.delete()
        create_audit_log(request, 'delete', 'Discount', discount_id, object_name=code)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def discount_apply(request):
    """Check a code against an order total and return the discount amount"""
    serializer = DiscountApplySerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    discount = Discount.objects.filter(code=data['code'].strip().upper()).first()
    if discount is None:
        return Response({'error': 'Invalid discount code'}, status=status.HTTP_404_NOT_FOUND)

    # DiscountInvalid propagates to the exception handler as a 400
    amount = discount.calculate(data['order_total'], data['product_ids'])
    final_total = data['order_total'] - amount

    publish_event(DISCOUNT_APPLIED, {
        'code': discount.code,
        'user_id': request.user.id,
        'discount_amount': amount,
    }, ADMIN_ROOM)
    return Response({
        'code': discount.code,
        'discount_amount': str(amount),
        'final_total': str(final_total),
        'discount': DiscountSerializer(discount).data,
    })


# Sale views
SALE_SORT_FIELDS = {
    'priority': 'priority',
    'start_date': 'start_date',
    'startDate': 'start_date',
    'end_date': 'end_date',
    'endDate': 'end_date',
    'created_at': 'created_at',
    'createdAt': 'created_at',
}


def active_sales():
    """Sales whose window covers now, after statuses are brought up to date"""
    refresh_sale_statuses()
    now = timezone.now()
    return Sale.objects.filter(
        status='active', is_active=True, start_date__lte=now, end_date__gte=now
    )


@api_view(['GET'])
@permission_classes([AllowAny])
def sale_active_list(request):
    """Sales running right now, with their items"""
    sales = active_sales().prefetch_related('items__product')
    sale_type = request.query_params.get('type')
    if sale_type:
        sales = sales.filter(type=sale_type)
    return Response(SaleSerializer(sales, many=True).data)


@api_view(['GET'])
@permission_classes([AllowAny])
def sale_detail(request, pk):
    """A single running sale; drafts, ended and cancelled sales stay hidden"""
    sale = get_object_or_404(active_sales().prefetch_related('items__product'), pk=pk)
    return Response(SaleSerializer(sale).data)


@api_view(['GET'])
@permission_classes([AllowAny])
def sale_page_data(request):
    """
    Products on sale right now as flat product cards.

    Sales are ordered by ``sortBy`` (priority, start_date, end_date, created_at)
    and ``order`` (asc or desc). A product in several sales appears once, with
    the deal that takes the most off its price.
    """
    sort_field = SALE_SORT_FIELDS.get(request.query_params.get('sortBy', 'priority'))
    order = request.query_params.get('order', 'desc')
    if sort_field is None or order not in ('asc', 'desc'):
        return Response(
            {'error': f"sortBy must be one of {', '.join(sorted(set(SALE_SORT_FIELDS.values())))} and order asc or desc"},
            status=status.HTTP_400_BAD_REQUEST,
        )

    running = active_sales()
    sales = running
    sale_type = request.query_params.get('type')
    if sale_type and sale_type != 'all':
        sales = sales.filter(type=sale_type)
    ordering = sort_field if order == 'asc' else f'-{sort_field}'
    sales = sales.order_by(ordering, 'id')

    items = SaleItem.objects.filter(sale__in=sales, product__is_active=True).select_related('sale', 'product')
    sale_rank = {sale_id: index for index, sale_id in enumerate(sales.values_list('id', flat=True))}
    best = {}
    for item in sorted(items, key=lambda item: (sale_rank[item.sale_id], item.id)):
        saving = item.original_price - item.sale_price
        current = best.get(item.product_id)
        if current is None or saving > current[1]:
            best[item.product_id] = (item, saving, current[2] if current else len(best))
    cards = [item for item, _, _ in sorted(best.values(), key=lambda entry: entry[2])]

    response = paginate_queryset(request, cards, SaleProductCardSerializer)
    response['summary'] = list(
        running.values('type').annotate(count=Count('id', distinct=True), total_items=Count('items')).order_by('type')
    )
    return Response(response)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_sale_list_create(request):
    if request.method == 'GET':
        refresh_sale_statuses()
        sales = Sale.objects.prefetch_related('items__product')
        status_filter = request.query_params.get('status')
        if status_filter:
            sales = sales.filter(status=status_filter)
        return Response(paginate_queryset(request, sales, SaleSerializer))

    serializer = SaleSerializer(data=request.data)
    if serializer.is_valid():
        sale = serializer.save(created_by=request.user)
        create_audit_log(request, 'create', 'Sale', sale.id, {'type': sale.type, 'status': sale.status}, object_name=sale.title)
        return Response(SaleSerializer(sale).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_sale_detail(request, pk):
    sale = get_object_or_404(Sale, pk=pk)

    if request.method == 'GET':
        return Response(SaleSerializer(sale).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = SaleSerializer(sale, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            sale = serializer.save()
            create_audit_log(request, 'update', 'Sale', sale.id, {'status': sale.status}, object_name=sale.title)
            return Response(SaleSerializer(sale).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        sale_id, title = sale.id, sale.title
        sale.delete()
        create_audit_log(request, 'delete', 'Sale', sale_id, object_name=title)
        return Response(status=status.HTTP_204_NO_CONTENT)
