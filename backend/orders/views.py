import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Q
from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from backend.core.pagination import paginate_queryset
from backend.core.permissions import IsAdminRole
from backend.core.utils import create_audit_log, parse_date_range, parse_int_param
from backend.realtime.events import publish_event, user_room, ADMIN_ROOM, ORDER_CREATED, ORDER_STATUS_UPDATED
from .invoice import generate_invoice_pdf
from .models import Order
from .serializers import (
    OrderSerializer, OrderListSerializer, PlaceOrderSerializer, OrderStatusUpdateSerializer,
)
from .services import place_order, cancel_order, update_order_status, order_event_payload

logger = logging.getLogger(__name__)


def order_queryset():
    return Order.objects.select_related('user', 'discount').prefetch_related('items')


def get_visible_order(request, order_id):
    """Order by public id; owners see their own, admins see all"""
    order = get_object_or_404(order_queryset(), order_id=order_id)
    if order.user_id != request.user.id and not request.user.is_admin_user:
        return None, Response({'error': 'You do not have access to this order'}, status=status.HTTP_403_FORBIDDEN)
    return order, None


def announce_order_created(order):
    publish_event(ORDER_CREATED, order_event_payload(order), [ADMIN_ROOM, user_room(order.user_id)])


def announce_status_change(order):
    publish_event(ORDER_STATUS_UPDATED, order_event_payload(order), [user_room(order.user_id), ADMIN_ROOM])


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def order_create(request):
    """Place an order from an explicit list of items"""
    serializer = PlaceOrderSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    order = place_order(
        request.user,
        data['items'],
        data['shipping_address'],
        billing_address=data.get('billing_address'),
        payment_method=data['payment_method'],
        discount_code=data.get('discount_code'),
        customer_notes=data.get('customer_notes', ''),
    )
    order = order_queryset().get(pk=order.pk)
    announce_order_created(order)
    return Response(OrderSerializer(order, context={'request': request}).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_orders(request):
    """Order history for the current user"""
    orders = order_queryset().filter(user=request.user)
    status_filter = request.query_params.get('status')
    if status_filter:
        orders = orders.filter(status=status_filter)
    return Response(paginate_queryset(request, orders, OrderListSerializer, default_limit=10))


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_detail(request, order_id):
    order, error = get_visible_order(request, order_id)
    if error:
        return error
    return Response(OrderSerializer(order, context={'request': request}).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def order_cancel(request, order_id):
    """Customer cancels their own pending or processing order"""
    order = get_object_or_404(order_queryset(), order_id=order_id)
    if order.user_id != request.user.id:
        return Response({'error': 'You can only cancel your own orders'}, status=status.HTTP_403_FORBIDDEN)

    old_status = order.status
    cancel_order(order)
    create_audit_log(request, 'status_change', 'Order', order.id,
                     {'status': {'old': old_status, 'new': order.status}}, object_name=order.order_id)
    announce_status_change(order)
    return Response(OrderSerializer(order, context={'request': request}).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_invoice(request, order_id):
    """Download the order invoice as PDF"""
    order, error = get_visible_order(request, order_id)
    if error:
        return error

    content = generate_invoice_pdf(order)
    response = HttpResponse(content, content_type='application/pdf')
    response['Content-Disposition'] = f'attachment; filename="invoice-{order.order_id}.pdf"'
    return response


# Admin views
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_order_list(request):
    """All orders with status, customer, date and text filters"""
    orders = order_queryset()

    status_filter = request.query_params.get('status')
    if status_filter:
        orders = orders.filter(status=status_filter)
    try:
        user_id = parse_int_param(request, 'user')
    except ValueError:
        return Response({'error': 'user must be a numeric id'}, status=status.HTTP_400_BAD_REQUEST)
    if user_id is not None:
        orders = orders.filter(user_id=user_id)
    try:
        date_from, date_to = parse_date_range(request)
    except ValueError:
        return Response({'error': 'Dates must use the YYYY-MM-DD format'}, status=status.HTTP_400_BAD_REQUEST)
    if date_from:
        orders = orders.filter(created_at__date__gte=date_from)
    if date_to:
        orders = orders.filter(created_at__date__lte=date_to)
    search = request.query_params.get('search', '').strip()
    if search:
        orders = orders.filter(Q(order_id__icontains=search) | Q(user__email__icontains=search))

    return Response(paginate_queryset(request, orders, OrderListSerializer))


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_order_status(request, order_id):
    """Set order status and shipping details"""
    order = get_object_or_404(order_queryset(), order_id=order_id)
    serializer = OrderStatusUpdateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    old_status = order.status
    update_order_status(
        order,
        data['status'],
        tracking_number=data.get('tracking_number'),
        carrier=data.get('carrier'),
        admin_notes=data.get('admin_notes'),
    )
    logger.info(f"Order {order.order_id} status changed from {old_status} to {order.status} by {request.user.email}")
    create_audit_log(request, 'status_change', 'Order', order.id,
                     {'status': {'old': old_status, 'new': order.status}}, object_name=order.order_id)
    announce_status_change(order)
    return Response(OrderSerializer(order, context={'request': request}).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_order_notifications(request):
    """Most recent orders for the admin notification bell"""
    orders = order_queryset()[:10]
    return Response(OrderListSerializer(orders, many=True).data)
