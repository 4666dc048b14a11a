import logging
import uuid

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import transaction
from backend.orders.serializers import CheckoutSerializer, OrderSerializer
from backend.orders.services import place_order, resolve_line
from backend.orders.views import announce_order_created, order_queryset
from .models import Cart, CartItem
from .serializers import CartSerializer, CartItemInputSerializer, CartItemQuantitySerializer

logger = logging.getLogger(__name__)


def generate_cart_id():
    cart_id = f"CART-{str(uuid.uuid4())[:8].upper()}"
    while Cart.objects.filter(cart_id=cart_id).exists():
        cart_id = f"CART-{str(uuid.uuid4())[:8].upper()}"
    return cart_id


def get_user_cart(user):
    """The user's cart, created on first use"""
    cart = Cart.objects.filter(user=user).first()
    if cart is None:
        cart = Cart.objects.create(user=user, cart_id=generate_cart_id())
        logger.debug(f"Created cart {cart.cart_id} for user {user.pk}")
    return cart


def find_cart_lines(cart, product_id, variant_id=None, option_id=None):
    lines = cart.items.filter(product_id=product_id)
    if variant_id:
        lines = lines.filter(variant_id=variant_id)
    if option_id:
        lines = lines.filter(option_id=option_id)
    return lines


def _optional_int(value):
    try:
        return int(value) if value not in (None, '') else None
    except (TypeError, ValueError):
        return None


@api_view(['GET', 'DELETE'])
@permission_classes([IsAuthenticated])
def cart_detail(request):
    """Get the current cart or empty it"""
    cart = get_user_cart(request.user)

    if request.method == 'DELETE':
        deleted, _ = cart.items.all().delete()
        logger.info(f"Cart {cart.cart_id} cleared ({deleted} lines)")
        cart.save(update_fields=['updated_at'])

    return Response(CartSerializer(cart).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def cart_item_add(request):
    """Add a line or set the quantity of an existing one"""
    serializer = CartItemInputSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    # Raises InsufficientStock or StorefrontError, rendered as 400
    line = resolve_line(data['product_id'], data.get('variant_id'), data.get('option_id'), data['quantity'])

    cart = get_user_cart(request.user)
    item, created = CartItem.objects.update_or_create(
        cart=cart,
        product=line['product'],
        variant=line['variant'],
        option=line['option'],
        defaults={'quantity': data['quantity']},
    )
    cart.save(update_fields=['updated_at'])
    logger.debug(f"{'Added' if created else 'Updated'} {item} in cart {cart.cart_id}")
    return Response(CartSerializer(cart).data, status=status.HTTP_201_CREATED if created else status.HTTP_200_OK)


@api_view(['PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def cart_item_update(request, product_id):
    """Change the quantity of a cart line or remove it"""
    cart = get_user_cart(request.user)

    if request.method == 'DELETE':
        lines = find_cart_lines(
            cart, product_id,
            _optional_int(request.query_params.get('variant_id')),
            _optional_int(request.query_params.get('option_id')),
        )
        if not lines.exists():
            return Response({'error': 'Item not found in cart'}, status=status.HTTP_404_NOT_FOUND)
        lines.delete()
        cart.save(update_fields=['updated_at'])
        return Response(CartSerializer(cart).data)

    serializer = CartItemQuantitySerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    lines = list(find_cart_lines(cart, product_id, data.get('variant_id'), data.get('option_id')))
    if not lines:
        return Response({'error': 'Item not found in cart'}, status=status.HTTP_404_NOT_FOUND)
    if len(lines) > 1:
        return Response({'error': 'Specify variant_id or option_id for this product'}, status=status.HTTP_400_BAD_REQUEST)

    item = lines[0]
    resolve_line(item.product_id, item.variant_id, item.option_id, data['quantity'])
    item.quantity = data['quantity']
    item.save(update_fields=['quantity', 'updated_at'])
    cart.save(update_fields=['updated_at'])
    return Response(CartSerializer(cart).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def cart_checkout(request):
    """Turn the cart into an order; stock is checked again under lock"""
    serializer = CheckoutSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    cart = get_user_cart(request.user)
    with transaction.atomic():
        cart = Cart.objects.select_for_update().get(pk=cart.pk)
        lines = [
            {
                'product_id': item.product_id,
                'variant_id': item.variant_id,
                'option_id': item.option_id,
                'quantity': item.quantity,
            }
            for item in cart.items.all()
        ]
        if not lines:
            return Response({'error': 'Cart is empty'}, status=status.HTTP_400_BAD_REQUEST)

        order = place_order(
            request.user,
            lines,
            data['shipping_address'],
            billing_address=data.get('billing_address'),
            payment_method=data['payment_method'],
            discount_code=data.get('discount_code'),
            customer_notes=data.get('customer_notes', ''),
        )
        cart.items.all().delete()

    logger.info(f"Cart {cart.cart_id} checked out as order {order.order_id}")
    order = order_queryset().get(pk=order.pk)
    announce_order_created(order)
    return Response(OrderSerializer(order, context={'request': request}).data, status=status.HTTP_201_CREATED)
