import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import AllowAny
from django.shortcuts import get_object_or_404
from backend.catalog.models import Product, ProductVariant
from backend.core.utils import parse_int_param
from backend.realtime.events import publish_event, user_room, device_room, WISHLIST_UPDATED
from .models import Wishlist, WishlistItem
from .serializers import WishlistSerializer, WishlistItemInputSerializer

logger = logging.getLogger(__name__)

OWNER_REQUIRED = {'error': 'Sign in or send an X-Device-Id header'}


def get_device_id(request):
    device_id = request.headers.get('X-Device-Id') or request.query_params.get('device_id')
    if not device_id and isinstance(request.data, dict):
        device_id = request.data.get('device_id')
    return (device_id or '').strip()[:100] or None


def get_wishlist(request, create=False):
    """Wishlist of the signed-in user, else of the calling device; None without an owner"""
    if request.user.is_authenticated:
        lookup = {'user': request.user}
    else:
        device_id = get_device_id(request)
        if not device_id:
            return None
        lookup = {'device_id': device_id}

    if create:
        wishlist, _ = Wishlist.objects.get_or_create(**lookup)
        return wishlist
    return Wishlist.objects.filter(**lookup).first() or Wishlist(**lookup)


def owner_room(wishlist):
    return user_room(wishlist.user_id) if wishlist.user_id else device_room(wishlist.device_id)


def announce_wishlist(wishlist, action, product_id):
    publish_event(WISHLIST_UPDATED, {
        'action': action,
        'product_id': product_id,
        'item_count': wishlist.items.count(),
    }, owner_room(wishlist))


@api_view(['GET'])
@permission_classes([AllowAny])
def wishlist_detail(request):
    wishlist = get_wishlist(request)
    if wishlist is None:
        return Response(OWNER_REQUIRED, status=status.HTTP_400_BAD_REQUEST)
    if wishlist.pk is None:
        return Response({'id': None, 'user': wishlist.user_id, 'device_id': wishlist.device_id,
                         'items': [], 'item_count': 0, 'updated_at': None})
    return Response(WishlistSerializer(wishlist).data)


@api_view(['POST'])
@permission_classes([AllowAny])
def wishlist_item_add(request):
    if not request.user.is_authenticated and not get_device_id(request):
        return Response(OWNER_REQUIRED, status=status.HTTP_400_BAD_REQUEST)

    serializer = WishlistItemInputSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    data = serializer.validated_data

    product = get_object_or_404(Product, pk=data['product_id'], is_active=True)
    variant = None
    if data.get('variant_id'):
        variant = ProductVariant.objects.filter(pk=data['variant_id'], product=product).first()
        if variant is None:
            return Response({'error': 'Variant does not belong to this product'}, status=status.HTTP_400_BAD_REQUEST)

    wishlist = get_wishlist(request, create=True)

    if WishlistItem.objects.filter(wishlist=wishlist, product=product, variant=variant).exists():
        return Response({'error': 'Product is already in your wishlist'}, status=status.HTTP_400_BAD_REQUEST)

    WishlistItem.objects.create(wishlist=wishlist, product=product, variant=variant)
    wishlist.save(update_fields=['updated_at'])
    announce_wishlist(wishlist, 'added', product.pk)
    return Response(WishlistSerializer(wishlist).data, status=status.HTTP_201_CREATED)


@api_view(['DELETE'])
@permission_classes([AllowAny])
def wishlist_item_remove(request, product_id):
    wishlist = get_wishlist(request)
    if wishlist is None:
        return Response(OWNER_REQUIRED, status=status.HTTP_400_BAD_REQUEST)
    try:
        variant_id = parse_int_param(request, 'variant_id')
    except ValueError:
        return Response({'error': 'variant_id must be a numeric id'}, status=status.HTTP_400_BAD_REQUEST)

    items = WishlistItem.objects.none()
    if wishlist.pk is not None:
        items = wishlist.items.filter(product_id=product_id)
        if variant_id is not None:
            items = items.filter(variant_id=variant_id)
    if not items.exists():
        return Response({'error': 'Item not found in wishlist'}, status=status.HTTP_404_NOT_FOUND)

    items.delete()
    wishlist.save(update_fields=['updated_at'])
    announce_wishlist(wishlist, 'removed', product_id)
    return Response(WishlistSerializer(wishlist).data)
