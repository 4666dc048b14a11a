from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from django.shortcuts import get_object_or_404
from backend.core.permissions import IsAdminRole
from backend.core.utils import create_audit_log
from backend.realtime.events import publish_event, PUBLIC_ROOM, BANNER_UPDATED
from .models import Banner, HeroImage
from .serializers import BannerSerializer, HeroImageSerializer


def notify_banners_changed(action, banner_id):
    publish_event(BANNER_UPDATED, {'action': action, 'id': banner_id}, PUBLIC_ROOM)


@api_view(['GET'])
@permission_classes([AllowAny])
def banner_active_list(request):
    """Active banners, highest priority first"""
    banners = Banner.objects.filter(is_active=True)
    position = request.query_params.get('position')
    if position:
        banners = banners.filter(position=position)
    return Response(BannerSerializer(banners.order_by('-priority', '-created_at'), many=True).data)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_banner_list_create(request):
    if request.method == 'GET':
        return Response(BannerSerializer(Banner.objects.all(), many=True).data)

    serializer = BannerSerializer(data=request.data)
    if serializer.is_valid():
        banner = serializer.save()
        create_audit_log(request, 'create', 'Banner', banner.id, object_name=banner.title)
        notify_banners_changed('created', banner.id)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_banner_detail(request, pk):
    banner = get_object_or_404(Banner, pk=pk)

    if request.method == 'GET':
        return Response(BannerSerializer(banner).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = BannerSerializer(banner, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            create_audit_log(request, 'update', 'Banner', banner.id, dict(request.data), object_name=banner.title)
            notify_banners_changed('updated', banner.id)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        banner_id = banner.id
        banner.delete()
        create_audit_log(request, 'delete', 'Banner', banner_id)
        notify_banners_changed('deleted', banner_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([AllowAny])
def hero_image_list(request):
    """Hero slides in display order"""
    images = HeroImage.objects.order_by('order', 'id')
    return Response(HeroImageSerializer(images, many=True, context={'request': request}).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
@parser_classes([MultiPartParser, FormParser])
def admin_hero_image_create(request):
    if 'image' not in request.FILES:
        return Response({'error': 'Image file is required'}, status=status.HTTP_400_BAD_REQUEST)
    serializer = HeroImageSerializer(data=request.data, context={'request': request})
    if serializer.is_valid():
        hero_image = serializer.save()
        create_audit_log(request, 'create', 'HeroImage', hero_image.id, object_name=hero_image.title)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
@parser_classes([MultiPartParser, FormParser, JSONParser])
def admin_hero_image_detail(request, pk):
    hero_image = get_object_or_404(HeroImage, pk=pk)

    if request.method == 'GET':
        return Response(HeroImageSerializer(hero_image, context={'request': request}).data)
    elif request.method in ('PUT', 'PATCH'):
        # The image is optional on update; omit it to keep the current file
        serializer = HeroImageSerializer(hero_image, data=request.data, partial=True, context={'request': request})
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        hero_image_id = hero_image.id
        hero_image.image.delete(save=False)
        hero_image.delete()
        create_audit_log(request, 'delete', 'HeroImage', hero_image_id)
        return Response(status=status.HTTP_204_NO_CONTENT)
