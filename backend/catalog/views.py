import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from django.db import transaction
from django.db.models import Count
from django.shortcuts import get_object_or_404
from backend.core.cache_utils import (
    get_cached_products_list, cache_products_list,
    get_cached_categories, cache_categories,
)
from backend.core.pagination import paginate_queryset, get_page_params
from backend.core.permissions import IsAdminRole
from backend.core.utils import create_audit_log
from backend.realtime.events import (
    publish_event, ADMIN_ROOM, PUBLIC_ROOM,
    CATEGORY_CREATED, CATEGORY_UPDATED, CATEGORY_DELETED,
    PRODUCT_CREATED, PRODUCT_UPDATED, PRODUCT_DELETED,
)
from .filters import ProductFilter, apply_sort
from .models import Category, Product
from .serializers import CategorySerializer, ProductSerializer, ProductListSerializer
from .utils import delete_category_tree

logger = logging.getLogger(__name__)

CATALOG_ROOMS = [ADMIN_ROOM, PUBLIC_ROOM]


def product_queryset():
    return Product.objects.select_related('category').prefetch_related('variants__options')


def filtered_products(request, queryset):
    product_filter = ProductFilter(request.query_params, queryset=queryset)
    if not product_filter.is_valid():
        return None, product_filter.errors
    return apply_sort(product_filter.qs, request.query_params.get('sort')), None


# Public category endpoints
@api_view(['GET'])
@permission_classes([AllowAny])
def category_list(request):
    """Active categories with their parent"""
    cached_data, cache_key = get_cached_categories(active_only=True)
    if cached_data is not None:
        response = Response(cached_data)
        response['X-Cache'] = 'HIT'
        return response

    categories = Category.objects.filter(is_active=True).select_related('parent').annotate(
        product_total=Count('products', distinct=True)
    )
    data = CategorySerializer(categories, many=True).data
    cache_categories(cache_key, data)
    response = Response(data)
    response['X-Cache'] = 'MISS'
    return response


@api_view(['GET'])
@permission_classes([AllowAny])
def category_detail(request, pk):
    category = get_object_or_404(Category, pk=pk, is_active=True)
    return Response(CategorySerializer(category).data)


@api_view(['GET'])
@permission_classes([AllowAny])
def category_products(request, pk):
    """In-stock products of a category and its subcategories"""
    category = get_object_or_404(Category, pk=pk, is_active=True)
    queryset = product_queryset().public().filter(category_id__in=category.get_descendant_ids())
    queryset, errors = filtered_products(request, queryset)
    if errors:
        return Response(errors, status=status.HTTP_400_BAD_REQUEST)
    data = paginate_queryset(request, queryset, ProductListSerializer)
    data['category'] = CategorySerializer(category).data
    return Response(data)


# Admin category endpoints
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_category_list_create(request):
    if request.method == 'GET':
        categories = Category.objects.select_related('parent').annotate(
            product_total=Count('products', distinct=True)
        )
        return Response(CategorySerializer(categories, many=True).data)

    serializer = CategorySerializer(data=request.data)
    if serializer.is_valid():
        category = serializer.save()
        create_audit_log(request, 'create', 'Category', category.id, serializer.data, object_name=category.name)
        publish_event(CATEGORY_CREATED, serializer.data, CATALOG_ROOMS)
        return Response(serializer.data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_category_detail(request, pk):
    category = get_object_or_404(Category, pk=pk)

    if request.method == 'GET':
        return Response(CategorySerializer(category).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = CategorySerializer(category, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            category = serializer.save()
            create_audit_log(request, 'update', 'Category', category.id, dict(request.data), object_name=category.name)
            publish_event(CATEGORY_UPDATED, serializer.data, CATALOG_ROOMS)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        category_id, category_name = category.id, category.name
        with transaction.atomic():
            summary = delete_category_tree(category)
        logger.info(f"Deleted category {category_name} with {summary}")
        create_audit_log(request, 'delete', 'Category', category_id, summary, object_name=category_name)
        publish_event(CATEGORY_DELETED, {'id': category_id, **summary}, CATALOG_ROOMS)
        return Response(status=status.HTTP_204_NO_CONTENT)


# Public product endpoints
@api_view(['GET'])
@permission_classes([AllowAny])
def product_list(request):
    """In-stock products with filters, sorting and page/limit pagination"""
    page, limit = get_page_params(request)
    cache_params = dict(request.query_params.items())
    cache_params.update({'page': page, 'limit': limit})
    cached_data, cache_key = get_cached_products_list(cache_params)
    if cached_data is not None:
        response = Response(cached_data)
        response['X-Cache'] = 'HIT'
        return response

    queryset, errors = filtered_products(request, product_queryset().public())
    if errors:
        return Response(errors, status=status.HTTP_400_BAD_REQUEST)

    data = paginate_queryset(request, queryset, ProductListSerializer)
    cache_products_list(cache_key, data)
    logger.debug(f"Products list computed: page={page}, limit={limit}, count={data['count']}")
    response = Response(data)
    response['X-Cache'] = 'MISS'
    return response


@api_view(['GET'])
@permission_classes([AllowAny])
def product_featured(request):
    try:
        limit = min(max(int(request.query_params.get('limit', 8)), 1), 50)
    except (TypeError, ValueError):
        limit = 8
    products = product_queryset().public().filter(is_featured=True).order_by('-created_at')[:limit]
    return Response(ProductListSerializer(products, many=True).data)


@api_view(['GET'])
@permission_classes([AllowAny])
def product_detail(request, identifier):
    """Product by numeric id or slug; hidden when inactive or fully out of stock"""
    lookup = {'pk': int(identifier)} if identifier.isdigit() else {'slug': identifier}
    product = get_object_or_404(product_queryset(), is_active=True, **lookup)
    if not product.is_in_stock():
        return Response({'error': 'Product is out of stock'}, status=status.HTTP_404_NOT_FOUND)
    return Response(ProductSerializer(product).data)


# Admin product endpoints
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_product_list_create(request):
    if request.method == 'GET':
        queryset, errors = filtered_products(request, product_queryset())
        if errors:
            return Response(errors, status=status.HTTP_400_BAD_REQUEST)
        return Response(paginate_queryset(request, queryset, ProductListSerializer))

    serializer = ProductSerializer(data=request.data)
    if serializer.is_valid():
        product = serializer.save()
        data = ProductSerializer(product).data
        create_audit_log(request, 'create', 'Product', product.id, {'sku': product.sku}, object_name=product.title)
        logger.info(f"Product created: {product.title} ({product.sku})")
        publish_event(PRODUCT_CREATED, data, CATALOG_ROOMS)
        return Response(data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_product_detail(request, pk):
    product = get_object_or_404(product_queryset(), pk=pk)

    if request.method == 'GET':
        return Response(ProductSerializer(product).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = ProductSerializer(product, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            product = serializer.save()
            product = product_queryset().get(pk=product.pk)
            data = ProductSerializer(product).data
            changes = {key: request.data[key] for key in request.data if key != 'variants'}
            create_audit_log(request, 'update', 'Product', product.id, changes, object_name=product.title)
            publish_event(PRODUCT_UPDATED, data, CATALOG_ROOMS)
            return Response(data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        product_id, product_title = product.id, product.title
        product.delete()
        create_audit_log(request, 'delete', 'Product', product_id, object_name=product_title)
        publish_event(PRODUCT_DELETED, {'id': product_id}, CATALOG_ROOMS)
        return Response(status=status.HTTP_204_NO_CONTENT)
