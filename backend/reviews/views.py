import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, IsAuthenticatedOrReadOnly
from django.db import transaction
from django.db.models import F
from django.shortcuts import get_object_or_404
from backend.catalog.models import Product
from backend.core.pagination import paginate_queryset
from backend.core.permissions import IsAdminRole
from backend.core.utils import create_audit_log, parse_int_param
from backend.orders.models import Order
from backend.realtime.events import publish_event, ADMIN_ROOM, PUBLIC_ROOM, REVIEW_ADDED
from .models import Review, update_product_rating
from .serializers import ReviewSerializer, ReviewVoteSerializer, ReviewFlagSerializer

logger = logging.getLogger(__name__)


def delivered_order_for(user, product):
    """Most recent delivered order of ``user`` containing ``product``"""
    return Order.objects.filter(user=user, status='delivered', items__product=product).order_by('-created_at').first()


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticatedOrReadOnly])
def product_reviews(request, product_id):
    """List visible reviews for a product or add one"""
    product = get_object_or_404(Product, pk=product_id, is_active=True)

    if request.method == 'GET':
        reviews = Review.objects.filter(product=product, is_flagged=False).select_related('user', 'product')
        try:
            rating = parse_int_param(request, 'rating')
        except ValueError:
            return Response({'error': 'rating must be a number from 1 to 5'}, status=status.HTTP_400_BAD_REQUEST)
        if rating is not None:
            reviews = reviews.filter(rating=rating)
        response = paginate_queryset(request, reviews, ReviewSerializer, default_limit=10)
        response['average_rating'] = str(product.average_rating)
        response['num_reviews'] = product.num_reviews
        return Response(response)

    if Review.objects.filter(user=request.user, product=product).exists():
        return Response({'error': 'You have already reviewed this product'}, status=status.HTTP_400_BAD_REQUEST)

    serializer = ReviewSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    order = delivered_order_for(request.user, product)
    with transaction.atomic():
        review = serializer.save(
            user=request.user, product=product, order=order, verified_purchase=order is not None
        )
        update_product_rating(product.pk)

    data = ReviewSerializer(review).data
    publish_event(REVIEW_ADDED, data, [PUBLIC_ROOM, ADMIN_ROOM])
    return Response(data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticatedOrReadOnly])
def review_detail(request, pk):
    """Read a review; its author may edit or delete it"""
    review = get_object_or_404(Review.objects.select_related('user', 'product'), pk=pk)

    if request.method == 'GET':
        return Response(ReviewSerializer(review).data)

    if review.user_id != request.user.id:
        return Response({'error': 'You can only modify your own reviews'}, status=status.HTTP_403_FORBIDDEN)

    if request.method in ('PUT', 'PATCH'):
        serializer = ReviewSerializer(review, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            with transaction.atomic():
                serializer.save()
                update_product_rating(review.product_id)
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        product_id = review.product_id
        with transaction.atomic():
            review.delete()
            update_product_rating(product_id)
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def my_reviews(request):
    reviews = Review.objects.filter(user=request.user).select_related('user', 'product')
    return Response(paginate_queryset(request, reviews, ReviewSerializer))


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def review_vote(request, pk):
    """Mark a review helpful or unhelpful"""
    review = get_object_or_404(Review, pk=pk, is_flagged=False)
    serializer = ReviewVoteSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    counter = 'helpful_count' if serializer.validated_data['helpful'] else 'unhelpful_count'
    Review.objects.filter(pk=review.pk).update(**{counter: F(counter) + 1})
    review.refresh_from_db()
    return Response({
        'id': review.id,
        'helpful_count': review.helpful_count,
        'unhelpful_count': review.unhelpful_count,
    })


# Admin views
@api_view(['GET'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_review_list(request):
    reviews = Review.objects.select_related('user', 'product')
    flagged = request.query_params.get('flagged')
    if flagged in ('true', 'false'):
        reviews = reviews.filter(is_flagged=flagged == 'true')
    product_id = request.query_params.get('product')
    if product_id:
        reviews = reviews.filter(product_id=product_id)
    return Response(paginate_queryset(request, reviews, ReviewSerializer))


@api_view(['PATCH'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_review_flag(request, pk):
    """Hide or restore a review; flagged reviews drop out of the product rating"""
    review = get_object_or_404(Review, pk=pk)
    serializer = ReviewFlagSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    review.is_flagged = serializer.validated_data['is_flagged']
    with transaction.atomic():
        review.save(update_fields=['is_flagged', 'updated_at'])
        update_product_rating(review.product_id)
    create_audit_log(request, 'flag', 'Review', review.id, {'is_flagged': review.is_flagged})
    return Response(ReviewSerializer(review).data)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsAdminRole])
def admin_review_delete(request, pk):
    review = get_object_or_404(Review, pk=pk)
    review_id, product_id = review.id, review.product_id
    with transaction.atomic():
        review.delete()
        update_product_rating(product_id)
    create_audit_log(request, 'delete', 'Review', review_id)
    return Response(status=status.HTTP_204_NO_CONTENT)
