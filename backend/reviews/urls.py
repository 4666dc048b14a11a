from django.urls import path
from .views import (
    product_reviews, review_detail, my_reviews, review_vote,
    admin_review_list, admin_review_flag, admin_review_delete,
)

urlpatterns = [
    path('products/<int:product_id>/reviews/', product_reviews, name='product-reviews'),
    path('reviews/mine/', my_reviews, name='review-mine'),
    path('reviews/<int:pk>/', review_detail, name='review-detail'),
    path('reviews/<int:pk>/vote/', review_vote, name='review-vote'),

    # Admin endpoints
    path('admin/reviews/', admin_review_list, name='admin-review-list'),
    path('admin/reviews/<int:pk>/', admin_review_delete, name='admin-review-delete'),
    path('admin/reviews/<int:pk>/flag/', admin_review_flag, name='admin-review-flag'),
]
