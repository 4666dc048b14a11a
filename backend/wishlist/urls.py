from django.urls import path
from .views import wishlist_detail, wishlist_item_add, wishlist_item_remove

urlpatterns = [
    path('wishlist/', wishlist_detail, name='wishlist-detail'),
    path('wishlist/items/', wishlist_item_add, name='wishlist-item-add'),
    path('wishlist/items/<int:product_id>/', wishlist_item_remove, name='wishlist-item-remove'),
]
