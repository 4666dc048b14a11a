from django.urls import path
from .views import cart_detail, cart_item_add, cart_item_update, cart_checkout

urlpatterns = [
    path('cart/', cart_detail, name='cart-detail'),
    path('cart/items/', cart_item_add, name='cart-item-add'),
    path('cart/items/<int:product_id>/', cart_item_update, name='cart-item-update'),
    path('cart/checkout/', cart_checkout, name='cart-checkout'),
]
