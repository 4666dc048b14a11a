from django.urls import path
from .views import (
    order_create, my_orders, order_detail, order_cancel, order_invoice,
    admin_order_list, admin_order_status, admin_order_notifications,
)

urlpatterns = [
    path('orders/', order_create, name='order-create'),
    path('orders/mine/', my_orders, name='order-mine'),
    path('orders/<str:order_id>/', order_detail, name='order-detail'),
    path('orders/<str:order_id>/cancel/', order_cancel, name='order-cancel'),
    path('orders/<str:order_id>/invoice/', order_invoice, name='order-invoice'),

    # Admin endpoints
    path('admin/orders/', admin_order_list, name='admin-order-list'),
    path('admin/orders/notifications/', admin_order_notifications, name='admin-order-notifications'),
    path('admin/orders/<str:order_id>/status/', admin_order_status, name='admin-order-status'),
]
