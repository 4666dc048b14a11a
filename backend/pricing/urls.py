from django.urls import path
from .views import (
    admin_discount_list_create, admin_discount_detail, discount_apply,
    sale_active_list, sale_detail, sale_page_data, admin_sale_list_create, admin_sale_detail,
)

urlpatterns = [
    # Discount endpoints
    path('discounts/apply/', discount_apply, name='discount-apply'),
    path('admin/discounts/', admin_discount_list_create, name='admin-discount-list-create'),
    path('admin/discounts/<int:pk>/', admin_discount_detail, name='admin-discount-detail'),

    # Sale endpoints
    path('sales/active/', sale_active_list, name='sale-active-list'),
    path('sales/page-data/', sale_page_data, name='sale-page-data'),
    path('sales/<int:pk>/', sale_detail, name='sale-detail'),
    path('admin/sales/', admin_sale_list_create, name='admin-sale-list-create'),
    path('admin/sales/<int:pk>/', admin_sale_detail, name='admin-sale-detail'),
]
