from django.urls import path
from .views import (
    category_list, category_detail, category_products,
    admin_category_list_create, admin_category_detail,
    product_list, product_featured, product_detail,
    admin_product_list_create, admin_product_detail,
)

urlpatterns = [
    # Category endpoints
    path('categories/', category_list, name='category-list'),
    path('categories/<int:pk>/', category_detail, name='category-detail'),
    path('categories/<int:pk>/products/', category_products, name='category-products'),
    path('admin/categories/', admin_category_list_create, name='admin-category-list-create'),
    path('admin/categories/<int:pk>/', admin_category_detail, name='admin-category-detail'),

    # Product endpoints
    path('products/', product_list, name='product-list'),
    path('products/featured/', product_featured, name='product-featured'),
    path('products/<str:identifier>/', product_detail, name='product-detail'),
    path('admin/products/', admin_product_list_create, name='admin-product-list-create'),
    path('admin/products/<int:pk>/', admin_product_detail, name='admin-product-detail'),
]
