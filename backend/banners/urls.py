from django.urls import path
from .views import (
    banner_active_list, admin_banner_list_create, admin_banner_detail,
    hero_image_list, admin_hero_image_create, admin_hero_image_detail,
)

urlpatterns = [
    path('banners/active/', banner_active_list, name='banner-active-list'),
    path('admin/banners/', admin_banner_list_create, name='admin-banner-list-create'),
    path('admin/banners/<int:pk>/', admin_banner_detail, name='admin-banner-detail'),
    path('hero-images/', hero_image_list, name='hero-image-list'),
    path('admin/hero-images/', admin_hero_image_create, name='admin-hero-image-create'),
    path('admin/hero-images/<int:pk>/', admin_hero_image_detail, name='admin-hero-image-detail'),
]
