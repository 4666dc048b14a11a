"""
URL configuration for the storefront backend.

Every app mounts its routes under ``api/v1/``; see each app's ``urls.py``.
"""
from django.contrib import admin
from django.urls import path, include, re_path
from django.conf import settings
from django.views.static import serve

admin.site.site_header = "Storefront Admin Panel"
admin.site.site_title = "Storefront Admin Portal"
admin.site.index_title = "Welcome to the Storefront Admin Portal"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('backend.core.urls')),
    path('api/v1/', include('backend.catalog.urls')),
    path('api/v1/', include('backend.banners.urls')),
    path('api/v1/', include('backend.pricing.urls')),
    path('api/v1/', include('backend.cart.urls')),
    path('api/v1/', include('backend.orders.urls')),
    path('api/v1/', include('backend.reviews.urls')),
    path('api/v1/', include('backend.wishlist.urls')),
    path('api/v1/', include('backend.reports.urls')),
    path('api/v1/', include('backend.realtime.urls')),
    re_path(r'^media/(?P<path>.*)$', serve, {'document_root': settings.MEDIA_ROOT}),
    re_path(r'^static/(?P<path>.*)$', serve, {'document_root': settings.STATIC_ROOT}),
]
