from django.urls import path
from .views import (
    CustomTokenObtainPairView, CustomTokenRefreshView, AdminTokenObtainPairView,
    register, logout, user_me, update_profile, change_password, admin_verify,
    address_list_create, address_detail,
    user_list_create, user_detail,
    audit_log_list, health
)

urlpatterns = [
    path('health/', health, name='health'),

    # Auth endpoints
    path('auth/register/', register, name='register'),
    path('auth/login/', CustomTokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/refresh/', CustomTokenRefreshView.as_view(), name='token_refresh'),
    path('auth/logout/', logout, name='logout'),
    path('auth/me/', user_me, name='user-me'),
    path('auth/profile/', update_profile, name='update-profile'),
    path('auth/change-password/', change_password, name='change-password'),
    path('auth/addresses/', address_list_create, name='address-list-create'),
    path('auth/addresses/<int:pk>/', address_detail, name='address-detail'),

    # Admin auth
    path('admin/auth/login/', AdminTokenObtainPairView.as_view(), name='admin-login'),
    path('admin/auth/verify/', admin_verify, name='admin-verify'),

    # User endpoints
    path('users/', user_list_create, name='user-list-create'),
    path('users/<int:pk>/', user_detail, name='user-detail'),

    # AuditLog endpoints
    path('audit-logs/', audit_log_list, name='audit-log-list'),
]
