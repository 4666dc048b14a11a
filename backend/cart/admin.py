from django.contrib import admin
from .models import Cart, CartItem


class CartItemInline(admin.TabularInline):
    model = CartItem
    extra = 0
    raw_id_fields = ['product', 'variant', 'option']


@admin.register(Cart)
class CartAdmin(admin.ModelAdmin):
    list_display = ['cart_id', 'user', 'created_at', 'updated_at']
    search_fields = ['cart_id', 'user__email']
    inlines = [CartItemInline]
    readonly_fields = ['cart_id', 'created_at', 'updated_at']
