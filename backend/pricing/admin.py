from django.contrib import admin
from .models import Discount, Sale, SaleItem


@admin.register(Discount)
class DiscountAdmin(admin.ModelAdmin):
    list_display = ['code', 'type', 'value', 'applicable_to', 'used_count', 'usage_limit', 'is_active', 'start_date', 'end_date']
    list_filter = ['type', 'applicable_to', 'is_active', 'start_date', 'end_date']
    search_fields = ['code', 'description']
    ordering = ['-created_at']
    filter_horizontal = ['products', 'categories']
    readonly_fields = ['used_count', 'created_at', 'updated_at']


class SaleItemInline(admin.TabularInline):
    model = SaleItem
    extra = 1
    readonly_fields = ['sale_price', 'sold_count']


@admin.register(Sale)
class SaleAdmin(admin.ModelAdmin):
    list_display = ['title', 'type', 'status', 'priority', 'start_date', 'end_date', 'is_active']
    list_filter = ['type', 'status', 'is_active', 'start_date']
    search_fields = ['title', 'description']
    ordering = ['-priority', 'start_date']
    inlines = [SaleItemInline]
    readonly_fields = ['created_at', 'updated_at']
