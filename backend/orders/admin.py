from django.contrib import admin
from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = [
        'product', 'variant', 'option', 'variant_type', 'item_name', 'sku', 'color',
        'option_value', 'price', 'discount_price', 'quantity', 'shipping_cost',
    ]
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['order_id', 'user', 'status', 'payment_method', 'payment_status', 'total_amount', 'created_at']
    list_filter = ['status', 'payment_method', 'payment_status', 'created_at']
    search_fields = ['order_id', 'user__email', 'shipping_full_name', 'tracking_number']
    ordering = ['-created_at']
    inlines = [OrderItemInline]
    readonly_fields = ['order_id', 'subtotal', 'shipping_total', 'discount_amount', 'total_amount', 'stock_restored', 'created_at', 'updated_at']
