from rest_framework import serializers
from .models import Cart, CartItem


class CartItemSerializer(serializers.ModelSerializer):
    product_title = serializers.CharField(source='product.title', read_only=True)
    product_slug = serializers.CharField(source='product.slug', read_only=True)
    product_image = serializers.CharField(source='product.main_image', read_only=True, default=None)
    color = serializers.SerializerMethodField()
    option_value = serializers.CharField(source='option.value', read_only=True, default=None)
    unit_price = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    shipping_cost = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    available_stock = serializers.IntegerField(read_only=True)

    class Meta:
        model = CartItem
        fields = [
            'id', 'product', 'product_title', 'product_slug', 'product_image',
            'variant', 'color', 'option', 'option_value', 'quantity',
            'unit_price', 'line_total', 'shipping_cost', 'available_stock',
        ]
        read_only_fields = fields

    def get_color(self, obj):
        if obj.variant_id:
            return obj.variant.color
        return obj.product.color or None


class CartSerializer(serializers.ModelSerializer):
    items = serializers.SerializerMethodField()
    subtotal = serializers.SerializerMethodField()
    shipping_total = serializers.SerializerMethodField()
    total = serializers.SerializerMethodField()
    item_count = serializers.SerializerMethodField()

    class Meta:
        model = Cart
        fields = ['cart_id', 'items', 'subtotal', 'shipping_total', 'total', 'item_count', 'updated_at']
        read_only_fields = fields

    def _totals(self, obj):
        if not hasattr(obj, '_cached_totals'):
            obj._cached_lines = obj.get_lines()
            obj._cached_totals = obj.totals(obj._cached_lines)
        return obj._cached_totals

    def get_items(self, obj):
        self._totals(obj)
        return CartItemSerializer(obj._cached_lines, many=True).data

    def get_subtotal(self, obj):
        return str(self._totals(obj)['subtotal'])

    def get_shipping_total(self, obj):
        return str(self._totals(obj)['shipping_total'])

    def get_total(self, obj):
        return str(self._totals(obj)['total'])

    def get_item_count(self, obj):
        return self._totals(obj)['item_count']


class CartItemInputSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    variant_id = serializers.IntegerField(required=False, allow_null=True)
    option_id = serializers.IntegerField(required=False, allow_null=True)
    quantity = serializers.IntegerField(min_value=1, default=1)


class CartItemQuantitySerializer(serializers.Serializer):
    variant_id = serializers.IntegerField(required=False, allow_null=True)
    option_id = serializers.IntegerField(required=False, allow_null=True)
    quantity = serializers.IntegerField(min_value=1)
