from rest_framework import serializers
from .models import Order, OrderItem


class AddressInputSerializer(serializers.Serializer):
    full_name = serializers.CharField(max_length=100)
    address_line1 = serializers.CharField(max_length=255)
    address_line2 = serializers.CharField(max_length=255, required=False, allow_blank=True, default='')
    city = serializers.CharField(max_length=100)
    state = serializers.CharField(max_length=100)
    postal_code = serializers.CharField(max_length=20)
    country = serializers.CharField(max_length=100)
    phone = serializers.CharField(max_length=20)


class OrderLineSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    variant_id = serializers.IntegerField(required=False, allow_null=True)
    option_id = serializers.IntegerField(required=False, allow_null=True)
    quantity = serializers.IntegerField(min_value=1)


class CheckoutSerializer(serializers.Serializer):
    """Payload for turning the cart into an order"""
    shipping_address = AddressInputSerializer()
    billing_address = AddressInputSerializer(required=False, allow_null=True)
    payment_method = serializers.ChoiceField(choices=Order.PAYMENT_METHOD_CHOICES, default='cash_on_delivery')
    discount_code = serializers.CharField(max_length=30, required=False, allow_blank=True)
    customer_notes = serializers.CharField(required=False, allow_blank=True, default='')


class PlaceOrderSerializer(CheckoutSerializer):
    """Payload for ordering an explicit list of items"""
    items = OrderLineSerializer(many=True)

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError("Order must contain at least one item")
        seen = set()
        for line in value:
            key = (line['product_id'], line.get('variant_id'), line.get('option_id'))
            if key in seen:
                raise serializers.ValidationError("Each item may appear only once")
            seen.add(key)
        return value


class OrderItemSerializer(serializers.ModelSerializer):
    unit_price = serializers.DecimalField(max_digits=10, decimal_places=2, read_only=True)
    line_total = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = OrderItem
        fields = [
            'id', 'product', 'variant', 'option', 'variant_type', 'item_name', 'item_image',
            'sku', 'color', 'option_value', 'price', 'discount_price', 'unit_price',
            'quantity', 'shipping_cost', 'line_total',
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    user_email = serializers.EmailField(source='user.email', read_only=True)
    item_count = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            'id', 'order_id', 'user', 'user_email', 'status', 'payment_method', 'payment_status',
            'subtotal', 'shipping_total', 'discount_amount', 'total_amount', 'item_count', 'created_at',
        ]
        read_only_fields = fields

    def get_item_count(self, obj):
        return len(obj.items.all())


class OrderSerializer(serializers.ModelSerializer):
    user_email = serializers.EmailField(source='user.email', read_only=True)
    discount_code = serializers.CharField(source='discount.code', read_only=True, default=None)
    items = OrderItemSerializer(many=True, read_only=True)
    shipping_address = serializers.SerializerMethodField()
    billing_address = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            'id', 'order_id', 'user', 'user_email', 'items',
            'subtotal', 'shipping_total', 'discount_code', 'discount_amount', 'total_amount',
            'payment_method', 'payment_status', 'status',
            'shipping_address', 'billing_same_as_shipping', 'billing_address',
            'tracking_number', 'carrier', 'customer_notes', 'admin_notes',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields

    def get_shipping_address(self, obj):
        return obj.address('shipping')

    def get_billing_address(self, obj):
        return obj.address('billing')

    def to_representation(self, instance):
        data = super().to_representation(instance)
        request = self.context.get('request')
        # Internal notes stay with staff
        if not (request and request.user.is_authenticated and request.user.is_admin_user):
            data.pop('admin_notes', None)
        return data


class OrderStatusUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Order.STATUS_CHOICES)
    tracking_number = serializers.CharField(max_length=100, required=False, allow_blank=True)
    carrier = serializers.CharField(max_length=100, required=False, allow_blank=True)
    admin_notes = serializers.CharField(required=False, allow_blank=True)
