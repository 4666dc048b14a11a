from rest_framework import serializers
from .models import Wishlist, WishlistItem


class WishlistProductSerializer(serializers.Serializer):
    """Product summary shown on wishlist lines"""
    id = serializers.IntegerField()
    title = serializers.CharField()
    slug = serializers.CharField()
    brand = serializers.CharField()
    price = serializers.DecimalField(max_digits=10, decimal_places=2, allow_null=True)
    discount_price = serializers.DecimalField(max_digits=10, decimal_places=2, allow_null=True)
    main_image = serializers.CharField(allow_null=True)
    average_rating = serializers.DecimalField(max_digits=2, decimal_places=1)
    in_stock = serializers.SerializerMethodField()

    def get_in_stock(self, obj):
        return obj.is_in_stock()


class WishlistItemSerializer(serializers.ModelSerializer):
    product = WishlistProductSerializer(read_only=True)
    variant_color = serializers.CharField(source='variant.color', read_only=True, default=None)

    class Meta:
        model = WishlistItem
        fields = ['id', 'product', 'variant', 'variant_color', 'added_at']
        read_only_fields = fields


class WishlistSerializer(serializers.ModelSerializer):
    items = serializers.SerializerMethodField()
    item_count = serializers.SerializerMethodField()

    class Meta:
        model = Wishlist
        fields = ['id', 'user', 'device_id', 'items', 'item_count', 'updated_at']
        read_only_fields = fields

    def _items(self, obj):
        return obj.items.select_related('product', 'variant').prefetch_related('product__variants__options')

    def get_items(self, obj):
        return WishlistItemSerializer(self._items(obj), many=True).data

    def get_item_count(self, obj):
        return obj.items.count()


class WishlistItemInputSerializer(serializers.Serializer):
    product_id = serializers.IntegerField()
    variant_id = serializers.IntegerField(required=False, allow_null=True)
