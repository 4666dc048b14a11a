from django.conf import settings
from django.db import transaction
from django.utils import timezone
from rest_framework import serializers
from .models import Discount, Sale, SaleItem


class DiscountSerializer(serializers.ModelSerializer):
    is_valid_now = serializers.SerializerMethodField()

    class Meta:
        model = Discount
        fields = [
            'id', 'code', 'description', 'type', 'value', 'applicable_to', 'products', 'categories',
            'min_order_amount', 'start_date', 'end_date', 'usage_limit', 'used_count', 'is_active',
            'is_valid_now', 'created_at', 'updated_at'
        ]
        read_only_fields = ['used_count', 'created_at', 'updated_at']
        extra_kwargs = {
            'code': {'validators': []},
            'products': {'required': False},
            'categories': {'required': False},
        }

    def get_is_valid_now(self, obj):
        now = timezone.now()
        within_limit = not obj.usage_limit or obj.used_count < obj.usage_limit
        return obj.is_active and obj.start_date <= now <= obj.end_date and within_limit

    def validate_code(self, value):
        value = value.strip().upper()
        queryset = Discount.objects.filter(code=value)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError('A discount with this code already exists.')
        for validator in Discount._meta.get_field('code').validators:
            validator(value)
        return value

    def validate(self, attrs):
        discount_type = attrs.get('type', getattr(self.instance, 'type', None))
        value = attrs.get('value', getattr(self.instance, 'value', None))
        if discount_type == 'percentage' and value is not None and value > 100:
            raise serializers.ValidationError({'value': 'Percentage discount cannot exceed 100.'})

        start_date = attrs.get('start_date', getattr(self.instance, 'start_date', None))
        end_date = attrs.get('end_date', getattr(self.instance, 'end_date', None))
        if start_date and end_date and end_date <= start_date:
            raise serializers.ValidationError({'end_date': 'End date must be after start date.'})

        applicable_to = attrs.get('applicable_to', getattr(self.instance, 'applicable_to', 'all'))
        if applicable_to == 'products' and not attrs.get('products', self.instance.products.all() if self.instance else []):
            raise serializers.ValidationError({'products': 'Select at least one product.'})
        if applicable_to == 'categories' and not attrs.get('categories', self.instance.categories.all() if self.instance else []):
            raise serializers.ValidationError({'categories': 'Select at least one category.'})
        return attrs


class DiscountApplySerializer(serializers.Serializer):
    code = serializers.CharField()
    order_total = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    product_ids = serializers.ListField(child=serializers.IntegerField(), required=False, default=list)


class SaleItemSerializer(serializers.ModelSerializer):
    product_title = serializers.CharField(source='product.title', read_only=True)
    remaining = serializers.IntegerField(read_only=True)

    class Meta:
        model = SaleItem
        fields = ['id', 'product', 'product_title', 'discount_type', 'discount_value', 'max_discount_amount',
                  'original_price', 'sale_price', 'stock_limit', 'sold_count', 'remaining']
        read_only_fields = ['sale_price', 'sold_count']
        extra_kwargs = {'original_price': {'required': False}}

    def validate(self, attrs):
        limits = settings.SALES_CONFIG
        if attrs.get('discount_type') == 'percentage' and attrs['discount_value'] > limits['MAX_DISCOUNT_PERCENTAGE']:
            raise serializers.ValidationError(
                {'discount_value': f"Discount cannot exceed {limits['MAX_DISCOUNT_PERCENTAGE']}%."}
            )
        if attrs.get('original_price') is None:
            unit_price = attrs['product'].unit_price
            if unit_price is None:
                raise serializers.ValidationError({'original_price': 'Product has no base price; set original_price.'})
            attrs['original_price'] = unit_price
        if attrs.get('discount_type') == 'fixed' and attrs['discount_value'] >= attrs['original_price']:
            raise serializers.ValidationError({'discount_value': 'Fixed discount must be below the original price.'})
        return attrs


class SaleSerializer(serializers.ModelSerializer):
    items = SaleItemSerializer(many=True, required=False)

    class Meta:
        model = Sale
        fields = ['id', 'title', 'description', 'type', 'status', 'start_date', 'end_date', 'priority',
                  'banner_image', 'is_active', 'items', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_items(self, value):
        limit = settings.SALES_CONFIG['MAX_ITEMS_PER_SALE']
        if len(value) > limit:
            raise serializers.ValidationError(f'A sale can have at most {limit} items.')
        product_ids = [item['product'].pk for item in value]
        if len(product_ids) != len(set(product_ids)):
            raise serializers.ValidationError('Each product can appear only once in a sale.')
        return value

    def validate(self, attrs):
        start_date = attrs.get('start_date', getattr(self.instance, 'start_date', None))
        end_date = attrs.get('end_date', getattr(self.instance, 'end_date', None))
        if start_date and end_date and end_date <= start_date:
            raise serializers.ValidationError({'end_date': 'End date must be after start date.'})

        sale_type = attrs.get('type', getattr(self.instance, 'type', None))
        status = attrs.get('status', getattr(self.instance, 'status', 'draft'))
        if sale_type == 'flash_sale' and status not in Sale.MANUAL_STATUSES:
            now = timezone.now()
            if start_date <= now <= end_date:
                active = Sale.objects.filter(type='flash_sale', status='active')
                if self.instance is not None:
                    active = active.exclude(pk=self.instance.pk)
                limit = settings.SALES_CONFIG['MAX_ACTIVE_FLASH_SALES']
                if active.count() >= limit:
                    raise serializers.ValidationError(f'At most {limit} flash sales can be active at once.')
        return attrs

    def _replace_items(self, sale, items_data):
        sale.items.all().delete()
        for item_data in items_data:
            SaleItem.objects.create(sale=sale, **item_data)

    def create(self, validated_data):
        items_data = validated_data.pop('items', [])
        with transaction.atomic():
            sale = Sale.objects.create(**validated_data)
            self._replace_items(sale, items_data)
        return sale

    def update(self, instance, validated_data):
        items_data = validated_data.pop('items', None)
        with transaction.atomic():
            for attr, value in validated_data.items():
                setattr(instance, attr, value)
            instance.save()
            if items_data is not None:
                self._replace_items(instance, items_data)
        return instance


class SaleProductCardSerializer(serializers.Serializer):
    """A sale item shown as a product card on the sales page"""
    id = serializers.IntegerField(source='product.id')
    title = serializers.CharField(source='product.title')
    slug = serializers.CharField(source='product.slug')
    brand = serializers.CharField(source='product.brand')
    image = serializers.CharField(source='product.main_image', default=None)
    category = serializers.IntegerField(source='product.category_id', default=None)
    average_rating = serializers.DecimalField(source='product.average_rating', max_digits=2, decimal_places=1)
    num_reviews = serializers.IntegerField(source='product.num_reviews')
    sale_info = serializers.SerializerMethodField()

    def get_sale_info(self, obj):
        sale = obj.sale
        return {
            'sale_id': sale.id,
            'sale_title': sale.title,
            'sale_type': sale.type,
            'priority': sale.priority,
            'end_date': serializers.DateTimeField().to_representation(sale.end_date),
            'original_price': str(obj.original_price),
            'sale_price': str(obj.sale_price),
            'discount_type': obj.discount_type,
            'discount_value': str(obj.discount_value),
            'sold_count': obj.sold_count,
            'stock_limit': obj.stock_limit,
            'remaining': obj.remaining,
        }
