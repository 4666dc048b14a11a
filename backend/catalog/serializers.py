from rest_framework import serializers
from django.db import transaction
from django.db.models import Q
from .models import Category, Product, ProductVariant, VariantOption


class CategorySerializer(serializers.ModelSerializer):
    parent_name = serializers.CharField(source='parent.name', read_only=True, default=None)
    product_count = serializers.SerializerMethodField()

    class Meta:
        model = Category
        fields = ['id', 'name', 'slug', 'description', 'image_url', 'parent', 'parent_name',
                  'is_active', 'product_count', 'created_at', 'updated_at']
        read_only_fields = ['slug', 'created_at', 'updated_at']

    def get_product_count(self, obj):
        annotated = getattr(obj, 'product_total', None)
        if annotated is not None:
            return annotated
        return obj.products.count()

    def validate_parent(self, value):
        if value is not None and self.instance is not None:
            if value.pk in self.instance.get_descendant_ids():
                raise serializers.ValidationError('A category cannot be placed under itself or its subcategories.')
        return value


def validate_price_pair(attrs, label='Discount price'):
    price = attrs.get('price')
    discount_price = attrs.get('discount_price')
    if discount_price is not None and price is not None and discount_price >= price:
        raise serializers.ValidationError({'discount_price': f'{label} must be lower than the regular price.'})


class VariantOptionSerializer(serializers.ModelSerializer):
    # Writable so an update can keep existing rows
    id = serializers.IntegerField(required=False)

    class Meta:
        model = VariantOption
        fields = ['id', 'kind', 'value', 'price', 'discount_price', 'stock', 'sku']
        # Uniqueness is re-checked against the whole variant set
        extra_kwargs = {'sku': {'validators': []}}
        validators = []

    def validate(self, attrs):
        validate_price_pair(attrs)
        return attrs


class ProductVariantSerializer(serializers.ModelSerializer):
    id = serializers.IntegerField(required=False)
    options = VariantOptionSerializer(many=True, required=False)
    total_stock = serializers.SerializerMethodField()

    class Meta:
        model = ProductVariant
        fields = ['id', 'color', 'price', 'discount_price', 'stock', 'sku', 'images', 'options', 'total_stock']
        extra_kwargs = {'sku': {'validators': []}}

    def get_total_stock(self, obj):
        return obj.total_stock()

    def validate(self, attrs):
        options = attrs.get('options') or []
        validate_price_pair(attrs)
        if options:
            kinds = {option['kind'] for option in options if 'kind' in option}
            if len(kinds) > 1:
                raise serializers.ValidationError({'options': 'A variant cannot mix storage and size options.'})
            if attrs.get('price') is not None or attrs.get('stock'):
                raise serializers.ValidationError(
                    'A variant with storage or size options cannot also have its own price or stock.'
                )
            values = [option['value'] for option in options if 'value' in option]
            if len(values) != len(set(values)):
                raise serializers.ValidationError({'options': 'Option values must be unique within a variant.'})
        elif attrs.get('price') is None and not (self.root.partial and attrs.get('id') is not None):
            # A partial update of an existing variant keeps its stored price
            raise serializers.ValidationError({'price': 'A variant needs a price, or storage/size options.'})
        return attrs


class ProductListSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source='category.name', read_only=True)
    image = serializers.CharField(source='main_image', read_only=True)
    in_stock = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = ['id', 'title', 'slug', 'brand', 'sku', 'price', 'discount_price', 'shipping_cost',
                  'image', 'category', 'category_name', 'average_rating', 'num_reviews',
                  'is_featured', 'in_stock', 'created_at']

    def get_in_stock(self, obj):
        return obj.is_in_stock()


class ProductSerializer(serializers.ModelSerializer):
    variants = ProductVariantSerializer(many=True, required=False)
    category_name = serializers.CharField(source='category.name', read_only=True)
    total_stock = serializers.SerializerMethodField()
    in_stock = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = ['id', 'title', 'slug', 'description', 'brand', 'category', 'category_name', 'sku',
                  'price', 'discount_price', 'shipping_cost', 'color', 'stock', 'images',
                  'specifications', 'features', 'seo_title', 'seo_description',
                  'average_rating', 'num_reviews', 'is_featured', 'is_active',
                  'variants', 'total_stock', 'in_stock', 'created_at', 'updated_at']
        read_only_fields = ['slug', 'average_rating', 'num_reviews', 'created_at', 'updated_at']
        extra_kwargs = {'sku': {'required': False, 'allow_blank': True}}

    def get_total_stock(self, obj):
        return obj.total_stock()

    def get_in_stock(self, obj):
        return obj.total_stock() > 0

    def validate_images(self, value):
        if not isinstance(value, list):
            raise serializers.ValidationError('Images must be a list.')
        for image in value:
            if not isinstance(image, dict) or not image.get('url'):
                raise serializers.ValidationError('Each image needs a url.')
        return value

    def validate_specifications(self, value):
        if not isinstance(value, list):
            raise serializers.ValidationError('Specifications must be a list.')
        for spec in value:
            if not isinstance(spec, dict) or not spec.get('key') or 'value' not in spec:
                raise serializers.ValidationError('Each specification needs a key and a value.')
        return value

    def validate_features(self, value):
        if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
            raise serializers.ValidationError('Features must be a list of strings.')
        return value

    def validate(self, attrs):
        merged = {
            'price': attrs.get('price', getattr(self.instance, 'price', None)),
            'discount_price': attrs.get('discount_price', getattr(self.instance, 'discount_price', None)),
        }
        validate_price_pair(merged)

        if 'variants' in attrs:
            has_variants = bool(attrs['variants'])
        else:
            has_variants = self.instance is not None and self.instance.variants.exists()
        if not has_variants and merged['price'] is None:
            raise serializers.ValidationError(
                'A product needs a base price and stock, or at least one variant.'
            )

        self._validate_variant_rows(attrs)
        self._validate_sku_uniqueness(attrs)
        return attrs

    def _validate_sku_uniqueness(self, attrs):
        skus = []
        for variant in attrs.get('variants') or []:
            if variant.get('sku'):
                skus.append(variant['sku'])
            skus.extend(option['sku'] for option in variant.get('options') or [] if option.get('sku'))
        if len(skus) != len(set(skus)):
            raise serializers.ValidationError({'variants': 'Variant and option SKUs must be unique.'})
        if not skus:
            return
        variant_clash = ProductVariant.objects.filter(sku__in=skus)
        option_clash = VariantOption.objects.filter(sku__in=skus)
        if self.instance is not None:
            # The instance's own rows are synced, so their SKUs stay free
            variant_clash = variant_clash.exclude(product=self.instance)
            option_clash = option_clash.exclude(variant__product=self.instance)
        if variant_clash.exists() or option_clash.exists() or Product.objects.filter(sku__in=skus).exists():
            raise serializers.ValidationError({'variants': 'One or more SKUs are already in use.'})

    def _validate_variant_rows(self, attrs):
        variants_data = attrs.get('variants')
        if variants_data is None:
            return
        from backend.orders.models import Order, OrderItem

        existing = {}
        if self.instance is not None:
            existing = {variant.pk: variant for variant in self.instance.variants.prefetch_related('options')}
        kept_variant_ids = set()
        kept_option_ids = set()
        for variant_data in variants_data:
            variant_id = variant_data.get('id')
            if variant_id is None:
                if 'color' not in variant_data:
                    raise serializers.ValidationError({'variants': 'A new variant needs a color.'})
                option_ids = set()
            else:
                if variant_id not in existing or variant_id in kept_variant_ids:
                    raise serializers.ValidationError({'variants': f'Unknown variant id: {variant_id}'})
                kept_variant_ids.add(variant_id)
                option_ids = {option.pk for option in existing[variant_id].options.all()}
            for option_data in variant_data.get('options') or []:
                option_id = option_data.get('id')
                if option_id is None:
                    if not option_data.get('kind') or not option_data.get('value') or option_data.get('price') is None:
                        raise serializers.ValidationError({'variants': 'A new option needs a kind, a value and a price.'})
                elif option_id not in option_ids or option_id in kept_option_ids:
                    raise serializers.ValidationError({'variants': f'Unknown option id: {option_id}'})
                else:
                    kept_option_ids.add(option_id)

        dropped_variants = set(existing) - kept_variant_ids
        dropped_options = {
            option.pk
            for variant_id, variant in existing.items()
            # Options of a variant sent without an options list are left alone
            if variant_id in dropped_variants or self._sends_options(variants_data, variant_id)
            for option in variant.options.all()
        } - kept_option_ids
        in_use = OrderItem.objects.filter(order__status__in=Order.OPEN_STATUSES).filter(
            Q(variant_id__in=dropped_variants) | Q(option_id__in=dropped_options)
        )
        if in_use.exists():
            raise serializers.ValidationError(
                {'variants': 'Variants or options on open orders cannot be removed.'}
            )

    @staticmethod
    def _sends_options(variants_data, variant_id):
        return any(v.get('id') == variant_id and 'options' in v for v in variants_data)

    def _sync_variants(self, product, variants_data):
        """Update listed rows in place, create new ones and delete the rest"""
        kept_ids = [v['id'] for v in variants_data if v.get('id') is not None]
        product.variants.exclude(pk__in=kept_ids).delete()
        for variant_data in variants_data:
            options_data = variant_data.pop('options', None)
            variant_id = variant_data.pop('id', None)
            if variant_id is None:
                variant = ProductVariant.objects.create(product=product, **variant_data)
            else:
                variant = product.variants.get(pk=variant_id)
                for attr, value in variant_data.items():
                    setattr(variant, attr, value)
                variant.save()
            if options_data is not None:
                self._sync_options(variant, options_data)

    def _sync_options(self, variant, options_data):
        kept_ids = [o['id'] for o in options_data if o.get('id') is not None]
        variant.options.exclude(pk__in=kept_ids).delete()
        for option_data in options_data:
            option_id = option_data.pop('id', None)
            if option_id is None:
                VariantOption.objects.create(variant=variant, **option_data)
                continue
            option = variant.options.get(pk=option_id)
            for attr, value in option_data.items():
                setattr(option, attr, value)
            option.save()

    def create(self, validated_data):
        variants_data = validated_data.pop('variants', [])
        with transaction.atomic():
            product = Product.objects.create(**validated_data)
            self._sync_variants(product, variants_data)
        return product

    def update(self, instance, validated_data):
        variants_data = validated_data.pop('variants', None)
        with transaction.atomic():
            for attr, value in validated_data.items():
                setattr(instance, attr, value)
            instance.save()
            if variants_data is not None:
                self._sync_variants(instance, variants_data)
        return instance
