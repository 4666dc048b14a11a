from django.core.validators import MinLengthValidator, MinValueValidator
from django.db import models
from django.db.models import Q
from decimal import Decimal


class Category(models.Model):
    """Product categories; a category may sit under a parent category"""
    name = models.CharField(max_length=100, unique=True)
    slug = models.SlugField(max_length=120, unique=True, blank=True)
    parent = models.ForeignKey('self', on_delete=models.CASCADE, null=True, blank=True, related_name='children')
    description = models.TextField(blank=True)
    image_url = models.URLField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.name

    def save(self, *args, **kwargs):
        if not self.slug:
            from .utils import generate_unique_slug
            self.slug = generate_unique_slug(Category, self.name, instance=self)
        super().save(*args, **kwargs)

    def get_descendant_ids(self):
        """IDs of this category and every category below it"""
        ids = [self.pk]
        frontier = [self.pk]
        while frontier:
            frontier = list(Category.objects.filter(parent_id__in=frontier).values_list('id', flat=True))
            ids.extend(frontier)
        return ids

    class Meta:
        db_table = 'categories'
        verbose_name_plural = 'categories'
        ordering = ['name']


class ProductQuerySet(models.QuerySet):
    def in_stock(self):
        """Products with stock on the base item, a variant or a variant option"""
        return self.filter(
            Q(stock__gt=0) | Q(variants__stock__gt=0) | Q(variants__options__stock__gt=0)
        ).distinct()

    def out_of_stock(self):
        return self.exclude(pk__in=Product.objects.in_stock().values('pk'))

    def public(self):
        return self.filter(is_active=True).in_stock()


class Product(models.Model):
    """Product master"""
    title = models.CharField(max_length=100, db_index=True, validators=[MinLengthValidator(3)])
    slug = models.SlugField(max_length=120, unique=True, blank=True)
    description = models.TextField(max_length=3000, validators=[MinLengthValidator(10)])
    brand = models.CharField(max_length=50, validators=[MinLengthValidator(2)])
    category = models.ForeignKey(Category, on_delete=models.CASCADE, related_name='products')
    sku = models.CharField(max_length=100, unique=True, blank=True, db_index=True)
    price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True, validators=[MinValueValidator(Decimal('0'))])
    discount_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True, validators=[MinValueValidator(Decimal('0'))])
    shipping_cost = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'), validators=[MinValueValidator(Decimal('0'))])
    color = models.CharField(max_length=50, blank=True)
    stock = models.PositiveIntegerField(default=0)
    images = models.JSONField(default=list, blank=True)  # [{"url": ..., "alt": ...}]
    specifications = models.JSONField(default=list, blank=True)  # [{"key": ..., "value": ...}]
    features = models.JSONField(default=list, blank=True)
    seo_title = models.CharField(max_length=60, blank=True)
    seo_description = models.CharField(max_length=160, blank=True)
    average_rating = models.DecimalField(max_digits=2, decimal_places=1, default=Decimal('0.0'))
    num_reviews = models.PositiveIntegerField(default=0)
    is_featured = models.BooleanField(default=False, db_index=True)
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ProductQuerySet.as_manager()

    def __str__(self):
        return f"{self.title} ({self.sku or 'NO-SKU'})"

    def save(self, *args, **kwargs):
        from .utils import generate_unique_slug, generate_unique_sku
        if not self.slug:
            self.slug = generate_unique_slug(Product, self.title, instance=self)
        if not self.sku:
            self.sku = generate_unique_sku(self.brand, self.title)
        super().save(*args, **kwargs)

    @property
    def unit_price(self):
        """Price a customer pays for the base item"""
        return self.discount_price if self.discount_price is not None else self.price

    @property
    def main_image(self):
        if self.images:
            first = self.images[0]
            return first.get('url') if isinstance(first, dict) else first
        return None

    def total_stock(self):
        total = self.stock
        for variant in self.variants.all():
            total += variant.total_stock()
        return total

    def is_in_stock(self):
        return self.total_stock() > 0

    class Meta:
        db_table = 'products'
        ordering = ['-created_at']


class ProductVariant(models.Model):
    """Color variant; priced directly or through storage/size options"""
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='variants')
    color = models.CharField(max_length=50)
    price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True, validators=[MinValueValidator(Decimal('0'))])
    discount_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True, validators=[MinValueValidator(Decimal('0'))])
    stock = models.PositiveIntegerField(default=0)
    sku = models.CharField(max_length=100, unique=True, null=True, blank=True)
    images = models.JSONField(default=list, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.product.title} - {self.color}"

    @property
    def unit_price(self):
        return self.discount_price if self.discount_price is not None else self.price

    def total_stock(self):
        return self.stock + sum(option.stock for option in self.options.all())

    class Meta:
        db_table = 'product_variants'
        ordering = ['id']


class VariantOption(models.Model):
    """Storage capacity or size option under a color variant"""
    KIND_STORAGE = 'storage'
    KIND_SIZE = 'size'
    KIND_CHOICES = [
        (KIND_STORAGE, 'Storage'),
        (KIND_SIZE, 'Size'),
    ]

    variant = models.ForeignKey(ProductVariant, on_delete=models.CASCADE, related_name='options')
    kind = models.CharField(max_length=10, choices=KIND_CHOICES)
    value = models.CharField(max_length=50)  # e.g. "128GB", "XL"
    price = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0'))])
    discount_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True, validators=[MinValueValidator(Decimal('0'))])
    stock = models.PositiveIntegerField(default=0)
    sku = models.CharField(max_length=100, unique=True, null=True, blank=True)

    def __str__(self):
        return f"{self.variant} / {self.value}"

    @property
    def unit_price(self):
        return self.discount_price if self.discount_price is not None else self.price

    class Meta:
        db_table = 'variant_options'
        ordering = ['id']
        constraints = [
            models.UniqueConstraint(fields=['variant', 'value'], name='unique_option_value_per_variant'),
        ]
