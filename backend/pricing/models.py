from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator, RegexValidator
from django.db import models
from django.db.models import F
from django.utils import timezone
from decimal import Decimal, ROUND_HALF_UP
from backend.catalog.models import Category, Product
from backend.core.exceptions import DiscountInvalid

CENTS = Decimal('0.01')


class Discount(models.Model):
    """Code-keyed discount checked at apply time"""
    TYPE_CHOICES = [
        ('percentage', 'Percentage'),
        ('fixed', 'Fixed Amount'),
    ]
    APPLICABLE_TO_CHOICES = [
        ('all', 'All Products'),
        ('products', 'Specific Products'),
        ('categories', 'Specific Categories'),
        ('orders', 'Whole Order'),
    ]

    code = models.CharField(
        max_length=30, unique=True,
        validators=[RegexValidator(r'^[A-Z0-9-]+$', 'Code may contain only uppercase letters, numbers and hyphens.')]
    )
    description = models.CharField(max_length=255, blank=True)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    value = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0.01'))])
    applicable_to = models.CharField(max_length=20, choices=APPLICABLE_TO_CHOICES, default='all')
    products = models.ManyToManyField(Product, related_name='discounts', blank=True)
    categories = models.ManyToManyField(Category, related_name='discounts', blank=True)
    min_order_amount = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    usage_limit = models.PositiveIntegerField(default=0, help_text="0 means unlimited")
    used_count = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='discounts_created')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.code

    def save(self, *args, **kwargs):
        self.code = (self.code or '').strip().upper()
        super().save(*args, **kwargs)

    def check_applicable(self, order_total, product_ids=None, now=None):
        """Raise DiscountInvalid when the discount cannot be used for this order"""
        now = now or timezone.now()
        product_ids = list(product_ids or [])

        if not self.is_active:
            raise DiscountInvalid('This discount is not active')
        if now < self.start_date:
            raise DiscountInvalid('This discount is not yet valid')
        if now > self.end_date:
            raise DiscountInvalid('This discount has expired')
        if self.usage_limit and self.used_count >= self.usage_limit:
            raise DiscountInvalid('This discount has reached its usage limit')
        if order_total < self.min_order_amount:
            raise DiscountInvalid(
                f'Minimum order amount of {self.min_order_amount} required',
                detail={'min_order_amount': str(self.min_order_amount)},
            )
        if self.applicable_to == 'products':
            if not self.products.filter(pk__in=product_ids).exists():
                raise DiscountInvalid('This discount does not apply to the products in your order')
        elif self.applicable_to == 'categories':
            if not Product.objects.filter(pk__in=product_ids, category__in=self.categories.all()).exists():
                raise DiscountInvalid('This discount does not apply to the categories in your order')

    def calculate(self, order_total, product_ids=None, now=None):
        """Validate and return the discount amount for an order total"""
        order_total = Decimal(order_total)
        self.check_applicable(order_total, product_ids, now)
        if self.type == 'percentage':
            amount = order_total * self.value / Decimal('100')
        else:
            amount = min(self.value, order_total)
        return amount.quantize(CENTS, rounding=ROUND_HALF_UP)

    def record_use(self):
        """Increment the usage counter in the database without a read-modify-write race"""
        Discount.objects.filter(pk=self.pk).update(used_count=F('used_count') + 1)

    class Meta:
        db_table = 'discounts'
        ordering = ['-created_at']


class Sale(models.Model):
    """Time-boxed sale event with discounted items"""
    TYPE_CHOICES = [
        ('flash_sale', 'Flash Sale'),
        ('hot_deal', 'Hot Deal'),
        ('seasonal_sale', 'Seasonal Sale'),
        ('clearance', 'Clearance'),
        ('weekend_deal', 'Weekend Deal'),
        ('mega_sale', 'Mega Sale'),
    ]
    STATUS_CHOICES = [
        ('draft', 'Draft'),
        ('scheduled', 'Scheduled'),
        ('active', 'Active'),
        ('expired', 'Expired'),
        ('cancelled', 'Cancelled'),
    ]
    # Statuses never moved by dates
    MANUAL_STATUSES = ('draft', 'cancelled')

    title = models.CharField(max_length=100)
    description = models.CharField(max_length=500, blank=True)
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='draft', db_index=True)
    start_date = models.DateTimeField()
    end_date = models.DateTimeField()
    priority = models.PositiveSmallIntegerField(default=1, validators=[MinValueValidator(1), MaxValueValidator(10)])
    banner_image = models.URLField(blank=True)
    is_active = models.BooleanField(default=True)
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='sales_created')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.title} ({self.status})"

    def status_for(self, now=None):
        """Status implied by the sale window"""
        if self.status in self.MANUAL_STATUSES:
            return self.status
        now = now or timezone.now()
        if now < self.start_date:
            return 'scheduled'
        if now > self.end_date:
            return 'expired'
        return 'active'

    def save(self, *args, **kwargs):
        self.status = self.status_for()
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'sales'
        ordering = ['-priority', 'start_date']


class SaleItem(models.Model):
    """Product offered in a sale at a computed sale price"""
    DISCOUNT_TYPE_CHOICES = [
        ('percentage', 'Percentage'),
        ('fixed', 'Fixed Amount'),
    ]

    sale = models.ForeignKey(Sale, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='sale_items')
    discount_type = models.CharField(max_length=20, choices=DISCOUNT_TYPE_CHOICES)
    discount_value = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal('0.01'))])
    max_discount_amount = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    original_price = models.DecimalField(max_digits=10, decimal_places=2)
    sale_price = models.DecimalField(max_digits=10, decimal_places=2, editable=False)
    stock_limit = models.PositiveIntegerField(null=True, blank=True)
    sold_count = models.PositiveIntegerField(default=0)

    def __str__(self):
        return f"{self.product.title} @ {self.sale_price}"

    def compute_sale_price(self):
        if self.discount_type == 'percentage':
            reduction = self.original_price * self.discount_value / Decimal('100')
            if self.max_discount_amount is not None:
                reduction = min(reduction, self.max_discount_amount)
        else:
            reduction = self.discount_value
        return max(self.original_price - reduction, Decimal('0')).quantize(CENTS, rounding=ROUND_HALF_UP)

    @property
    def remaining(self):
        if self.stock_limit is None:
            return None
        return max(self.stock_limit - self.sold_count, 0)

    def save(self, *args, **kwargs):
        self.sale_price = self.compute_sale_price()
        super().save(*args, **kwargs)

    class Meta:
        db_table = 'sale_items'
        unique_together = [['sale', 'product']]


def refresh_sale_statuses(now=None):
    """Move scheduled sales to active and active sales to expired; returns rows changed"""
    now = now or timezone.now()
    activated = Sale.objects.filter(status='scheduled', start_date__lte=now, end_date__gte=now).update(status='active', updated_at=now)
    expired = Sale.objects.filter(status__in=['scheduled', 'active'], end_date__lt=now).update(status='expired', updated_at=now)
    return activated + expired
