from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from decimal import Decimal
from backend.catalog.models import Product, ProductVariant, VariantOption
from backend.pricing.models import Discount

ADDRESS_FIELDS = ['full_name', 'address_line1', 'address_line2', 'city', 'state', 'postal_code', 'country', 'phone']


class Order(models.Model):
    """Customer orders placed from the cart or directly"""
    STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('processing', 'Processing'),
        ('shipped', 'Shipped'),
        ('delivered', 'Delivered'),
        ('cancelled', 'Cancelled'),
        ('returned', 'Returned'),
    ]
    # Statuses the customer may still cancel from
    CANCELLABLE_STATUSES = ('pending', 'processing')
    # Statuses whose items may still come back into stock
    OPEN_STATUSES = ('pending', 'processing', 'shipped')

    PAYMENT_METHOD_CHOICES = [
        ('credit_card', 'Credit Card'),
        ('paypal', 'PayPal'),
        ('bank_transfer', 'Bank Transfer'),
        ('cash_on_delivery', 'Cash on Delivery'),
        ('other', 'Other'),
    ]
    PAYMENT_STATUS_CHOICES = [
        ('pending', 'Pending'),
        ('paid', 'Paid'),
        ('failed', 'Failed'),
        ('refunded', 'Refunded'),
    ]

    order_id = models.CharField(max_length=20, unique=True, db_index=True)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='orders')
    subtotal = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    shipping_total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    discount = models.ForeignKey(Discount, on_delete=models.SET_NULL, null=True, blank=True, related_name='orders')
    discount_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0.00'))
    payment_method = models.CharField(max_length=20, choices=PAYMENT_METHOD_CHOICES, default='cash_on_delivery')
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default='pending')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='pending', db_index=True)
    # Set once stock has been put back so a second cancel does not restore it again
    stock_restored = models.BooleanField(default=False)

    shipping_full_name = models.CharField(max_length=100)
    shipping_address_line1 = models.CharField(max_length=255)
    shipping_address_line2 = models.CharField(max_length=255, blank=True)
    shipping_city = models.CharField(max_length=100)
    shipping_state = models.CharField(max_length=100)
    shipping_postal_code = models.CharField(max_length=20)
    shipping_country = models.CharField(max_length=100)
    shipping_phone = models.CharField(max_length=20)

    billing_same_as_shipping = models.BooleanField(default=True)
    billing_full_name = models.CharField(max_length=100, blank=True)
    billing_address_line1 = models.CharField(max_length=255, blank=True)
    billing_address_line2 = models.CharField(max_length=255, blank=True)
    billing_city = models.CharField(max_length=100, blank=True)
    billing_state = models.CharField(max_length=100, blank=True)
    billing_postal_code = models.CharField(max_length=20, blank=True)
    billing_country = models.CharField(max_length=100, blank=True)
    billing_phone = models.CharField(max_length=20, blank=True)

    tracking_number = models.CharField(max_length=100, blank=True)
    carrier = models.CharField(max_length=100, blank=True)
    customer_notes = models.TextField(blank=True)
    admin_notes = models.TextField(blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.order_id} - {self.get_status_display()}"

    def calculate_total(self):
        total = self.subtotal + self.shipping_total - self.discount_amount
        return max(total, Decimal('0.00'))

    def save(self, *args, **kwargs):
        self.total_amount = self.calculate_total()
        super().save(*args, **kwargs)

    def address(self, prefix='shipping'):
        if prefix == 'billing' and self.billing_same_as_shipping:
            prefix = 'shipping'
        return {field: getattr(self, f'{prefix}_{field}') for field in ADDRESS_FIELDS}

    class Meta:
        db_table = 'orders'
        ordering = ['-created_at']


class OrderItem(models.Model):
    """Snapshot of a purchased line; catalog edits after the sale do not change it"""
    VARIANT_TYPE_CHOICES = [
        ('simple', 'Simple'),
        ('color', 'Color'),
        ('storage', 'Storage'),
        ('size', 'Size'),
    ]

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.SET_NULL, null=True, blank=True, related_name='order_items')
    variant = models.ForeignKey(ProductVariant, on_delete=models.SET_NULL, null=True, blank=True, related_name='order_items')
    option = models.ForeignKey(VariantOption, on_delete=models.SET_NULL, null=True, blank=True, related_name='order_items')
    variant_type = models.CharField(max_length=10, choices=VARIANT_TYPE_CHOICES, default='simple')
    item_name = models.CharField(max_length=255)
    item_image = models.CharField(max_length=500, blank=True)
    sku = models.CharField(max_length=100, blank=True)
    color = models.CharField(max_length=50, blank=True)
    option_value = models.CharField(max_length=50, blank=True)
    price = models.DecimalField(max_digits=10, decimal_places=2)
    discount_price = models.DecimalField(max_digits=10, decimal_places=2, null=True, blank=True)
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    shipping_cost = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal('0.00'))

    def __str__(self):
        return f"{self.order.order_id} - {self.item_name} x {self.quantity}"

    @property
    def unit_price(self):
        return self.discount_price if self.discount_price is not None else self.price

    @property
    def line_total(self):
        return self.unit_price * self.quantity

    class Meta:
        db_table = 'order_items'
        ordering = ['id']
