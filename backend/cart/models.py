from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from decimal import Decimal
from backend.catalog.models import Product, ProductVariant, VariantOption


class Cart(models.Model):
    """Shopping cart; each user has one"""
    cart_id = models.CharField(max_length=20, unique=True)
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='cart')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.cart_id

    def get_lines(self):
        return list(self.items.select_related('product', 'variant', 'option'))

    def totals(self, lines=None):
        lines = self.get_lines() if lines is None else lines
        subtotal = sum((line.line_total for line in lines), Decimal('0.00'))
        shipping_total = sum((line.shipping_cost for line in lines), Decimal('0.00'))
        return {
            'subtotal': subtotal,
            'shipping_total': shipping_total,
            'total': subtotal + shipping_total,
            'item_count': sum(line.quantity for line in lines),
        }

    class Meta:
        db_table = 'carts'


class CartItem(models.Model):
    """Cart line pointing at a product, a color variant or a variant option"""
    cart = models.ForeignKey(Cart, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='cart_items')
    variant = models.ForeignKey(ProductVariant, on_delete=models.CASCADE, null=True, blank=True, related_name='cart_items')
    option = models.ForeignKey(VariantOption, on_delete=models.CASCADE, null=True, blank=True, related_name='cart_items')
    quantity = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.cart.cart_id} - {self.product.title} x {self.quantity}"

    @property
    def priced_item(self):
        return self.option or self.variant or self.product

    @property
    def unit_price(self):
        return self.priced_item.unit_price or Decimal('0.00')

    @property
    def line_total(self):
        return self.unit_price * self.quantity

    @property
    def shipping_cost(self):
        return self.product.shipping_cost * self.quantity

    @property
    def available_stock(self):
        return self.priced_item.stock

    class Meta:
        db_table = 'cart_items'
        ordering = ['created_at', 'id']
        constraints = [
            models.UniqueConstraint(fields=['cart', 'product', 'variant', 'option'], name='unique_cart_line'),
        ]
