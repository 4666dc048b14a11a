from django.conf import settings
from django.db import models
from django.db.models import Q
from backend.catalog.models import Product, ProductVariant


class Wishlist(models.Model):
    """Saved products for a signed-in user or an anonymous device"""
    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, null=True, blank=True, related_name='wishlist')
    device_id = models.CharField(max_length=100, unique=True, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        owner = self.user.email if self.user_id else f"device {self.device_id}"
        return f"Wishlist of {owner}"

    class Meta:
        db_table = 'wishlists'
        constraints = [
            models.CheckConstraint(
                condition=Q(user__isnull=False) | Q(device_id__isnull=False),
                name='wishlist_has_owner',
            ),
        ]


class WishlistItem(models.Model):
    wishlist = models.ForeignKey(Wishlist, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='wishlist_items')
    variant = models.ForeignKey(ProductVariant, on_delete=models.CASCADE, null=True, blank=True, related_name='wishlist_items')
    added_at = models.DateTimeField(auto_now_add=True)

    def __str__(self):
        return f"{self.product.title} in wishlist {self.wishlist_id}"

    class Meta:
        db_table = 'wishlist_items'
        ordering = ['-added_at', '-id']
        constraints = [
            models.UniqueConstraint(fields=['wishlist', 'product', 'variant'], name='unique_wishlist_item'),
        ]
