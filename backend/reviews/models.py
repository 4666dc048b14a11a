from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models, transaction
from django.db.models import Avg, Count
from decimal import Decimal, ROUND_HALF_UP
from backend.catalog.models import Product
from backend.core.cache_utils import invalidate_products_cache


class Review(models.Model):
    """Product review; one per user and product"""
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='reviews')
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='reviews')
    order = models.ForeignKey('orders.Order', on_delete=models.SET_NULL, null=True, blank=True, related_name='reviews')
    rating = models.PositiveSmallIntegerField(validators=[MinValueValidator(1), MaxValueValidator(5)])
    comment = models.TextField(max_length=1000, blank=True)
    verified_purchase = models.BooleanField(default=False)
    is_flagged = models.BooleanField(default=False, db_index=True)
    helpful_count = models.PositiveIntegerField(default=0)
    unhelpful_count = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.product.title} - {self.rating}/5 by {self.user.email}"

    class Meta:
        db_table = 'reviews'
        ordering = ['-created_at']
        unique_together = [['user', 'product']]


def update_product_rating(product_id):
    """Recompute average_rating and num_reviews from unflagged reviews"""
    stats = Review.objects.filter(product_id=product_id, is_flagged=False).aggregate(
        average=Avg('rating'), total=Count('id')
    )
    average = Decimal(str(stats['average'] or 0)).quantize(Decimal('0.1'), rounding=ROUND_HALF_UP)
    Product.objects.filter(pk=product_id).update(average_rating=average, num_reviews=stats['total'])
    transaction.on_commit(invalidate_products_cache)
    return average, stats['total']
