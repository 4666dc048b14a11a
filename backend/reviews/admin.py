from django.contrib import admin
from .models import Review, update_product_rating


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ['product', 'user', 'rating', 'verified_purchase', 'is_flagged', 'helpful_count', 'created_at']
    list_filter = ['rating', 'verified_purchase', 'is_flagged', 'created_at']
    search_fields = ['product__title', 'user__email', 'comment']
    raw_id_fields = ['product', 'user', 'order']
    readonly_fields = ['helpful_count', 'unhelpful_count', 'created_at', 'updated_at']
    actions = ['flag_reviews', 'unflag_reviews']

    def _set_flag(self, queryset, value):
        product_ids = set(queryset.values_list('product_id', flat=True))
        queryset.update(is_flagged=value)
        for product_id in product_ids:
            update_product_rating(product_id)

    @admin.action(description='Flag selected reviews')
    def flag_reviews(self, request, queryset):
        self._set_flag(queryset, True)

    @admin.action(description='Unflag selected reviews')
    def unflag_reviews(self, request, queryset):
        self._set_flag(queryset, False)
