from django.contrib import admin
from .models import Category, Product, ProductVariant, VariantOption


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['name', 'slug', 'parent', 'is_active', 'created_at']
    list_filter = ['is_active', 'created_at']
    search_fields = ['name', 'slug']
    ordering = ['name']
    prepopulated_fields = {'slug': ('name',)}


class ProductVariantInline(admin.TabularInline):
    model = ProductVariant
    extra = 0
    show_change_link = True


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['title', 'sku', 'brand', 'category', 'price', 'discount_price', 'stock', 'is_featured', 'is_active', 'created_at']
    list_filter = ['is_active', 'is_featured', 'category', 'created_at']
    search_fields = ['title', 'sku', 'brand', 'description']
    ordering = ['-created_at']
    readonly_fields = ['average_rating', 'num_reviews', 'created_at', 'updated_at']
    inlines = [ProductVariantInline]


class VariantOptionInline(admin.TabularInline):
    model = VariantOption
    extra = 0


@admin.register(ProductVariant)
class ProductVariantAdmin(admin.ModelAdmin):
    list_display = ['product', 'color', 'sku', 'price', 'stock']
    search_fields = ['color', 'sku', 'product__title']
    ordering = ['product', 'color']
    inlines = [VariantOptionInline]
