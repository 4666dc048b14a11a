from django.contrib import admin
from .models import Banner, HeroImage


@admin.register(Banner)
class BannerAdmin(admin.ModelAdmin):
    list_display = ['title', 'position', 'priority', 'is_active', 'created_at']
    list_filter = ['position', 'is_active']
    search_fields = ['title', 'description']
    ordering = ['-priority', '-created_at']


@admin.register(HeroImage)
class HeroImageAdmin(admin.ModelAdmin):
    list_display = ['title', 'order', 'link', 'created_at']
    search_fields = ['title', 'caption']
    ordering = ['order']
