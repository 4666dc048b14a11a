from django.db import models


class Banner(models.Model):
    """Promotional banner shown in the hero slider or as a mini banner"""
    POSITION_CHOICES = [
        ('hero-slider', 'Hero Slider'),
        ('mini-banner', 'Mini Banner'),
    ]

    title = models.CharField(max_length=100)
    description = models.CharField(max_length=500, blank=True)
    image_url = models.URLField(max_length=500)
    video_urls = models.JSONField(default=list, blank=True)
    target_url = models.CharField(max_length=500, blank=True)
    priority = models.IntegerField(default=0)
    position = models.CharField(max_length=20, choices=POSITION_CHOICES, default='hero-slider')
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.title

    class Meta:
        db_table = 'banners'
        ordering = ['-priority', '-created_at']


class HeroImage(models.Model):
    """Uploaded hero slide image, shown in ascending ``order``"""
    image = models.ImageField(upload_to='hero_images/')
    title = models.CharField(max_length=100, blank=True)
    caption = models.CharField(max_length=255, blank=True)
    link = models.CharField(max_length=500, blank=True)
    order = models.IntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return self.title or f"Hero image {self.pk}"

    class Meta:
        db_table = 'hero_images'
        ordering = ['order', 'id']
