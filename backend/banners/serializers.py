from rest_framework import serializers
from .models import Banner, HeroImage


class BannerSerializer(serializers.ModelSerializer):
    class Meta:
        model = Banner
        fields = ['id', 'title', 'description', 'image_url', 'video_urls', 'target_url',
                  'priority', 'position', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_video_urls(self, value):
        if not isinstance(value, list) or not all(isinstance(url, str) for url in value):
            raise serializers.ValidationError('Video URLs must be a list of strings.')
        return value


class HeroImageSerializer(serializers.ModelSerializer):
    image_url = serializers.SerializerMethodField()

    class Meta:
        model = HeroImage
        fields = ['id', 'image', 'image_url', 'title', 'caption', 'link', 'order', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']
        extra_kwargs = {'image': {'write_only': True}}

    def get_image_url(self, obj):
        if not obj.image:
            return None
        request = self.context.get('request')
        url = obj.image.url
        return request.build_absolute_uri(url) if request else url
