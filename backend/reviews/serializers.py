from rest_framework import serializers
from .models import Review


class ReviewSerializer(serializers.ModelSerializer):
    user_name = serializers.CharField(source='user.name', read_only=True)
    product_title = serializers.CharField(source='product.title', read_only=True)

    class Meta:
        model = Review
        fields = [
            'id', 'user', 'user_name', 'product', 'product_title', 'order', 'rating', 'comment',
            'verified_purchase', 'is_flagged', 'helpful_count', 'unhelpful_count',
            'created_at', 'updated_at',
        ]
        read_only_fields = [
            'id', 'user', 'product', 'order', 'verified_purchase', 'is_flagged',
            'helpful_count', 'unhelpful_count', 'created_at', 'updated_at',
        ]


class ReviewVoteSerializer(serializers.Serializer):
    helpful = serializers.BooleanField()


class ReviewFlagSerializer(serializers.Serializer):
    is_flagged = serializers.BooleanField(default=True)
