# serializers/serializers.py

from rest_framework import serializers
from apps.products.models import Product, Category


class CategorySerializer(serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = ['id', 'name', 'slug', 'description', 'image']
        read_only_fields = ['id', 'slug']


class ProductListSerializer(serializers.ModelSerializer):
    category = CategorySerializer(read_only=True)

    class Meta:
        model = Product
        fields = ['id', 'name', 'price', 'image', 'stock', 'category']


class ProductSerializer(serializers.ModelSerializer):
    """
    Serializer para el modelo Product. La categoría se escribe por id
    (``category_id``) y se devuelve anidada.
    """
    category = CategorySerializer(read_only=True)
    category_id = serializers.PrimaryKeyRelatedField(
        queryset=Category.objects.all(),
        source='category',
        write_only=True
    )
    stock = serializers.IntegerField(min_value=0, required=False)

    class Meta:
        model = Product
        fields = ['id', 'name', 'description', 'price', 'image', 'stock',
                  'category', 'category_id', 'created_at', 'updated_at']
        read_only_fields = ['id', 'created_at', 'updated_at']

    def validate_price(self, value):
        if value < 0:
            raise serializers.ValidationError("Price cannot be negative.")
        return value
