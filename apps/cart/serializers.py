from rest_framework import serializers


class CartAddItemSerializer(serializers.Serializer):
    """
    Payload for adding a product to the cart. Always a single object:
    ``{"productId": 1, "quantity": 2}``.
    """
    productId = serializers.IntegerField(required=True)
    quantity = serializers.IntegerField(required=True)


class CartItemUpdateSerializer(serializers.Serializer):
    quantity = serializers.IntegerField(required=True)


class CartItemSerializer(serializers.Serializer):
    """Renders a ``CartLineDTO``."""
    id = serializers.IntegerField()
    productId = serializers.IntegerField(source='product_id')
    productName = serializers.CharField(source='product_name')
    image = serializers.SerializerMethodField()
    quantity = serializers.IntegerField()
    price = serializers.DecimalField(max_digits=12, decimal_places=2, coerce_to_string=False)
    totalPrice = serializers.DecimalField(
        source='total_price', max_digits=12, decimal_places=2, coerce_to_string=False
    )

    def get_image(self, obj):
        request = self.context.get('request')
        if obj.image and request is not None:
            return request.build_absolute_uri(obj.image)
        return obj.image


class CheckoutSummarySerializer(serializers.Serializer):
    items = CartItemSerializer(many=True)
    total = serializers.DecimalField(max_digits=12, decimal_places=2, coerce_to_string=False)


class CheckoutResultSerializer(serializers.Serializer):
    totalPaid = serializers.DecimalField(
        source='total_paid', max_digits=12, decimal_places=2, coerce_to_string=False
    )
    itemsCount = serializers.IntegerField(source='items_count')
