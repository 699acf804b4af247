from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated

from utils.responses import api_response
from .services.CartBo import CartBo
from .serializers import (
    CartAddItemSerializer,
    CartItemSerializer,
    CartItemUpdateSerializer,
    CheckoutResultSerializer,
    CheckoutSummarySerializer,
)


class CartViewSet(viewsets.ViewSet):
    """
    Shopping cart of the authenticated user.

    - GET /: list the items in the cart
    - POST /add/: add a product (merges with an existing line)
    - PUT /update/{cart_item_id}/: replace the quantity of a line
    - DELETE /remove/{product_id}/: remove a product from the cart
    - GET /checkout/: items and total at current prices
    - POST /checkout/confirm/: clear the cart and return what was paid
    """
    permission_classes = [IsAuthenticated]
    cart_service = CartBo()

    def _items(self, request, lines, message):
        serializer = CartItemSerializer(lines, many=True, context={'request': request})
        return api_response(serializer.data, message)

    def list(self, request):
        lines = self.cart_service.get_cart(request.user)
        message = "Cart retrieved successfully." if lines else "Your cart is empty."
        return self._items(request, lines, message)

    @action(detail=False, methods=['post'], url_path='add', url_name='add')
    def add_item(self, request):
        """
        Body:
        {
            "productId": 1,
            "quantity": 2
        }
        """
        serializer = CartAddItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        lines = self.cart_service.add_item(
            request.user,
            serializer.validated_data['productId'],
            serializer.validated_data['quantity'],
        )
        return self._items(request, lines, "Item added successfully!")

    @action(detail=False, methods=['put'], url_path=r'update/(?P<cart_item_id>[^/]+)', url_name='update')
    def update_item(self, request, cart_item_id=None):
        serializer = CartItemUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        lines = self.cart_service.update_quantity(
            request.user, cart_item_id, serializer.validated_data['quantity']
        )
        return self._items(request, lines, "Quantity updated successfully.")

    @action(detail=False, methods=['delete'], url_path=r'remove/(?P<product_id>[^/]+)', url_name='remove')
    def remove_item(self, request, product_id=None):
        lines = self.cart_service.remove_item(request.user, product_id)
        return self._items(request, lines, "Item removed successfully.")

    @action(detail=False, methods=['get'], url_path='checkout', url_name='checkout')
    def checkout(self, request):
        summary = self.cart_service.checkout_summary(request.user)
        serializer = CheckoutSummarySerializer(summary, context={'request': request})
        return api_response(serializer.data, "Checkout summary.")

    @action(detail=False, methods=['post'], url_path='checkout/confirm', url_name='checkout-confirm')
    def confirm_checkout(self, request):
        result = self.cart_service.confirm_checkout(request.user)
        serializer = CheckoutResultSerializer(result)
        message = "Checkout successful! Cart cleared." if result.items_count else "Cart is empty."
        return api_response(serializer.data, message)
