from decimal import Decimal

from django.db import models
from utils.models import BaseModel
from apps.users.models import User
from apps.products.models import Product


class Cart(BaseModel):
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='cart')
    # created_at and updated_at are inherited from BaseModel

    def __str__(self):
        return f"Cart for {self.user.email}"  # type: ignore


class CartItem(BaseModel):
    cart = models.ForeignKey(Cart, on_delete=models.CASCADE, related_name='items')
    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='cart_items')
    quantity = models.PositiveIntegerField(default=1)

    class Meta:
        ordering = ['id']
        constraints = [
            models.UniqueConstraint(fields=['cart', 'product'], name='unique_product_per_cart'),
            models.CheckConstraint(condition=models.Q(quantity__gte=1), name='cart_item_quantity_positive'),
        ]

    def __str__(self):
        return f"{self.quantity} x {self.product.name} in {self.cart}"  # type: ignore

    @property
    def line_total(self) -> Decimal:
        """Quantity times the product's current price."""
        return self.product.price * self.quantity
