from typing import List, Optional

from apps.cart.models import Cart, CartItem
from apps.products.models import Product


class CartStore:
    """
    Access to one user's cart aggregate inside a single transaction.

    A store is created by ``CartBo`` for each attempt of an operation and
    discarded when the transaction ends; it is never shared between requests.
    """

    def __init__(self, user):
        self.user = user

    def find_cart(self, lock: bool = False) -> Optional[Cart]:
        queryset = Cart.objects.filter(user=self.user)
        if lock:
            queryset = queryset.select_for_update()
        return queryset.first()

    def lock_or_create_cart(self) -> Cart:
        """Returns the user's cart locked for update, creating it on first use."""
        cart = self.find_cart(lock=True)
        if cart is None:
            # Unique user_id makes a concurrent creation fail here with
            # IntegrityError, which the caller retries.
            cart, _created = Cart.objects.get_or_create(user=self.user)
            cart = Cart.objects.select_for_update().get(pk=cart.pk)
        return cart

    def items(self, cart: Cart) -> List[CartItem]:
        return list(cart.items.select_related('product').order_by('id'))

    def find_item(self, cart: Cart, product_id: int) -> Optional[CartItem]:
        return cart.items.select_related('product').filter(product_id=product_id).first()

    def find_owned_item(self, cart_item_id: int) -> Optional[CartItem]:
        """
        Looks the item up together with its owner in one query, so an item of
        another user is indistinguishable from a missing one.
        """
        return (
            CartItem.objects.select_related('cart', 'product')
            .filter(pk=cart_item_id, cart__user=self.user)
            .first()
        )

    def add_item(self, cart: Cart, product: Product, quantity: int) -> CartItem:
        return CartItem.objects.create(cart=cart, product=product, quantity=quantity)

    def set_quantity(self, item: CartItem, quantity: int) -> CartItem:
        item.quantity = quantity
        item.save(update_fields=['quantity', 'updated_at'])
        return item

    def remove_item(self, item: CartItem) -> None:
        item.delete()

    def clear(self, cart: Cart) -> int:
        """Deletes every line of the cart in one statement; the cart row stays."""
        deleted, _per_model = CartItem.objects.filter(cart=cart).delete()
        return deleted

    def touch(self, cart: Cart) -> None:
        cart.save(update_fields=['updated_at'])
