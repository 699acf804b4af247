"""
Business object for the shopping cart.

Adds, updates and removes cart lines and performs checkout. Every operation
runs as one unit of work against the pair (cart aggregate, product stock):
the cart row is locked first, then the product rows in primary key order,
so two requests touching the same cart or the same product never interleave
their read-compare-write of the stock figure.
"""

import logging
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, List, Optional, TypeVar

from django.conf import settings
from django.db import DatabaseError, IntegrityError, OperationalError, transaction

from apps.cart import exceptions
from apps.cart.models import CartItem
from apps.cart.store import CartStore
from apps.products.catalog import ProductCatalog
from apps.products.models import Product

logger = logging.getLogger(__name__)

T = TypeVar('T')

CENT = Decimal('0.01')
ZERO = Decimal('0.00')

ITEM_NOT_FOUND = 'Cart item not found.'
PRODUCT_NOT_FOUND = 'Product not found.'


@dataclass
class CartLineDTO:
    """A cart line priced with the product's current price."""
    id: int
    product_id: int
    product_name: str
    image: Optional[str]
    quantity: int
    price: Decimal
    total_price: Decimal


@dataclass
class CheckoutSummaryDTO:
    items: List[CartLineDTO] = field(default_factory=list)
    total: Decimal = ZERO


@dataclass
class CheckoutResultDTO:
    total_paid: Decimal = ZERO
    items_count: int = 0


class CartBo:
    """
    Cart operations for an authenticated user.

    Conflicting writes (unique constraint races, deadlocks, serialization
    failures) abort the attempt; the operation is retried from scratch up to
    ``max_attempts`` times, waiting ``backoff`` seconds (doubled after each
    failure) in between, before ``ConflictError`` is raised. Any other
    database failure becomes ``InternalError``.
    """

    def __init__(self, max_attempts: Optional[int] = None, backoff: Optional[float] = None):
        self.max_attempts = max_attempts or settings.CART_MAX_ATTEMPTS
        self.backoff = settings.CART_RETRY_BACKOFF if backoff is None else backoff

    def add_item(self, user, product_id, quantity) -> List[CartLineDTO]:
        """
        Adds ``quantity`` units of a product, merging with an existing line.

        The merged total must fit in the product's stock; otherwise
        ``StockError`` reports how many more units can still be added.
        """
        self._require_principal(user)
        product_id = self._parse_id(product_id, 'product id')
        quantity = self._positive_quantity(quantity)

        def operation(store: CartStore) -> List[CartLineDTO]:
            cart = store.lock_or_create_cart()
            product = ProductCatalog.find_by_id(product_id, lock=True)
            if product is None:
                raise exceptions.NotFoundError(PRODUCT_NOT_FOUND)

            item = store.find_item(cart, product.pk)
            in_cart = item.quantity if item else 0
            if in_cart + quantity > product.stock:
                raise exceptions.StockError(product.stock - in_cart)

            if item:
                store.set_quantity(item, in_cart + quantity)
            else:
                store.add_item(cart, product, quantity)
            store.touch(cart)

            logger.info(
                "User %s added %s x product %s to cart %s (now %s)",
                user.pk, quantity, product.pk, cart.pk, in_cart + quantity,
            )
            return self._snapshot(store.items(cart))

        return self._execute('add_item', user, operation)

    def get_cart(self, user) -> List[CartLineDTO]:
        self._require_principal(user)

        def operation(store: CartStore) -> List[CartLineDTO]:
            cart = store.find_cart()
            if cart is None:
                return []
            return self._snapshot(store.items(cart))

        return self._execute('get_cart', user, operation)

    def update_quantity(self, user, cart_item_id, quantity) -> List[CartLineDTO]:
        """Replaces the quantity of one of the user's lines."""
        self._require_principal(user)
        quantity = self._positive_quantity(quantity)
        cart_item_id = self._parse_id(cart_item_id, 'cart item id')

        def operation(store: CartStore) -> List[CartLineDTO]:
            cart = store.find_cart(lock=True)
            item = store.find_owned_item(cart_item_id) if cart else None
            if item is None:
                raise exceptions.NotFoundError(ITEM_NOT_FOUND)

            product = ProductCatalog.find_by_id(item.product_id, lock=True)
            if product is None:
                raise exceptions.NotFoundError(PRODUCT_NOT_FOUND)
            if quantity > product.stock:
                raise exceptions.StockError(product.stock)

            store.set_quantity(item, quantity)
            store.touch(cart)

            logger.info(
                "User %s set cart item %s (product %s) to %s",
                user.pk, item.pk, product.pk, quantity,
            )
            return self._snapshot(store.items(cart))

        return self._execute('update_quantity', user, operation)

    def remove_item(self, user, product_id) -> List[CartLineDTO]:
        self._require_principal(user)
        product_id = self._parse_id(product_id, 'product id')

        def operation(store: CartStore) -> List[CartLineDTO]:
            cart = store.find_cart(lock=True)
            if cart is None:
                raise exceptions.NotFoundError('Cart not found.')
            item = store.find_item(cart, product_id)
            if item is None:
                raise exceptions.NotFoundError('Item not found in your cart.')

            store.remove_item(item)
            store.touch(cart)

            logger.info("User %s removed product %s from cart %s", user.pk, product_id, cart.pk)
            return self._snapshot(store.items(cart))

        return self._execute('remove_item', user, operation)

    def checkout_summary(self, user) -> CheckoutSummaryDTO:
        self._require_principal(user)
        lines = self.get_cart(user)
        return CheckoutSummaryDTO(items=lines, total=self._total(lines))

    def confirm_checkout(self, user) -> CheckoutResultDTO:
        """
        Charges nothing: snapshots the totals, takes the quantities out of
        stock and clears the cart, all or nothing. Confirming an empty cart
        is a no-op that succeeds with a zero result.
        """
        self._require_principal(user)

        def operation(store: CartStore) -> CheckoutResultDTO:
            cart = store.find_cart(lock=True)
            items = store.items(cart) if cart else []
            if not items:
                return CheckoutResultDTO()

            products = {p.pk: p for p in ProductCatalog.lock_many(i.product_id for i in items)}
            for item in items:
                # Price and stock from the locked row, not the earlier join.
                item.product = product = products[item.product_id]
                if product.is_deleted:
                    raise exceptions.NotFoundError(f'{product.name} is no longer available.')
                if item.quantity > product.stock:
                    raise exceptions.StockError(product.stock)

            lines = self._snapshot(items)
            result = CheckoutResultDTO(total_paid=self._total(lines), items_count=len(lines))

            for item in items:
                ProductCatalog.decrement_stock(item.product, item.quantity)
            store.clear(cart)
            store.touch(cart)

            logger.info(
                "User %s checked out cart %s: %s items, total %s",
                user.pk, cart.pk, result.items_count, result.total_paid,
            )
            return result

        return self._execute('confirm_checkout', user, operation)

    def _execute(self, action: str, user, operation: Callable[[CartStore], T]) -> T:
        for attempt in range(1, self.max_attempts + 1):
            try:
                with transaction.atomic():
                    return operation(CartStore(user))
            except (IntegrityError, OperationalError) as e:
                logger.warning(
                    "Conflict in %s for user %s (attempt %s/%s): %s",
                    action, user.pk, attempt, self.max_attempts, e,
                )
                if attempt < self.max_attempts:
                    time.sleep(self.backoff * 2 ** (attempt - 1))
            except DatabaseError:
                logger.exception("Database error in %s for user %s", action, user.pk)
                raise exceptions.InternalError()

        logger.warning("Giving up %s for user %s after %s attempts", action, user.pk, self.max_attempts)
        raise exceptions.ConflictError()

    @staticmethod
    def _snapshot(items: List[CartItem]) -> List[CartLineDTO]:
        lines = []
        for item in items:
            product: Product = item.product
            lines.append(CartLineDTO(
                id=item.pk,
                product_id=product.pk,
                product_name=product.name,
                image=product.image_url,
                quantity=item.quantity,
                price=product.price.quantize(CENT),
                total_price=item.line_total.quantize(CENT),
            ))
        return lines

    @staticmethod
    def _total(lines: List[CartLineDTO]) -> Decimal:
        return sum((line.total_price for line in lines), ZERO)

    @staticmethod
    def _require_principal(user) -> None:
        if user is None or not getattr(user, 'is_authenticated', False):
            raise exceptions.AuthError()

    @staticmethod
    def _positive_quantity(quantity) -> int:
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
            raise exceptions.ValidationError({'quantity': 'Quantity must be greater than 0.'})
        return quantity

    @staticmethod
    def _parse_id(value, label: str) -> int:
        try:
            parsed = int(value)
        except (TypeError, ValueError):
            raise exceptions.ValidationError({'id': f'Invalid {label}.'})
        if isinstance(value, bool) or parsed <= 0:
            raise exceptions.ValidationError({'id': f'Invalid {label}.'})
        return parsed
