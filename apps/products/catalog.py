"""
Read access to the product catalog for the cart.

The cart only ever reads a product's price and stock; the single write it is
allowed to make is the stock decrement performed at checkout.
"""

from typing import Iterable, List, Optional

from django.db.models import F
from django.utils import timezone

from apps.products.models import Product


class ProductCatalog:
    """Product lookups bound to the caller's transaction."""

    @staticmethod
    def find_by_id(product_id: int, lock: bool = False) -> Optional[Product]:
        """
        Returns the active product or ``None``.

        With ``lock=True`` the row is locked until the surrounding
        transaction ends, so the stock read stays valid for the comparison
        that follows it.
        """
        queryset = Product.objects.all()
        if lock:
            queryset = queryset.select_for_update()
        return queryset.filter(pk=product_id).first()

    @staticmethod
    def lock_many(product_ids: Iterable[int]) -> List[Product]:
        """Locks the given rows in primary key order, deleted products included."""
        return list(
            Product.all_objects.select_for_update()
            .filter(pk__in=set(product_ids))
            .order_by('pk')
        )

    @staticmethod
    def decrement_stock(product: Product, quantity: int) -> None:
        Product.all_objects.filter(pk=product.pk).update(
            stock=F('stock') - quantity, updated_at=timezone.now()
        )
        product.stock -= quantity
