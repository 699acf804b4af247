import threading
from decimal import Decimal

from django.db import connection
from django.test import TransactionTestCase

from apps.cart import exceptions
from apps.cart.models import CartItem
from apps.cart.services.CartBo import CartBo
from apps.products.models import Category, Product
from apps.users.models import User

# A request that loses the race either sees the winner's write and fails the
# stock check, or runs out of attempts while the winner holds the lock.
LOSING_ERRORS = (exceptions.StockError, exceptions.ConflictError)


class ConcurrentCartTests(TransactionTestCase):
    """Races between requests, each thread on its own connection."""

    def setUp(self):
        if connection.vendor == 'sqlite' and connection.is_in_memory_db():
            self.skipTest('threads need a shared database file')

        self.user = User.objects.create_user(username='alice', email='alice@example.com', password='pass')
        self.other = User.objects.create_user(username='bob', email='bob@example.com', password='pass')
        category = Category.objects.create(name='General')
        self.product = Product.objects.create(name='Lamp', category=category, price=Decimal('20.00'), stock=8)
        self.service = CartBo()

    def run_concurrently(self, *calls):
        barrier = threading.Barrier(len(calls))
        outcomes = [None] * len(calls)

        def worker(index, call):
            try:
                barrier.wait()
                outcomes[index] = call()
            except Exception as e:
                outcomes[index] = e
            finally:
                connection.close()

        threads = [threading.Thread(target=worker, args=(i, call)) for i, call in enumerate(calls)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()
        return outcomes

    def assertOnlyLosingErrors(self, errors):
        for error in errors:
            self.assertIsInstance(error, LOSING_ERRORS)

    def test_parallel_adds_respect_stock(self):
        outcomes = self.run_concurrently(
            lambda: self.service.add_item(self.user, self.product.pk, 5),
            lambda: self.service.add_item(self.user, self.product.pk, 5),
        )

        errors = [o for o in outcomes if isinstance(o, Exception)]
        self.assertEqual(len(errors), 1)
        self.assertOnlyLosingErrors(errors)

        items = CartItem.objects.filter(cart__user=self.user)
        self.assertEqual(items.count(), 1)
        self.assertEqual(items.get().quantity, 5)

    def test_parallel_first_adds_create_one_line(self):
        outcomes = self.run_concurrently(
            lambda: self.service.add_item(self.user, self.product.pk, 1),
            lambda: self.service.add_item(self.user, self.product.pk, 2),
        )

        errors = [o for o in outcomes if isinstance(o, Exception)]
        for error in errors:
            self.assertIsInstance(error, exceptions.ConflictError)
        added = sum(q for q, o in zip((1, 2), outcomes) if not isinstance(o, Exception))

        items = CartItem.objects.filter(cart__user=self.user)
        self.assertEqual(items.count(), 1 if added else 0)
        if added:
            self.assertEqual(items.get().quantity, added)

    def test_parallel_checkouts_do_not_oversell(self):
        self.service.add_item(self.user, self.product.pk, 5)
        self.service.add_item(self.other, self.product.pk, 5)

        outcomes = self.run_concurrently(
            lambda: self.service.confirm_checkout(self.user),
            lambda: self.service.confirm_checkout(self.other),
        )

        errors = [o for o in outcomes if isinstance(o, Exception)]
        self.assertGreaterEqual(len(errors), 1)
        self.assertOnlyLosingErrors(errors)

        checked_out = len(outcomes) - len(errors)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 8 - 5 * checked_out)
        self.assertEqual(CartItem.objects.count(), len(errors))
