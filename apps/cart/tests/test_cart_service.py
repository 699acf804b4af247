from decimal import Decimal
from unittest import mock

from django.contrib.auth.models import AnonymousUser
from django.db import DatabaseError, IntegrityError, OperationalError, transaction
from django.test import TestCase

from apps.cart import exceptions
from apps.cart.models import Cart, CartItem
from apps.cart.services.CartBo import CartBo
from apps.cart.store import CartStore
from apps.products.models import Category, Product
from apps.users.models import User


class CartFixtureMixin:

    def create_fixtures(self):
        self.user = User.objects.create_user(username='alice', email='alice@example.com', password='pass')
        self.other = User.objects.create_user(username='bob', email='bob@example.com', password='pass')
        self.category = Category.objects.create(name='General')
        self.p1 = Product.objects.create(name='Mug', category=self.category, price=Decimal('5.00'), stock=10)
        self.p2 = Product.objects.create(name='Pen', category=self.category, price=Decimal('3.50'), stock=5)
        self.service = CartBo()

    def quantity_in_cart(self, user, product):
        return CartItem.objects.get(cart__user=user, product=product).quantity


class CartModelTests(CartFixtureMixin, TestCase):

    def setUp(self):
        self.create_fixtures()
        self.cart = Cart.objects.create(user=self.user)

    def test_line_total_uses_current_price(self):
        item = CartItem.objects.create(cart=self.cart, product=self.p1, quantity=3)
        self.assertEqual(item.line_total, Decimal('15.00'))

        Product.objects.filter(pk=self.p1.pk).update(price=Decimal('6.00'))
        item.refresh_from_db()
        item.product.refresh_from_db()
        self.assertEqual(item.line_total, Decimal('18.00'))

    def test_one_row_per_product(self):
        CartItem.objects.create(cart=self.cart, product=self.p1, quantity=1)
        with self.assertRaises(IntegrityError), transaction.atomic():
            CartItem.objects.create(cart=self.cart, product=self.p1, quantity=2)

    def test_quantity_must_be_positive(self):
        with self.assertRaises(IntegrityError), transaction.atomic():
            CartItem.objects.create(cart=self.cart, product=self.p1, quantity=0)


class AddItemTests(CartFixtureMixin, TestCase):

    def setUp(self):
        self.create_fixtures()

    def test_repeated_add_merges_into_one_line(self):
        self.service.add_item(self.user, self.p1.pk, 3)
        lines = self.service.add_item(self.user, self.p1.pk, 2)

        self.assertEqual(len(lines), 1)
        self.assertEqual(lines[0].quantity, 5)
        self.assertEqual(CartItem.objects.filter(cart__user=self.user, product=self.p1).count(), 1)
        self.assertEqual(self.quantity_in_cart(self.user, self.p1), 5)

    def test_first_add_creates_the_cart(self):
        self.assertFalse(Cart.objects.filter(user=self.user).exists())

        lines = self.service.add_item(self.user, self.p1.pk, 1)

        self.assertTrue(Cart.objects.filter(user=self.user).exists())
        self.assertEqual(lines[0].product_name, 'Mug')
        self.assertEqual(lines[0].price, Decimal('5.00'))
        self.assertEqual(lines[0].total_price, Decimal('5.00'))

    def test_stock_error_leaves_cart_unchanged(self):
        self.service.add_item(self.user, self.p1.pk, 4)

        with self.assertRaises(exceptions.StockError) as ctx:
            self.service.add_item(self.user, self.p1.pk, 8)

        self.assertEqual(ctx.exception.available, 6)
        self.assertIn('6 available', str(ctx.exception.detail))
        self.assertEqual(self.quantity_in_cart(self.user, self.p1), 4)

    def test_failed_first_add_does_not_create_cart(self):
        with self.assertRaises(exceptions.StockError):
            self.service.add_item(self.user, self.p1.pk, 11)
        with self.assertRaises(exceptions.NotFoundError):
            self.service.add_item(self.user, 999999, 1)

        self.assertFalse(Cart.objects.filter(user=self.user).exists())

    def test_quantity_up_to_stock_is_accepted(self):
        lines = self.service.add_item(self.user, self.p1.pk, 10)
        self.assertEqual(lines[0].quantity, 10)

    def test_rejects_non_positive_quantity(self):
        for quantity in (0, -1, True, '3', None):
            with self.subTest(quantity=quantity), self.assertRaises(exceptions.ValidationError):
                self.service.add_item(self.user, self.p1.pk, quantity)

        self.assertFalse(CartItem.objects.exists())

    def test_rejects_malformed_product_id(self):
        with self.assertRaises(exceptions.ValidationError):
            self.service.add_item(self.user, 'abc', 1)

    def test_deleted_product_cannot_be_added(self):
        self.p1.delete()
        with self.assertRaises(exceptions.NotFoundError):
            self.service.add_item(self.user, self.p1.pk, 1)

    def test_requires_authenticated_principal(self):
        for principal in (None, AnonymousUser()):
            with self.subTest(principal=principal), self.assertRaises(exceptions.AuthError):
                self.service.add_item(principal, self.p1.pk, 1)


class UpdateQuantityTests(CartFixtureMixin, TestCase):

    def setUp(self):
        self.create_fixtures()
        self.service.add_item(self.user, self.p1.pk, 4)
        self.item = CartItem.objects.get(cart__user=self.user, product=self.p1)

    def test_replaces_quantity(self):
        lines = self.service.update_quantity(self.user, self.item.pk, 2)

        self.assertEqual(lines[0].quantity, 2)
        self.assertEqual(self.quantity_in_cart(self.user, self.p1), 2)

    def test_checks_absolute_quantity_against_stock(self):
        self.service.update_quantity(self.user, self.item.pk, 10)

        with self.assertRaises(exceptions.StockError) as ctx:
            self.service.update_quantity(self.user, self.item.pk, 11)

        self.assertEqual(ctx.exception.available, 10)
        self.assertEqual(self.quantity_in_cart(self.user, self.p1), 10)

    def test_rejects_non_positive_quantity(self):
        for quantity in (0, -3):
            with self.subTest(quantity=quantity), self.assertRaises(exceptions.ValidationError):
                self.service.update_quantity(self.user, self.item.pk, quantity)

        self.assertEqual(self.quantity_in_cart(self.user, self.p1), 4)

    def test_foreign_item_looks_like_a_missing_one(self):
        self.service.add_item(self.other, self.p2.pk, 1)

        with self.assertRaises(exceptions.NotFoundError) as foreign:
            self.service.update_quantity(self.other, self.item.pk, 1)
        with self.assertRaises(exceptions.NotFoundError) as missing:
            self.service.update_quantity(self.other, 999999, 1)

        self.assertEqual(str(foreign.exception.detail), str(missing.exception.detail))
        self.assertEqual(self.quantity_in_cart(self.user, self.p1), 4)

    def test_user_without_cart_gets_not_found(self):
        with self.assertRaises(exceptions.NotFoundError):
            self.service.update_quantity(self.other, self.item.pk, 1)


class RemoveItemTests(CartFixtureMixin, TestCase):

    def setUp(self):
        self.create_fixtures()

    def test_removes_only_that_product(self):
        self.service.add_item(self.user, self.p1.pk, 1)
        self.service.add_item(self.user, self.p2.pk, 2)

        lines = self.service.remove_item(self.user, self.p1.pk)

        self.assertEqual([line.product_id for line in lines], [self.p2.pk])

    def test_removing_last_item_returns_empty_list(self):
        self.service.add_item(self.user, self.p1.pk, 1)

        self.assertEqual(self.service.remove_item(self.user, self.p1.pk), [])
        self.assertTrue(Cart.objects.filter(user=self.user).exists())

    def test_absent_product_is_not_found(self):
        self.service.add_item(self.user, self.p1.pk, 3)

        with self.assertRaises(exceptions.NotFoundError):
            self.service.remove_item(self.user, self.p2.pk)

        self.assertEqual(self.quantity_in_cart(self.user, self.p1), 3)

    def test_without_cart_is_not_found(self):
        with self.assertRaises(exceptions.NotFoundError):
            self.service.remove_item(self.user, self.p1.pk)


class GetCartAndSummaryTests(CartFixtureMixin, TestCase):

    def setUp(self):
        self.create_fixtures()

    def test_empty_cart(self):
        self.assertEqual(self.service.get_cart(self.user), [])

        summary = self.service.checkout_summary(self.user)
        self.assertEqual(summary.items, [])
        self.assertEqual(summary.total, Decimal('0.00'))

    def test_prices_are_read_live(self):
        self.service.add_item(self.user, self.p1.pk, 2)
        Product.objects.filter(pk=self.p1.pk).update(price=Decimal('7.25'))

        lines = self.service.get_cart(self.user)

        self.assertEqual(lines[0].price, Decimal('7.25'))
        self.assertEqual(lines[0].total_price, Decimal('14.50'))

    def test_summary_total(self):
        self.service.add_item(self.user, self.p1.pk, 2)
        self.service.add_item(self.user, self.p2.pk, 1)

        summary = self.service.checkout_summary(self.user)

        self.assertEqual(len(summary.items), 2)
        self.assertEqual(summary.total, Decimal('13.50'))


class ConfirmCheckoutTests(CartFixtureMixin, TestCase):

    def setUp(self):
        self.create_fixtures()
        self.service.add_item(self.user, self.p1.pk, 2)
        self.service.add_item(self.user, self.p2.pk, 1)

    def test_returns_snapshot_and_clears_cart(self):
        result = self.service.confirm_checkout(self.user)

        self.assertEqual(result.total_paid, Decimal('13.50'))
        self.assertEqual(result.items_count, 2)
        self.assertEqual(self.service.get_cart(self.user), [])
        self.assertTrue(Cart.objects.filter(user=self.user).exists())

    def test_decrements_stock(self):
        self.service.confirm_checkout(self.user)

        self.p1.refresh_from_db()
        self.p2.refresh_from_db()
        self.assertEqual(self.p1.stock, 8)
        self.assertEqual(self.p2.stock, 4)

    def test_charges_the_price_at_confirmation(self):
        Product.objects.filter(pk=self.p1.pk).update(price=Decimal('6.00'))

        result = self.service.confirm_checkout(self.user)

        self.assertEqual(result.total_paid, Decimal('15.50'))

    def test_second_confirmation_is_a_no_op(self):
        self.service.confirm_checkout(self.user)
        result = self.service.confirm_checkout(self.user)

        self.assertEqual(result.total_paid, Decimal('0.00'))
        self.assertEqual(result.items_count, 0)
        self.p1.refresh_from_db()
        self.assertEqual(self.p1.stock, 8)

    def test_user_without_cart(self):
        result = self.service.confirm_checkout(self.other)
        self.assertEqual((result.total_paid, result.items_count), (Decimal('0.00'), 0))

    def test_stock_shortage_aborts_without_side_effects(self):
        Product.objects.filter(pk=self.p2.pk).update(stock=0)

        with self.assertRaises(exceptions.StockError):
            self.service.confirm_checkout(self.user)

        self.assertEqual(CartItem.objects.filter(cart__user=self.user).count(), 2)
        self.p1.refresh_from_db()
        self.assertEqual(self.p1.stock, 10)

    def test_deleted_product_aborts_checkout(self):
        self.p2.delete()

        with self.assertRaises(exceptions.NotFoundError):
            self.service.confirm_checkout(self.user)

        self.assertEqual(CartItem.objects.filter(cart__user=self.user).count(), 2)

    def test_failure_while_clearing_rolls_back(self):
        with mock.patch.object(CartStore, 'clear', side_effect=DatabaseError('disk I/O error')):
            with self.assertRaises(exceptions.InternalError):
                self.service.confirm_checkout(self.user)

        self.assertEqual(CartItem.objects.filter(cart__user=self.user).count(), 2)
        self.p1.refresh_from_db()
        self.assertEqual(self.p1.stock, 10)


class RetryTests(CartFixtureMixin, TestCase):

    def setUp(self):
        self.create_fixtures()

    def test_concurrent_insert_is_merged_on_retry(self):
        self.service.add_item(self.user, self.p1.pk, 2)
        original = CartStore.find_item
        calls = []

        def stale_find_item(store, cart, product_id):
            # First attempt does not see the row, as if another request
            # inserted it after this one looked.
            calls.append(product_id)
            if len(calls) == 1:
                return None
            return original(store, cart, product_id)

        with mock.patch.object(CartStore, 'find_item', autospec=True, side_effect=stale_find_item):
            lines = self.service.add_item(self.user, self.p1.pk, 3)

        self.assertEqual(len(calls), 2)
        self.assertEqual(len(lines), 1)
        self.assertEqual(self.quantity_in_cart(self.user, self.p1), 5)

    def test_gives_up_with_conflict(self):
        service = CartBo(max_attempts=3, backoff=0)
        with mock.patch.object(CartStore, 'find_cart', side_effect=OperationalError('deadlock detected')) as find:
            with self.assertRaises(exceptions.ConflictError):
                service.remove_item(self.user, self.p1.pk)

        self.assertEqual(find.call_count, 3)

    def test_waits_longer_between_each_attempt(self):
        service = CartBo(max_attempts=3, backoff=0.05)
        with mock.patch.object(CartStore, 'find_cart', side_effect=OperationalError('database is locked')), \
                mock.patch('time.sleep') as sleep:
            with self.assertRaises(exceptions.ConflictError):
                service.get_cart(self.user)

        self.assertEqual([c.args[0] for c in sleep.call_args_list], [0.05, 0.1])

    def test_other_database_errors_become_internal(self):
        with mock.patch.object(CartStore, 'find_cart', side_effect=DatabaseError('relation "cart_cart" does not exist')):
            with self.assertRaises(exceptions.InternalError) as ctx:
                self.service.get_cart(self.user)

        self.assertNotIn('cart_cart', str(ctx.exception.detail))
