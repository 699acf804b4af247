from decimal import Decimal

from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from utils.tests import BaseTestCase

from apps.products.catalog import ProductCatalog
from apps.products.models import Product, Category
from apps.users.models import User


class CatalogModelTests(TestCase):
    """Test cases for Category, Product and the catalog lookups."""

    def setUp(self):
        self.category = Category.objects.create(name="Electronics")
        self.product = Product.objects.create(
            name="Test Product",
            category=self.category,
            price=Decimal("99.99"),
            stock=100
        )

    def test_category_slug_generation(self):
        """Test that slug is automatically created for Category"""
        self.assertEqual(self.category.slug, "electronics")

        special_category = Category.objects.create(name="Home & Kitchen Appliances")
        self.assertEqual(special_category.slug, "home-kitchen-appliances")

    def test_duplicate_category_names_get_distinct_slugs(self):
        other = Category.objects.create(name="Electronics")
        self.assertEqual(other.slug, "electronics-2")

    def test_product_str_representation(self):
        self.assertEqual(str(self.product), "Test Product")
        self.assertIsNone(self.product.image_url)

    def test_soft_delete_hides_product(self):
        self.product.delete()

        self.assertEqual(Product.objects.count(), 0)
        self.assertEqual(Product.all_objects.count(), 1)
        self.assertIsNone(ProductCatalog.find_by_id(self.product.pk))

        self.product.restore()
        self.assertEqual(ProductCatalog.find_by_id(self.product.pk), self.product)

    def test_find_by_id_missing(self):
        self.assertIsNone(ProductCatalog.find_by_id(self.product.pk + 1000))

    def test_decrement_stock(self):
        ProductCatalog.decrement_stock(self.product, 30)

        self.assertEqual(self.product.stock, 70)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 70)


class ProductAPITests(BaseTestCase):
    """Test cases for Product and Category API endpoints."""

    def setUp(self):
        super().setUp()
        self.category = Category.objects.create(name="Electronics")
        self.product = Product.objects.create(
            name="Test Product",
            description="A plain test product",
            category=self.category,
            price=Decimal("99.99"),
            stock=100
        )

        self.products_list_url = reverse('product-list')
        self.product_detail_url = reverse('product-detail', kwargs={'pk': self.product.id})
        self.categories_url = reverse('category-list')
        self.categories_bulk_url = reverse('category-bulk-create')
        self.products_bulk_url = reverse('product-bulk-create')

        self.admin = User.objects.create_user(
            username='admin',
            email='admin@example.com',
            password='password123',
            is_staff=True,
        )

    def test_list_products_is_public(self):
        self.client.credentials()
        response = self.client.get(self.products_list_url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data), 1)
        self.assertEqual(response.data[0]['name'], "Test Product")
        self.assertEqual(response.data[0]['category']['name'], "Electronics")

    def test_retrieve_product(self):
        response = self.client.get(self.product_detail_url)

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['price'], "99.99")
        self.assertEqual(response.data['stock'], 100)

    def test_retrieve_missing_product_uses_envelope(self):
        response = self.client.get(reverse('product-detail', kwargs={'pk': 999999}))

        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data, {'success': False, 'message': 'Not found.', 'data': None})

    def test_create_product_as_staff(self):
        self.authenticate(self.admin)
        response = self.client.post(self.products_list_url, {
            'name': 'New Product',
            'category_id': self.category.id,
            'price': '149.99',
            'stock': 50,
            'description': 'A new test product',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        created = Product.objects.get(name='New Product')
        self.assertEqual(created.price, Decimal('149.99'))
        self.assertEqual(created.category, self.category)

    def test_create_product_as_customer_is_forbidden(self):
        response = self.client.post(self.products_list_url, {
            'name': 'New Product',
            'category_id': self.category.id,
            'price': '149.99',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(response.data['success'])
        self.assertEqual(Product.objects.count(), 1)

    def test_create_product_with_unknown_category(self):
        self.authenticate(self.admin)
        response = self.client.post(self.products_list_url, {
            'name': 'Orphan',
            'category_id': 999999,
            'price': '1.00',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('category_id', response.data['data'])

    def test_update_product_as_staff(self):
        self.authenticate(self.admin)
        response = self.client.patch(self.product_detail_url, {'price': '129.99', 'stock': 75}, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.product.refresh_from_db()
        self.assertEqual(self.product.price, Decimal('129.99'))
        self.assertEqual(self.product.stock, 75)

    def test_negative_stock_is_rejected(self):
        self.authenticate(self.admin)
        response = self.client.patch(self.product_detail_url, {'stock': -1}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_product_is_soft(self):
        self.authenticate(self.admin)
        response = self.client.delete(self.product_detail_url)

        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertEqual(Product.objects.count(), 0)
        self.assertEqual(Product.all_objects.count(), 1)

    def test_filter_and_search_products(self):
        other_category = Category.objects.create(name="Clothing")
        Product.objects.create(
            name="T-Shirt",
            description="Cotton shirt",
            category=other_category,
            price=Decimal("19.99"),
            stock=200
        )

        response = self.client.get(f"{self.products_list_url}?category={other_category.id}")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([p['name'] for p in response.data], ["T-Shirt"])

        response = self.client.get(f"{self.products_list_url}?search=cotton")
        self.assertEqual([p['name'] for p in response.data], ["T-Shirt"])

        response = self.client.get(f"{self.products_list_url}?ordering=price")
        self.assertEqual([p['name'] for p in response.data], ["T-Shirt", "Test Product"])

    def test_create_single_category(self):
        self.authenticate(self.admin)
        response = self.client.post(self.categories_url, {'name': 'Books'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['slug'], 'books')

    def test_bulk_create_categories(self):
        self.authenticate(self.admin)
        response = self.client.post(
            self.categories_bulk_url,
            [{'name': 'Books'}, {'name': 'Games', 'description': 'Board and video games'}],
            format='json'
        )

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(len(response.data), 2)
        self.assertTrue(Category.objects.filter(name='Games').exists())

    def test_bulk_create_requires_an_array(self):
        self.authenticate(self.admin)
        response = self.client.post(self.categories_bulk_url, {'name': 'Books'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Category.objects.filter(name='Books').exists())

    def test_bulk_create_rejects_empty_array(self):
        self.authenticate(self.admin)
        response = self.client.post(self.categories_bulk_url, [], format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_bulk_create_products(self):
        self.authenticate(self.admin)
        response = self.client.post(self.products_bulk_url, [
            {'name': 'Mouse', 'category_id': self.category.id, 'price': '25.00', 'stock': 40},
            {'name': 'Keyboard', 'category_id': self.category.id, 'price': '45.50'},
        ], format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual([p['name'] for p in response.data], ['Mouse', 'Keyboard'])
        self.assertEqual(Product.objects.get(name='Keyboard').stock, 0)

    def test_bulk_create_products_checks_every_category(self):
        self.authenticate(self.admin)
        response = self.client.post(self.products_bulk_url, [
            {'name': 'Mouse', 'category_id': self.category.id, 'price': '25.00'},
            {'name': 'Orphan', 'category_id': 999999, 'price': '1.00'},
        ], format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Product.objects.filter(name='Mouse').exists())

    def test_bulk_create_products_as_customer_is_forbidden(self):
        response = self.client.post(self.products_bulk_url, [
            {'name': 'Mouse', 'category_id': self.category.id, 'price': '25.00'},
        ], format='json')

        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertEqual(Product.objects.count(), 1)

    def test_bulk_create_products_requires_an_array(self):
        self.authenticate(self.admin)
        response = self.client.post(self.products_bulk_url, {
            'name': 'Mouse', 'category_id': self.category.id, 'price': '25.00',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Product.objects.filter(name='Mouse').exists())
