from rest_framework import viewsets, filters, status
from rest_framework.permissions import AllowAny, IsAdminUser
from rest_framework.decorators import action
from rest_framework.response import Response
from django.db import transaction
from django_filters.rest_framework import DjangoFilterBackend
from apps.products.models import Product, Category
from apps.products.serializers.serializers import (
    CategorySerializer,
    ProductListSerializer,
    ProductSerializer,
)


class CatalogPermissionsMixin:
    """
    Reads are open to everyone; writes are restricted to staff.
    """
    write_actions = ['create', 'update', 'partial_update', 'destroy', 'bulk_create']

    def get_permissions(self):
        if self.action in self.write_actions:
            return [IsAdminUser()]
        return [AllowAny()]


class CategoryViewSet(CatalogPermissionsMixin, viewsets.ModelViewSet):
    """
    ViewSet for managing categories.
    Deleting a category hides it; its products keep their reference.
    """
    queryset = Category.objects.all()
    serializer_class = CategorySerializer
    filter_backends = [filters.SearchFilter]
    search_fields = ['name']

    @action(detail=False, methods=['post'], url_path='bulk')
    def bulk_create(self, request):
        """
        Creates several categories at once.
        Body: JSON array of category objects, e.g. [{"name": "Books"}, {"name": "Games"}]
        """
        serializer = self.get_serializer(data=request.data, many=True, allow_empty=False)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data, status=status.HTTP_201_CREATED)


class ProductViewSet(CatalogPermissionsMixin, viewsets.ModelViewSet):
    """
    ViewSet for managing products with different permissions based on action.
    - List and retrieve are open to all users
    - Create, bulk create, update and delete restricted to staff
    """
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['category']
    search_fields = ['name', 'description', 'category__name']
    ordering_fields = ['price', 'created_at', 'stock']

    def get_serializer_class(self):
        if self.action == 'list':
            return ProductListSerializer
        return ProductSerializer

    def get_queryset(self):
        return Product.objects.select_related('category')

    @action(detail=False, methods=['post'], url_path='bulk')
    def bulk_create(self, request):
        """
        Creates several products at once; every category is checked before
        anything is saved.
        Body: JSON array of product objects, e.g.
        [{"name": "Mug", "category_id": 1, "price": "5.00", "stock": 10}]
        """
        serializer = self.get_serializer(data=request.data, many=True, allow_empty=False)
        serializer.is_valid(raise_exception=True)
        with transaction.atomic():
            serializer.save()
        return Response(serializer.data, status=status.HTTP_201_CREATED)
