from django.urls import path, include
from rest_framework.routers import SimpleRouter
from .views.v1.views import CategoryViewSet, ProductViewSet

v1_router = SimpleRouter()
# Categories first so "categories/" is not captured as a product pk.
v1_router.register(r'categories', CategoryViewSet, basename='category')
v1_router.register(r'', ProductViewSet, basename='product')

urlpatterns = [
    path('', include(v1_router.urls)),
]
