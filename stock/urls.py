"""
Stock — URL Configuration

@file stock/urls.py
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import LegacyStockProduitViewSet, ProductStockViewSet, StockGroupViewSet, StockLocationViewSet

app_name = 'stock'

router = DefaultRouter()
router.register('groups', StockGroupViewSet, basename='group')
router.register('locations', StockLocationViewSet, basename='location')
router.register('allocations', ProductStockViewSet, basename='allocation')
router.register('legacy/stock-produit', LegacyStockProduitViewSet, basename='legacy-stock-produit')

urlpatterns = [
    path('', include(router.urls)),
]
