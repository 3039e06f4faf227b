"""
Products — Views

@file products/views.py
"""

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from stock.models import ProductStock
from stock.services import TotalStockService

from .models import Product
from .serializers import ProductReadSerializer, ProductStockBreakdownSerializer, ProductWriteSerializer
from .services import ProductService


class ProductViewSet(viewsets.ModelViewSet):
    """
    Product CRUD. total_stock is returned on reads and ignored on writes.
    """

    filterset_fields = ['sku']
    search_fields = ['name', 'sku']
    ordering_fields = ['name', 'sku', 'total_stock', 'created_at']
    ordering = ['name']

    def get_queryset(self):
        return Product.objects.all()

    def get_serializer_class(self):
        if self.action in ('create', 'update', 'partial_update'):
            return ProductWriteSerializer
        return ProductReadSerializer

    def create(self, request, *args, **kwargs):
        ser = ProductWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        product = ProductService.create_product(actor=request.user, **ser.validated_data)
        return Response(ProductReadSerializer(product).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        instance = self.get_object()
        ser = ProductWriteSerializer(instance, data=request.data, partial=partial)
        ser.is_valid(raise_exception=True)
        product = ProductService.update_product(
            product_id=instance.pk, actor=request.user, **ser.validated_data,
        )
        return Response(ProductReadSerializer(product).data)

    def perform_destroy(self, instance):
        ProductService.delete_product(product_id=instance.pk, actor=self.request.user)

    @action(detail=True, methods=['get'], url_path='stocks')
    def stocks(self, request, pk=None):
        product = self.get_object()
        rows = (
            ProductStock.objects.filter(product=product)
            .select_related('stock', 'stock__group')
            .order_by('stock__name')
        )
        return Response({
            'success': True,
            'data': {
                'total_stock': product.total_stock,
                'stocks': ProductStockBreakdownSerializer(rows, many=True).data,
            },
        })

    @action(detail=True, methods=['post'], url_path='recompute')
    def recompute(self, request, pk=None):
        product = self.get_object()
        total = TotalStockService.recompute(product.pk)
        return Response({'success': True, 'data': {'id': str(product.pk), 'total_stock': total}})
