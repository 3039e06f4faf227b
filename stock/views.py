"""
Stock — Views

DRF ViewSets for stock groups, stock locations, product allocations and
the legacy stock_produit adapter. All writes go through stock.services;
deletes are idempotent (204 whether or not the row existed).

@file stock/views.py
"""

from django.db import transaction
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from .legacy import LegacyStockProduitPairSerializer, LegacyStockProduitSerializer, to_canonical_filters
from .models import ProductStock, Stock, StockGroup
from .serializers import (
    ProductStockPairSerializer,
    ProductStockQuantitySerializer,
    ProductStockReadSerializer,
    ProductStockWriteSerializer,
    StockGroupReadSerializer,
    StockGroupSynchronizableSerializer,
    StockGroupWriteSerializer,
    StockReadSerializer,
    StockWriteSerializer,
)
from .services import ProductStockService, StockGroupService, StockLocationService


class StockGroupViewSet(viewsets.ModelViewSet):
    """Stock groups. Deleting a group detaches its locations."""

    filterset_fields = ['synchronizable']
    search_fields = ['name']
    ordering_fields = ['name', 'created_at']
    ordering = ['name']

    def get_queryset(self):
        return StockGroup.objects.all()

    def get_serializer_class(self):
        if self.action in ('create', 'update', 'partial_update'):
            return StockGroupWriteSerializer
        return StockGroupReadSerializer

    def create(self, request, *args, **kwargs):
        ser = StockGroupWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        group = StockGroupService.create_group(actor=request.user, **ser.validated_data)
        return Response(StockGroupReadSerializer(group).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        group = self.get_object()
        ser = StockGroupWriteSerializer(data=request.data, partial=partial)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        with transaction.atomic():
            if 'name' in data and data['name'] != group.name:
                group = StockGroupService.rename_group(
                    group_id=group.pk, name=data['name'], actor=request.user,
                )
            if 'synchronizable' in request.data:
                group = StockGroupService.set_synchronizable(
                    group_id=group.pk, synchronizable=data['synchronizable'], actor=request.user,
                )
        return Response(StockGroupReadSerializer(group).data)

    def destroy(self, request, pk=None):
        StockGroupService.delete_group(group_id=pk, actor=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['post'], url_path='synchronizable')
    def synchronizable(self, request, pk=None):
        ser = StockGroupSynchronizableSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        group = StockGroupService.set_synchronizable(
            group_id=pk,
            synchronizable=ser.validated_data['synchronizable'],
            actor=request.user,
        )
        return Response({'success': True, 'data': StockGroupReadSerializer(group).data})

    @action(detail=True, methods=['get'], url_path='stocks')
    def stocks(self, request, pk=None):
        group = self.get_object()
        ser = StockReadSerializer(group.stocks.select_related('group').order_by('name'), many=True)
        return Response({'success': True, 'data': ser.data})


class StockLocationViewSet(viewsets.ModelViewSet):
    """Stock locations. Deleting one removes its allocations and recomputes totals."""

    filterset_fields = ['group', 'group__synchronizable']
    search_fields = ['name']
    ordering_fields = ['name', 'created_at']
    ordering = ['name']

    def get_queryset(self):
        return Stock.objects.select_related('group')

    def get_serializer_class(self):
        if self.action in ('create', 'update', 'partial_update'):
            return StockWriteSerializer
        return StockReadSerializer

    def create(self, request, *args, **kwargs):
        ser = StockWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        location = StockLocationService.create_location(
            name=ser.validated_data['name'],
            group_id=ser.validated_data.get('group'),
            actor=request.user,
        )
        return Response(StockReadSerializer(location).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        location = self.get_object()
        ser = StockWriteSerializer(data=request.data, partial=partial)
        ser.is_valid(raise_exception=True)
        data = ser.validated_data
        with transaction.atomic():
            if 'name' in data and data['name'] != location.name:
                location = StockLocationService.rename_location(
                    stock_id=location.pk, name=data['name'], actor=request.user,
                )
            if 'group' in request.data or not partial:
                group_id = data.get('group')
                if group_id != location.group_id:
                    location = StockLocationService.assign_group(
                        stock_id=location.pk, group_id=group_id, actor=request.user,
                    )
        return Response(StockReadSerializer(location).data)

    def destroy(self, request, pk=None):
        StockLocationService.delete_location(stock_id=pk, actor=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)


class ProductStockViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """
    Allocation ledger. POST upserts on (product, stock): 201 when a row is
    created, 200 when an existing row is overwritten.
    """

    serializer_class = ProductStockReadSerializer
    filterset_fields = ['product', 'stock', 'stock__group']
    ordering_fields = ['quantity', 'updated_at']
    ordering = ['stock__name']

    def get_queryset(self):
        return ProductStock.objects.select_related('product', 'stock')

    def _respond(self, allocation, created):
        allocation = self.get_queryset().get(pk=allocation.pk)
        return Response(
            ProductStockReadSerializer(allocation).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    def create(self, request, *args, **kwargs):
        ser = ProductStockWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        allocation, created = ProductStockService.upsert(actor=request.user, **ser.validated_data)
        return self._respond(allocation, created)

    def partial_update(self, request, pk=None):
        current = self.get_object()
        ser = ProductStockQuantitySerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        allocation, created = ProductStockService.upsert(
            product_id=current.product_id,
            stock_id=current.stock_id,
            quantity=ser.validated_data['quantity'],
            actor=request.user,
        )
        return self._respond(allocation, created)

    def destroy(self, request, pk=None):
        ProductStockService.delete_by_id(allocation_id=pk, actor=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=['post'], url_path='remove')
    def remove(self, request):
        ser = ProductStockPairSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        ProductStockService.delete(actor=request.user, **ser.validated_data)
        return Response(status=status.HTTP_204_NO_CONTENT)


class LegacyStockProduitViewSet(
    mixins.ListModelMixin,
    mixins.RetrieveModelMixin,
    viewsets.GenericViewSet,
):
    """First-generation stock_produit API served from the canonical ledger."""

    serializer_class = LegacyStockProduitSerializer
    filter_backends = []

    def get_queryset(self):
        return (
            ProductStock.objects
            .filter(**to_canonical_filters(self.request.query_params))
            .order_by('created_at')
        )

    def create(self, request, *args, **kwargs):
        ser = LegacyStockProduitSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        allocation, created = ProductStockService.upsert(actor=request.user, **ser.validated_data)
        return Response(
            LegacyStockProduitSerializer(allocation).data,
            status=status.HTTP_201_CREATED if created else status.HTTP_200_OK,
        )

    def destroy(self, request, pk=None):
        ProductStockService.delete_by_id(allocation_id=pk, actor=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=['post'], url_path='remove')
    def remove(self, request):
        ser = LegacyStockProduitPairSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        ProductStockService.delete(actor=request.user, **ser.validated_data)
        return Response(status=status.HTTP_204_NO_CONTENT)
