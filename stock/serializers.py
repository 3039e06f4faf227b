"""
Stock — Serializers

Read serializers are ModelSerializers; write serializers are plain
Serializers whose validated_data maps onto service keyword arguments.
Name uniqueness and reference existence are checked by the services so
that clients always get DUPLICATE_NAME / UNKNOWN_REFERENCE codes.

@file stock/serializers.py
"""

from rest_framework import serializers

from .models import ProductStock, Stock, StockGroup


# ---------------------------------------------------------------------------
# StockGroup
# ---------------------------------------------------------------------------

class StockGroupReadSerializer(serializers.ModelSerializer):
    stocks_count = serializers.SerializerMethodField()

    class Meta:
        model = StockGroup
        fields = ['id', 'name', 'synchronizable', 'stocks_count', 'created_at', 'updated_at']
        read_only_fields = fields

    def get_stocks_count(self, obj):
        return obj.stocks.count()


class StockGroupWriteSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=150)
    synchronizable = serializers.BooleanField(required=False, default=False)

    def validate_name(self, value):
        return value.strip()


class StockGroupSynchronizableSerializer(serializers.Serializer):
    synchronizable = serializers.BooleanField()


# ---------------------------------------------------------------------------
# Stock (location)
# ---------------------------------------------------------------------------

class StockReadSerializer(serializers.ModelSerializer):
    group_name = serializers.CharField(source='group.name', read_only=True)
    synchronizable = serializers.BooleanField(source='is_synchronizable', read_only=True)

    class Meta:
        model = Stock
        fields = ['id', 'name', 'group', 'group_name', 'synchronizable', 'created_at', 'updated_at']
        read_only_fields = fields


class StockWriteSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=150)
    group = serializers.UUIDField(required=False, allow_null=True, default=None)

    def validate_name(self, value):
        return value.strip()


# ---------------------------------------------------------------------------
# ProductStock (allocation)
# ---------------------------------------------------------------------------

class ProductStockReadSerializer(serializers.ModelSerializer):
    product_name = serializers.CharField(source='product.name', read_only=True)
    stock_name = serializers.CharField(source='stock.name', read_only=True)
    product_total_stock = serializers.IntegerField(source='product.total_stock', read_only=True)

    class Meta:
        model = ProductStock
        fields = [
            'id', 'product', 'product_name', 'stock', 'stock_name',
            'quantity', 'product_total_stock',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields


class ProductStockWriteSerializer(serializers.Serializer):
    """Upsert payload. Negative quantities are rejected by the service."""

    product = serializers.UUIDField(source='product_id')
    stock = serializers.UUIDField(source='stock_id')
    quantity = serializers.IntegerField()


class ProductStockQuantitySerializer(serializers.Serializer):
    quantity = serializers.IntegerField()


class ProductStockPairSerializer(serializers.Serializer):
    product = serializers.UUIDField(source='product_id')
    stock = serializers.UUIDField(source='stock_id')
