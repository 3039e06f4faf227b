"""
Products — Serializers

total_stock (and its legacy alias stock_total) are read-only everywhere;
no write serializer exposes them.

@file products/serializers.py
"""

from rest_framework import serializers

from stock.models import ProductStock

from .models import Product


class ProductReadSerializer(serializers.ModelSerializer):
    stock_total = serializers.IntegerField(read_only=True)

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'sku',
            'total_stock', 'stock_total',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields


class ProductWriteSerializer(serializers.ModelSerializer):
    class Meta:
        model = Product
        fields = ['name', 'sku']
        # Uniqueness is checked by ProductService to keep a single error path.
        extra_kwargs = {'sku': {'validators': []}}

    def validate_sku(self, value):
        return value.strip().upper()


class ProductStockBreakdownSerializer(serializers.ModelSerializer):
    stock_name = serializers.CharField(source='stock.name', read_only=True)
    group = serializers.UUIDField(source='stock.group_id', read_only=True)
    synchronizable = serializers.BooleanField(source='stock.is_synchronizable', read_only=True)

    class Meta:
        model = ProductStock
        fields = ['id', 'stock', 'stock_name', 'group', 'synchronizable', 'quantity', 'updated_at']
        read_only_fields = fields
