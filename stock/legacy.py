"""
Stock — Legacy Adapter

Older clients still speak the first-generation schema:
``stock_produit(produit_id, stock_id, quantite)`` and
``products.stock_total``. This module only renames fields at the API
boundary; every request is served by ProductStockService on the
canonical ProductStock model.

@file stock/legacy.py
"""

from rest_framework import serializers

LEGACY_FIELD_MAP = {
    'produit_id': 'product_id',
    'stock_id': 'stock_id',
    'quantite': 'quantity',
}


def to_canonical_filters(query_params) -> dict:
    """Translate legacy query-string filters into ProductStock lookups."""
    return {
        LEGACY_FIELD_MAP[key]: value
        for key, value in query_params.items()
        if key in LEGACY_FIELD_MAP and key != 'quantite' and value
    }


class LegacyStockProduitSerializer(serializers.Serializer):
    """
    Reads a ProductStock as a stock_produit row; on write, validated_data
    carries canonical keys (product_id, stock_id, quantity).
    """

    id = serializers.UUIDField(read_only=True)
    produit_id = serializers.UUIDField(source='product_id')
    stock_id = serializers.UUIDField()
    quantite = serializers.IntegerField(source='quantity')
    created_at = serializers.DateTimeField(read_only=True)
    updated_at = serializers.DateTimeField(read_only=True)


class LegacyStockProduitPairSerializer(serializers.Serializer):
    produit_id = serializers.UUIDField(source='product_id')
    stock_id = serializers.UUIDField()
