"""
Products — Service Layer

Product CRUD plus the two calls the stock subsystem relies on:
product_exists() and the read-only get_total_stock(). Deleting a product
clears its stock ledger first.

@file products/services.py
"""

import logging

from django.db import transaction

from core.constants import AUDIT_ACTION_CREATE, AUDIT_ACTION_DELETE, AUDIT_ACTION_UPDATE
from core.db import translate_store_errors
from core.exceptions import DuplicateResourceError, ResourceNotFoundError
from core.services import AuditService

from .models import TOTAL_STOCK_FIELD, Product

logger = logging.getLogger('multistock')


class ProductService:

    @staticmethod
    def product_exists(product_id) -> bool:
        return Product.objects.filter(pk=product_id).exists()

    @staticmethod
    def get_total_stock(product_id) -> int:
        total = Product.objects.filter(pk=product_id).values_list(TOTAL_STOCK_FIELD, flat=True).first()
        if total is None:
            raise ResourceNotFoundError(detail='Product not found.')
        return total

    @staticmethod
    @translate_store_errors
    @transaction.atomic
    def create_product(*, actor=None, **fields) -> Product:
        fields.pop(TOTAL_STOCK_FIELD, None)
        if Product.objects.filter(sku=fields.get('sku')).exists():
            raise DuplicateResourceError(detail=f'SKU {fields.get("sku")} already exists.')
        actor = AuditService.actor_or_none(actor)
        product = Product(**fields)
        product.full_clean()
        product.created_by = actor
        product.updated_by = actor
        product.save()
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_CREATE,
            model_name='Product',
            object_id=str(product.pk),
            new_values=AuditService.snapshot(product),
        )
        return product

    @staticmethod
    @translate_store_errors
    @transaction.atomic
    def update_product(*, product_id, actor=None, **fields) -> Product:
        try:
            product = Product.objects.select_for_update().get(pk=product_id)
        except Product.DoesNotExist:
            raise ResourceNotFoundError()

        sku = fields.get('sku')
        if sku and Product.objects.filter(sku=sku).exclude(pk=product.pk).exists():
            raise DuplicateResourceError(detail=f'SKU {sku} already exists.')

        old_snapshot = AuditService.snapshot(product)
        for field, value in fields.items():
            if hasattr(product, field) and field not in ('id', 'pk', TOTAL_STOCK_FIELD):
                setattr(product, field, value)

        product.updated_by = AuditService.actor_or_none(actor)
        product.full_clean()
        product.save()
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_UPDATE,
            model_name='Product',
            object_id=str(product.pk),
            old_values=old_snapshot,
            new_values=AuditService.snapshot(product),
        )
        return product

    @staticmethod
    @translate_store_errors
    @transaction.atomic
    def delete_product(*, product_id, actor=None) -> bool:
        """Delete a product and its allocations. Returns False when absent."""
        from stock.services import ProductStockService

        if not Product.objects.filter(pk=product_id).exists():
            return False
        ProductStockService.delete_all_by_product(product_id=product_id, actor=actor)
        product = Product.objects.get(pk=product_id)
        old_values = AuditService.snapshot(product)
        product.delete()
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_DELETE,
            model_name='Product',
            object_id=str(product_id),
            old_values=old_values,
        )
        logger.info('Product %s deleted.', product_id)
        return True
