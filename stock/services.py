"""
Stock — Service Layer

Location registry (StockGroupService, StockLocationService), the
allocation ledger (ProductStockService) and the aggregation engine
(TotalStockService).

Every ledger mutation runs as one transaction: lock the affected
product rows (sorted by pk), mutate ProductStock, then recompute each
affected product's total from the full SUM of its rows. Totals are
never adjusted by a delta.

@file stock/services.py
"""

import logging
from collections.abc import Iterable
from uuid import UUID

from django.conf import settings
from django.db import transaction
from django.db.models import Sum
from django.db.models.functions import Coalesce

from core.constants import (
    AUDIT_ACTION_CREATE,
    AUDIT_ACTION_DELETE,
    AUDIT_ACTION_STATUS_CHANGE,
    AUDIT_ACTION_UPDATE,
)
from core.db import translate_store_errors, unique_name_guard
from core.exceptions import (
    InvalidQuantityError,
    ResourceNotFoundError,
    UnknownReferenceError,
)
from core.services import AuditService
from products.models import Product

from .models import ProductStock, Stock, StockGroup

logger = logging.getLogger('multistock')


def _validate_quantity(quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidQuantityError(detail=f'Quantity must be an integer, got {quantity!r}.')
    if quantity < 0:
        raise InvalidQuantityError(detail=f'Quantity must be zero or positive, got {quantity}.')
    return quantity


def _lock_products(product_ids: Iterable) -> list[UUID]:
    """
    SELECT ... FOR UPDATE the given products in pk order and return the
    pks that still exist. Callers must be inside a transaction.
    """
    ids = {pid for pid in product_ids if pid is not None}
    if not ids:
        return []
    return list(
        Product.objects.select_for_update()
        .filter(pk__in=ids)
        .order_by('pk')
        .values_list('pk', flat=True),
    )


# ---------------------------------------------------------------------------
# Aggregation engine
# ---------------------------------------------------------------------------

class TotalStockService:
    """Sole writer of Product.total_stock."""

    @staticmethod
    def compute(product_id) -> int:
        """SUM(quantity) over the product's allocations, 0 when there are none."""
        return ProductStock.objects.filter(product_id=product_id).aggregate(
            total=Coalesce(Sum('quantity'), 0),
        )['total']

    @staticmethod
    def _recompute(product_id) -> tuple[int | None, int | None]:
        product = (
            Product.objects.select_for_update()
            .filter(pk=product_id)
            .only('pk', 'total_stock')
            .first()
        )
        if product is None:
            # Product deleted concurrently: its total is moot.
            logger.debug('recompute skipped, product %s no longer exists', product_id)
            return None, None
        total = TotalStockService.compute(product_id)
        if total != product.total_stock:
            Product.objects.filter(pk=product_id)._write_total_stock(total)
        return product.total_stock, total

    @staticmethod
    @transaction.atomic
    def recompute(product_id) -> int | None:
        """
        Re-read the full ledger sum for one product and store it. Joins the
        caller's transaction when there is one. Returns the new total, or
        None when the product does not exist.
        """
        _, total = TotalStockService._recompute(product_id)
        return total

    @staticmethod
    @transaction.atomic
    def recompute_many(product_ids: Iterable) -> dict:
        """Recompute each distinct product once, locking in pk order."""
        return {
            pid: TotalStockService.recompute(pid)
            for pid in sorted({pid for pid in product_ids if pid is not None}, key=str)
        }

    @staticmethod
    @translate_store_errors
    def reconcile_all(batch_size: int | None = None) -> int:
        """
        Repair pass over every product, one transaction per product.
        Returns the number of products whose cached total was wrong.
        """
        batch_size = batch_size or settings.STOCK_RECONCILE_BATCH_SIZE
        corrected = 0
        last_pk = None
        while True:
            qs = Product.objects.order_by('pk')
            if last_pk is not None:
                qs = qs.filter(pk__gt=last_pk)
            batch = list(qs.values_list('pk', flat=True)[:batch_size])
            if not batch:
                break
            for product_id in batch:
                with transaction.atomic():
                    before, after = TotalStockService._recompute(product_id)
                if after is not None and before != after:
                    corrected += 1
                    logger.warning(
                        'total_stock drift on product %s: cached=%s ledger=%s',
                        product_id, before, after,
                    )
            last_pk = batch[-1]
        logger.info('Reconciled total_stock: %d product(s) corrected.', corrected)
        return corrected


# ---------------------------------------------------------------------------
# Allocation ledger
# ---------------------------------------------------------------------------

class ProductStockService:
    """Per-location product quantities. Each write recomputes the product total."""

    @staticmethod
    def get_allocation(*, product_id, stock_id) -> ProductStock:
        try:
            return ProductStock.objects.select_related('stock').get(
                product_id=product_id, stock_id=stock_id,
            )
        except ProductStock.DoesNotExist:
            raise ResourceNotFoundError(detail='No stock recorded for this product at this location.')

    @staticmethod
    @translate_store_errors
    @transaction.atomic
    def upsert(*, product_id, stock_id, quantity, actor=None) -> tuple[ProductStock, bool]:
        """
        Set the quantity of a product at a location, inserting the row when
        it does not exist yet. Returns (allocation, created).
        """
        quantity = _validate_quantity(quantity)
        if not _lock_products([product_id]):
            raise UnknownReferenceError(detail=f'Unknown product: {product_id}.')
        # Product then location, the same order delete_all_by_stock locks in.
        if not Stock.objects.select_for_update().filter(pk=stock_id).exists():
            raise UnknownReferenceError(detail=f'Unknown stock location: {stock_id}.')

        actor = AuditService.actor_or_none(actor)
        allocation = (
            ProductStock.objects.select_for_update()
            .filter(product_id=product_id, stock_id=stock_id)
            .first()
        )
        created = allocation is None
        if created:
            allocation = ProductStock(
                product_id=product_id, stock_id=stock_id,
                quantity=quantity, created_by=actor, updated_by=actor,
            )
            allocation.save(force_insert=True)
        else:
            allocation.quantity = quantity
            allocation.updated_by = actor
            allocation.save(update_fields=['quantity', 'updated_by', 'updated_at'])

        total = TotalStockService.recompute(product_id)

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_CREATE if created else AUDIT_ACTION_UPDATE,
            model_name='ProductStock',
            object_id=str(allocation.pk),
            new_values={'product_id': str(product_id), 'stock_id': str(stock_id)},
        )
        logger.info(
            'ProductStock %s product=%s stock=%s qty=%s total=%s',
            'created' if created else 'updated', product_id, stock_id, quantity, total,
        )
        return allocation, created

    @staticmethod
    @translate_store_errors
    @transaction.atomic
    def delete(*, product_id, stock_id, actor=None) -> bool:
        """Remove the (product, location) row. Returns False when there was none."""
        if not _lock_products([product_id]):
            return False
        allocation = (
            ProductStock.objects.select_for_update()
            .filter(product_id=product_id, stock_id=stock_id)
            .first()
        )
        if allocation is None:
            return False

        ProductStock.objects.filter(pk=allocation.pk).delete()
        total = TotalStockService.recompute(product_id)

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_DELETE,
            model_name='ProductStock',
            object_id=str(allocation.pk),
            old_values={'product_id': str(product_id), 'stock_id': str(stock_id)},
        )
        logger.info('ProductStock deleted product=%s stock=%s total=%s', product_id, stock_id, total)
        return True

    @staticmethod
    def delete_by_id(*, allocation_id, actor=None) -> bool:
        row = (
            ProductStock.objects.filter(pk=allocation_id)
            .values('product_id', 'stock_id')
            .first()
        )
        if row is None:
            return False
        return ProductStockService.delete(actor=actor, **row)

    @staticmethod
    @translate_store_errors
    @transaction.atomic
    def delete_all_by_stock(*, stock_id, actor=None) -> list:
        """
        Remove every allocation held at a location and recompute each
        affected product once. Returns the affected product ids.
        """
        product_ids = set(
            ProductStock.objects.filter(stock_id=stock_id)
            .values_list('product_id', flat=True),
        )
        locked = set(_lock_products(product_ids))
        # Locking the location blocks inserts that reference it until we commit.
        if not Stock.objects.select_for_update().filter(pk=stock_id).exists():
            return []
        late = set(
            ProductStock.objects.filter(stock_id=stock_id)
            .values_list('product_id', flat=True),
        ) - locked
        locked.update(_lock_products(late))

        deleted, _ = ProductStock.objects.filter(stock_id=stock_id).delete()
        totals = TotalStockService.recompute_many(locked)

        if deleted:
            AuditService.log(
                actor=actor,
                action=AUDIT_ACTION_DELETE,
                model_name='ProductStock',
                object_id=str(stock_id),
                old_values={'stock_id': str(stock_id), 'rows': deleted},
            )
        logger.info(
            'Cleared %d allocation(s) at stock %s, %d product total(s) recomputed.',
            deleted, stock_id, len(totals),
        )
        return sorted(locked, key=str)

    @staticmethod
    @translate_store_errors
    @transaction.atomic
    def delete_all_by_product(*, product_id, actor=None) -> int:
        """Remove every allocation of a product. Returns the number of rows removed."""
        _lock_products([product_id])
        deleted, _ = ProductStock.objects.filter(product_id=product_id).delete()
        TotalStockService.recompute(product_id)
        if deleted:
            AuditService.log(
                actor=actor,
                action=AUDIT_ACTION_DELETE,
                model_name='ProductStock',
                object_id=str(product_id),
                old_values={'product_id': str(product_id), 'rows': deleted},
            )
        logger.info('Cleared %d allocation(s) of product %s.', deleted, product_id)
        return deleted


# ---------------------------------------------------------------------------
# Location registry & group catalog
# ---------------------------------------------------------------------------

class StockGroupService:
    """Groups of stock locations and their synchronizable flag."""

    @staticmethod
    def _get_for_update(group_id) -> StockGroup:
        try:
            return StockGroup.objects.select_for_update().get(pk=group_id)
        except StockGroup.DoesNotExist:
            raise ResourceNotFoundError(detail='Stock group not found.')

    @staticmethod
    @translate_store_errors
    @transaction.atomic
    def create_group(*, name: str, synchronizable: bool = False, actor=None) -> StockGroup:
        actor = AuditService.actor_or_none(actor)
        group = StockGroup(
            name=name, synchronizable=synchronizable,
            created_by=actor, updated_by=actor,
        )
        with unique_name_guard('Stock group', name):
            group.save(force_insert=True)
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_CREATE,
            model_name='StockGroup',
            object_id=str(group.pk),
            new_values=AuditService.snapshot(group),
        )
        logger.info('StockGroup %s created: %s (synchronizable=%s)', group.pk, name, synchronizable)
        return group

    @staticmethod
    @translate_store_errors
    @transaction.atomic
    def rename_group(*, group_id, name: str, actor=None) -> StockGroup:
        group = StockGroupService._get_for_update(group_id)
        old_name = group.name
        group.name = name
        group.updated_by = AuditService.actor_or_none(actor)
        with unique_name_guard('Stock group', name):
            group.save(update_fields=['name', 'updated_by', 'updated_at'])
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_UPDATE,
            model_name='StockGroup',
            object_id=str(group.pk),
            old_values={'name': old_name},
            new_values={'name': name},
        )
        return group

    @staticmethod
    @translate_store_errors
    @transaction.atomic
    def set_synchronizable(*, group_id, synchronizable: bool, actor=None) -> StockGroup:
        group = StockGroupService._get_for_update(group_id)
        old_value = group.synchronizable
        if old_value == synchronizable:
            return group
        group.synchronizable = synchronizable
        group.updated_by = AuditService.actor_or_none(actor)
        group.save(update_fields=['synchronizable', 'updated_by', 'updated_at'])
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_STATUS_CHANGE,
            model_name='StockGroup',
            object_id=str(group.pk),
            old_values={'synchronizable': old_value},
            new_values={'synchronizable': synchronizable},
        )
        logger.info('StockGroup %s synchronizable=%s', group.pk, synchronizable)
        return group

    @staticmethod
    @translate_store_errors
    @transaction.atomic
    def delete_group(*, group_id, actor=None) -> int:
        """
        Delete a group, detaching (not deleting) its locations.
        Returns the number of detached locations; 0 when the group is absent.
        """
        group = StockGroup.objects.select_for_update().filter(pk=group_id).first()
        if group is None:
            return 0
        detached = Stock.objects.filter(group_id=group_id).update(group=None)
        old_values = AuditService.snapshot(group)
        group.delete()
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_DELETE,
            model_name='StockGroup',
            object_id=str(group_id),
            old_values={**old_values, 'detached_stocks': detached},
        )
        logger.info('StockGroup %s deleted, %d location(s) detached.', group_id, detached)
        return detached


class StockLocationService:
    """Stock locations and their group membership."""

    @staticmethod
    def _check_group(group_id):
        if group_id is not None and not StockGroup.objects.filter(pk=group_id).exists():
            raise UnknownReferenceError(detail=f'Unknown stock group: {group_id}.')

    @staticmethod
    def _get_for_update(stock_id) -> Stock:
        try:
            return Stock.objects.select_for_update().get(pk=stock_id)
        except Stock.DoesNotExist:
            raise ResourceNotFoundError(detail='Stock location not found.')

    @staticmethod
    def synchronizable_locations():
        """Locations whose group takes part in external stock sync."""
        return Stock.objects.filter(group__synchronizable=True).select_related('group')

    @staticmethod
    @translate_store_errors
    @transaction.atomic
    def create_location(*, name: str, group_id=None, actor=None) -> Stock:
        StockLocationService._check_group(group_id)
        actor = AuditService.actor_or_none(actor)
        location = Stock(name=name, group_id=group_id, created_by=actor, updated_by=actor)
        with unique_name_guard('Stock location', name):
            location.save(force_insert=True)
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_CREATE,
            model_name='Stock',
            object_id=str(location.pk),
            new_values=AuditService.snapshot(location),
        )
        logger.info('Stock %s created: %s (group=%s)', location.pk, name, group_id)
        return location

    @staticmethod
    @translate_store_errors
    @transaction.atomic
    def rename_location(*, stock_id, name: str, actor=None) -> Stock:
        location = StockLocationService._get_for_update(stock_id)
        old_name = location.name
        location.name = name
        location.updated_by = AuditService.actor_or_none(actor)
        with unique_name_guard('Stock location', name):
            location.save(update_fields=['name', 'updated_by', 'updated_at'])
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_UPDATE,
            model_name='Stock',
            object_id=str(location.pk),
            old_values={'name': old_name},
            new_values={'name': name},
        )
        return location

    @staticmethod
    @translate_store_errors
    @transaction.atomic
    def assign_group(*, stock_id, group_id, actor=None) -> Stock:
        """Move a location into a group, or out of any group with group_id=None."""
        StockLocationService._check_group(group_id)
        location = StockLocationService._get_for_update(stock_id)
        old_group = location.group_id
        location.group_id = group_id
        location.updated_by = AuditService.actor_or_none(actor)
        location.save(update_fields=['group', 'updated_by', 'updated_at'])
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_UPDATE,
            model_name='Stock',
            object_id=str(location.pk),
            old_values={'group': str(old_group) if old_group else None},
            new_values={'group': str(group_id) if group_id else None},
        )
        return location

    @staticmethod
    @translate_store_errors
    @transaction.atomic
    def delete_location(*, stock_id, actor=None) -> list:
        """
        Delete a location and its allocations, recomputing every affected
        product total. Returns the affected product ids; [] when absent.
        """
        affected = ProductStockService.delete_all_by_stock(stock_id=stock_id, actor=actor)
        location = Stock.objects.filter(pk=stock_id).first()
        if location is None:
            return affected
        old_values = AuditService.snapshot(location)
        location.delete()
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_DELETE,
            model_name='Stock',
            object_id=str(stock_id),
            old_values=old_values,
        )
        logger.info('Stock %s deleted, %d product total(s) recomputed.', stock_id, len(affected))
        return affected
