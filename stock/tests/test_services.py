"""
Tests — stock services: group/location registry, allocation ledger and
total-stock recomputation. Total must equal SUM(quantity) after every
committed mutation; rejected or failed mutations change nothing.

@file stock/tests/test_services.py
"""

import uuid
from unittest.mock import patch

import pytest
from django.db import OperationalError

from core.exceptions import (
    DuplicateNameError,
    InvalidQuantityError,
    ResourceNotFoundError,
    StoreUnavailableError,
    UnknownReferenceError,
)
from core.models import AuditLog
from products.models import Product
from stock.models import ProductStock, Stock, StockGroup
from stock.services import (
    ProductStockService,
    StockGroupService,
    StockLocationService,
    TotalStockService,
)
from tests.factories import (
    ProductFactory,
    ProductStockFactory,
    StockFactory,
    StockGroupFactory,
    UserFactory,
)


pytestmark = pytest.mark.django_db


def _total(product):
    product.refresh_from_db()
    return product.total_stock


def _ledger_sum(product):
    return sum(ProductStock.objects.filter(product=product).values_list('quantity', flat=True))


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------

class TestStockGroupService:

    def test_create_group(self):
        group = StockGroupService.create_group(name='Internet', synchronizable=True)
        assert group.pk is not None
        assert group.synchronizable is True

    def test_synchronizable_defaults_to_false(self):
        group = StockGroupService.create_group(name='SAV')
        assert group.synchronizable is False

    def test_duplicate_name_raises(self):
        StockGroupService.create_group(name='Internet')
        with pytest.raises(DuplicateNameError):
            StockGroupService.create_group(name='Internet')
        assert StockGroup.objects.filter(name='Internet').count() == 1

    def test_rename_group(self):
        group = StockGroupFactory(name='Old')
        renamed = StockGroupService.rename_group(group_id=group.pk, name='New')
        assert renamed.name == 'New'

    def test_rename_collision_raises(self):
        StockGroupFactory(name='Taken')
        group = StockGroupFactory(name='Mine')
        with pytest.raises(DuplicateNameError):
            StockGroupService.rename_group(group_id=group.pk, name='Taken')
        group.refresh_from_db()
        assert group.name == 'Mine'

    def test_rename_missing_group_raises(self):
        with pytest.raises(ResourceNotFoundError):
            StockGroupService.rename_group(group_id=uuid.uuid4(), name='X')

    def test_set_synchronizable_is_audited(self):
        group = StockGroupFactory(synchronizable=False)
        StockGroupService.set_synchronizable(
            group_id=group.pk, synchronizable=True, actor=UserFactory(),
        )
        group.refresh_from_db()
        assert group.synchronizable is True
        log = AuditLog.objects.get(model_name='StockGroup', object_id=str(group.pk))
        assert log.action == AuditLog.ActionChoices.STATUS_CHANGE
        assert log.new_values == {'synchronizable': True}

    def test_delete_group_detaches_locations(self):
        group = StockGroupFactory()
        first = StockFactory(group=group)
        second = StockFactory(group=group)
        detached = StockGroupService.delete_group(group_id=group.pk)
        assert detached == 2
        assert not StockGroup.objects.filter(pk=group.pk).exists()
        first.refresh_from_db()
        second.refresh_from_db()
        assert first.group_id is None
        assert second.group_id is None

    def test_delete_group_keeps_allocations_and_totals(self):
        group = StockGroupFactory()
        location = StockFactory(group=group)
        product = ProductFactory()
        ProductStockService.upsert(product_id=product.pk, stock_id=location.pk, quantity=6)
        StockGroupService.delete_group(group_id=group.pk)
        assert ProductStock.objects.filter(stock=location).count() == 1
        assert _total(product) == 6

    def test_delete_missing_group_is_noop(self):
        assert StockGroupService.delete_group(group_id=uuid.uuid4()) == 0


# ---------------------------------------------------------------------------
# Locations
# ---------------------------------------------------------------------------

class TestStockLocationService:

    def test_create_location_without_group(self):
        location = StockLocationService.create_location(name='Stock Principal')
        assert location.group_id is None

    def test_create_location_in_group(self):
        group = StockGroupFactory()
        location = StockLocationService.create_location(name='eBay', group_id=group.pk)
        assert location.group_id == group.pk

    def test_create_location_unknown_group_raises(self):
        with pytest.raises(UnknownReferenceError):
            StockLocationService.create_location(name='eBay', group_id=uuid.uuid4())
        assert not Stock.objects.filter(name='eBay').exists()

    def test_create_location_duplicate_name_raises(self):
        StockFactory(name='eBay')
        with pytest.raises(DuplicateNameError):
            StockLocationService.create_location(name='eBay')

    def test_rename_collision_raises(self):
        StockFactory(name='Taken')
        location = StockFactory(name='Mine')
        with pytest.raises(DuplicateNameError):
            StockLocationService.rename_location(stock_id=location.pk, name='Taken')

    def test_assign_and_clear_group(self):
        group = StockGroupFactory()
        location = StockFactory()
        StockLocationService.assign_group(stock_id=location.pk, group_id=group.pk)
        location.refresh_from_db()
        assert location.group_id == group.pk
        StockLocationService.assign_group(stock_id=location.pk, group_id=None)
        location.refresh_from_db()
        assert location.group_id is None

    def test_assign_unknown_group_raises(self):
        location = StockFactory()
        with pytest.raises(UnknownReferenceError):
            StockLocationService.assign_group(stock_id=location.pk, group_id=uuid.uuid4())

    def test_synchronizable_locations(self):
        online = StockGroupFactory(synchronizable=True)
        repair = StockGroupFactory(synchronizable=False)
        ebay = StockFactory(group=online)
        StockFactory(group=repair)
        StockFactory()
        assert list(StockLocationService.synchronizable_locations()) == [ebay]

    def test_delete_location_cascades_and_recomputes(self):
        """(p, l1, 3) + (p, l2, 4) = 7; deleting l1 leaves 4."""
        product = ProductFactory()
        l1, l2 = StockFactory(), StockFactory()
        ProductStockService.upsert(product_id=product.pk, stock_id=l1.pk, quantity=3)
        ProductStockService.upsert(product_id=product.pk, stock_id=l2.pk, quantity=4)
        assert _total(product) == 7

        affected = StockLocationService.delete_location(stock_id=l1.pk)

        assert affected == [product.pk]
        assert not Stock.objects.filter(pk=l1.pk).exists()
        assert not ProductStock.objects.filter(stock_id=l1.pk).exists()
        assert _total(product) == 4

    def test_delete_location_recomputes_every_affected_product(self):
        location, other = StockFactory(), StockFactory()
        products = ProductFactory.create_batch(3)
        for i, product in enumerate(products, start=1):
            ProductStockService.upsert(product_id=product.pk, stock_id=location.pk, quantity=i * 10)
            ProductStockService.upsert(product_id=product.pk, stock_id=other.pk, quantity=i)
        StockLocationService.delete_location(stock_id=location.pk)
        assert [_total(p) for p in products] == [1, 2, 3]

    def test_delete_location_recomputes_each_product_once(self):
        location = StockFactory()
        products = ProductFactory.create_batch(2)
        for product in products:
            ProductStockService.upsert(product_id=product.pk, stock_id=location.pk, quantity=5)
        with patch.object(
            TotalStockService, 'recompute', wraps=TotalStockService.recompute,
        ) as spy:
            StockLocationService.delete_location(stock_id=location.pk)
        assert spy.call_count == 2

    def test_delete_missing_location_is_noop(self):
        assert StockLocationService.delete_location(stock_id=uuid.uuid4()) == []


# ---------------------------------------------------------------------------
# Allocation ledger
# ---------------------------------------------------------------------------

class TestProductStockUpsert:

    def test_round_trip(self):
        product, location = ProductFactory(), StockFactory()
        allocation, created = ProductStockService.upsert(
            product_id=product.pk, stock_id=location.pk, quantity=5,
        )
        assert created is True
        row = ProductStockService.get_allocation(product_id=product.pk, stock_id=location.pk)
        assert row.pk == allocation.pk
        assert row.quantity == 5
        assert _total(product) == 5

    def test_overwrite_not_sum(self):
        product, location = ProductFactory(), StockFactory()
        ProductStockService.upsert(product_id=product.pk, stock_id=location.pk, quantity=5)
        _, created = ProductStockService.upsert(product_id=product.pk, stock_id=location.pk, quantity=9)
        assert created is False
        rows = ProductStock.objects.filter(product=product, stock=location)
        assert rows.count() == 1
        assert rows.get().quantity == 9
        assert _total(product) == 9

    def test_zero_quantity_allowed(self):
        product, location = ProductFactory(), StockFactory()
        ProductStockService.upsert(product_id=product.pk, stock_id=location.pk, quantity=4)
        ProductStockService.upsert(product_id=product.pk, stock_id=location.pk, quantity=0)
        assert ProductStock.objects.filter(product=product).count() == 1
        assert _total(product) == 0

    def test_negative_quantity_rejected_and_nothing_changes(self):
        product, location = ProductFactory(), StockFactory()
        ProductStockService.upsert(product_id=product.pk, stock_id=location.pk, quantity=2)
        with pytest.raises(InvalidQuantityError):
            ProductStockService.upsert(product_id=product.pk, stock_id=location.pk, quantity=-1)
        assert ProductStock.objects.get(product=product, stock=location).quantity == 2
        assert _total(product) == 2

    @pytest.mark.parametrize('quantity', ['5', 2.5, True, None])
    def test_non_integer_quantity_rejected(self, quantity):
        product, location = ProductFactory(), StockFactory()
        with pytest.raises(InvalidQuantityError):
            ProductStockService.upsert(product_id=product.pk, stock_id=location.pk, quantity=quantity)
        assert not ProductStock.objects.exists()

    def test_unknown_product_raises(self):
        location = StockFactory()
        with pytest.raises(UnknownReferenceError):
            ProductStockService.upsert(product_id=uuid.uuid4(), stock_id=location.pk, quantity=1)
        assert not ProductStock.objects.exists()

    def test_unknown_location_raises(self):
        product = ProductFactory()
        with pytest.raises(UnknownReferenceError):
            ProductStockService.upsert(product_id=product.pk, stock_id=uuid.uuid4(), quantity=1)
        assert _total(product) == 0

    def test_deleted_location_raises_unknown_reference(self):
        product, location = ProductFactory(), StockFactory()
        ProductStockService.upsert(product_id=product.pk, stock_id=location.pk, quantity=2)
        StockLocationService.delete_location(stock_id=location.pk)
        with pytest.raises(UnknownReferenceError):
            ProductStockService.upsert(product_id=product.pk, stock_id=location.pk, quantity=4)
        assert not ProductStock.objects.exists()
        assert _total(product) == 0

    def test_audit_rows_carry_no_quantities(self):
        product, location = ProductFactory(), StockFactory()
        for quantity in (5, 9, 2):
            ProductStockService.upsert(product_id=product.pk, stock_id=location.pk, quantity=quantity)
        ProductStockService.delete(product_id=product.pk, stock_id=location.pk)
        logs = AuditLog.objects.filter(model_name='ProductStock')
        assert logs.count() == 4
        for log in logs:
            assert 'quantity' not in (log.old_values or {})
            assert 'quantity' not in (log.new_values or {})

    def test_totals_are_independent_per_product(self):
        location = StockFactory()
        first, second = ProductFactory(), ProductFactory()
        ProductStockService.upsert(product_id=first.pk, stock_id=location.pk, quantity=3)
        ProductStockService.upsert(product_id=second.pk, stock_id=location.pk, quantity=8)
        assert _total(first) == 3
        assert _total(second) == 8

    def test_both_commit_orders_converge(self):
        l1, l2 = StockFactory(), StockFactory()
        first, second = ProductFactory(), ProductFactory()
        ProductStockService.upsert(product_id=first.pk, stock_id=l1.pk, quantity=3)
        ProductStockService.upsert(product_id=first.pk, stock_id=l2.pk, quantity=4)
        ProductStockService.upsert(product_id=second.pk, stock_id=l2.pk, quantity=4)
        ProductStockService.upsert(product_id=second.pk, stock_id=l1.pk, quantity=3)
        assert _total(first) == _total(second) == 7

    def test_store_failure_rolls_back_ledger_write(self):
        product, location = ProductFactory(), StockFactory()
        with patch.object(
            TotalStockService, 'recompute', side_effect=OperationalError('connection lost'),
        ):
            with pytest.raises(StoreUnavailableError):
                ProductStockService.upsert(product_id=product.pk, stock_id=location.pk, quantity=5)
        assert not ProductStock.objects.exists()
        assert not AuditLog.objects.filter(model_name='ProductStock').exists()
        assert _total(product) == 0

    def test_upsert_is_audited_with_actor(self):
        actor = UserFactory()
        product, location = ProductFactory(), StockFactory()
        allocation, _ = ProductStockService.upsert(
            product_id=product.pk, stock_id=location.pk, quantity=5, actor=actor,
        )
        ProductStockService.upsert(
            product_id=product.pk, stock_id=location.pk, quantity=7, actor=actor,
        )
        logs = {log.action: log for log in AuditLog.objects.filter(object_id=str(allocation.pk))}
        assert set(logs) == {'CREATE', 'UPDATE'}
        assert all(log.actor_id == actor.pk for log in logs.values())
        assert logs['UPDATE'].new_values == {
            'product_id': str(product.pk), 'stock_id': str(location.pk),
        }
        allocation.refresh_from_db()
        assert allocation.created_by_id == actor.pk


class TestProductStockDelete:

    def test_delete_recomputes(self):
        product = ProductFactory()
        l1, l2 = StockFactory(), StockFactory()
        ProductStockService.upsert(product_id=product.pk, stock_id=l1.pk, quantity=3)
        ProductStockService.upsert(product_id=product.pk, stock_id=l2.pk, quantity=4)
        assert ProductStockService.delete(product_id=product.pk, stock_id=l1.pk) is True
        assert _total(product) == 4

    def test_delete_last_row_gives_zero(self):
        product, location = ProductFactory(), StockFactory()
        ProductStockService.upsert(product_id=product.pk, stock_id=location.pk, quantity=3)
        ProductStockService.delete(product_id=product.pk, stock_id=location.pk)
        assert _total(product) == 0

    def test_delete_absent_is_noop(self):
        product, location = ProductFactory(), StockFactory()
        assert ProductStockService.delete(product_id=product.pk, stock_id=location.pk) is False
        assert ProductStockService.delete(product_id=uuid.uuid4(), stock_id=location.pk) is False

    def test_delete_by_id(self):
        product, location = ProductFactory(), StockFactory()
        allocation, _ = ProductStockService.upsert(product_id=product.pk, stock_id=location.pk, quantity=3)
        assert ProductStockService.delete_by_id(allocation_id=allocation.pk) is True
        assert ProductStockService.delete_by_id(allocation_id=allocation.pk) is False
        assert _total(product) == 0

    def test_get_missing_allocation_raises(self):
        with pytest.raises(ResourceNotFoundError):
            ProductStockService.get_allocation(product_id=uuid.uuid4(), stock_id=uuid.uuid4())

    def test_delete_all_by_product(self):
        product = ProductFactory()
        for quantity in (1, 2, 3):
            ProductStockService.upsert(product_id=product.pk, stock_id=StockFactory().pk, quantity=quantity)
        assert _total(product) == 6
        assert ProductStockService.delete_all_by_product(product_id=product.pk) == 3
        assert _total(product) == 0

    def test_delete_all_by_stock_leaves_other_locations(self):
        product = ProductFactory()
        keep, drop = StockFactory(), StockFactory()
        ProductStockService.upsert(product_id=product.pk, stock_id=keep.pk, quantity=2)
        ProductStockService.upsert(product_id=product.pk, stock_id=drop.pk, quantity=5)
        ProductStockService.delete_all_by_stock(stock_id=drop.pk)
        assert Stock.objects.filter(pk=drop.pk).exists()
        assert _total(product) == 2


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------

class TestTotalStockService:

    def test_compute_empty_is_zero(self):
        assert TotalStockService.compute(ProductFactory().pk) == 0

    def test_recompute_is_idempotent(self):
        product = ProductFactory()
        ProductStockFactory(product=product, quantity=4)
        ProductStockFactory(product=product, quantity=6)
        assert TotalStockService.recompute(product.pk) == 10
        assert TotalStockService.recompute(product.pk) == 10
        assert _total(product) == 10

    def test_recompute_missing_product_is_noop(self):
        assert TotalStockService.recompute(uuid.uuid4()) is None

    def test_recompute_many(self):
        first, second = ProductFactory(), ProductFactory()
        ProductStockFactory(product=first, quantity=1)
        ProductStockFactory(product=second, quantity=2)
        totals = TotalStockService.recompute_many([first.pk, second.pk, first.pk])
        assert totals == {first.pk: 1, second.pk: 2}

    def test_reconcile_all_repairs_drift(self):
        drifted = ProductFactory()
        clean = ProductFactory()
        ProductStockFactory(product=drifted, quantity=12)
        ProductStockService.upsert(product_id=clean.pk, stock_id=StockFactory().pk, quantity=3)

        corrected = TotalStockService.reconcile_all(batch_size=1)

        assert corrected == 1
        assert _total(drifted) == 12
        assert _total(clean) == 3

    def test_invariant_after_mixed_mutations(self):
        products = ProductFactory.create_batch(3)
        locations = StockFactory.create_batch(4)
        for i, product in enumerate(products):
            for j, location in enumerate(locations):
                ProductStockService.upsert(product_id=product.pk, stock_id=location.pk, quantity=i + j)
        ProductStockService.upsert(product_id=products[0].pk, stock_id=locations[0].pk, quantity=50)
        ProductStockService.delete(product_id=products[1].pk, stock_id=locations[2].pk)
        StockLocationService.delete_location(stock_id=locations[3].pk)
        ProductStockService.delete_all_by_product(product_id=products[2].pk)

        for product in Product.objects.all():
            assert product.total_stock == _ledger_sum(product)
