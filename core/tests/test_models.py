"""
Core — Model Tests

Tests for AuditLog and the audit service.

@file core/tests/test_models.py
"""

import pytest
from django.contrib.auth.models import AnonymousUser

from core.models import AuditLog
from core.services import AuditService
from tests.factories import ProductFactory, StockFactory, StockGroupFactory, UserFactory


@pytest.mark.django_db
class TestAuditLog:
    def test_create_audit_log(self):
        user = UserFactory()
        log = AuditService.log(
            actor=user,
            action=AuditLog.ActionChoices.CREATE,
            model_name='StockGroup',
            object_id='group-123',
            new_values={'name': 'Internet'},
        )
        assert log.pk is not None
        assert log.action == 'CREATE'
        assert log.actor == user

    def test_anonymous_actor_is_stored_as_null(self):
        log = AuditService.log(
            actor=AnonymousUser(),
            action=AuditLog.ActionChoices.DELETE,
            model_name='Stock',
            object_id='stock-1',
        )
        assert log.actor is None

    def test_snapshot_reduces_foreign_keys_to_pk(self):
        group = StockGroupFactory()
        location = StockFactory(group=group, name='eBay')
        snapshot = AuditService.snapshot(location)
        assert snapshot['name'] == 'eBay'
        assert snapshot['group'] == str(group.pk)

    def test_snapshot_skips_non_editable_fields(self):
        snapshot = AuditService.snapshot(ProductFactory(sku='PH-1'))
        assert snapshot['sku'] == 'PH-1'
        assert 'total_stock' not in snapshot
