"""
Core — Audit Service

Writes audit log entries on behalf of the app service layers.

@file core/services.py
"""

from typing import Any

from django.forms.models import model_to_dict

from core.models import AuditLog


class AuditService:
    """Centralised audit logging for service-layer writes."""

    @staticmethod
    def actor_or_none(actor):
        """Anonymous principals are recorded as NULL."""
        if actor is None or not getattr(actor, 'is_authenticated', False):
            return None
        return actor

    @staticmethod
    def log(
        *,
        actor,
        action: str,
        model_name: str,
        object_id: str,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
    ) -> AuditLog:
        return AuditLog.objects.create(
            actor=AuditService.actor_or_none(actor),
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            old_values=old_values,
            new_values=new_values,
        )

    @staticmethod
    def snapshot(instance, fields=None) -> dict[str, Any]:
        """
        Serialise a model instance to a JSON-safe dict. UUIDs and
        datetimes are stringified; foreign keys reduce to their pk.
        """
        data = model_to_dict(instance, fields=fields)
        cleaned: dict[str, Any] = {}
        for key, value in data.items():
            if value is None or isinstance(value, (bool, int, str)):
                cleaned[key] = value
            elif hasattr(value, 'isoformat'):
                cleaned[key] = value.isoformat()
            elif hasattr(value, 'pk'):
                cleaned[key] = str(value.pk)
            else:
                cleaned[key] = str(value)
        return cleaned
