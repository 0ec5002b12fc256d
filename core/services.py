"""
Core — Audit Service

Provides methods for writing audit log entries from any app.

@file core/services.py
"""

import logging
import uuid
from decimal import Decimal
from typing import Any

from core.models import AuditLog

logger = logging.getLogger('clinicstock')


def _json_safe(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return str(value)
    if hasattr(value, 'isoformat'):
        return value.isoformat()
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [str(v.pk) if hasattr(v, 'pk') else v for v in value]
    return value


class AuditService:
    """Centralised audit logging for every write operation."""

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
        if actor is not None and not getattr(actor, 'is_authenticated', False):
            actor = None
        return AuditLog.objects.create(
            actor=actor,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            old_values=old_values,
            new_values=new_values,
        )

    @staticmethod
    def snapshot(instance, fields=None) -> dict[str, Any]:
        """
        Serialise a model instance to a plain dict suitable for JSON
        storage. Every concrete column is included, non-editable ones
        (id, timestamps) too; foreign keys are stored as their PK.
        DateTimes are ISO-formatted and UUIDs stringified.
        """
        return {
            f.name: _json_safe(f.value_from_object(instance))
            for f in instance._meta.concrete_fields
            if fields is None or f.name in fields
        }

    @staticmethod
    def snapshot_row(row: dict[str, Any], fields=None) -> dict[str, Any]:
        """Same as snapshot(), for a record store row."""
        return {
            key: _json_safe(value)
            for key, value in row.items()
            if fields is None or key in fields
        }
