"""
Core — Record Store

Generic create/read/update/delete by table name and equality filters.
The stock and purchase ledgers only talk to this interface, so they run
unchanged against the Django ORM or any backend with equivalent
semantics (e.g. a hosted REST table API without multi-statement
transactions).

@file core/store.py
"""

import contextlib
import logging
from typing import Any, Iterable, Protocol

from django.apps import apps
from django.conf import settings
from django.core.exceptions import FieldError, ValidationError
from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

logger = logging.getLogger('clinicstock')

Row = dict[str, Any]


class RecordStoreError(Exception):
    """A single store call failed."""

    def __init__(self, table: str, operation: str, cause: Any = None):
        self.table = table
        self.operation = operation
        self.cause = cause
        super().__init__(f'{operation} on {table} failed: {cause}')


class RecordConflict(RecordStoreError):
    """A write violated a table constraint (unique name, non-negative quantity)."""


class RecordStore(Protocol):
    transactional: bool

    def atomic(self) -> contextlib.AbstractContextManager: ...

    def select(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        *,
        order: Iterable[str] | None = None,
        limit: int | None = None,
    ) -> list[Row]: ...

    def insert(self, table: str, rows: Row | list[Row]) -> list[Row]: ...

    def update(self, table: str, patch: Row, filters: dict[str, Any]) -> list[Row]: ...

    def delete(self, table: str, filters: dict[str, Any]) -> int: ...


class DjangoRecordStore:
    """
    RecordStore backed by the Django ORM.

    A table name resolves to the installed model with that db_table. Each
    call runs inside its own savepoint, so a failed call leaves the
    connection usable for the compensating calls that follow it.

    With transactional=False the store behaves like a hosted table API:
    atomic() is a no-op and every call commits on its own.
    """

    def __init__(self, transactional: bool = False):
        self.transactional = transactional

    def atomic(self):
        if self.transactional:
            return transaction.atomic()
        return contextlib.nullcontext()

    # --- helpers ---

    @staticmethod
    def _model(table: str, operation: str):
        for model in apps.get_models():
            if model._meta.db_table == table:
                return model
        raise RecordStoreError(table, operation, 'unknown table')

    @staticmethod
    def _run(table: str, operation: str, fn):
        try:
            with transaction.atomic():
                return fn()
        except IntegrityError as exc:
            logger.warning('Record store %s on %s hit a constraint: %s', operation, table, exc)
            raise RecordConflict(table, operation, exc) from exc
        except (DatabaseError, FieldError, ValidationError, ValueError, TypeError) as exc:
            logger.warning('Record store %s on %s failed: %s', operation, table, exc)
            raise RecordStoreError(table, operation, exc) from exc

    @staticmethod
    def _require_filters(table: str, operation: str, filters) -> None:
        if not filters:
            raise ValueError(f'{operation} on {table} requires at least one filter.')

    # --- operations ---

    def select(self, table, filters=None, *, order=None, limit=None) -> list[Row]:
        model = self._model(table, 'select')

        def _select():
            qs = model.objects.filter(**(filters or {}))
            if order:
                qs = qs.order_by(*order)
            if limit is not None:
                qs = qs[:limit]
            return list(qs.values())

        return self._run(table, 'select', _select)

    def insert(self, table, rows) -> list[Row]:
        model = self._model(table, 'insert')
        if isinstance(rows, dict):
            rows = [rows]

        def _insert():
            pks = []
            for row in rows:
                instance = model(**row)
                instance.full_clean(validate_unique=False, validate_constraints=False)
                instance.save(force_insert=True)
                pks.append(instance.pk)
            created = {r['id']: r for r in model.objects.filter(pk__in=pks).values()}
            return [created[pk] for pk in pks]

        return self._run(table, 'insert', _insert)

    def update(self, table, patch, filters) -> list[Row]:
        model = self._model(table, 'update')
        self._require_filters(table, 'update', filters)
        patch = dict(patch)
        if any(f.name == 'updated_at' for f in model._meta.get_fields()):
            patch.setdefault('updated_at', timezone.now())

        def _update():
            pks = list(
                model.objects.select_for_update().filter(**filters).values_list('pk', flat=True),
            )
            if not pks:
                return []
            if not model.objects.filter(pk__in=pks, **filters).update(**patch):
                return []
            return list(model.objects.filter(pk__in=pks).values())

        return self._run(table, 'update', _update)

    def delete(self, table, filters) -> int:
        model = self._model(table, 'delete')
        self._require_filters(table, 'delete', filters)

        def _delete():
            deleted, per_model = model.objects.filter(**filters).delete()
            return per_model.get(model._meta.label, 0)

        return self._run(table, 'delete', _delete)


def get_record_store() -> DjangoRecordStore:
    """Store configured from settings; injected into ledgers by the API views."""
    return DjangoRecordStore(
        transactional=getattr(settings, 'RECORD_STORE_TRANSACTIONAL', True),
    )
