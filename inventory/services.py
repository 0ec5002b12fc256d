"""
Inventory — Service Layer

StockLedger moves quantities between master and pharmacy inventory through
an injected record store: upsert_quantity (find by medicine name, add delta
or insert) and transfer_to_pharmacy (log, debit master, credit pharmacy).

Every quantity write is conditional on the previously read quantity, so a
concurrent change fails the operation with ConflictError instead of being
overwritten. When the store has no multi-statement transactions each step
that follows a mutation compensates the preceding one on failure, best
effort; a failed compensation is logged and reported as compensated=False.

InventoryService and TransferLogService cover manual maintenance of stock
lines and of the transfer log.

@file inventory/services.py
"""

import calendar
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from django.db import transaction
from django.db.models import Count, F, Max, Q, Sum
from django.utils import timezone

from core.constants import (
    AUDIT_ACTION_CREATE,
    AUDIT_ACTION_DELETE,
    AUDIT_ACTION_UPDATE,
    INVENTORY_MASTER,
    INVENTORY_PHARMACY,
    INVENTORY_TABLES,
    MASTER_INVENTORY_TABLE,
    PHARMACY_INVENTORY_TABLE,
    TRANSFERS_TABLE,
)
from core.exceptions import (
    BusinessRuleViolation,
    ConflictError,
    DestinationUpdateFailed,
    DuplicateResourceError,
    InsufficientStockError,
    LogWriteFailed,
    ResourceNotFoundError,
    SourceUpdateFailed,
    StepFailedError,
)
from core.services import AuditService
from core.store import RecordConflict, RecordStore, RecordStoreError, Row, get_record_store

from .models import MasterInventory, PharmacyInventory, Transfer

logger = logging.getLogger('clinicstock')

# Fields a destination row mirrors from its master row on every transfer.
CLASSIFICATION_FIELDS = ('category', 'location', 'stock_book_page_number')

INVENTORY_MODELS = {
    MASTER_INVENTORY_TABLE: MasterInventory,
    PHARMACY_INVENTORY_TABLE: PharmacyInventory,
}


@dataclass(frozen=True)
class UpsertOutcome:
    row: Row
    created: bool


@dataclass(frozen=True)
class TransferResult:
    transfer: Row
    source: Row
    destination: Row
    destination_created: bool


def _present(values: dict[str, Any] | None) -> dict[str, Any]:
    return {key: value for key, value in (values or {}).items() if value is not None}


class StockLedger:
    """Balance-moving operations over master and pharmacy inventory."""

    def __init__(self, store: RecordStore | None = None):
        self.store = store if store is not None else get_record_store()

    # --- upsert primitive ---

    def upsert_quantity(
        self,
        table: str,
        medicine_name: str,
        delta: int,
        insert_defaults: dict[str, Any] | None = None,
        update_overrides: dict[str, Any] | None = None,
    ) -> UpsertOutcome:
        """
        Add delta to the row named medicine_name in table, or insert it.

        The update branch also writes update_overrides; the insert branch
        seeds insert_defaults. None values in either are ignored. Store
        failures propagate as RecordStoreError.
        """
        if table not in INVENTORY_TABLES:
            raise BusinessRuleViolation(detail=f'Unknown inventory table: {table}.')
        if not medicine_name:
            raise BusinessRuleViolation(detail='Medicine name is required.')

        existing = self.store.select(table, {'medicine_name': medicine_name}, limit=1)
        if existing:
            row = existing[0]
            new_quantity = row['quantity'] + delta
            if new_quantity < 0:
                raise InsufficientStockError(
                    detail=f'Insufficient stock for {medicine_name}: balance={row["quantity"]}, requested={-delta}.',
                )
            patch = {**_present(update_overrides), 'quantity': new_quantity}
            updated = self.store.update(table, patch, {'id': row['id'], 'quantity': row['quantity']})
            if not updated:
                raise ConflictError(detail=f'{medicine_name} changed in {table} while it was being updated.')
            return UpsertOutcome(row=updated[0], created=False)

        if delta < 0:
            raise InsufficientStockError(
                detail=f'Insufficient stock for {medicine_name}: balance=0, requested={-delta}.',
            )
        seed = {**_present(insert_defaults), 'medicine_name': medicine_name, 'quantity': delta}
        try:
            inserted = self.store.insert(table, seed)
        except RecordConflict as exc:
            raise ConflictError(detail=f'{medicine_name} was created concurrently in {table}.') from exc
        return UpsertOutcome(row=inserted[0], created=True)

    # --- master -> pharmacy transfer ---

    def transfer_to_pharmacy(
        self,
        *,
        medicine_id,
        quantity: int,
        min_stock_level: int = 0,
        issuer: str,
        receiver: str,
        actor=None,
    ) -> TransferResult:
        """Move quantity of one master inventory line into pharmacy inventory."""
        if quantity is None or quantity <= 0:
            raise BusinessRuleViolation(detail='Quantity must be positive.')
        if min_stock_level is None or min_stock_level < 0:
            raise BusinessRuleViolation(detail='Minimum stock level must be 0 or greater.')
        if not issuer or not receiver:
            raise BusinessRuleViolation(detail='Issuer and receiver are required.')

        with self.store.atomic():
            result = self._transfer(medicine_id, quantity, min_stock_level, issuer, receiver)

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_CREATE,
            model_name='Transfer',
            object_id=str(result.transfer['id']),
            new_values={
                'medicine_name': result.transfer['medicine_name'],
                'quantity': quantity,
                'master_quantity': result.source['quantity'],
                'pharmacy_quantity': result.destination['quantity'],
                'pharmacy_created': result.destination_created,
            },
        )
        logger.info(
            'Transfer %s: %s x%s master=%s pharmacy=%s',
            result.transfer['id'], result.transfer['medicine_name'], quantity,
            result.source['quantity'], result.destination['quantity'],
        )
        return result

    def _transfer(self, medicine_id, quantity, min_stock_level, issuer, receiver) -> TransferResult:
        try:
            found = self.store.select(MASTER_INVENTORY_TABLE, {'id': medicine_id}, limit=1)
        except RecordStoreError as exc:
            raise StepFailedError(step='read_source', entity=str(medicine_id), cause=exc.cause) from exc
        if not found:
            raise ResourceNotFoundError(detail='Medicine not found in master inventory.')

        source = found[0]
        name = source['medicine_name']
        available = source['quantity']
        if quantity > available:
            raise InsufficientStockError(
                detail=f'Transfer quantity cannot exceed available quantity ({available}).',
            )

        try:
            log = self.store.insert(TRANSFERS_TABLE, {
                'medicine_name': name,
                'quantity': quantity,
                'from_inventory': INVENTORY_MASTER,
                'to_inventory': INVENTORY_PHARMACY,
                'issuer': issuer,
                'receiver': receiver,
                'transfer_date': timezone.now(),
            })[0]
        except RecordStoreError as exc:
            raise LogWriteFailed(entity=name, cause=exc.cause) from exc

        remaining = available - quantity
        try:
            debited = self.store.update(
                MASTER_INVENTORY_TABLE,
                {'quantity': remaining},
                {'id': source['id'], 'quantity': available},
            )
        except RecordStoreError as exc:
            compensated = self._undo_log(log)
            raise SourceUpdateFailed(entity=name, cause=exc.cause, compensated=compensated) from exc
        if not debited:
            raise ConflictError(
                detail=f'{name} changed in master inventory during the transfer.',
                step='debit_source', entity=name, compensated=self._undo_log(log),
            )

        classification = {field: source[field] for field in CLASSIFICATION_FIELDS}
        try:
            outcome = self.upsert_quantity(
                PHARMACY_INVENTORY_TABLE,
                name,
                quantity,
                insert_defaults={
                    **classification,
                    'min_stock_level': min_stock_level,
                    'issuer': issuer,
                    'receiver': receiver,
                },
                update_overrides={**classification, 'min_stock_level': min_stock_level},
            )
        except ConflictError as exc:
            compensated = self._restore_source(source, remaining)
            raise ConflictError(
                detail=exc.detail, step='credit_destination', entity=name, compensated=compensated,
            ) from exc
        except RecordStoreError as exc:
            compensated = self._restore_source(source, remaining)
            raise DestinationUpdateFailed(entity=name, cause=exc.cause, compensated=compensated) from exc

        return TransferResult(
            transfer=log,
            source=debited[0],
            destination=outcome.row,
            destination_created=outcome.created,
        )

    # --- compensation ---

    def _undo_log(self, log: Row) -> bool:
        if self.store.transactional:
            return True
        logger.warning('Compensating transfer %s: removing log entry.', log['id'])
        try:
            self.store.delete(TRANSFERS_TABLE, {'id': log['id']})
        except RecordStoreError:
            logger.error('Compensation failed: transfer log %s was not removed.', log['id'], exc_info=True)
            return False
        return True

    def _restore_source(self, source: Row, debited_quantity: int) -> bool:
        if self.store.transactional:
            return True
        logger.warning(
            'Compensating transfer of %s: restoring master quantity to %s.',
            source['medicine_name'], source['quantity'],
        )
        try:
            restored = self.store.update(
                MASTER_INVENTORY_TABLE,
                {'quantity': source['quantity']},
                {'id': source['id'], 'quantity': debited_quantity},
            )
        except RecordStoreError:
            logger.error(
                'Compensation failed: master quantity of %s was not restored.',
                source['medicine_name'], exc_info=True,
            )
            return False
        if not restored:
            logger.error(
                'Compensation failed: master row %s changed after the debit and was not restored.',
                source['id'],
            )
            return False
        return True


def _inventory_model(table: str):
    try:
        return INVENTORY_MODELS[table]
    except KeyError:
        raise BusinessRuleViolation(detail=f'Unknown inventory table: {table}.')


class InventoryService:
    """Manual maintenance of master and pharmacy stock lines."""

    EDITABLE_FIELDS = ('medicine_name', 'quantity', 'category', 'location', 'stock_book_page_number')

    @staticmethod
    def add_medicine(
        table: str,
        *,
        medicine_name: str,
        quantity: int,
        category: str,
        location: str = '',
        stock_book_page_number: str = '',
        min_stock_level: int | None = None,
        actor=None,
        ledger: StockLedger | None = None,
    ) -> UpsertOutcome:
        """Add stock by name: existing lines gain quantity, new names are inserted."""
        model = _inventory_model(table)
        if quantity is None or quantity < 0:
            raise BusinessRuleViolation(detail='Quantity must be 0 or greater.')

        defaults = {
            'category': category,
            'location': location,
            'stock_book_page_number': stock_book_page_number,
        }
        overrides = {}
        if model is PharmacyInventory:
            defaults['min_stock_level'] = min_stock_level
            overrides['min_stock_level'] = min_stock_level

        ledger = ledger or StockLedger()
        try:
            outcome = ledger.upsert_quantity(table, medicine_name, quantity, defaults, overrides)
        except RecordStoreError as exc:
            raise StepFailedError(step='upsert_quantity', entity=medicine_name, cause=exc.cause) from exc

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_CREATE if outcome.created else AUDIT_ACTION_UPDATE,
            model_name=model.__name__,
            object_id=str(outcome.row['id']),
            new_values=AuditService.snapshot_row(outcome.row, fields=('medicine_name', 'quantity')),
        )
        return outcome

    @staticmethod
    @transaction.atomic
    def update_record(table: str, *, record_id, actor=None, **fields):
        model = _inventory_model(table)
        try:
            record = model.objects.select_for_update().get(pk=record_id)
        except model.DoesNotExist:
            raise ResourceNotFoundError()

        new_name = fields.get('medicine_name')
        if new_name and new_name != record.medicine_name and model.objects.filter(medicine_name=new_name).exists():
            raise DuplicateResourceError(detail=f'{new_name} already exists in {table}.')
        if fields.get('quantity') is not None and fields['quantity'] < 0:
            raise BusinessRuleViolation(detail='Quantity must be 0 or greater.')

        editable = InventoryService.EDITABLE_FIELDS
        if model is PharmacyInventory:
            editable += ('min_stock_level',)

        old_snapshot = AuditService.snapshot(record, fields=editable)
        for field, value in fields.items():
            if field in editable:
                setattr(record, field, value)
        record.updated_by = actor
        record.full_clean()
        record.save()

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_UPDATE,
            model_name=model.__name__,
            object_id=str(record.pk),
            old_values=old_snapshot,
            new_values=AuditService.snapshot(record, fields=editable),
        )
        return record

    @staticmethod
    @transaction.atomic
    def delete_record(table: str, *, record_id, actor=None) -> None:
        """Hard delete. Transfer history keeps referring to the name."""
        model = _inventory_model(table)
        try:
            record = model.objects.select_for_update().get(pk=record_id)
        except model.DoesNotExist:
            raise ResourceNotFoundError()
        old_snapshot = AuditService.snapshot(record)
        record.delete()
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_DELETE,
            model_name=model.__name__,
            object_id=str(record_id),
            old_values=old_snapshot,
        )

    @staticmethod
    def low_stock():
        """Pharmacy lines at or below their minimum level (no level counts as 0)."""
        return PharmacyInventory.objects.filter(
            Q(quantity__lte=F('min_stock_level'))
            | Q(min_stock_level__isnull=True, quantity__lte=0),
        ).order_by('quantity', 'medicine_name')


def _months_back(moment: datetime, months: int) -> datetime:
    month_index = moment.month - 1 - months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


TIME_RANGES = ('all', 'week', 'month', 'quarter', 'year')


def range_start(time_range: str, now: datetime | None = None) -> datetime | None:
    now = now or timezone.now()
    if time_range == 'all':
        return None
    if time_range == 'week':
        return now - timedelta(days=7)
    if time_range == 'month':
        return _months_back(now, 1)
    if time_range == 'quarter':
        return _months_back(now, 3)
    if time_range == 'year':
        return _months_back(now, 12)
    raise BusinessRuleViolation(
        detail=f'Invalid time range {time_range!r}; expected one of {", ".join(TIME_RANGES)}.',
    )


class TransferLogService:
    """Reporting and manual correction of the transfer log. Never moves stock."""

    EDITABLE_FIELDS = ('quantity', 'from_inventory', 'to_inventory', 'issuer', 'receiver')

    @staticmethod
    def since(time_range: str = 'all'):
        qs = Transfer.objects.all()
        start = range_start(time_range)
        if start is not None:
            qs = qs.filter(transfer_date__gte=start)
        return qs.order_by('-transfer_date')

    @staticmethod
    def stats(time_range: str = 'all') -> dict:
        qs = TransferLogService.since(time_range).order_by()
        totals = qs.aggregate(total_transfers=Count('id'), total_quantity=Sum('quantity'))
        per_medicine = (
            qs.values('medicine_name')
            .annotate(
                total_transfers=Count('id'),
                total_quantity=Sum('quantity'),
                last_transfer=Max('transfer_date'),
            )
            .order_by('medicine_name')
        )
        return {
            'total_transfers': totals['total_transfers'],
            'unique_medicines': qs.values('medicine_name').distinct().count(),
            'total_quantity': totals['total_quantity'] or 0,
            'medicine_stats': list(per_medicine),
        }

    @staticmethod
    @transaction.atomic
    def update_transfer(*, transfer_id, actor=None, **fields) -> Transfer:
        try:
            transfer = Transfer.objects.select_for_update().get(pk=transfer_id)
        except Transfer.DoesNotExist:
            raise ResourceNotFoundError()
        if 'quantity' in fields and (fields['quantity'] is None or fields['quantity'] <= 0):
            raise BusinessRuleViolation(detail='Quantity must be a positive number.')

        editable = TransferLogService.EDITABLE_FIELDS
        old_snapshot = AuditService.snapshot(transfer, fields=editable)
        for field, value in fields.items():
            if field in editable:
                setattr(transfer, field, value)
        transfer.updated_by = actor
        transfer.full_clean()
        transfer.save()

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_UPDATE,
            model_name='Transfer',
            object_id=str(transfer.pk),
            old_values=old_snapshot,
            new_values=AuditService.snapshot(transfer, fields=editable),
        )
        return transfer

    @staticmethod
    @transaction.atomic
    def delete_transfer(*, transfer_id, actor=None) -> None:
        try:
            transfer = Transfer.objects.get(pk=transfer_id)
        except Transfer.DoesNotExist:
            raise ResourceNotFoundError()
        old_snapshot = AuditService.snapshot(transfer)
        transfer.delete()
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_DELETE,
            model_name='Transfer',
            object_id=str(transfer_id),
            old_values=old_snapshot,
        )
