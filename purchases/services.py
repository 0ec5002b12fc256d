"""
Purchases — Service Layer

PurchaseLedger commits a paid purchase to master inventory through the
record store, one item at a time. Each item is claimed (its
applied_to_inventory flag flipped with a conditional update) before its
quantity is added, so re-running an interrupted commit only applies the
items that never made it.

PurchaseService handles purchase entry, item edits and payment.

@file purchases/services.py
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

from django.db import transaction
from django.db.models import Sum
from django.utils import timezone

from core.constants import (
    AUDIT_ACTION_CREATE,
    AUDIT_ACTION_DELETE,
    AUDIT_ACTION_STATUS_CHANGE,
    AUDIT_ACTION_UPDATE,
    DEFAULT_PURCHASE_CATEGORY,
    MASTER_INVENTORY_TABLE,
    PURCHASE_ITEMS_TABLE,
    PURCHASES_TABLE,
)
from core.exceptions import (
    AlreadyTransferredError,
    BusinessRuleViolation,
    ConflictError,
    InvalidStateTransition,
    NotPaidError,
    PartialApplicationError,
    ResourceNotFoundError,
    StepFailedError,
)
from core.services import AuditService
from core.store import RecordStore, RecordStoreError, Row, get_record_store
from inventory.models import CategoryChoices, MasterInventory
from inventory.services import StockLedger

from .models import Purchase, PurchaseItem

logger = logging.getLogger('clinicstock')


@dataclass(frozen=True)
class AppliedItem:
    item_id: object
    medicine_name: str
    quantity: int
    balance: int
    created: bool


@dataclass(frozen=True)
class CommitResult:
    purchase: Row
    applied: list[AppliedItem] = field(default_factory=list)
    skipped_item_ids: list = field(default_factory=list)


class PurchaseLedger:
    """Commits paid purchases to master inventory."""

    def __init__(self, store: RecordStore | None = None):
        self.store = store if store is not None else get_record_store()
        self.stock = StockLedger(self.store)

    def commit_to_inventory(self, purchase_id, actor=None) -> CommitResult:
        with self.store.atomic():
            result = self._commit(purchase_id)

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_STATUS_CHANGE,
            model_name='Purchase',
            object_id=str(purchase_id),
            old_values={'transferred_to_inventory': False},
            new_values={
                'transferred_to_inventory': True,
                'applied_items': [str(applied.item_id) for applied in result.applied],
                'skipped_items': [str(pk) for pk in result.skipped_item_ids],
            },
        )
        logger.info(
            'Purchase %s committed to inventory: %d items applied, %d already applied.',
            result.purchase['invoice_number'], len(result.applied), len(result.skipped_item_ids),
        )
        return result

    def _commit(self, purchase_id) -> CommitResult:
        try:
            found = self.store.select(PURCHASES_TABLE, {'id': purchase_id}, limit=1)
        except RecordStoreError as exc:
            raise StepFailedError(step='read_purchase', entity=str(purchase_id), cause=exc.cause) from exc
        if not found:
            raise ResourceNotFoundError(detail='Purchase not found.')

        purchase = found[0]
        if purchase['transferred_to_inventory']:
            raise AlreadyTransferredError()
        if purchase['payment_status'] != Purchase.PaymentStatus.PAID:
            raise NotPaidError()

        try:
            items = self.store.select(
                PURCHASE_ITEMS_TABLE, {'purchase_id': purchase['id']}, order=['created_at', 'id'],
            )
        except RecordStoreError as exc:
            raise StepFailedError(step='read_items', entity=purchase['invoice_number'], cause=exc.cause) from exc
        if not items:
            raise BusinessRuleViolation(detail='Purchase has no items to transfer.')

        applied = []
        skipped = []
        for item in items:
            if item['applied_to_inventory']:
                skipped.append(item['id'])
                continue
            applied.append(self._apply_item(purchase, item, applied))

        try:
            marked = self.store.update(
                PURCHASES_TABLE,
                {'transferred_to_inventory': True, 'transferred_at': timezone.now()},
                {'id': purchase['id'], 'transferred_to_inventory': False},
            )
        except RecordStoreError as exc:
            raise self._failure('mark_transferred', purchase['invoice_number'], exc, applied) from exc
        if not marked:
            raise AlreadyTransferredError()

        return CommitResult(purchase=marked[0], applied=applied, skipped_item_ids=skipped)

    def _apply_item(self, purchase: Row, item: Row, applied: list[AppliedItem]) -> AppliedItem:
        name = item['medicine_name']
        try:
            claimed = self.store.update(
                PURCHASE_ITEMS_TABLE,
                {'applied_to_inventory': True},
                {'id': item['id'], 'applied_to_inventory': False},
            )
        except RecordStoreError as exc:
            raise self._failure('claim_item', name, exc, applied) from exc
        if not claimed:
            raise self._conflict(
                ConflictError(
                    detail=f'{name} is already being applied by another commit.',
                    step='claim_item', entity=name,
                ),
                applied,
            )

        try:
            outcome = self.stock.upsert_quantity(
                MASTER_INVENTORY_TABLE,
                name,
                item['quantity'],
                insert_defaults={
                    'category': DEFAULT_PURCHASE_CATEGORY,
                    'stock_book_page_number': purchase['invoice_number'],
                },
            )
        except ConflictError as exc:
            conflict = ConflictError(
                detail=exc.detail, step='apply_item', entity=name, compensated=self._release_claim(item),
            )
            raise self._conflict(conflict, applied) from exc
        except RecordStoreError as exc:
            compensated = self._release_claim(item)
            raise self._failure('apply_item', name, exc, applied, compensated) from exc

        return AppliedItem(
            item_id=item['id'],
            medicine_name=name,
            quantity=item['quantity'],
            balance=outcome.row['quantity'],
            created=outcome.created,
        )

    def _failure(self, step, entity, exc, applied, compensated=True) -> StepFailedError:
        # A transactional store rolls back the items applied so far.
        if applied and not self.store.transactional:
            return PartialApplicationError(
                step=step, entity=entity, cause=exc.cause, compensated=compensated,
                applied_item_ids=[a.item_id for a in applied],
            )
        return StepFailedError(step=step, entity=entity, cause=exc.cause, compensated=compensated)

    def _conflict(self, conflict: ConflictError, applied) -> ConflictError | PartialApplicationError:
        if applied and not self.store.transactional:
            return PartialApplicationError(
                step=conflict.step, entity=conflict.entity, cause=str(conflict.detail),
                compensated=conflict.compensated,
                applied_item_ids=[a.item_id for a in applied],
            )
        return conflict

    def _release_claim(self, item: Row) -> bool:
        if self.store.transactional:
            return True
        logger.warning('Releasing claim on purchase item %s (%s).', item['id'], item['medicine_name'])
        try:
            self.store.update(
                PURCHASE_ITEMS_TABLE,
                {'applied_to_inventory': False},
                {'id': item['id'], 'applied_to_inventory': True},
            )
        except RecordStoreError:
            logger.error(
                'Compensation failed: purchase item %s stays claimed without being applied.',
                item['id'], exc_info=True,
            )
            return False
        return True


# ---------------------------------------------------------------------------
# Purchase entry and payment
# ---------------------------------------------------------------------------

HEADER_FIELDS = ('invoice_number', 'supplier_name', 'purchase_date', 'notes')
ITEM_FIELDS = ('medicine_name', 'batch_number', 'expiry_date', 'quantity', 'unit_price', 'total_price')


def _to_decimal(value, label: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise BusinessRuleViolation(detail=f'{label} must be a number.')


def _to_int(value, label: str) -> int:
    number = _to_decimal(value, label)
    if not number.is_finite() or number != number.to_integral_value():
        raise BusinessRuleViolation(detail=f'{label} must be a whole number.')
    return int(number)


def _clean_item(item: dict) -> dict:
    """Validate one item payload; returns model fields plus registration info."""
    for required in ('medicine_name', 'batch_number', 'expiry_date'):
        if not item.get(required):
            raise BusinessRuleViolation(detail=f'Item field {required} is required.')

    quantity = _to_int(item.get('quantity'), 'Quantity')
    if quantity <= 0:
        raise BusinessRuleViolation(detail=f'Quantity for {item["medicine_name"]} must be positive.')
    unit_price = _to_decimal(item.get('unit_price'), 'Unit price')
    if unit_price < 0:
        raise BusinessRuleViolation(detail=f'Unit price for {item["medicine_name"]} must be 0 or greater.')

    total_price = item.get('total_price')
    total_price = unit_price * quantity if total_price is None else _to_decimal(total_price, 'Total price')
    if total_price < 0:
        raise BusinessRuleViolation(detail=f'Total price for {item["medicine_name"]} must be 0 or greater.')

    cleaned = {
        'medicine_name': item['medicine_name'],
        'batch_number': item['batch_number'],
        'expiry_date': item['expiry_date'],
        'quantity': quantity,
        'unit_price': unit_price,
        'total_price': total_price,
    }

    registration = None
    if item.get('is_new_medicine'):
        category = item.get('category')
        page = item.get('stock_book_page_number')
        if category not in CategoryChoices.values:
            raise BusinessRuleViolation(detail=f'A valid category is required to register {item["medicine_name"]}.')
        if not page:
            raise BusinessRuleViolation(
                detail=f'A stock book page number is required to register {item["medicine_name"]}.',
            )
        registration = {'category': category, 'stock_book_page_number': page}
    return {'fields': cleaned, 'registration': registration}


def _register_medicine(name: str, registration: dict, actor) -> None:
    """Create an empty master line for a new medicine; existing lines are left alone."""
    record, created = MasterInventory.objects.get_or_create(
        medicine_name=name,
        defaults={**registration, 'quantity': 0, 'created_by': actor if getattr(actor, 'is_authenticated', False) else None},
    )
    if created:
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_CREATE,
            model_name='MasterInventory',
            object_id=str(record.pk),
            new_values=AuditService.snapshot(record, fields=('medicine_name', 'quantity', 'category', 'stock_book_page_number')),
        )


def _settle(purchase: Purchase, paid_amount: Decimal) -> None:
    """Clamp paid_amount to [0, total] and derive payment_status from it."""
    paid_amount = max(Decimal('0'), min(paid_amount, purchase.total_amount))
    purchase.paid_amount = paid_amount
    if purchase.total_amount > 0 and paid_amount >= purchase.total_amount:
        purchase.payment_status = Purchase.PaymentStatus.PAID
    else:
        purchase.payment_status = Purchase.PaymentStatus.PENDING


def _get_locked(purchase_id) -> Purchase:
    try:
        return Purchase.objects.select_for_update().get(pk=purchase_id)
    except Purchase.DoesNotExist:
        raise ResourceNotFoundError(detail='Purchase not found.')


def _ensure_editable(purchase: Purchase) -> None:
    if purchase.transferred_to_inventory:
        raise InvalidStateTransition(
            detail='Items cannot change after the purchase was transferred to inventory.',
        )


def _payment_snapshot(purchase: Purchase) -> dict:
    return {
        'total_amount': str(purchase.total_amount),
        'paid_amount': str(purchase.paid_amount),
        'payment_status': purchase.payment_status,
    }


class PurchaseService:

    @staticmethod
    @transaction.atomic
    def create_purchase(
        *,
        invoice_number: str,
        supplier_name: str,
        purchase_date,
        items: list[dict],
        notes: str = '',
        paid_amount=Decimal('0'),
        actor=None,
    ) -> Purchase:
        """
        Create a purchase with its items. total_amount is the sum of item
        totals. Items flagged is_new_medicine are registered in master
        inventory with quantity 0 so they can be stocked later.
        """
        if not invoice_number or not supplier_name or not purchase_date:
            raise BusinessRuleViolation(detail='Invoice number, supplier and purchase date are required.')
        if not items:
            raise BusinessRuleViolation(detail='A purchase needs at least one item.')

        cleaned = [_clean_item(item) for item in items]
        total = sum((c['fields']['total_price'] for c in cleaned), Decimal('0'))
        creator = actor if getattr(actor, 'is_authenticated', False) else None

        purchase = Purchase(
            invoice_number=invoice_number,
            supplier_name=supplier_name,
            purchase_date=purchase_date,
            notes=notes or '',
            total_amount=total,
            created_by=creator,
        )
        _settle(purchase, _to_decimal(paid_amount, 'Paid amount'))
        purchase.save()

        for c in cleaned:
            PurchaseItem.objects.create(purchase=purchase, created_by=creator, **c['fields'])
            if c['registration']:
                _register_medicine(c['fields']['medicine_name'], c['registration'], actor)

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_CREATE,
            model_name='Purchase',
            object_id=str(purchase.pk),
            new_values={
                **AuditService.snapshot(purchase, fields=HEADER_FIELDS),
                **_payment_snapshot(purchase),
                'items': len(cleaned),
            },
        )
        logger.info('Purchase %s created with %d items, total %s.', invoice_number, len(cleaned), total)
        return purchase

    @staticmethod
    @transaction.atomic
    def add_item(*, purchase_id, actor=None, **item) -> PurchaseItem:
        purchase = _get_locked(purchase_id)
        _ensure_editable(purchase)
        cleaned = _clean_item(item)

        old_payment = _payment_snapshot(purchase)
        creator = actor if getattr(actor, 'is_authenticated', False) else None
        purchase_item = PurchaseItem.objects.create(purchase=purchase, created_by=creator, **cleaned['fields'])
        if cleaned['registration']:
            _register_medicine(purchase_item.medicine_name, cleaned['registration'], actor)

        purchase.total_amount += purchase_item.total_price
        _settle(purchase, purchase.paid_amount)
        purchase.updated_by = creator
        purchase.save(update_fields=['total_amount', 'paid_amount', 'payment_status', 'updated_by', 'updated_at'])

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_UPDATE,
            model_name='Purchase',
            object_id=str(purchase.pk),
            old_values=old_payment,
            new_values={**_payment_snapshot(purchase), 'added_item': str(purchase_item.pk)},
        )
        return purchase_item

    @staticmethod
    @transaction.atomic
    def remove_item(*, purchase_id, item_id, actor=None) -> Purchase:
        purchase = _get_locked(purchase_id)
        _ensure_editable(purchase)
        try:
            item = purchase.items.get(pk=item_id)
        except PurchaseItem.DoesNotExist:
            raise ResourceNotFoundError(detail='Purchase item not found.')

        old_payment = _payment_snapshot(purchase)
        item.delete()
        purchase.total_amount = max(Decimal('0'), purchase.total_amount - item.total_price)
        _settle(purchase, purchase.paid_amount)
        purchase.updated_by = actor if getattr(actor, 'is_authenticated', False) else None
        purchase.save(update_fields=['total_amount', 'paid_amount', 'payment_status', 'updated_by', 'updated_at'])

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_UPDATE,
            model_name='Purchase',
            object_id=str(purchase.pk),
            old_values=old_payment,
            new_values={**_payment_snapshot(purchase), 'removed_item': str(item_id)},
        )
        return purchase

    @staticmethod
    @transaction.atomic
    def update_purchase(*, purchase_id, actor=None, **fields) -> Purchase:
        purchase = _get_locked(purchase_id)
        old_snapshot = AuditService.snapshot(purchase, fields=HEADER_FIELDS)
        for name, value in fields.items():
            if name in HEADER_FIELDS:
                setattr(purchase, name, value)
        purchase.updated_by = actor if getattr(actor, 'is_authenticated', False) else None
        purchase.full_clean()
        purchase.save()

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_UPDATE,
            model_name='Purchase',
            object_id=str(purchase.pk),
            old_values=old_snapshot,
            new_values=AuditService.snapshot(purchase, fields=HEADER_FIELDS),
        )
        return purchase

    @staticmethod
    @transaction.atomic
    def update_paid_amount(*, purchase_id, amount, actor=None) -> Purchase:
        """Record a payment total; the amount is clamped to [0, total_amount]."""
        purchase = _get_locked(purchase_id)
        old_payment = _payment_snapshot(purchase)
        _settle(purchase, _to_decimal(amount, 'Paid amount'))
        purchase.updated_by = actor if getattr(actor, 'is_authenticated', False) else None
        purchase.save(update_fields=['paid_amount', 'payment_status', 'updated_by', 'updated_at'])

        changed_status = old_payment['payment_status'] != purchase.payment_status
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_STATUS_CHANGE if changed_status else AUDIT_ACTION_UPDATE,
            model_name='Purchase',
            object_id=str(purchase.pk),
            old_values=old_payment,
            new_values=_payment_snapshot(purchase),
        )
        return purchase

    @staticmethod
    @transaction.atomic
    def set_payment_status(*, purchase_id, status: str, actor=None) -> Purchase:
        """paid settles the full total; pending resets the paid amount to zero."""
        if status not in Purchase.PaymentStatus.values:
            raise BusinessRuleViolation(detail=f'Invalid payment status {status!r}.')

        purchase = _get_locked(purchase_id)
        old_payment = _payment_snapshot(purchase)
        purchase.payment_status = status
        if status == Purchase.PaymentStatus.PAID:
            purchase.paid_amount = purchase.total_amount
        else:
            purchase.paid_amount = Decimal('0')
        purchase.updated_by = actor if getattr(actor, 'is_authenticated', False) else None
        purchase.save(update_fields=['paid_amount', 'payment_status', 'updated_by', 'updated_at'])

        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_STATUS_CHANGE,
            model_name='Purchase',
            object_id=str(purchase.pk),
            old_values=old_payment,
            new_values=_payment_snapshot(purchase),
        )
        logger.info('Purchase %s marked %s.', purchase.invoice_number, status)
        return purchase

    @staticmethod
    @transaction.atomic
    def delete_purchase(*, purchase_id, actor=None) -> None:
        """Items first, then the purchase. Inventory already committed is not reverted."""
        purchase = _get_locked(purchase_id)
        old_snapshot = {
            **AuditService.snapshot(purchase, fields=HEADER_FIELDS),
            **_payment_snapshot(purchase),
            'transferred_to_inventory': purchase.transferred_to_inventory,
        }
        purchase.items.all().delete()
        purchase.delete()
        AuditService.log(
            actor=actor,
            action=AUDIT_ACTION_DELETE,
            model_name='Purchase',
            object_id=str(purchase_id),
            old_values=old_snapshot,
        )

    @staticmethod
    def paid_total() -> Decimal:
        """Sum of total_amount over paid purchases."""
        total = Purchase.objects.filter(
            payment_status=Purchase.PaymentStatus.PAID,
        ).aggregate(total=Sum('total_amount'))['total']
        return total or Decimal('0')
