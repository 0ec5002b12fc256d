"""
Purchases — Models

Supplier purchases and their line items. A paid purchase is committed
to master inventory exactly once; each item remembers whether its
quantity has already been applied so an interrupted commit can resume.

@file purchases/models.py
"""

from decimal import Decimal

from django.db import models
from django.utils.translation import gettext_lazy as _

from core.constants import PURCHASE_ITEMS_TABLE, PURCHASES_TABLE
from core.models import BaseModel


class Purchase(BaseModel):

    class PaymentStatus(models.TextChoices):
        PENDING = 'pending', _('Pending')
        PAID = 'paid', _('Paid')

    invoice_number = models.CharField(_('invoice number'), max_length=50, db_index=True)
    supplier_name = models.CharField(_('supplier name'), max_length=255)
    purchase_date = models.DateField(_('purchase date'), db_index=True)
    total_amount = models.DecimalField(
        _('total amount'), max_digits=14, decimal_places=2, default=Decimal('0'),
    )
    paid_amount = models.DecimalField(
        _('paid amount'), max_digits=14, decimal_places=2, default=Decimal('0'),
    )
    payment_status = models.CharField(
        _('payment status'), max_length=10,
        choices=PaymentStatus.choices, default=PaymentStatus.PENDING,
        db_index=True,
    )
    notes = models.TextField(_('notes'), blank=True, default='')
    transferred_to_inventory = models.BooleanField(_('transferred to inventory'), default=False)
    transferred_at = models.DateTimeField(_('transferred at'), null=True, blank=True)

    class Meta:
        db_table = PURCHASES_TABLE
        verbose_name = _('purchase')
        verbose_name_plural = _('purchases')
        ordering = ['-purchase_date', '-created_at']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(paid_amount__gte=0) & models.Q(paid_amount__lte=models.F('total_amount')),
                name='purchases_paid_amount_within_total',
            ),
        ]

    def __str__(self):
        return f'{self.invoice_number} — {self.supplier_name}'

    @property
    def balance_due(self) -> Decimal:
        return self.total_amount - self.paid_amount

    @property
    def can_commit(self) -> bool:
        return self.payment_status == self.PaymentStatus.PAID and not self.transferred_to_inventory


class PurchaseItem(BaseModel):
    """One received line. medicine_name is matched exactly against master inventory."""

    purchase = models.ForeignKey(
        Purchase, on_delete=models.CASCADE,
        related_name='items', verbose_name=_('purchase'),
    )
    medicine_name = models.CharField(_('medicine name'), max_length=255)
    batch_number = models.CharField(_('batch number'), max_length=100)
    expiry_date = models.DateField(_('expiry date'))
    quantity = models.PositiveIntegerField(_('quantity'))
    unit_price = models.DecimalField(_('unit price'), max_digits=12, decimal_places=2)
    total_price = models.DecimalField(_('total price'), max_digits=14, decimal_places=2)
    applied_to_inventory = models.BooleanField(_('applied to inventory'), default=False)

    class Meta:
        db_table = PURCHASE_ITEMS_TABLE
        verbose_name = _('purchase item')
        verbose_name_plural = _('purchase items')
        ordering = ['created_at']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gt=0),
                name='purchases_item_quantity_gt_0',
            ),
        ]

    def __str__(self):
        return f'{self.medicine_name} × {self.quantity} ({self.batch_number})'
