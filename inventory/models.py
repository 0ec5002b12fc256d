"""
Inventory — Models

Two balance tables keyed by medicine name (master store and dispensing
pharmacy) and an append-only transfer log. Quantities are stored as
running balances and are only moved through the stock ledger.

@file inventory/models.py
"""

from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from core.constants import (
    INVENTORY_MASTER,
    INVENTORY_PHARMACY,
    MASTER_INVENTORY_TABLE,
    PHARMACY_INVENTORY_TABLE,
    TRANSFERS_TABLE,
)
from core.models import BaseModel


class CategoryChoices(models.TextChoices):
    TDSR = 'TDSR', _('TDSR')
    PDSR = 'PDSR', _('PDSR')


class InventoryRecord(BaseModel):
    """
    One stock line. medicine_name is the natural key used for upserts:
    exact, case-sensitive, no trimming.
    """

    medicine_name = models.CharField(_('medicine name'), max_length=255, unique=True)
    quantity = models.PositiveIntegerField(_('quantity'), default=0)
    category = models.CharField(
        _('category'), max_length=8,
        choices=CategoryChoices.choices,
        default=CategoryChoices.TDSR,
        db_index=True,
    )
    location = models.CharField(_('location'), max_length=120, blank=True, default='')
    stock_book_page_number = models.CharField(
        _('stock book page number'), max_length=50, blank=True, default='',
    )

    class Meta:
        abstract = True
        ordering = ['medicine_name']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=0),
                name='%(app_label)s_%(class)s_quantity_gte_0',
            ),
        ]

    def __str__(self):
        return f'{self.medicine_name} ({self.quantity})'


class MasterInventory(InventoryRecord):
    """Central store: purchases land here, transfers leave from here."""

    class Meta(InventoryRecord.Meta):
        db_table = MASTER_INVENTORY_TABLE
        verbose_name = _('master inventory record')
        verbose_name_plural = _('master inventory')


class PharmacyInventory(InventoryRecord):
    """Dispensing stock, fed by transfers from master inventory."""

    min_stock_level = models.PositiveIntegerField(
        _('minimum stock level'), null=True, blank=True,
    )
    issuer = models.CharField(_('issuer'), max_length=120, blank=True, default='')
    receiver = models.CharField(_('receiver'), max_length=120, blank=True, default='')

    class Meta(InventoryRecord.Meta):
        db_table = PHARMACY_INVENTORY_TABLE
        verbose_name = _('pharmacy inventory record')
        verbose_name_plural = _('pharmacy inventory')

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= (self.min_stock_level or 0)


class Transfer(BaseModel):
    """
    Audit entry for one transfer attempt. References the medicine by name
    only, so renaming a stock line leaves older entries under the old name.
    """

    class InventoryChoices(models.TextChoices):
        MASTER = INVENTORY_MASTER, _('Master')
        PHARMACY = INVENTORY_PHARMACY, _('Pharmacy')

    medicine_name = models.CharField(_('medicine name'), max_length=255, db_index=True)
    quantity = models.PositiveIntegerField(_('quantity'))
    from_inventory = models.CharField(
        _('from inventory'), max_length=10,
        choices=InventoryChoices.choices, default=InventoryChoices.MASTER,
    )
    to_inventory = models.CharField(
        _('to inventory'), max_length=10,
        choices=InventoryChoices.choices, default=InventoryChoices.PHARMACY,
    )
    issuer = models.CharField(_('issuer'), max_length=120)
    receiver = models.CharField(_('receiver'), max_length=120)
    transfer_date = models.DateTimeField(_('transfer date'), default=timezone.now, db_index=True)

    class Meta:
        db_table = TRANSFERS_TABLE
        verbose_name = _('transfer')
        verbose_name_plural = _('transfers')
        ordering = ['-transfer_date']

    def __str__(self):
        return f'{self.medicine_name} × {self.quantity} {self.from_inventory} → {self.to_inventory}'
