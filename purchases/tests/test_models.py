"""
Tests — Purchase and PurchaseItem models.

@file purchases/tests/test_models.py
"""

from decimal import Decimal

import pytest
from django.db import IntegrityError

from purchases.models import Purchase, PurchaseItem
from tests.factories import PaidPurchaseFactory, PurchaseFactory, PurchaseItemFactory


pytestmark = pytest.mark.django_db


class TestPurchase:

    def test_defaults(self):
        purchase = PurchaseFactory()
        assert purchase.payment_status == Purchase.PaymentStatus.PENDING
        assert purchase.transferred_to_inventory is False
        assert purchase.transferred_at is None

    def test_balance_due(self):
        purchase = PurchaseFactory(total_amount=Decimal('100'), paid_amount=Decimal('40'))
        assert purchase.balance_due == Decimal('60')

    def test_can_commit(self):
        assert PaidPurchaseFactory().can_commit is True
        assert PurchaseFactory().can_commit is False
        assert PaidPurchaseFactory(transferred_to_inventory=True).can_commit is False

    def test_paid_amount_cannot_exceed_total(self):
        with pytest.raises(IntegrityError):
            PurchaseFactory(total_amount=Decimal('10'), paid_amount=Decimal('20'))

    def test_items_cascade(self):
        item = PurchaseItemFactory()
        item.purchase.delete()
        assert not PurchaseItem.objects.exists()


class TestPurchaseItem:

    def test_total_price_from_factory(self):
        item = PurchaseItemFactory(quantity=3, unit_price=Decimal('2.00'))
        assert item.total_price == Decimal('6.00')
        assert item.applied_to_inventory is False

    def test_quantity_must_be_positive(self):
        with pytest.raises(IntegrityError):
            PurchaseItemFactory(quantity=0)
