"""
ClinicStock — Test Factories

Factory Boy factories for generating test data. Used across all test
modules.

@file tests/factories.py
"""

from datetime import timedelta
from decimal import Decimal

import factory
from django.contrib.auth import get_user_model
from django.utils import timezone

from core.models import AuditLog
from inventory.models import CategoryChoices, MasterInventory, PharmacyInventory, Transfer
from purchases.models import Purchase, PurchaseItem


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------

class UserFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = get_user_model()
        skip_postgeneration_save = True

    username = factory.Sequence(lambda n: f'user{n}')
    email = factory.LazyAttribute(lambda o: f'{o.username}@clinic.test')
    first_name = factory.Faker('first_name')
    last_name = factory.Faker('last_name')
    is_active = True

    @factory.post_generation
    def password(self, create, extracted, **kwargs):
        password = extracted or 'TestPass2026!'
        self.set_password(password)
        if create:
            self.save(update_fields=['password'])


class StaffUserFactory(UserFactory):
    is_staff = True


class SuperuserFactory(UserFactory):
    is_staff = True
    is_superuser = True


# ---------------------------------------------------------------------------
# Inventory
# ---------------------------------------------------------------------------

class MasterInventoryFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = MasterInventory

    medicine_name = factory.Sequence(lambda n: f'Medicine-{n}')
    quantity = 100
    category = CategoryChoices.TDSR
    location = factory.Sequence(lambda n: f'Shelf {n % 10}')
    stock_book_page_number = factory.Sequence(lambda n: f'P-{n:03d}')


class PharmacyInventoryFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = PharmacyInventory

    medicine_name = factory.Sequence(lambda n: f'Medicine-{n}')
    quantity = 20
    category = CategoryChoices.TDSR
    location = 'Dispensary'
    stock_book_page_number = factory.Sequence(lambda n: f'P-{n:03d}')
    min_stock_level = 5
    issuer = factory.Faker('name')
    receiver = factory.Faker('name')


class TransferFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Transfer

    medicine_name = factory.Sequence(lambda n: f'Medicine-{n}')
    quantity = 10
    issuer = factory.Faker('name')
    receiver = factory.Faker('name')
    transfer_date = factory.LazyFunction(timezone.now)


# ---------------------------------------------------------------------------
# Purchases
# ---------------------------------------------------------------------------

class PurchaseFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = Purchase

    invoice_number = factory.Sequence(lambda n: f'INV-{n:05d}')
    supplier_name = factory.Faker('company')
    purchase_date = factory.LazyFunction(lambda: timezone.now().date())
    total_amount = Decimal('0')
    paid_amount = Decimal('0')
    payment_status = Purchase.PaymentStatus.PENDING


class PaidPurchaseFactory(PurchaseFactory):
    total_amount = Decimal('1000.00')
    paid_amount = Decimal('1000.00')
    payment_status = Purchase.PaymentStatus.PAID


class PurchaseItemFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = PurchaseItem

    purchase = factory.SubFactory(PurchaseFactory)
    medicine_name = factory.Sequence(lambda n: f'Medicine-{n}')
    batch_number = factory.Sequence(lambda n: f'B{n:06d}')
    expiry_date = factory.LazyFunction(lambda: (timezone.now() + timedelta(days=365)).date())
    quantity = 10
    unit_price = Decimal('50.00')
    total_price = factory.LazyAttribute(lambda o: o.unit_price * o.quantity)


# ---------------------------------------------------------------------------
# Audit
# ---------------------------------------------------------------------------

class AuditLogFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = AuditLog

    actor = factory.SubFactory(UserFactory)
    action = AuditLog.ActionChoices.CREATE
    model_name = 'MasterInventory'
    object_id = factory.Sequence(lambda n: f'obj-{n}')
    new_values = factory.LazyFunction(lambda: {'quantity': 10})
