"""
Tests — DjangoRecordStore: table resolution, conditional updates,
constraint mapping and savepoint isolation.

@file core/tests/test_store.py
"""

import pytest

from core.constants import MASTER_INVENTORY_TABLE, TRANSFERS_TABLE
from core.store import DjangoRecordStore, RecordConflict, RecordStoreError, get_record_store
from inventory.models import MasterInventory
from tests.factories import MasterInventoryFactory


pytestmark = pytest.mark.django_db


class TestSelect:

    def test_select_by_table_name(self, store):
        MasterInventoryFactory(medicine_name='Paracetamol', quantity=40)
        rows = store.select(MASTER_INVENTORY_TABLE, {'medicine_name': 'Paracetamol'})
        assert len(rows) == 1
        assert rows[0]['quantity'] == 40
        assert isinstance(rows[0], dict)

    def test_name_match_is_case_sensitive(self, store):
        MasterInventoryFactory(medicine_name='Paracetamol')
        assert store.select(MASTER_INVENTORY_TABLE, {'medicine_name': 'paracetamol'}) == []

    def test_order_and_limit(self, store):
        for name in ('C', 'A', 'B'):
            MasterInventoryFactory(medicine_name=name)
        rows = store.select(MASTER_INVENTORY_TABLE, order=['-medicine_name'], limit=2)
        assert [r['medicine_name'] for r in rows] == ['C', 'B']

    def test_unknown_table(self, store):
        with pytest.raises(RecordStoreError) as exc_info:
            store.select('no_such_table')
        assert exc_info.value.operation == 'select'
        assert exc_info.value.cause == 'unknown table'

    def test_unknown_field_is_store_error(self, store):
        with pytest.raises(RecordStoreError):
            store.select(MASTER_INVENTORY_TABLE, {'colour': 'red'})


class TestInsert:

    def test_insert_returns_rows_in_order(self, store):
        rows = store.insert(MASTER_INVENTORY_TABLE, [
            {'medicine_name': 'Zinc', 'quantity': 1},
            {'medicine_name': 'Amoxicillin', 'quantity': 2},
        ])
        assert [r['medicine_name'] for r in rows] == ['Zinc', 'Amoxicillin']
        assert rows[0]['category'] == 'TDSR'
        assert MasterInventory.objects.count() == 2

    def test_insert_single_row(self, store):
        rows = store.insert(MASTER_INVENTORY_TABLE, {'medicine_name': 'Zinc', 'quantity': 3})
        assert rows[0]['quantity'] == 3

    def test_duplicate_name_is_conflict(self, store):
        MasterInventoryFactory(medicine_name='Zinc')
        with pytest.raises(RecordConflict):
            store.insert(MASTER_INVENTORY_TABLE, {'medicine_name': 'Zinc', 'quantity': 1})

    def test_invalid_row_is_store_error(self, store):
        with pytest.raises(RecordStoreError) as exc_info:
            store.insert(TRANSFERS_TABLE, {'medicine_name': 'Zinc', 'quantity': 1})
        assert not isinstance(exc_info.value, RecordConflict)

    def test_failed_call_leaves_connection_usable(self, store):
        MasterInventoryFactory(medicine_name='Zinc')
        with pytest.raises(RecordConflict):
            store.insert(MASTER_INVENTORY_TABLE, {'medicine_name': 'Zinc', 'quantity': 1})
        assert len(store.select(MASTER_INVENTORY_TABLE)) == 1


class TestUpdate:

    def test_conditional_update_matches(self, store):
        record = MasterInventoryFactory(quantity=10)
        rows = store.update(MASTER_INVENTORY_TABLE, {'quantity': 4}, {'id': record.pk, 'quantity': 10})
        assert rows[0]['quantity'] == 4
        record.refresh_from_db()
        assert record.quantity == 4

    def test_conditional_update_mismatch_returns_empty(self, store):
        record = MasterInventoryFactory(quantity=10)
        rows = store.update(MASTER_INVENTORY_TABLE, {'quantity': 4}, {'id': record.pk, 'quantity': 9})
        assert rows == []
        record.refresh_from_db()
        assert record.quantity == 10

    def test_update_stamps_updated_at(self, store):
        record = MasterInventoryFactory(quantity=10)
        before = record.updated_at
        rows = store.update(MASTER_INVENTORY_TABLE, {'quantity': 11}, {'id': record.pk})
        assert rows[0]['updated_at'] >= before

    def test_negative_quantity_is_conflict(self, store):
        record = MasterInventoryFactory(quantity=10)
        with pytest.raises(RecordConflict):
            store.update(MASTER_INVENTORY_TABLE, {'quantity': -1}, {'id': record.pk})
        record.refresh_from_db()
        assert record.quantity == 10

    def test_update_requires_filters(self, store):
        with pytest.raises(ValueError):
            store.update(MASTER_INVENTORY_TABLE, {'quantity': 0}, {})


class TestDelete:

    def test_delete_returns_count(self, store):
        record = MasterInventoryFactory()
        MasterInventoryFactory()
        assert store.delete(MASTER_INVENTORY_TABLE, {'id': record.pk}) == 1
        assert MasterInventory.objects.count() == 1

    def test_delete_nothing(self, store):
        assert store.delete(MASTER_INVENTORY_TABLE, {'medicine_name': 'ghost'}) == 0

    def test_delete_requires_filters(self, store):
        with pytest.raises(ValueError):
            store.delete(MASTER_INVENTORY_TABLE, {})


class TestAtomic:

    def test_transactional_store_rolls_back(self, transactional_store):
        with pytest.raises(RuntimeError):
            with transactional_store.atomic():
                transactional_store.insert(MASTER_INVENTORY_TABLE, {'medicine_name': 'Zinc', 'quantity': 1})
                raise RuntimeError('abort')
        assert not MasterInventory.objects.filter(medicine_name='Zinc').exists()

    def test_non_transactional_store_keeps_each_call(self, store):
        with pytest.raises(RuntimeError):
            with store.atomic():
                store.insert(MASTER_INVENTORY_TABLE, {'medicine_name': 'Zinc', 'quantity': 1})
                raise RuntimeError('abort')
        assert MasterInventory.objects.filter(medicine_name='Zinc').exists()

    def test_get_record_store_follows_settings(self, settings):
        settings.RECORD_STORE_TRANSACTIONAL = False
        assert get_record_store().transactional is False
        settings.RECORD_STORE_TRANSACTIONAL = True
        assert isinstance(get_record_store(), DjangoRecordStore)
        assert get_record_store().transactional is True
