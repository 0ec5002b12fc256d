"""
Tests — Inventory API endpoints (views).

@file inventory/tests/test_views.py
"""

import uuid
from datetime import timedelta

import pytest
from django.urls import reverse
from django.utils import timezone

from inventory.models import MasterInventory, PharmacyInventory, Transfer
from tests.factories import MasterInventoryFactory, PharmacyInventoryFactory, TransferFactory


pytestmark = pytest.mark.django_db


# ---------------------------------------------------------------------------
# Stock lines
# ---------------------------------------------------------------------------

class TestMasterInventoryEndpoints:

    def test_list_requires_auth(self, api_client):
        resp = api_client.get(reverse('api-v1:inventory:master-list'))
        assert resp.status_code == 401

    def test_list(self, authenticated_client):
        MasterInventoryFactory.create_batch(3)
        resp = authenticated_client.get(reverse('api-v1:inventory:master-list'))
        assert resp.status_code == 200
        assert len(resp.data['results']) == 3

    def test_search_by_name(self, authenticated_client):
        MasterInventoryFactory(medicine_name='Paracetamol')
        MasterInventoryFactory(medicine_name='Amoxicillin')
        resp = authenticated_client.get(reverse('api-v1:inventory:master-list'), {'search': 'Parac'})
        assert len(resp.data['results']) == 1

    def test_filter_by_category(self, authenticated_client):
        MasterInventoryFactory(category='TDSR')
        MasterInventoryFactory(category='PDSR')
        resp = authenticated_client.get(reverse('api-v1:inventory:master-list'), {'category': 'PDSR'})
        assert len(resp.data['results']) == 1

    def test_create_inserts_new_line(self, authenticated_client):
        data = {'medicine_name': 'Zinc', 'quantity': 20, 'category': 'TDSR', 'location': 'Shelf 3'}
        resp = authenticated_client.post(reverse('api-v1:inventory:master-list'), data, format='json')
        assert resp.status_code == 201
        assert resp.data['meta']['created'] is True
        assert resp.data['data']['quantity'] == 20

    def test_create_adds_to_existing_line(self, authenticated_client):
        MasterInventoryFactory(medicine_name='Zinc', quantity=5)
        data = {'medicine_name': 'Zinc', 'quantity': 20, 'category': 'TDSR'}
        resp = authenticated_client.post(reverse('api-v1:inventory:master-list'), data, format='json')
        assert resp.status_code == 200
        assert resp.data['meta']['created'] is False
        assert MasterInventory.objects.get(medicine_name='Zinc').quantity == 25

    def test_create_rejects_negative_quantity(self, authenticated_client):
        data = {'medicine_name': 'Zinc', 'quantity': -1, 'category': 'TDSR'}
        resp = authenticated_client.post(reverse('api-v1:inventory:master-list'), data, format='json')
        assert resp.status_code == 400

    def test_patch(self, authenticated_client):
        record = MasterInventoryFactory(quantity=5)
        url = reverse('api-v1:inventory:master-detail', args=[record.pk])
        resp = authenticated_client.patch(url, {'quantity': 9}, format='json')
        assert resp.status_code == 200
        record.refresh_from_db()
        assert record.quantity == 9

    def test_rename_conflict(self, authenticated_client):
        MasterInventoryFactory(medicine_name='Zinc')
        record = MasterInventoryFactory(medicine_name='Iron')
        url = reverse('api-v1:inventory:master-detail', args=[record.pk])
        resp = authenticated_client.patch(url, {'medicine_name': 'Zinc'}, format='json')
        assert resp.status_code == 409
        assert resp.data['code'] == 'DUPLICATE_RESOURCE'

    def test_delete_requires_staff(self, authenticated_client):
        record = MasterInventoryFactory()
        url = reverse('api-v1:inventory:master-detail', args=[record.pk])
        assert authenticated_client.delete(url).status_code == 403
        assert MasterInventory.objects.filter(pk=record.pk).exists()

    def test_delete_as_staff(self, staff_client):
        record = MasterInventoryFactory()
        url = reverse('api-v1:inventory:master-detail', args=[record.pk])
        assert staff_client.delete(url).status_code == 204
        assert not MasterInventory.objects.filter(pk=record.pk).exists()


class TestPharmacyInventoryEndpoints:

    def test_retrieve_shows_low_stock_flag(self, authenticated_client):
        record = PharmacyInventoryFactory(quantity=2, min_stock_level=5)
        url = reverse('api-v1:inventory:pharmacy-detail', args=[record.pk])
        resp = authenticated_client.get(url)
        assert resp.status_code == 200
        assert resp.data['is_low_stock'] is True

    def test_low_stock_action(self, authenticated_client):
        PharmacyInventoryFactory(medicine_name='Zinc', quantity=2, min_stock_level=5)
        PharmacyInventoryFactory(medicine_name='Iron', quantity=20, min_stock_level=5)
        resp = authenticated_client.get(reverse('api-v1:inventory:pharmacy-low-stock'))
        assert resp.status_code == 200
        assert [r['medicine_name'] for r in resp.data['results']] == ['Zinc']

    def test_create_sets_min_stock_level(self, authenticated_client):
        data = {'medicine_name': 'Zinc', 'quantity': 4, 'category': 'PDSR', 'min_stock_level': 3}
        resp = authenticated_client.post(reverse('api-v1:inventory:pharmacy-list'), data, format='json')
        assert resp.status_code == 201
        assert PharmacyInventory.objects.get(medicine_name='Zinc').min_stock_level == 3


# ---------------------------------------------------------------------------
# Transfers
# ---------------------------------------------------------------------------

class TestTransferEndpoints:

    def test_create_transfer(self, authenticated_client):
        source = MasterInventoryFactory(medicine_name='Paracetamol', quantity=100)
        data = {
            'medicine_id': str(source.pk), 'quantity': 30,
            'min_stock_level': 10, 'issuer': 'A', 'receiver': 'B',
        }
        resp = authenticated_client.post(reverse('api-v1:inventory:transfer-list'), data, format='json')
        assert resp.status_code == 201
        assert resp.data['data']['master_quantity'] == 70
        assert resp.data['data']['pharmacy_quantity'] == 30
        assert resp.data['data']['pharmacy_created'] is True
        assert resp.data['data']['transfer']['quantity'] == 30
        assert Transfer.objects.count() == 1

    def test_transfer_exceeding_stock(self, authenticated_client):
        source = MasterInventoryFactory(quantity=10)
        data = {'medicine_id': str(source.pk), 'quantity': 11, 'issuer': 'A', 'receiver': 'B'}
        resp = authenticated_client.post(reverse('api-v1:inventory:transfer-list'), data, format='json')
        assert resp.status_code == 400
        assert resp.data['code'] == 'INSUFFICIENT_STOCK'
        assert not Transfer.objects.exists()

    def test_transfer_zero_quantity(self, authenticated_client):
        source = MasterInventoryFactory(quantity=10)
        data = {'medicine_id': str(source.pk), 'quantity': 0, 'issuer': 'A', 'receiver': 'B'}
        resp = authenticated_client.post(reverse('api-v1:inventory:transfer-list'), data, format='json')
        assert resp.status_code == 400

    def test_transfer_unknown_medicine(self, authenticated_client):
        data = {'medicine_id': str(uuid.uuid4()), 'quantity': 1, 'issuer': 'A', 'receiver': 'B'}
        resp = authenticated_client.post(reverse('api-v1:inventory:transfer-list'), data, format='json')
        assert resp.status_code == 404

    def test_list_by_range(self, authenticated_client):
        TransferFactory(transfer_date=timezone.now() - timedelta(days=2))
        TransferFactory(transfer_date=timezone.now() - timedelta(days=40))
        url = reverse('api-v1:inventory:transfer-list')
        assert len(authenticated_client.get(url, {'range': 'week'}).data['results']) == 1
        assert len(authenticated_client.get(url).data['results']) == 2

    def test_list_invalid_range(self, authenticated_client):
        resp = authenticated_client.get(reverse('api-v1:inventory:transfer-list'), {'range': 'decade'})
        assert resp.status_code == 400

    def test_stats(self, authenticated_client):
        TransferFactory(medicine_name='Zinc', quantity=4)
        TransferFactory(medicine_name='Zinc', quantity=6)
        resp = authenticated_client.get(reverse('api-v1:inventory:transfer-stats'), {'range': 'month'})
        assert resp.status_code == 200
        assert resp.data['data']['total_quantity'] == 10
        assert resp.data['data']['unique_medicines'] == 1

    def test_patch_log_entry(self, authenticated_client):
        transfer = TransferFactory(quantity=10)
        url = reverse('api-v1:inventory:transfer-detail', args=[transfer.pk])
        resp = authenticated_client.patch(url, {'issuer': 'Head nurse'}, format='json')
        assert resp.status_code == 200
        transfer.refresh_from_db()
        assert transfer.issuer == 'Head nurse'

    def test_delete_log_entry_as_staff(self, staff_client):
        transfer = TransferFactory()
        url = reverse('api-v1:inventory:transfer-detail', args=[transfer.pk])
        assert staff_client.delete(url).status_code == 204
