"""
Inventory — Views

DRF ViewSets for master and pharmacy stock lines and for the transfer
log. Creating a transfer runs the stock ledger; every other write goes
through InventoryService / TransferLogService.

@file inventory/views.py
"""

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.constants import MASTER_INVENTORY_TABLE, PHARMACY_INVENTORY_TABLE
from core.store import get_record_store

from .models import MasterInventory, PharmacyInventory, Transfer
from .permissions import CanDeleteStockRecords
from .serializers import (
    InventoryAddSerializer,
    MasterInventoryReadSerializer,
    MasterInventoryUpdateSerializer,
    PharmacyInventoryReadSerializer,
    PharmacyInventoryUpdateSerializer,
    TransferReadSerializer,
    TransferRequestSerializer,
    TransferUpdateSerializer,
)
from .services import InventoryService, StockLedger, TransferLogService


class InventoryRecordViewSet(viewsets.ModelViewSet):
    """
    Shared behaviour for both stock tables.

    POST adds quantity by medicine name (upsert), PUT/PATCH edit a line
    in place, DELETE removes it (staff only).
    """

    permission_classes = [IsAuthenticated, CanDeleteStockRecords]
    filterset_fields = ['category']
    search_fields = ['medicine_name', 'location', 'stock_book_page_number']
    ordering_fields = ['medicine_name', 'quantity', 'category', 'updated_at']
    ordering = ['medicine_name']

    table = None
    model = None
    read_serializer_class = None
    update_serializer_class = None

    def get_queryset(self):
        return self.model.objects.all()

    def get_serializer_class(self):
        if self.action in ('list', 'retrieve'):
            return self.read_serializer_class
        if self.action == 'create':
            return InventoryAddSerializer
        return self.update_serializer_class

    def create(self, request, *args, **kwargs):
        ser = InventoryAddSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        outcome = InventoryService.add_medicine(
            self.table,
            actor=request.user,
            ledger=StockLedger(get_record_store()),
            **ser.validated_data,
        )
        record = self.model.objects.get(pk=outcome.row['id'])
        return Response(
            {
                'success': True,
                'data': self.read_serializer_class(record).data,
                'meta': {'created': outcome.created},
            },
            status=status.HTTP_201_CREATED if outcome.created else status.HTTP_200_OK,
        )

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        instance = self.get_object()
        ser = self.update_serializer_class(instance, data=request.data, partial=partial)
        ser.is_valid(raise_exception=True)
        record = InventoryService.update_record(
            self.table,
            record_id=instance.pk,
            actor=request.user,
            **ser.validated_data,
        )
        return Response({'success': True, 'data': self.read_serializer_class(record).data})

    def perform_destroy(self, instance):
        InventoryService.delete_record(self.table, record_id=instance.pk, actor=self.request.user)


class MasterInventoryViewSet(InventoryRecordViewSet):
    table = MASTER_INVENTORY_TABLE
    model = MasterInventory
    read_serializer_class = MasterInventoryReadSerializer
    update_serializer_class = MasterInventoryUpdateSerializer


class PharmacyInventoryViewSet(InventoryRecordViewSet):
    table = PHARMACY_INVENTORY_TABLE
    model = PharmacyInventory
    read_serializer_class = PharmacyInventoryReadSerializer
    update_serializer_class = PharmacyInventoryUpdateSerializer
    ordering_fields = InventoryRecordViewSet.ordering_fields + ['min_stock_level']

    @action(detail=False, methods=['get'], url_path='low-stock')
    def low_stock(self, request):
        records = InventoryService.low_stock()
        page = self.paginate_queryset(records)
        if page is not None:
            ser = PharmacyInventoryReadSerializer(page, many=True)
            return self.get_paginated_response(ser.data)
        ser = PharmacyInventoryReadSerializer(records, many=True)
        return Response({'success': True, 'data': ser.data})


class TransferViewSet(viewsets.ModelViewSet):
    """
    Transfer log. POST performs a master -> pharmacy transfer; PUT/PATCH
    and DELETE correct the log without moving stock.

    ?range=all|week|month|quarter|year limits list and stats.
    """

    permission_classes = [IsAuthenticated, CanDeleteStockRecords]
    filterset_fields = ['medicine_name', 'from_inventory', 'to_inventory']
    search_fields = ['medicine_name', 'issuer', 'receiver']
    ordering_fields = ['transfer_date', 'quantity', 'medicine_name']
    ordering = ['-transfer_date']

    def get_queryset(self):
        if self.action == 'list':
            return TransferLogService.since(self.request.query_params.get('range', 'all'))
        return Transfer.objects.all()

    def get_serializer_class(self):
        if self.action in ('list', 'retrieve'):
            return TransferReadSerializer
        if self.action == 'create':
            return TransferRequestSerializer
        return TransferUpdateSerializer

    def create(self, request, *args, **kwargs):
        ser = TransferRequestSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        result = StockLedger(get_record_store()).transfer_to_pharmacy(
            actor=request.user, **ser.validated_data,
        )
        return Response(
            {
                'success': True,
                'data': {
                    'transfer': TransferReadSerializer(result.transfer).data,
                    'master_quantity': result.source['quantity'],
                    'pharmacy_quantity': result.destination['quantity'],
                    'pharmacy_created': result.destination_created,
                },
            },
            status=status.HTTP_201_CREATED,
        )

    def update(self, request, *args, **kwargs):
        partial = kwargs.pop('partial', False)
        instance = self.get_object()
        ser = TransferUpdateSerializer(instance, data=request.data, partial=partial)
        ser.is_valid(raise_exception=True)
        transfer = TransferLogService.update_transfer(
            transfer_id=instance.pk, actor=request.user, **ser.validated_data,
        )
        return Response({'success': True, 'data': TransferReadSerializer(transfer).data})

    def perform_destroy(self, instance):
        TransferLogService.delete_transfer(transfer_id=instance.pk, actor=self.request.user)

    @action(detail=False, methods=['get'], url_path='stats')
    def stats(self, request):
        data = TransferLogService.stats(request.query_params.get('range', 'all'))
        return Response({'success': True, 'data': data})
