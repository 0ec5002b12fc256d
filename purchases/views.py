"""
Purchases — Views

DRF ViewSet for purchase entry, item edits, payment and the one-shot
commit to master inventory.

@file purchases/views.py
"""

from django.db.models import Count
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from core.store import get_record_store
from inventory.permissions import CanDeleteStockRecords

from .models import Purchase
from .serializers import (
    CommitResultSerializer,
    PaidAmountSerializer,
    PaymentStatusSerializer,
    PurchaseCreateSerializer,
    PurchaseItemReadSerializer,
    PurchaseItemWriteSerializer,
    PurchaseListSerializer,
    PurchaseReadSerializer,
    PurchaseUpdateSerializer,
)
from .services import PurchaseLedger, PurchaseService


class PurchaseViewSet(viewsets.ModelViewSet):
    """
    Supplier purchases.

    POST creates a purchase with its items. commit/ applies a paid,
    untransferred purchase to master inventory.
    """

    permission_classes = [IsAuthenticated, CanDeleteStockRecords]
    http_method_names = ['get', 'post', 'patch', 'delete', 'head', 'options']
    filterset_fields = ['payment_status', 'transferred_to_inventory', 'supplier_name']
    search_fields = ['invoice_number', 'supplier_name', 'items__medicine_name']
    ordering_fields = ['purchase_date', 'total_amount', 'created_at']
    ordering = ['-purchase_date']

    def get_queryset(self):
        qs = Purchase.objects.all()
        if self.action == 'list':
            return qs.annotate(items_count=Count('items'))
        return qs.prefetch_related('items')

    def get_serializer_class(self):
        if self.action == 'list':
            return PurchaseListSerializer
        if self.action == 'retrieve':
            return PurchaseReadSerializer
        if self.action == 'create':
            return PurchaseCreateSerializer
        return PurchaseUpdateSerializer

    def _read(self, purchase_id):
        return PurchaseReadSerializer(Purchase.objects.prefetch_related('items').get(pk=purchase_id)).data

    def create(self, request, *args, **kwargs):
        ser = PurchaseCreateSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        purchase = PurchaseService.create_purchase(actor=request.user, **ser.validated_data)
        return Response(
            {'success': True, 'data': self._read(purchase.pk)},
            status=status.HTTP_201_CREATED,
        )

    def partial_update(self, request, *args, **kwargs):
        instance = self.get_object()
        ser = PurchaseUpdateSerializer(instance, data=request.data, partial=True)
        ser.is_valid(raise_exception=True)
        purchase = PurchaseService.update_purchase(
            purchase_id=instance.pk, actor=request.user, **ser.validated_data,
        )
        return Response({'success': True, 'data': self._read(purchase.pk)})

    def perform_destroy(self, instance):
        PurchaseService.delete_purchase(purchase_id=instance.pk, actor=self.request.user)

    # --- Items ---

    @action(detail=True, methods=['post'], url_path='items')
    def items(self, request, pk=None):
        ser = PurchaseItemWriteSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        item = PurchaseService.add_item(purchase_id=pk, actor=request.user, **ser.validated_data)
        return Response(
            {'success': True, 'data': PurchaseItemReadSerializer(item).data},
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=['delete'], url_path=r'items/(?P<item_id>[^/.]+)')
    def remove_item(self, request, pk=None, item_id=None):
        purchase = PurchaseService.remove_item(purchase_id=pk, item_id=item_id, actor=request.user)
        return Response({'success': True, 'data': self._read(purchase.pk)})

    # --- Payment ---

    @action(detail=True, methods=['post'], url_path='payment')
    def payment(self, request, pk=None):
        ser = PaidAmountSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        purchase = PurchaseService.update_paid_amount(
            purchase_id=pk, amount=ser.validated_data['amount'], actor=request.user,
        )
        return Response({'success': True, 'data': self._read(purchase.pk)})

    @action(detail=True, methods=['post'], url_path='status')
    def payment_status(self, request, pk=None):
        ser = PaymentStatusSerializer(data=request.data)
        ser.is_valid(raise_exception=True)
        purchase = PurchaseService.set_payment_status(
            purchase_id=pk, status=ser.validated_data['status'], actor=request.user,
        )
        return Response({'success': True, 'data': self._read(purchase.pk)})

    # --- Commit ---

    @action(detail=True, methods=['post'], url_path='commit')
    def commit(self, request, pk=None):
        purchase = self.get_object()
        result = PurchaseLedger(get_record_store()).commit_to_inventory(purchase.pk, actor=request.user)
        return Response({
            'success': True,
            'data': {
                'purchase': self._read(result.purchase['id']),
                **CommitResultSerializer(result).data,
            },
        })

    @action(detail=False, methods=['get'], url_path='summary')
    def summary(self, request):
        return Response({
            'success': True,
            'data': {
                'paid_total': PurchaseService.paid_total(),
                'purchases': Purchase.objects.count(),
                'pending': Purchase.objects.filter(payment_status=Purchase.PaymentStatus.PENDING).count(),
                'awaiting_commit': Purchase.objects.filter(
                    payment_status=Purchase.PaymentStatus.PAID, transferred_to_inventory=False,
                ).count(),
            },
        })
