"""
Purchases — Serializers

Read serializers for purchases with nested items, and request
serializers for entry, item edits, payment and commit results.

@file purchases/serializers.py
"""

from rest_framework import serializers

from inventory.models import CategoryChoices

from .models import Purchase, PurchaseItem


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------

class PurchaseItemReadSerializer(serializers.ModelSerializer):
    class Meta:
        model = PurchaseItem
        fields = [
            'id', 'medicine_name', 'batch_number', 'expiry_date',
            'quantity', 'unit_price', 'total_price',
            'applied_to_inventory', 'created_at',
        ]
        read_only_fields = fields


class PurchaseItemWriteSerializer(serializers.Serializer):
    medicine_name = serializers.CharField(max_length=255)
    batch_number = serializers.CharField(max_length=100)
    expiry_date = serializers.DateField()
    quantity = serializers.IntegerField(min_value=1)
    unit_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=0)
    total_price = serializers.DecimalField(
        max_digits=14, decimal_places=2, min_value=0, required=False,
    )
    is_new_medicine = serializers.BooleanField(required=False, default=False)
    category = serializers.ChoiceField(choices=CategoryChoices.choices, required=False)
    stock_book_page_number = serializers.CharField(max_length=50, required=False, allow_blank=True)

    def validate(self, attrs):
        if attrs.get('is_new_medicine'):
            errors = {}
            if not attrs.get('category'):
                errors['category'] = 'Category is required for a new medicine.'
            if not attrs.get('stock_book_page_number'):
                errors['stock_book_page_number'] = 'Stock book page number is required for a new medicine.'
            if errors:
                raise serializers.ValidationError(errors)
        return attrs


# ---------------------------------------------------------------------------
# Purchases
# ---------------------------------------------------------------------------

class PurchaseReadSerializer(serializers.ModelSerializer):
    payment_status_display = serializers.CharField(source='get_payment_status_display', read_only=True)
    balance_due = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    can_commit = serializers.BooleanField(read_only=True)
    items = PurchaseItemReadSerializer(many=True, read_only=True)

    class Meta:
        model = Purchase
        fields = [
            'id', 'invoice_number', 'supplier_name', 'purchase_date',
            'total_amount', 'paid_amount', 'balance_due',
            'payment_status', 'payment_status_display',
            'notes', 'transferred_to_inventory', 'transferred_at', 'can_commit',
            'items', 'created_at', 'updated_at',
        ]
        read_only_fields = fields


class PurchaseListSerializer(serializers.ModelSerializer):
    items_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Purchase
        fields = [
            'id', 'invoice_number', 'supplier_name', 'purchase_date',
            'total_amount', 'paid_amount', 'payment_status',
            'transferred_to_inventory', 'items_count', 'created_at',
        ]
        read_only_fields = fields


class PurchaseCreateSerializer(serializers.Serializer):
    invoice_number = serializers.CharField(max_length=50)
    supplier_name = serializers.CharField(max_length=255)
    purchase_date = serializers.DateField()
    notes = serializers.CharField(required=False, allow_blank=True, default='')
    paid_amount = serializers.DecimalField(
        max_digits=14, decimal_places=2, min_value=0, required=False,
    )
    items = PurchaseItemWriteSerializer(many=True, allow_empty=False)


class PurchaseUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = Purchase
        fields = ['invoice_number', 'supplier_name', 'purchase_date', 'notes']


class PaidAmountSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)


class PaymentStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=Purchase.PaymentStatus.choices)


class CommitResultSerializer(serializers.Serializer):
    """Renders a CommitResult; the purchase itself is re-read by the view."""

    applied = serializers.SerializerMethodField()
    skipped_item_ids = serializers.ListField(child=serializers.UUIDField())

    def get_applied(self, obj):
        return [
            {
                'item_id': str(applied.item_id),
                'medicine_name': applied.medicine_name,
                'quantity': applied.quantity,
                'balance': applied.balance,
                'created': applied.created,
            }
            for applied in obj.applied
        ]
