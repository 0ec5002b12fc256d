"""
Inventory — Serializers

Read and write serializers for stock lines and the transfer log, plus
the transfer request accepted by the transfers endpoint.

@file inventory/serializers.py
"""

from rest_framework import serializers

from .models import CategoryChoices, MasterInventory, PharmacyInventory, Transfer


# ---------------------------------------------------------------------------
# Stock lines
# ---------------------------------------------------------------------------

INVENTORY_READ_FIELDS = [
    'id', 'medicine_name', 'quantity',
    'category', 'category_display',
    'location', 'stock_book_page_number',
    'created_at', 'updated_at',
]


class MasterInventoryReadSerializer(serializers.ModelSerializer):
    category_display = serializers.CharField(source='get_category_display', read_only=True)

    class Meta:
        model = MasterInventory
        fields = INVENTORY_READ_FIELDS
        read_only_fields = fields


class PharmacyInventoryReadSerializer(serializers.ModelSerializer):
    category_display = serializers.CharField(source='get_category_display', read_only=True)
    is_low_stock = serializers.BooleanField(read_only=True)

    class Meta:
        model = PharmacyInventory
        fields = INVENTORY_READ_FIELDS + [
            'min_stock_level', 'issuer', 'receiver', 'is_low_stock',
        ]
        read_only_fields = fields


class InventoryAddSerializer(serializers.Serializer):
    """Adds quantity to the named line, creating it when the name is new."""

    medicine_name = serializers.CharField(max_length=255)
    quantity = serializers.IntegerField(min_value=0)
    category = serializers.ChoiceField(choices=CategoryChoices.choices)
    location = serializers.CharField(max_length=120, required=False, allow_blank=True, default='')
    stock_book_page_number = serializers.CharField(
        max_length=50, required=False, allow_blank=True, default='',
    )
    min_stock_level = serializers.IntegerField(min_value=0, required=False, allow_null=True)


class MasterInventoryUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = MasterInventory
        fields = ['medicine_name', 'quantity', 'category', 'location', 'stock_book_page_number']
        extra_kwargs = {'medicine_name': {'validators': []}}


class PharmacyInventoryUpdateSerializer(serializers.ModelSerializer):
    class Meta:
        model = PharmacyInventory
        fields = [
            'medicine_name', 'quantity', 'category', 'location',
            'stock_book_page_number', 'min_stock_level',
        ]
        extra_kwargs = {'medicine_name': {'validators': []}}


# ---------------------------------------------------------------------------
# Transfers
# ---------------------------------------------------------------------------

class TransferReadSerializer(serializers.ModelSerializer):
    class Meta:
        model = Transfer
        fields = [
            'id', 'medicine_name', 'quantity',
            'from_inventory', 'to_inventory',
            'issuer', 'receiver', 'transfer_date',
            'created_at', 'updated_at',
        ]
        read_only_fields = fields


class TransferRequestSerializer(serializers.Serializer):
    medicine_id = serializers.UUIDField()
    quantity = serializers.IntegerField()
    min_stock_level = serializers.IntegerField(required=False, default=0)
    issuer = serializers.CharField(max_length=120)
    receiver = serializers.CharField(max_length=120)

    def validate_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError('Quantity must be positive.')
        return value

    def validate_min_stock_level(self, value):
        if value < 0:
            raise serializers.ValidationError('Minimum stock level must be 0 or greater.')
        return value


class TransferUpdateSerializer(serializers.ModelSerializer):
    """Edits the log entry only; stock balances are not touched."""

    class Meta:
        model = Transfer
        fields = ['quantity', 'from_inventory', 'to_inventory', 'issuer', 'receiver']

    def validate_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError('Quantity must be a positive number.')
        return value
