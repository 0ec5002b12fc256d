"""
Inventory — Django Admin Configuration

Admin for master and pharmacy stock lines with a low-stock badge, and a
read-only view of the transfer log.

@file inventory/admin.py
"""

from django.contrib import admin
from django.utils.html import format_html
from django.utils.translation import gettext_lazy as _

from .models import MasterInventory, PharmacyInventory, Transfer

AUDIT_FIELDSET = (_('Audit'), {
    'fields': ('created_at', 'updated_at', 'created_by', 'updated_by'),
    'classes': ('collapse',),
})


@admin.register(MasterInventory)
class MasterInventoryAdmin(admin.ModelAdmin):
    list_display = ('medicine_name', 'quantity', 'category', 'location', 'stock_book_page_number', 'updated_at')
    list_filter = ('category',)
    search_fields = ('medicine_name', 'location', 'stock_book_page_number')
    readonly_fields = ('id', 'created_at', 'updated_at', 'created_by', 'updated_by')
    list_per_page = 50
    ordering = ('medicine_name',)

    fieldsets = (
        (_('Stock'), {'fields': ('id', 'medicine_name', 'quantity')}),
        (_('Classification'), {'fields': ('category', 'location', 'stock_book_page_number')}),
        AUDIT_FIELDSET,
    )


@admin.register(PharmacyInventory)
class PharmacyInventoryAdmin(admin.ModelAdmin):
    list_display = (
        'medicine_name', 'quantity', 'min_stock_level', 'stock_badge',
        'category', 'location', 'updated_at',
    )
    list_filter = ('category',)
    search_fields = ('medicine_name', 'location', 'issuer', 'receiver')
    readonly_fields = ('id', 'created_at', 'updated_at', 'created_by', 'updated_by')
    list_per_page = 50
    ordering = ('medicine_name',)

    fieldsets = (
        (_('Stock'), {'fields': ('id', 'medicine_name', 'quantity', 'min_stock_level')}),
        (_('Classification'), {'fields': ('category', 'location', 'stock_book_page_number')}),
        (_('First transfer'), {'fields': ('issuer', 'receiver')}),
        AUDIT_FIELDSET,
    )

    @admin.display(description=_('Stock'))
    def stock_badge(self, obj):
        color, label = ('#ef4444', 'LOW') if obj.is_low_stock else ('#22c55e', 'OK')
        return format_html(
            '<span style="background:{};color:#fff;padding:2px 8px;'
            'border-radius:4px;font-size:11px;font-weight:600;">{}</span>',
            color, label,
        )


@admin.register(Transfer)
class TransferAdmin(admin.ModelAdmin):
    list_display = ('transfer_date', 'medicine_name', 'quantity', 'from_inventory', 'to_inventory', 'issuer', 'receiver')
    list_filter = ('from_inventory', 'to_inventory', 'transfer_date')
    search_fields = ('medicine_name', 'issuer', 'receiver')
    date_hierarchy = 'transfer_date'
    show_full_result_count = False
    list_per_page = 50
    ordering = ('-transfer_date',)

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False
