"""
Purchases — Django Admin Configuration

Purchases with inline items, payment and commit badges.

@file purchases/admin.py
"""

from django.contrib import admin
from django.utils.html import format_html
from django.utils.translation import gettext_lazy as _

from .models import Purchase, PurchaseItem


class PurchaseItemInline(admin.TabularInline):
    model = PurchaseItem
    extra = 0
    readonly_fields = ('id', 'applied_to_inventory', 'created_at')
    fields = (
        'medicine_name', 'batch_number', 'expiry_date',
        'quantity', 'unit_price', 'total_price', 'applied_to_inventory',
    )


@admin.register(Purchase)
class PurchaseAdmin(admin.ModelAdmin):
    list_display = (
        'invoice_number', 'supplier_name', 'purchase_date',
        'total_amount', 'paid_amount', 'payment_badge', 'transferred_to_inventory',
    )
    list_filter = ('payment_status', 'transferred_to_inventory', 'purchase_date')
    search_fields = ('invoice_number', 'supplier_name', 'items__medicine_name')
    readonly_fields = (
        'id', 'transferred_to_inventory', 'transferred_at',
        'created_at', 'updated_at', 'created_by', 'updated_by',
    )
    date_hierarchy = 'purchase_date'
    show_full_result_count = False
    list_per_page = 30
    ordering = ('-purchase_date',)
    inlines = [PurchaseItemInline]

    fieldsets = (
        (_('Invoice'), {'fields': ('id', 'invoice_number', 'supplier_name', 'purchase_date', 'notes')}),
        (_('Payment'), {'fields': ('total_amount', 'paid_amount', 'payment_status')}),
        (_('Inventory'), {'fields': ('transferred_to_inventory', 'transferred_at')}),
        (_('Audit'), {
            'fields': ('created_at', 'updated_at', 'created_by', 'updated_by'),
            'classes': ('collapse',),
        }),
    )

    @admin.display(description=_('Payment'))
    def payment_badge(self, obj):
        colors = {'paid': '#22c55e', 'pending': '#eab308'}
        return format_html(
            '<span style="background:{};color:#fff;padding:2px 8px;'
            'border-radius:4px;font-size:11px;font-weight:600;">{}</span>',
            colors.get(obj.payment_status, '#6b7280'), obj.get_payment_status_display(),
        )
