"""
Inventory — Permissions

Any authenticated user works the stock screens; deleting stock lines or
transfer log entries is restricted to staff.

@file inventory/permissions.py
"""

from rest_framework.permissions import BasePermission


class CanDeleteStockRecords(BasePermission):
    """Only the destroy action is restricted; it requires staff or superuser."""

    def has_permission(self, request, view):
        if getattr(view, 'action', None) != 'destroy':
            return True
        user = request.user
        if not user or not user.is_authenticated:
            return False
        return user.is_staff or user.is_superuser
