"""
Inventory — URL Configuration

@file inventory/urls.py
"""

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import MasterInventoryViewSet, PharmacyInventoryViewSet, TransferViewSet

app_name = 'inventory'

router = DefaultRouter()
router.register('master', MasterInventoryViewSet, basename='master')
router.register('pharmacy', PharmacyInventoryViewSet, basename='pharmacy')
router.register('transfers', TransferViewSet, basename='transfer')

urlpatterns = [
    path('', include(router.urls)),
]
