"""
ClinicStock — Root URL Configuration

All API endpoints are namespaced under /api/v1/.
The DRF browsable API is available for route inspection in development.

@file config/urls.py
"""

from django.contrib import admin
from django.urls import include, path
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.reverse import reverse
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

admin.site.site_header = 'ClinicStock Administration'
admin.site.site_title = 'ClinicStock'
admin.site.index_title = 'Clinic Pharmacy Inventory'


@api_view(['GET'])
@permission_classes([AllowAny])
def api_root(request, format=None):
    """ClinicStock API v1, endpoint directory."""
    return Response({
        'auth': {
            'token': reverse('api-v1:auth:token-obtain', request=request, format=format),
            'refresh': reverse('api-v1:auth:token-refresh', request=request, format=format),
        },
        'inventory': {
            'master': reverse('api-v1:inventory:master-list', request=request, format=format),
            'pharmacy': reverse('api-v1:inventory:pharmacy-list', request=request, format=format),
            'low_stock': reverse('api-v1:inventory:pharmacy-low-stock', request=request, format=format),
            'transfers': reverse('api-v1:inventory:transfer-list', request=request, format=format),
        },
        'purchases': reverse('api-v1:purchases:purchase-list', request=request, format=format),
    })


auth_patterns = [
    path('token/', TokenObtainPairView.as_view(), name='token-obtain'),
    path('token/refresh/', TokenRefreshView.as_view(), name='token-refresh'),
]

api_v1_patterns = [
    path('', api_root, name='api-root'),
    path('auth/', include((auth_patterns, 'auth'))),
    path('inventory/', include('inventory.urls', namespace='inventory')),
    path('purchases/', include('purchases.urls', namespace='purchases')),
]

urlpatterns = [
    path('admin/', admin.site.urls),

    # DRF session auth (powers the "Log in" button on the browsable API)
    path('api/auth/', include('rest_framework.urls', namespace='rest_framework')),

    # Versioned API
    path('api/v1/', include((api_v1_patterns, 'api-v1'))),
]
