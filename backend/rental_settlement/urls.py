"""
URL configuration for the rental settlement service.

Every app is mounted under /api/v1/ and, for older clients, under /api/.
"""
from django.contrib import admin
from django.urls import path, include
from drf_spectacular.views import SpectacularAPIView, SpectacularSwaggerView, SpectacularRedocView
from common.health import health_check

API_APPS = ['users.urls', 'orders.urls', 'disputes.urls', 'refunds.urls']

urlpatterns = [
    path('admin/', admin.site.urls),

    # Health check endpoint
    path('healthz', health_check, name='health-check'),

    # API Documentation
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('api/redoc/', SpectacularRedocView.as_view(url_name='schema'), name='redoc'),
]

# API v1 endpoints (versioned)
urlpatterns += [path('api/v1/', include(module)) for module in API_APPS]

# Backward compatible endpoints (without version prefix)
urlpatterns += [path('api/', include(module)) for module in API_APPS]
