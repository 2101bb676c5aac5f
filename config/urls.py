"""
URL configuration for the factcite service.
"""
from django.urls import path, include

from apps.rag.health import healthz, readyz

urlpatterns = [
    # Health check endpoints
    path('healthz', healthz, name='healthz'),
    path('readyz', readyz, name='readyz'),

    path('references/', include('apps.facts.urls')),
    path('', include('apps.rag.urls')),
]
