"""
Health check endpoints for container probes.

- /healthz - Liveness (is process running?)
- /readyz - Readiness (is the fact store loaded?)
"""
import logging
from datetime import datetime, timezone

from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_GET

from apps.rag.context import get_context
from apps.rag.errors import ContextNotReady

logger = logging.getLogger(__name__)


def get_timestamp() -> str:
    """Get current UTC timestamp in ISO format."""
    return datetime.now(timezone.utc).isoformat()


@csrf_exempt
@require_GET
def healthz(request):
    """
    Liveness probe endpoint.

    Returns 200 if the Django process is running.
    """
    return JsonResponse({
        'status': 'healthy',
        'timestamp': get_timestamp()
    })


@csrf_exempt
@require_GET
def readyz(request):
    """
    Readiness probe endpoint.

    Returns 200 only once the fact store has been loaded.
    """
    try:
        store = get_context().store
    except ContextNotReady:
        logger.warning("Readiness check: fact store not loaded")
        return JsonResponse({
            'status': 'not_ready',
            'timestamp': get_timestamp(),
            'checks': {'facts': 'not loaded'},
        }, status=503)

    return JsonResponse({
        'status': 'ready',
        'timestamp': get_timestamp(),
        'checks': {
            'facts': len(store),
            'dimension': store.dimension,
        },
    })
