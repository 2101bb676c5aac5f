"""
Fact text view.

GET /references/<identifier> returns the text of a loaded fact. Only
identifiers present in the store are served, never arbitrary paths.
"""
import logging

from django.http import Http404, HttpResponse, JsonResponse
from django.views.decorators.http import require_GET

from apps.rag.context import get_context
from apps.rag.errors import ContextNotReady

logger = logging.getLogger(__name__)


@require_GET
def fact_reference(request, identifier):
    try:
        store = get_context().store
    except ContextNotReady:
        return JsonResponse({"error": "Fact store is not loaded yet"}, status=503)

    fact = store.get(identifier)
    if fact is None:
        logger.info(f"Unknown fact requested: {identifier}")
        raise Http404(f"No fact named {identifier}")

    return HttpResponse(fact.text, content_type='text/plain; charset=utf-8')
