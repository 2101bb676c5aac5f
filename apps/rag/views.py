"""
RAG views.

Provides:
- GET/POST /            HTML query form and rendered verified answer
- POST /api/ask         Same pipeline, JSON response
"""
import json
import logging
from typing import Optional, Tuple

from django.conf import settings
from django.http import JsonResponse
from django.shortcuts import render
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from apps.rag.audit import audit_rag_query
from apps.rag.context import get_context
from apps.rag.embeddings import normalize_query
from apps.rag.errors import (
    CompletionError,
    CompletionTimeout,
    CompositionError,
    ContextNotReady,
    EmbeddingError,
    EmbeddingTimeout,
    ExpansionError,
    QueryValidationError,
    RagError,
    SimilarityError,
)
from apps.rag.pipeline import PipelineResult

logger = logging.getLogger(__name__)


def error_status(error: RagError) -> int:
    """Map a pipeline error to an HTTP status code."""
    if isinstance(error, QueryValidationError):
        return 400
    if isinstance(error, ContextNotReady):
        return 503
    if isinstance(error, (CompletionTimeout, EmbeddingTimeout)):
        return 504
    if isinstance(error, (CompletionError, EmbeddingError, ExpansionError, CompositionError)):
        return 502
    if isinstance(error, SimilarityError):
        logger.critical(f"Embedding dimension invariant violated: {error}")
    return 500


def error_message(error: RagError) -> str:
    if isinstance(error, QueryValidationError):
        return str(error)
    if isinstance(error, ContextNotReady):
        return "Fact store is not loaded yet"
    if isinstance(error, ExpansionError):
        return "Could not expand the query"
    if isinstance(error, CompositionError):
        return "Could not compose a cited answer"
    if isinstance(error, (CompletionError, EmbeddingError)):
        return "Language model service unavailable"
    return "Internal error"


def run_query(request, raw_query: str) -> Tuple[Optional[PipelineResult], Optional[RagError]]:
    """
    Run the pipeline for one request.

    Returns (result, None) on success and (None, error) on any pipeline
    failure. Failures are isolated to this request.
    """
    question_length = len(raw_query or "")

    try:
        query = normalize_query(raw_query)
        result = get_context().pipeline.answer(query)
    except RagError as e:
        raw = getattr(e, 'raw_response', None)
        if raw:
            logger.error(f"Query failed: {e}; raw model response: {raw[:500]}")
        else:
            logger.error(f"Query failed: {e}")
        audit_rag_query(request, question_length, error=type(e).__name__)
        return None, e

    audit_rag_query(
        request,
        question_length,
        expanded_count=len(result.expanded_queries),
        candidate_count=len(result.facts),
        citation_count=len(result.answer.citations),
        unverified_count=len(result.answer.unverified_references),
    )
    return result, None


@method_decorator(csrf_exempt, name='dispatch')
class IndexView(View):
    """
    GET /   Empty query form
    POST /  Run the pipeline for form field "query" and render the answer
    """

    template_name = 'rag/index.html'

    def render_page(self, request, query="", result=None, error=None, status=200):
        return render(
            request,
            self.template_name,
            {
                "title": getattr(settings, 'PAGE_TITLE', 'Study'),
                "query": query,
                "response": result.answer if result else None,
                "error": error_message(error) if error else None,
            },
            status=status,
        )

    def get(self, request):
        return self.render_page(request)

    def post(self, request):
        raw_query = request.POST.get("query", "")
        result, error = run_query(request, raw_query)

        if error:
            return self.render_page(request, raw_query, error=error, status=error_status(error))

        return self.render_page(request, raw_query, result=result)


@method_decorator(csrf_exempt, name='dispatch')
class AskView(View):
    """
    POST /api/ask

    Request body:
        {"query": "why is the sky blue?"}

    Response:
        {
            "query": "why is the sky blue?",
            "expandedQueries": ["why is the sky blue?", "what causes sky color"],
            "candidates": ["sky.txt"],
            "commentary": "...",
            "citations": [
                {
                    "claim": "...",
                    "references": [
                        {"file": "sky.txt", "excerpt": "...", "exists": true}
                    ]
                }
            ],
            "allVerified": true,
            "model": "gpt-4o"
        }
    """

    def post(self, request):
        try:
            body = json.loads(request.body)
        except json.JSONDecodeError:
            return JsonResponse({"error": "Invalid JSON"}, status=400)

        if not isinstance(body, dict):
            return JsonResponse({"error": "Request body must be a JSON object"}, status=400)

        raw_query = body.get("query", body.get("question", ""))
        if not isinstance(raw_query, str):
            return JsonResponse({"error": "query must be a string"}, status=400)

        result, error = run_query(request, raw_query)

        if error:
            return JsonResponse(
                {"error": error_message(error), "code": type(error).__name__},
                status=error_status(error),
            )

        return JsonResponse(result.to_dict())
