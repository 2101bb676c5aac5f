"""
Startup context for request handlers.

The fact store is loaded once, before any request is served, and shared
read-only by every request. Loading returns an explicit StartupResult; the
entry point (wsgi/asgi module or the `serve` command) decides what to do
with a failure.
"""
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from django.conf import settings

from apps.facts.store import FactStore
from apps.rag.audit import audit_facts_loaded
from apps.rag.embeddings import get_embedding_client
from apps.rag.errors import ContextNotReady, RagError
from apps.rag.llm_client import get_llm_client
from apps.rag.pipeline import RagPipeline, build_pipeline

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RagContext:
    store: FactStore
    pipeline: RagPipeline


@dataclass(frozen=True)
class StartupResult:
    context: Optional[RagContext] = None
    error: Optional[RagError] = None

    @property
    def ok(self) -> bool:
        return self.context is not None


def build_context(facts_dir=None, embedder=None, completer=None) -> StartupResult:
    """
    Load the fact store and wire the pipeline.

    Never raises for pipeline errors; they are returned in the result.
    """
    directory = Path(facts_dir or getattr(settings, 'FACTS_DIR', 'references'))

    try:
        embedder = embedder or get_embedding_client()
        completer = completer or get_llm_client()
        store = FactStore.load(directory, embedder)
    except RagError as e:
        logger.error(f"Startup failed: {e}")
        return StartupResult(error=e)

    pipeline = build_pipeline(store, embedder, completer)
    return StartupResult(context=RagContext(store=store, pipeline=pipeline))


_context: Optional[RagContext] = None


def install_context(context: RagContext) -> None:
    global _context
    _context = context


def get_context() -> RagContext:
    """Return the installed context or raise ContextNotReady."""
    if _context is None:
        raise ContextNotReady("Fact store is not loaded")
    return _context


def reset_context() -> None:
    """Forget the installed context. Useful for testing."""
    global _context
    _context = None


def bootstrap(facts_dir=None) -> RagContext:
    """
    Build and install the context, exiting the process on failure.

    Called by entry points only; library code uses build_context. An
    already installed context is kept, so `serve` followed by the wsgi
    import loads the facts once.
    """
    if _context is not None:
        return _context

    result = build_context(facts_dir)
    if not result.ok:
        logger.critical(f"Cannot serve without a loaded fact store: {result.error}")
        sys.exit(1)

    store = result.context.store
    install_context(result.context)
    audit_facts_loaded(len(store), store.dimension)
    logger.info(f"Serving {len(store)} facts")
    return result.context
