"""
Error taxonomy for the fact answering pipeline.

Startup errors (IngestionError, and EmbeddingError raised while loading)
are fatal. Everything else is raised per request and only fails that request.
"""
from typing import Optional


class RagError(Exception):
    """Base class for all pipeline errors."""
    pass


class IngestionError(RagError):
    """Raised when the fact directory cannot be loaded."""
    pass


class EmbeddingError(RagError):
    """Raised when embedding generation fails."""
    pass


class EmbeddingTimeout(EmbeddingError):
    """Raised when the embedding provider does not answer in time."""
    pass


class CompletionError(RagError):
    """Raised when a chat completion call fails."""
    pass


class CompletionTimeout(CompletionError):
    """Raised when the completion provider does not answer in time."""
    pass


class EmptyCompletionError(CompletionError):
    """Raised when the provider returns no choices or empty content."""
    pass


class ModelOutputError(RagError):
    """
    Raised when model output does not match the requested JSON schema.

    The raw response is kept for diagnostics.
    """

    def __init__(self, message: str, raw_response: Optional[str] = None):
        super().__init__(message)
        self.raw_response = raw_response


class ExpansionError(ModelOutputError):
    """Raised when the query expansion response cannot be parsed."""
    pass


class CompositionError(ModelOutputError):
    """Raised when the cited answer response cannot be parsed."""
    pass


class SimilarityError(RagError):
    """Raised when two embeddings cannot be compared."""
    pass


class QueryValidationError(RagError):
    """Raised when query validation fails."""
    pass


class ContextNotReady(RagError):
    """Raised when a request arrives before the fact store is loaded."""
    pass
