"""
Embedding service for facts and queries.

The same client embeds the fact files at startup and every expanded
query at request time, so both sides share one model and one dimension.
"""
import logging
import math
import re
from abc import ABC, abstractmethod
from typing import List, Optional

import httpx
from django.conf import settings

from apps.rag.errors import (
    EmbeddingError,
    EmbeddingTimeout,
    QueryValidationError,
)

logger = logging.getLogger(__name__)

MAX_QUERY_LENGTH = 2000


def normalize_query(query: str) -> str:
    """
    Normalize a user query before it enters the pipeline.

    - Strip leading/trailing whitespace
    - Collapse multiple whitespace to single space
    - Raise if empty or too long

    Raises:
        QueryValidationError: If query is empty after normalization
    """
    if not query:
        raise QueryValidationError("Query cannot be empty")

    normalized = re.sub(r'\s+', ' ', query.strip())

    if not normalized:
        raise QueryValidationError("Query cannot be empty")

    if len(normalized) > MAX_QUERY_LENGTH:
        raise QueryValidationError(
            f"Query too long (max {MAX_QUERY_LENGTH} characters)"
        )

    return normalized


class BaseEmbeddingClient(ABC):
    """Abstract base class for embedding providers."""

    @abstractmethod
    def embed(self, text: str) -> List[float]:
        """
        Generate an embedding vector for a single text.

        Raises:
            EmbeddingError: If the provider call fails
        """
        pass

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Return the embedding model name."""
        pass


def _check_vector(embedding) -> List[float]:
    if not embedding or not isinstance(embedding, list):
        raise EmbeddingError("Provider returned empty embedding")
    try:
        vector = [float(x) for x in embedding]
    except (TypeError, ValueError):
        raise EmbeddingError("Provider returned a non-numeric embedding")
    if not all(math.isfinite(x) for x in vector):
        raise EmbeddingError("Provider returned a non-finite embedding")
    return vector


class OpenAIEmbeddingClient(BaseEmbeddingClient):
    """Embedding client for the OpenAI /embeddings endpoint."""

    def __init__(self):
        self.api_key = getattr(settings, 'OPENAI_API_KEY', '')
        self.base_url = getattr(settings, 'OPENAI_BASE_URL', 'https://api.openai.com/v1')
        self.model = getattr(settings, 'OPENAI_EMBEDDING_MODEL', 'text-embedding-3-large')
        self.timeout = getattr(settings, 'OPENAI_TIMEOUT', 120)

        if not self.api_key:
            raise EmbeddingError("OPENAI_API_KEY not configured")

    @property
    def model_name(self) -> str:
        return self.model

    def embed(self, text: str) -> List[float]:
        if not text or not text.strip():
            raise EmbeddingError("Cannot generate embedding for empty text")

        try:
            with httpx.Client(timeout=float(self.timeout)) as client:
                response = client.post(
                    f"{self.base_url}/embeddings",
                    json={
                        "model": self.model,
                        "input": text,
                    },
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    }
                )
                response.raise_for_status()
                data = response.json()

                items = data.get("data", [])
                if not items:
                    raise EmbeddingError("No data in OpenAI embedding response")

                embedding = _check_vector(items[0].get("embedding"))
                logger.debug(f"Generated embedding with {len(embedding)} dimensions")
                return embedding

        except httpx.HTTPStatusError as e:
            logger.error(f"OpenAI embedding request failed: {e}")
            raise EmbeddingError(f"Embedding service error: {e.response.status_code}")
        except httpx.TimeoutException:
            logger.error("OpenAI embedding request timed out")
            raise EmbeddingTimeout("Embedding service timed out")
        except httpx.RequestError as e:
            logger.error(f"OpenAI connection error: {e}")
            raise EmbeddingError("Could not connect to embedding service")
        except (KeyError, IndexError, TypeError, AttributeError, ValueError) as e:
            logger.error(f"Unexpected OpenAI embedding response format: {e}")
            raise EmbeddingError("Invalid response from embedding service")


class OllamaEmbeddingClient(BaseEmbeddingClient):
    """Embedding client for Ollama local inference."""

    def __init__(self):
        self.base_url = getattr(settings, 'OLLAMA_BASE_URL', 'http://localhost:11434')
        self.model = getattr(settings, 'OLLAMA_EMBED_MODEL', 'nomic-embed-text')
        self.timeout = getattr(settings, 'OLLAMA_EMBED_TIMEOUT', 120)

    @property
    def model_name(self) -> str:
        return self.model

    def embed(self, text: str) -> List[float]:
        if not text or not text.strip():
            raise EmbeddingError("Cannot generate embedding for empty text")

        try:
            with httpx.Client(timeout=float(self.timeout)) as client:
                response = client.post(
                    f"{self.base_url}/api/embeddings",
                    json={
                        "model": self.model,
                        "prompt": text
                    }
                )
                response.raise_for_status()
                data = response.json()

                # Ollama /api/embeddings returns {"embedding": [...]}
                embedding = _check_vector(data.get("embedding"))
                logger.debug(f"Generated embedding with {len(embedding)} dimensions")
                return embedding

        except httpx.HTTPStatusError as e:
            logger.error(f"Ollama embedding request failed: {e}")
            raise EmbeddingError(f"Embedding service error: {e.response.status_code}")
        except httpx.TimeoutException:
            logger.error("Ollama embedding request timed out")
            raise EmbeddingTimeout("Embedding service timed out")
        except httpx.RequestError as e:
            logger.error(f"Ollama connection error: {e}")
            raise EmbeddingError("Could not connect to embedding service")
        except (KeyError, TypeError, AttributeError, ValueError) as e:
            logger.error(f"Unexpected Ollama response format: {e}")
            raise EmbeddingError("Invalid response from embedding service")


_client_instance: Optional[BaseEmbeddingClient] = None


def get_embedding_client() -> BaseEmbeddingClient:
    """
    Get the configured embedding client instance.

    Uses LLM_PROVIDER to pick the provider:
    - "openai" (default): OpenAI embeddings API
    - "ollama": Local Ollama inference
    """
    global _client_instance

    if _client_instance is not None:
        return _client_instance

    provider = getattr(settings, 'LLM_PROVIDER', 'openai').lower()

    if provider == 'ollama':
        logger.info("Using Ollama for embeddings")
        _client_instance = OllamaEmbeddingClient()
    else:
        logger.info("Using OpenAI for embeddings")
        _client_instance = OpenAIEmbeddingClient()

    return _client_instance


def reset_embedding_client():
    """Reset the cached client instance. Useful for testing."""
    global _client_instance
    _client_instance = None
