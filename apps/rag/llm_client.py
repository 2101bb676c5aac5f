"""
LLM Client Abstraction Layer.

Provides a unified interface for JSON-mode chat completions that can
switch between:
- OpenAI (or any OpenAI-compatible API)
- Ollama (local inference)

Every caller in the pipeline asks for a JSON object and parses it itself;
clients only return the raw message content.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Dict, Optional

import httpx
from django.conf import settings

from apps.rag.errors import (
    CompletionError,
    CompletionTimeout,
    EmptyCompletionError,
)

logger = logging.getLogger(__name__)

@dataclass
class LLMMessage:
    """A message in a chat conversation."""
    role: str  # "system", "user", or "assistant"
    content: str


@dataclass
class LLMResponse:
    """Response from an LLM call."""
    content: str
    model: str
    usage: Optional[Dict[str, int]] = None  # token usage if available


class BaseLLMClient(ABC):
    """Abstract base class for completion clients."""

    @abstractmethod
    def chat(self, messages: List[LLMMessage]) -> LLMResponse:
        """
        Send a JSON-mode chat completion request.

        Args:
            messages: List of messages in the conversation

        Returns:
            LLMResponse with the model's raw content

        Raises:
            CompletionError: If the request fails or returns nothing
        """
        pass

    @property
    @abstractmethod
    def model_name(self) -> str:
        """Return the model name being used."""
        pass

    def complete(self, system_prompt: str, user_prompt: str) -> str:
        """Send one system + user exchange and return the raw content."""
        response = self.chat([
            LLMMessage(role="system", content=system_prompt),
            LLMMessage(role="user", content=user_prompt),
        ])
        if response.usage:
            logger.info(
                f"Completion usage: model={response.model}, "
                f"prompt_tokens={response.usage.get('prompt_tokens')}, "
                f"completion_tokens={response.usage.get('completion_tokens')}"
            )
        return response.content


class OllamaClient(BaseLLMClient):
    """LLM client for Ollama local inference."""

    def __init__(self):
        self.base_url = getattr(settings, 'OLLAMA_BASE_URL', 'http://localhost:11434')
        self.model = getattr(settings, 'OLLAMA_CHAT_MODEL', 'llama3.2')
        self.timeout = getattr(settings, 'OLLAMA_CHAT_TIMEOUT', 600)

    @property
    def model_name(self) -> str:
        return self.model

    def chat(self, messages: List[LLMMessage]) -> LLMResponse:
        """Send chat request to Ollama."""
        logger.info(f"Calling Ollama chat: model={self.model}")

        ollama_messages = [
            {"role": msg.role, "content": msg.content}
            for msg in messages
        ]

        try:
            with httpx.Client(timeout=float(self.timeout)) as client:
                response = client.post(
                    f"{self.base_url}/api/chat",
                    json={
                        "model": self.model,
                        "messages": ollama_messages,
                        "stream": False,
                        "format": "json",
                    }
                )
                response.raise_for_status()
                data = response.json()

                content = data.get("message", {}).get("content", "")
                if not content:
                    raise EmptyCompletionError("Empty response from Ollama")

                logger.info(f"Ollama response: {len(content)} chars")
                return LLMResponse(content=content, model=self.model)

        except httpx.HTTPStatusError as e:
            logger.error(f"Ollama HTTP error: {e}")
            raise CompletionError(f"Ollama service error: {e.response.status_code}")
        except httpx.TimeoutException:
            logger.error("Ollama request timed out")
            raise CompletionTimeout("Ollama service timed out")
        except httpx.RequestError as e:
            logger.error(f"Ollama connection error: {e}")
            raise CompletionError("Could not connect to Ollama")
        except (TypeError, AttributeError, ValueError) as e:
            logger.error(f"Unexpected Ollama response format: {e}")
            raise CompletionError("Invalid response from Ollama")


class OpenAICompatibleClient(BaseLLMClient):
    """
    LLM client for OpenAI-compatible APIs.

    Works with: OpenAI, Azure OpenAI, Groq, Together, local servers, etc.
    """

    def __init__(self):
        self.api_key = getattr(settings, 'OPENAI_API_KEY', '')
        self.base_url = getattr(settings, 'OPENAI_BASE_URL', 'https://api.openai.com/v1')
        self.model = getattr(settings, 'OPENAI_LANGUAGE_MODEL', 'gpt-4o')
        self.timeout = getattr(settings, 'OPENAI_TIMEOUT', 120)

        if not self.api_key:
            raise CompletionError("OPENAI_API_KEY not configured")

    @property
    def model_name(self) -> str:
        return self.model

    def chat(self, messages: List[LLMMessage]) -> LLMResponse:
        """Send chat request to OpenAI-compatible API."""
        logger.info(f"Calling OpenAI API: model={self.model}")

        openai_messages = [
            {"role": msg.role, "content": msg.content}
            for msg in messages
        ]

        try:
            with httpx.Client(timeout=float(self.timeout)) as client:
                response = client.post(
                    f"{self.base_url}/chat/completions",
                    json={
                        "model": self.model,
                        "messages": openai_messages,
                        "response_format": {"type": "json_object"},
                    },
                    headers={
                        "Authorization": f"Bearer {self.api_key}",
                        "Content-Type": "application/json",
                    }
                )
                response.raise_for_status()
                data = response.json()

                choices = data.get("choices", [])
                if not choices:
                    raise EmptyCompletionError("No choices in OpenAI response")

                content = choices[0].get("message", {}).get("content", "")
                if not content:
                    raise EmptyCompletionError("Empty response from OpenAI")

                usage = data.get("usage")

                logger.info(f"OpenAI response: {len(content)} chars")
                return LLMResponse(content=content, model=self.model, usage=usage)

        except httpx.HTTPStatusError as e:
            logger.error(f"OpenAI HTTP error: {e}")
            raise CompletionError(f"OpenAI API error: {e.response.status_code}")
        except httpx.TimeoutException:
            logger.error("OpenAI request timed out")
            raise CompletionTimeout("OpenAI API timed out")
        except httpx.RequestError as e:
            logger.error(f"OpenAI connection error: {e}")
            raise CompletionError("Could not connect to OpenAI API")
        except (TypeError, AttributeError, ValueError) as e:
            logger.error(f"Unexpected OpenAI response format: {e}")
            raise CompletionError("Invalid response from OpenAI API")


# =============================================================================
# Client Factory
# =============================================================================

_client_instance: Optional[BaseLLMClient] = None


def get_llm_client() -> BaseLLMClient:
    """
    Get the configured LLM client instance.

    Uses LLM_PROVIDER setting to determine which client to use:
    - "openai" (default): OpenAI or compatible API
    - "ollama": Local Ollama inference
    """
    global _client_instance

    if _client_instance is not None:
        return _client_instance

    provider = getattr(settings, 'LLM_PROVIDER', 'openai').lower()

    if provider == 'ollama':
        logger.info("Using Ollama for LLM inference")
        _client_instance = OllamaClient()
    else:
        logger.info("Using OpenAI-compatible API for LLM inference")
        _client_instance = OpenAICompatibleClient()

    return _client_instance


def reset_llm_client():
    """Reset the cached client instance. Useful for testing."""
    global _client_instance
    _client_instance = None
