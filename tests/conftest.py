"""
Shared fixtures: deterministic embedding and completion clients that never
touch the network.
"""
import json
import re

import pytest

from apps.facts.store import FactStore
from apps.rag.context import reset_context
from apps.rag.embeddings import reset_embedding_client
from apps.rag.llm_client import reset_llm_client

# Each keyword is one embedding dimension; the last dimension is a small
# constant so that every text has a non-zero vector.
KEYWORDS = [
    "sky", "blue", "rayleigh", "scattering", "color",
    "sunset", "red", "water", "ocean",
]
BIAS = 0.1


class KeywordEmbedder:
    """Bag-of-keywords embedder with a fixed dimension."""

    model_name = "keyword-test"

    def __init__(self, fail_on=None):
        self.fail_on = set(fail_on or [])
        self.calls = []

    def embed(self, text):
        from apps.rag.errors import EmbeddingError

        self.calls.append(text)
        if text in self.fail_on:
            raise EmbeddingError(f"cannot embed {text!r}")

        tokens = re.findall(r"[a-z]+", text.lower())
        return [float(tokens.count(k)) for k in KEYWORDS] + [BIAS]


class ScriptedCompleter:
    """Returns queued responses in order and records every prompt."""

    model_name = "scripted-test"

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def queue(self, response):
        self.responses.append(response)

    def complete(self, system_prompt, user_prompt):
        self.calls.append((system_prompt, user_prompt))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        if isinstance(response, dict):
            return json.dumps(response)
        return response


@pytest.fixture
def embedder():
    return KeywordEmbedder()


@pytest.fixture
def completer():
    return ScriptedCompleter()


@pytest.fixture
def fact_dir(tmp_path):
    """A reference directory with three facts and one sub-directory."""
    directory = tmp_path / "references"
    directory.mkdir()
    (directory / "sky.txt").write_text("the sky is blue due to Rayleigh scattering")
    (directory / "sunset.txt").write_text("a sunset looks red because blue light is scattered away")
    (directory / "ocean.txt").write_text("ocean water absorbs red light")
    (directory / "nested").mkdir()
    (directory / "nested" / "ignored.txt").write_text("the sky is blue")
    return directory


@pytest.fixture
def store(fact_dir, embedder):
    return FactStore.load(fact_dir, embedder)


@pytest.fixture(autouse=True)
def reset_singletons():
    yield
    reset_context()
    reset_llm_client()
    reset_embedding_client()
