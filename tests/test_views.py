"""
HTTP surface tests: query page, JSON API, fact text, probes and commands.
"""
import json
from io import StringIO
from unittest.mock import patch

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from apps.rag.context import build_context, install_context
from apps.rag.errors import CompletionTimeout

from tests.conftest import KeywordEmbedder, ScriptedCompleter

SKY_ANSWER = {
    "commentary": "Blue light is scattered more than red light.",
    "citations": [
        {
            "claim": "The sky is blue because of Rayleigh scattering.",
            "references": [{"excerpt": "Rayleigh scattering", "file": "sky.txt"}],
        },
    ],
}

HALLUCINATED_ANSWER = {
    "commentary": "The moon is involved.",
    "citations": [
        {"claim": "Moonlight is blue.", "references": [{"excerpt": "e", "file": "moon.txt"}]},
    ],
}


@pytest.fixture
def scripted(fact_dir):
    """Install a context whose completer replays queued responses."""
    completer = ScriptedCompleter()
    result = build_context(fact_dir, KeywordEmbedder(), completer)
    install_context(result.context)
    return completer


# ============================================================================
# Query Page Tests
# ============================================================================

class TestIndexView:

    def test_get_renders_form(self, client, scripted, settings):
        settings.PAGE_TITLE = "Study"

        response = client.get("/")

        assert response.status_code == 200
        content = response.content.decode()
        assert "<title>Study</title>" in content
        assert 'name="query"' in content
        assert "Submit a query to get a response." in content

    def test_post_renders_verified_answer(self, client, scripted):
        scripted.queue({"queries": ["sky color"]})
        scripted.queue(SKY_ANSWER)

        response = client.post("/", {"query": "why is the sky blue?"})

        assert response.status_code == 200
        content = response.content.decode()
        assert "Blue light is scattered more than red light." in content
        assert 'href="/references/sky.txt"' in content
        assert "(not found)" not in content

    def test_post_flags_unknown_reference(self, client, scripted):
        scripted.queue({"queries": []})
        scripted.queue(HALLUCINATED_ANSWER)

        response = client.post("/", {"query": "why is the sky blue?"})

        assert response.status_code == 200
        content = response.content.decode()
        assert "moon.txt (not found)" in content
        assert 'href="/references/moon.txt"' not in content

    def test_post_without_citations(self, client, scripted):
        scripted.queue({"queries": []})
        scripted.queue({"commentary": "Nothing to cite.", "citations": []})

        response = client.post("/", {"query": "stock market prices"})

        assert response.status_code == 200
        assert "No citations." in response.content.decode()

    def test_empty_query_rejected(self, client, scripted):
        response = client.post("/", {"query": "   "})

        assert response.status_code == 400
        assert scripted.calls == []

    def test_expansion_failure_renders_error(self, client, scripted):
        scripted.queue("not json at all")

        response = client.post("/", {"query": "why is the sky blue?"})

        assert response.status_code == 502
        assert "Could not expand the query" in response.content.decode()

    def test_not_ready(self, client):
        response = client.post("/", {"query": "why is the sky blue?"})

        assert response.status_code == 503
        assert "Fact store is not loaded yet" in response.content.decode()


# ============================================================================
# JSON API Tests
# ============================================================================

class TestAskView:

    def post_json(self, client, body):
        return client.post("/api/ask", data=body, content_type="application/json")

    def test_success(self, client, scripted):
        scripted.queue({"queries": ["sky color"]})
        scripted.queue(SKY_ANSWER)

        response = self.post_json(client, json.dumps({"query": "why is the sky blue?"}))

        assert response.status_code == 200
        data = response.json()
        assert data["query"] == "why is the sky blue?"
        assert data["expandedQueries"][0] == "why is the sky blue?"
        assert data["allVerified"] is True
        assert data["citations"][0]["references"][0]["exists"] is True
        assert data["model"] == "scripted-test"

    def test_question_alias(self, client, scripted):
        scripted.queue({"queries": []})
        scripted.queue({"commentary": "c", "citations": []})

        response = self.post_json(client, json.dumps({"question": "why is the sky blue?"}))

        assert response.status_code == 200

    def test_invalid_json(self, client, scripted):
        response = self.post_json(client, "{not json")

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid JSON"

    def test_non_object_body(self, client, scripted):
        response = self.post_json(client, json.dumps(["why is the sky blue?"]))

        assert response.status_code == 400

    def test_non_string_query(self, client, scripted):
        response = self.post_json(client, json.dumps({"query": 42}))

        assert response.status_code == 400

    def test_malformed_answer(self, client, scripted):
        scripted.queue({"queries": []})
        scripted.queue('{"citations": [')

        response = self.post_json(client, json.dumps({"query": "why is the sky blue?"}))

        assert response.status_code == 502
        assert response.json()["code"] == "CompositionError"

    def test_timeout(self, client, scripted):
        scripted.queue(CompletionTimeout("OpenAI API timed out"))

        response = self.post_json(client, json.dumps({"query": "why is the sky blue?"}))

        assert response.status_code == 504
        assert response.json()["code"] == "CompletionTimeout"

    def test_failed_request_does_not_affect_next(self, client, scripted):
        scripted.queue("garbage")
        scripted.queue({"queries": []})
        scripted.queue(SKY_ANSWER)

        first = self.post_json(client, json.dumps({"query": "why is the sky blue?"}))
        second = self.post_json(client, json.dumps({"query": "why is the sky blue?"}))

        assert first.status_code == 502
        assert second.status_code == 200

    def test_get_not_allowed(self, client, scripted):
        assert client.get("/api/ask").status_code == 405


# ============================================================================
# Fact Text Tests
# ============================================================================

class TestFactReference:

    def test_known_fact(self, client, scripted):
        response = client.get("/references/sky.txt")

        assert response.status_code == 200
        assert response["Content-Type"].startswith("text/plain")
        assert response.content.decode() == "the sky is blue due to Rayleigh scattering"

    def test_unknown_fact(self, client, scripted):
        assert client.get("/references/moon.txt").status_code == 404

    def test_nested_file_not_served(self, client, scripted):
        assert client.get("/references/ignored.txt").status_code == 404

    def test_not_ready(self, client):
        assert client.get("/references/sky.txt").status_code == 503


# ============================================================================
# Probe Tests
# ============================================================================

class TestProbes:

    def test_healthz(self, client):
        response = client.get("/healthz")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_readyz_not_loaded(self, client):
        response = client.get("/readyz")

        assert response.status_code == 503
        assert response.json()["status"] == "not_ready"

    def test_readyz_loaded(self, client, scripted):
        response = client.get("/readyz")

        assert response.status_code == 200
        assert response.json()["checks"] == {"facts": 3, "dimension": 10}


# ============================================================================
# Management Command Tests
# ============================================================================

class TestLoadFactsCommand:

    @patch('apps.facts.management.commands.load_facts.get_embedding_client')
    def test_lists_facts(self, mock_factory, fact_dir):
        mock_factory.return_value = KeywordEmbedder()

        out = StringIO()
        call_command("load_facts", "--dir", str(fact_dir), stdout=out)

        out = out.getvalue()
        assert "ocean.txt" in out
        assert "sky.txt" in out
        assert "Loaded 3 facts (dimension=10)" in out

    @patch('apps.facts.management.commands.load_facts.get_embedding_client')
    def test_missing_directory(self, mock_factory, tmp_path):
        mock_factory.return_value = KeywordEmbedder()

        with pytest.raises(CommandError):
            call_command("load_facts", "--dir", str(tmp_path / "missing"))
