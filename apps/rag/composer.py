"""
Answer composition for RAG.

Builds a grounded prompt from the query and the candidate facts, asks the
LLM for a JSON answer and parses it into an Answer with citations:

    {"commentary": str,
     "citations": [{"claim": str,
                    "references": [{"excerpt": str, "file": str}]}]}
"""
import json
import logging
import re
from typing import Sequence

from apps.facts.store import Fact
from apps.rag.answers import Answer, Citation, Reference
from apps.rag.errors import CompositionError, EmptyCompletionError
from apps.rag.prompts import SYSTEM_PROMPT, build_response_prompt

logger = logging.getLogger(__name__)

# Older prompt templates spelled the key "exerpt"
EXCERPT_KEYS = ("excerpt", "exerpt")


def _parse_reference(item, raw: str) -> Reference:
    if not isinstance(item, dict):
        raise CompositionError("Reference must be an object", raw)

    file_name = item.get("file")
    if not isinstance(file_name, str) or not file_name.strip():
        raise CompositionError("Reference is missing 'file'", raw)

    excerpt = ""
    for key in EXCERPT_KEYS:
        if key in item:
            excerpt = item[key]
            break
    if excerpt is None:
        excerpt = ""
    if not isinstance(excerpt, str):
        raise CompositionError("Reference 'excerpt' must be a string", raw)

    return Reference(file=file_name.strip(), excerpt=excerpt)


def _parse_citation(item, raw: str) -> Citation:
    if not isinstance(item, dict):
        raise CompositionError("Citation must be an object", raw)

    claim = item.get("claim")
    if not isinstance(claim, str):
        raise CompositionError("Citation is missing 'claim'", raw)

    references = item.get("references")
    if not isinstance(references, list):
        raise CompositionError("Citation 'references' must be a list", raw)

    return Citation(
        claim=claim,
        references=[_parse_reference(r, raw) for r in references],
    )


def parse_answer_response(response_text: str) -> Answer:
    """
    Parse the LLM response into an Answer.

    Raises:
        CompositionError: On malformed JSON or missing required fields
    """
    text = (response_text or "").strip()

    json_match = re.search(r'\{[\s\S]*\}', text)
    if not json_match:
        raise CompositionError("No JSON object in answer response", response_text)

    try:
        data = json.loads(json_match.group())
    except json.JSONDecodeError as e:
        raise CompositionError(f"Invalid JSON in answer response: {e}", response_text)

    if not isinstance(data, dict):
        raise CompositionError("Answer response is not a JSON object", response_text)

    commentary = data.get("commentary")
    if not isinstance(commentary, str):
        raise CompositionError("Missing required key 'commentary'", response_text)

    citations = data.get("citations", [])
    if citations is None:
        citations = []
    if not isinstance(citations, list):
        raise CompositionError("'citations' must be a list", response_text)

    return Answer(
        commentary=commentary,
        citations=[_parse_citation(c, response_text) for c in citations],
    )


class AnswerComposer:
    """Composes a cited answer with one completion call."""

    def __init__(self, completer):
        self.completer = completer

    def compose(self, query: str, facts: Sequence[Fact]) -> Answer:
        """
        Compose an answer to `query` grounded in `facts`.

        With no facts the prompt tells the model citations are impossible
        and the returned Answer carries commentary only.

        Raises:
            CompletionError: If the provider call fails
            CompositionError: If the response is malformed or empty
        """
        prompt = build_response_prompt(query, facts)
        logger.debug(f"Answer prompt length: {len(prompt)} chars, {len(facts)} facts")

        try:
            raw = self.completer.complete(SYSTEM_PROMPT, prompt)
        except EmptyCompletionError as e:
            raise CompositionError(f"Provider returned no answer: {e}") from e

        try:
            answer = parse_answer_response(raw)
        except CompositionError as e:
            logger.warning(f"Answer composer: {e}")
            raise

        if not facts and answer.citations:
            logger.warning(
                f"Dropping {len(answer.citations)} citations returned "
                f"without any candidate facts"
            )
            answer = Answer(commentary=answer.commentary, citations=[])

        logger.info(f"Composed answer with {len(answer.citations)} citations")
        return answer
