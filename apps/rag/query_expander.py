"""
Query Expander module for RAG.

Turns one user query into a list of related queries using the LLM so that
retrieval can reach facts phrased differently from the question.

Key features:
- Strict JSON parsing of the {"queries": [...]} schema
- The original query is always the first entry
- Parse failures raise ExpansionError with the raw response attached
"""
import json
import logging
import re
from typing import List

from apps.rag.errors import ExpansionError
from apps.rag.prompts import SYSTEM_PROMPT, build_expansion_prompt

logger = logging.getLogger(__name__)

DEFAULT_EXPANSION_COUNT = 10

REQUIRED_KEYS = {"queries"}


def parse_expansion_response(response_text: str) -> List[str]:
    """
    Parse the LLM response into a list of query strings.

    Strict validation:
    - Must contain a JSON object
    - Must have a "queries" key holding a list of strings

    Raises:
        ExpansionError: On any parse or schema failure
    """
    text = (response_text or "").strip()

    # Try to extract JSON from the response
    json_match = re.search(r'\{[\s\S]*\}', text)
    if not json_match:
        raise ExpansionError("No JSON object in expansion response", response_text)

    try:
        data = json.loads(json_match.group())
    except json.JSONDecodeError as e:
        raise ExpansionError(f"Invalid JSON in expansion response: {e}", response_text)

    if not isinstance(data, dict):
        raise ExpansionError("Expansion response is not a JSON object", response_text)

    for key in REQUIRED_KEYS:
        if key not in data:
            raise ExpansionError(f"Missing required key '{key}'", response_text)

    queries = data["queries"]
    if not isinstance(queries, list):
        raise ExpansionError("'queries' must be a list", response_text)

    for item in queries:
        if not isinstance(item, str):
            raise ExpansionError("'queries' must only contain strings", response_text)

    return queries


def merge_queries(original: str, variants: List[str]) -> List[str]:
    """
    Put the original query first and drop blank or repeated variants.

    Repeats are detected case-insensitively after trimming whitespace.
    """
    merged = [original]
    seen = {original.strip().lower()}

    for variant in variants:
        cleaned = variant.strip()
        key = cleaned.lower()
        if not cleaned or key in seen:
            continue
        seen.add(key)
        merged.append(cleaned)

    return merged


class QueryExpander:
    """Expands a query through one JSON-mode completion call."""

    def __init__(self, completer, count: int = DEFAULT_EXPANSION_COUNT):
        self.completer = completer
        self.count = count

    def expand(self, query: str) -> List[str]:
        """
        Expand a query into the original plus model-suggested variants.

        Raises:
            CompletionError: If the provider call fails
            ExpansionError: If the response does not match the schema
        """
        prompt = build_expansion_prompt(query, self.count)

        logger.debug(f"Query expander: requesting {self.count} variants")
        raw = self.completer.complete(SYSTEM_PROMPT, prompt)

        try:
            variants = parse_expansion_response(raw)
        except ExpansionError as e:
            logger.warning(f"Query expander: {e}")
            raise

        queries = merge_queries(query, variants)
        logger.info(
            f"Expanded query into {len(queries)} queries "
            f"({len(variants)} suggested by the model)"
        )
        return queries
