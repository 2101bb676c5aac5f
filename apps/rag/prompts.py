"""
Prompt templates for query expansion and cited answers.

Templates are plain constants rendered with str.format, so the prompts can
be unit tested without any provider call.
"""
from typing import Sequence

SYSTEM_PROMPT = "You are a helpful assistant."


EXPAND_QUERY_PROMPT = """INSTRUCTIONS

Expand the following QUERY. Provide {count} additional queries you would use to
diversify your knowledge on the topic.

QUERY

{query}

JSON RESPONSE TEMPLATE

{{
    "queries": ["<query 1>", "<query 2>", "<query 3>"]
}}
"""


RESPONSE_PROMPT = """INSTRUCTIONS

Respond to the following QUERY using REFERENCES below. Cite the file in the
REFERENCES that contains the fact used. Provide uncited commentary separately.
{no_references_note}
QUERY

{query}

REFERENCES

{references}

JSON RESPONSE TEMPLATE

{{
    "commentary": "<summary commentary without citations>",
    "citations": [
        {{
            "claim": "<summary claim 1>",
            "references": [
                {{"excerpt": "<excerpt>", "file": "<file-name-1.txt>"}},
                {{"excerpt": "<excerpt>", "file": "<file-name-2.txt>"}}
            ]
        }}
    ]
}}
"""

NO_REFERENCES_NOTE = (
    "NO REFERENCES are provided, so it is impossible to provide citations. "
    "Return an empty \"citations\" list.\n"
)

EMPTY_REFERENCES_BLOCK = "(none)"


def build_expansion_prompt(query: str, count: int) -> str:
    return EXPAND_QUERY_PROMPT.format(query=query, count=count)


def build_references_block(facts: Sequence) -> str:
    """
    Format candidate facts for the answer prompt.

    Format:
    - File: sky.txt
    - Excerpt: the sky is blue due to Rayleigh scattering
    """
    if not facts:
        return EMPTY_REFERENCES_BLOCK

    parts = []
    for fact in facts:
        parts.append(f"- File: {fact.identifier}\n- Excerpt: {fact.text.strip()}")
    return "\n\n".join(parts)


def build_response_prompt(query: str, facts: Sequence) -> str:
    return RESPONSE_PROMPT.format(
        query=query,
        references=build_references_block(facts),
        no_references_note="" if facts else NO_REFERENCES_NOTE,
    )
