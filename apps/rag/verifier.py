"""
Citation verification.

Checks that every referenced file exists in the fact store. This is an
existence check only: whether the claim is supported by the fact is not
examined.
"""
import logging

from apps.rag.answers import (
    Answer,
    VerifiedAnswer,
    VerifiedCitation,
    VerifiedReference,
)

logger = logging.getLogger(__name__)


def verify(answer: Answer, store) -> VerifiedAnswer:
    """Attach an exists/does-not-exist outcome to every reference."""
    citations = [
        VerifiedCitation(
            claim=citation.claim,
            references=[
                VerifiedReference(reference=ref, exists=ref.file in store)
                for ref in citation.references
            ],
        )
        for citation in answer.citations
    ]

    verified = VerifiedAnswer(commentary=answer.commentary, citations=citations)

    for ref in verified.unverified_references:
        logger.warning(f"Answer cites unknown fact: {ref.file}")

    return verified
