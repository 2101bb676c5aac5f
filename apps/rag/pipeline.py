"""
End-to-end answering pipeline.

expand -> retrieve (per expanded query) -> compose -> verify
"""
import logging
from dataclasses import dataclass, field
from typing import List

from django.conf import settings

from apps.facts.store import Fact, FactStore
from apps.rag.answers import VerifiedAnswer
from apps.rag.composer import AnswerComposer
from apps.rag.query_expander import DEFAULT_EXPANSION_COUNT, QueryExpander
from apps.rag.retrieval import DEFAULT_SIMILARITY_THRESHOLD, Retriever
from apps.rag.verifier import verify

logger = logging.getLogger(__name__)


@dataclass
class PipelineResult:
    """Everything one query produced."""
    query: str
    expanded_queries: List[str]
    facts: List[Fact]
    answer: VerifiedAnswer
    model: str = ""

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        data = self.answer.to_dict()
        data["query"] = self.query
        data["expandedQueries"] = self.expanded_queries
        data["candidates"] = [f.identifier for f in self.facts]
        data["model"] = self.model
        return data


@dataclass
class RagPipeline:
    store: FactStore
    expander: QueryExpander
    retriever: Retriever
    composer: AnswerComposer
    threshold: float = DEFAULT_SIMILARITY_THRESHOLD
    model: str = field(default="")

    def answer(self, query: str) -> PipelineResult:
        """
        Run the full pipeline for one normalized query.

        Any RagError raised by a stage propagates to the caller; the shared
        store is only read, so a failed request leaves nothing behind.
        """
        queries = self.expander.expand(query)
        facts = self.retriever.retrieve(queries, self.threshold)
        answer = self.composer.compose(query, facts)
        verified = verify(answer, self.store)

        logger.info(
            f"Answered query with {len(verified.citations)} citations, "
            f"{len(verified.unverified_references)} unverified references"
        )

        return PipelineResult(
            query=query,
            expanded_queries=queries,
            facts=facts,
            answer=verified,
            model=self.model,
        )


def build_pipeline(store: FactStore, embedder, completer) -> RagPipeline:
    """Wire the pipeline components from Django settings."""
    return RagPipeline(
        store=store,
        expander=QueryExpander(
            completer,
            count=getattr(settings, 'QUERY_EXPANSION_COUNT', DEFAULT_EXPANSION_COUNT),
        ),
        retriever=Retriever(
            store,
            embedder,
            workers=getattr(settings, 'RETRIEVAL_WORKERS', 1),
            skip_failed_queries=getattr(settings, 'RETRIEVAL_SKIP_FAILED_QUERIES', False),
        ),
        composer=AnswerComposer(completer),
        threshold=getattr(settings, 'SIMILARITY_THRESHOLD', DEFAULT_SIMILARITY_THRESHOLD),
        model=getattr(completer, 'model_name', ''),
    )
