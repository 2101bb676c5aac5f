"""
Retrieval service for RAG queries.

Embeds every expanded query and collects the facts above the similarity
threshold, deduplicated by identifier in first-seen order.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Sequence

from apps.facts.store import Fact, FactStore
from apps.rag.errors import EmbeddingError

logger = logging.getLogger(__name__)

DEFAULT_SIMILARITY_THRESHOLD = 0.5


def merge_unique(result_sets: Sequence[Sequence[Fact]]) -> List[Fact]:
    """Union fact lists, keeping the first occurrence of each identifier."""
    seen: Dict[str, Fact] = {}
    for facts in result_sets:
        for fact in facts:
            if fact.identifier not in seen:
                seen[fact.identifier] = fact
    return list(seen.values())


class Retriever:
    """
    Maps a set of queries to the deduplicated facts they match.

    Failure policy: by default an EmbeddingError for any query aborts the
    whole retrieval. With skip_failed_queries=True the failing query is
    logged and skipped, and the error is only raised if every query failed.
    """

    def __init__(
        self,
        store: FactStore,
        embedder,
        workers: int = 1,
        skip_failed_queries: bool = False,
    ):
        self.store = store
        self.embedder = embedder
        self.workers = max(1, int(workers))
        self.skip_failed_queries = skip_failed_queries

    def _embed_one(self, query: str):
        try:
            return self.embedder.embed(query), None
        except EmbeddingError as e:
            if not self.skip_failed_queries:
                raise
            logger.warning(f"Skipping query that failed to embed: {e}")
            return None, e

    def _embed_all(self, queries: Sequence[str]) -> List[tuple]:
        if self.workers == 1 or len(queries) <= 1:
            return [self._embed_one(q) for q in queries]

        # map() yields in submission order, which keeps the merge deterministic
        with ThreadPoolExecutor(max_workers=min(self.workers, len(queries))) as pool:
            return list(pool.map(self._embed_one, queries))

    def retrieve(
        self,
        queries: Sequence[str],
        threshold: float = DEFAULT_SIMILARITY_THRESHOLD,
    ) -> List[Fact]:
        """
        Retrieve facts matching any of the queries.

        Args:
            queries: Expanded query set (original first)
            threshold: Facts must score strictly above this

        Returns:
            Facts deduplicated by identifier, in first-seen order

        Raises:
            EmbeddingError: If a query cannot be embedded (see policy above)
            SimilarityError: If query and fact dimensions differ
        """
        if not queries:
            return []

        embedded = self._embed_all(queries)

        result_sets = []
        last_error: Optional[EmbeddingError] = None

        for query, (embedding, error) in zip(queries, embedded):
            if embedding is None:
                last_error = error
                continue
            matches = self.store.similar(embedding, threshold)
            logger.debug(f"Query '{query[:80]}' matched {len(matches)} facts")
            result_sets.append(matches)

        if not result_sets and last_error is not None:
            raise last_error

        facts = merge_unique(result_sets)

        logger.info(
            f"Retrieved {len(facts)} unique facts for {len(queries)} queries "
            f"(threshold={threshold})"
        )
        return facts
