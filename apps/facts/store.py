"""
In-memory fact store.

Facts are loaded once from a directory of plain-text files (one fact per
file, file name = identifier) and embedded at load time. After loading the
store is read-only, so request handlers can share it without locking.
"""
import logging
import math
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from apps.rag.errors import IngestionError, SimilarityError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Fact:
    """A unit of reference text with its precomputed embedding."""
    identifier: str
    text: str
    embedding: Tuple[float, ...]

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict (embedding omitted)."""
        return {
            "file": self.identifier,
            "text": self.text,
        }


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity: dot(a, b) / (|a| * |b|).

    Raises:
        SimilarityError: If the vectors differ in length, are empty,
            or either has zero magnitude.
    """
    if len(a) != len(b):
        raise SimilarityError(
            f"Embedding dimension mismatch: {len(a)} != {len(b)}"
        )
    if not a:
        raise SimilarityError("Cannot compare empty embeddings")

    dot_product = 0.0
    a_magnitude = 0.0
    b_magnitude = 0.0

    for x, y in zip(a, b):
        dot_product += x * y
        a_magnitude += x * x
        b_magnitude += y * y

    if a_magnitude == 0.0 or b_magnitude == 0.0:
        raise SimilarityError("Cannot compare zero-magnitude embeddings")

    return dot_product / (math.sqrt(a_magnitude) * math.sqrt(b_magnitude))


class FactStore:
    """
    Ordered collection of facts keyed by identifier.

    Every stored embedding has the same dimension. Lookups by identifier
    are O(1); similarity search is a linear scan over all facts.
    """

    def __init__(self, facts: Optional[Sequence[Fact]] = None):
        self._facts: Dict[str, Fact] = {}
        self.dimension: Optional[int] = None
        for fact in facts or []:
            self.add(fact)

    def add(self, fact: Fact) -> None:
        """Add a fact. Only used while the store is being built."""
        if fact.identifier in self._facts:
            raise IngestionError(f"Duplicate fact identifier: {fact.identifier}")

        # Zero or non-finite vectors can never be compared
        if not all(math.isfinite(x) for x in fact.embedding):
            raise IngestionError(f"Embedding for {fact.identifier} has non-finite values")
        if not any(fact.embedding):
            raise IngestionError(f"Embedding for {fact.identifier} has zero magnitude")

        if self.dimension is None:
            self.dimension = len(fact.embedding)
        elif len(fact.embedding) != self.dimension:
            raise IngestionError(
                f"Embedding for {fact.identifier} has {len(fact.embedding)} "
                f"dimensions, expected {self.dimension}"
            )

        self._facts[fact.identifier] = fact

    @classmethod
    def load(cls, directory, embedder) -> "FactStore":
        """
        Load every regular file in `directory` as a fact.

        Files are read in name order; sub-directories and hidden files
        are skipped.

        Raises:
            IngestionError: If the directory cannot be listed or a file
                cannot be read
            EmbeddingError: If a fact cannot be embedded
        """
        root = Path(directory)

        try:
            entries = sorted(root.iterdir(), key=lambda p: p.name)
        except OSError as e:
            logger.error(f"Failed to list fact directory {root}: {e}")
            raise IngestionError(f"Cannot list fact directory {root}: {e}")

        store = cls()

        for path in entries:
            if path.name.startswith('.'):
                continue
            if not path.is_file():
                logger.debug(f"Skipping non-file entry: {path.name}")
                continue

            try:
                text = path.read_text(encoding='utf-8')
            except (OSError, UnicodeDecodeError) as e:
                logger.error(f"Failed to read fact file {path.name}: {e}")
                raise IngestionError(f"Cannot read fact file {path.name}: {e}")

            embedding = embedder.embed(text)
            store.add(Fact(
                identifier=path.name,
                text=text,
                embedding=tuple(embedding),
            ))
            logger.debug(f"Loaded fact {path.name} ({len(text)} chars)")

        logger.info(
            f"Loaded {len(store)} facts from {root} "
            f"(dimension={store.dimension})"
        )
        return store

    def similar(self, query_embedding: Sequence[float], threshold: float) -> List[Fact]:
        """
        Return facts whose similarity to `query_embedding` is strictly
        greater than `threshold`, in store order.
        """
        return [
            fact for fact in self._facts.values()
            if cosine_similarity(query_embedding, fact.embedding) > threshold
        ]

    def get(self, identifier: str) -> Optional[Fact]:
        return self._facts.get(identifier)

    @property
    def identifiers(self) -> List[str]:
        return list(self._facts)

    def __contains__(self, identifier) -> bool:
        return identifier in self._facts

    def __iter__(self) -> Iterator[Fact]:
        return iter(self._facts.values())

    def __len__(self) -> int:
        return len(self._facts)
