"""
Tests for the fact store: loading, cosine similarity and lookups.
"""
import math

import pytest

from apps.facts.store import Fact, FactStore, cosine_similarity
from apps.rag.errors import EmbeddingError, IngestionError, SimilarityError

from tests.conftest import KeywordEmbedder


# ============================================================================
# Cosine Similarity Tests
# ============================================================================

class TestCosineSimilarity:

    @pytest.mark.parametrize("a,b", [
        ([1.0, 2.0, 3.0], [4.0, -5.0, 6.0]),
        ([0.3, 0.1], [0.2, 0.9]),
        ([-1.0, 0.0, 2.5, 7.0], [3.0, 3.0, -1.0, 0.5]),
    ])
    def test_symmetric(self, a, b):
        assert cosine_similarity(a, b) == cosine_similarity(b, a)

    @pytest.mark.parametrize("v", [
        [1.0, 2.0, 3.0],
        [0.001, -0.002],
        [5.0],
    ])
    def test_self_similarity_is_one(self, v):
        assert math.isclose(cosine_similarity(v, v), 1.0, rel_tol=1e-9)

    def test_orthogonal_vectors(self):
        assert cosine_similarity([1.0, 0.0], [0.0, 1.0]) == 0.0

    def test_opposite_vectors(self):
        assert math.isclose(cosine_similarity([1.0, 2.0], [-1.0, -2.0]), -1.0)

    def test_dimension_mismatch_raises(self):
        with pytest.raises(SimilarityError):
            cosine_similarity([1.0, 2.0], [1.0, 2.0, 3.0])

    def test_zero_magnitude_raises(self):
        """Should raise instead of returning NaN."""
        with pytest.raises(SimilarityError):
            cosine_similarity([0.0, 0.0], [1.0, 1.0])

    def test_empty_vectors_raise(self):
        with pytest.raises(SimilarityError):
            cosine_similarity([], [])


# ============================================================================
# Loading Tests
# ============================================================================

class TestFactStoreLoad:

    def test_load_two_files(self, tmp_path):
        """a.txt and b.txt give exactly two facts with non-zero embeddings."""
        (tmp_path / "a.txt").write_text("fact A")
        (tmp_path / "b.txt").write_text("fact B")

        store = FactStore.load(tmp_path, KeywordEmbedder())

        assert sorted(store.identifiers) == ["a.txt", "b.txt"]
        for fact in store:
            assert any(x != 0.0 for x in fact.embedding)
        assert store.get("a.txt").text == "fact A"
        assert store.get("b.txt").text == "fact B"

    def test_subdirectories_are_skipped(self, store):
        assert "nested" not in store
        assert "ignored.txt" not in store
        assert len(store) == 3

    def test_store_order_is_file_name_order(self, store):
        assert store.identifiers == ["ocean.txt", "sky.txt", "sunset.txt"]

    def test_hidden_files_are_skipped(self, tmp_path):
        (tmp_path / ".gitkeep").write_text("")
        (tmp_path / "a.txt").write_text("fact A")

        store = FactStore.load(tmp_path, KeywordEmbedder())

        assert store.identifiers == ["a.txt"]

    def test_every_file_is_embedded(self, fact_dir):
        embedder = KeywordEmbedder()

        FactStore.load(fact_dir, embedder)

        assert len(embedder.calls) == 3

    def test_dimension_recorded(self, store):
        assert store.dimension == 10

    def test_missing_directory_raises(self, tmp_path):
        with pytest.raises(IngestionError):
            FactStore.load(tmp_path / "does-not-exist", KeywordEmbedder())

    def test_unreadable_file_raises(self, tmp_path):
        (tmp_path / "binary.txt").write_bytes(b"\xff\xfe\x00\x81invalid")

        with pytest.raises(IngestionError):
            FactStore.load(tmp_path, KeywordEmbedder())

    def test_embedding_failure_propagates(self, tmp_path):
        (tmp_path / "a.txt").write_text("fact A")

        with pytest.raises(EmbeddingError):
            FactStore.load(tmp_path, KeywordEmbedder(fail_on={"fact A"}))

    def test_empty_directory_loads_empty_store(self, tmp_path):
        store = FactStore.load(tmp_path, KeywordEmbedder())

        assert len(store) == 0
        assert store.dimension is None


class TestFactStoreInvariants:

    def test_duplicate_identifier_rejected(self):
        store = FactStore([Fact("a.txt", "one", (1.0, 0.0))])

        with pytest.raises(IngestionError):
            store.add(Fact("a.txt", "two", (0.0, 1.0)))

    def test_dimension_mismatch_rejected(self):
        store = FactStore([Fact("a.txt", "one", (1.0, 0.0))])

        with pytest.raises(IngestionError):
            store.add(Fact("b.txt", "two", (1.0, 0.0, 0.0)))

    def test_zero_magnitude_embedding_rejected(self):
        store = FactStore()

        with pytest.raises(IngestionError):
            store.add(Fact("z.txt", "zero", (0.0, 0.0, 0.0)))

        assert len(store) == 0
        assert store.dimension is None

    @pytest.mark.parametrize("value", [math.nan, math.inf, -math.inf])
    def test_non_finite_embedding_rejected(self, value):
        store = FactStore([Fact("a.txt", "one", (1.0, 0.0, 0.0))])

        with pytest.raises(IngestionError):
            store.add(Fact("n.txt", "bad", (value, 1.0, 0.0)))

        assert store.identifiers == ["a.txt"]

    def test_load_fails_on_zero_embedding(self, tmp_path):
        """A fact that could never be compared fails startup, not every query."""
        (tmp_path / "a.txt").write_text("the sky is blue")
        (tmp_path / "z.txt").write_text("nothing")

        class ZeroForUnknownEmbedder:
            def embed(self, text):
                return [1.0, 0.0, 0.0] if "sky" in text else [0.0, 0.0, 0.0]

        with pytest.raises(IngestionError):
            FactStore.load(tmp_path, ZeroForUnknownEmbedder())

    def test_fact_is_immutable(self):
        fact = Fact("a.txt", "one", (1.0,))

        with pytest.raises(AttributeError):
            fact.text = "changed"


# ============================================================================
# Similarity Search Tests
# ============================================================================

class TestFactStoreSimilar:

    @pytest.fixture
    def small_store(self):
        return FactStore([
            Fact("x.txt", "x", (1.0, 0.0)),
            Fact("xy.txt", "xy", (1.0, 1.0)),
            Fact("y.txt", "y", (0.0, 1.0)),
        ])

    def test_returns_matches_in_store_order(self, small_store):
        results = small_store.similar([1.0, 0.2], 0.5)

        assert [f.identifier for f in results] == ["x.txt", "xy.txt"]

    def test_threshold_is_strict(self, small_store):
        """A fact scoring exactly the threshold is excluded."""
        results = small_store.similar([1.0, 0.0], 1.0)

        assert results == []

    def test_threshold_above_one_returns_nothing(self, small_store):
        assert small_store.similar([1.0, 1.0], 1.1) == []

    def test_dimension_mismatch_raises(self, small_store):
        with pytest.raises(SimilarityError):
            small_store.similar([1.0, 0.0, 0.0], 0.5)

    def test_lookup_by_identifier(self, small_store):
        assert "x.txt" in small_store
        assert "missing.txt" not in small_store
        assert small_store.get("y.txt").text == "y"
        assert small_store.get("missing.txt") is None
