"""
Tests for the retrieval indexes.

Both backends implement the same contract, so most tests run against
the in-memory RetrievalIndex and the FAISS-backed index alike.
"""

import math

import pytest

from careflow.errors import InvalidDocument, ValidationError
from careflow.schemas.models import KnowledgeDocument
from careflow.vectorstore.faiss_store import FAISSRetrievalIndex
from careflow.vectorstore.retrieval_index import RetrievalIndex, cosine_similarity


def doc(doc_id, embedding, title=""):
    return KnowledgeDocument(id=doc_id, title=title or doc_id, content=f"content {doc_id}", embedding=embedding)


@pytest.fixture(params=[RetrievalIndex, FAISSRetrievalIndex], ids=["memory", "faiss"])
def index(request):
    return request.param()


class TestCosineSimilarity:
    """Tests for the cosine helper."""

    def test_self_similarity_is_one(self):
        assert cosine_similarity([0.3, -1.2, 4.0], [0.3, -1.2, 4.0]) == pytest.approx(1.0)

    def test_zero_vector_scores_zero(self):
        score = cosine_similarity([0.0, 0.0], [1.0, 2.0])
        assert score == 0.0
        assert not math.isnan(score)

    def test_opposite_vectors(self):
        assert cosine_similarity([1.0, 0.0], [-1.0, 0.0]) == pytest.approx(-1.0)

    def test_dimension_mismatch_raises(self):
        with pytest.raises(ValidationError):
            cosine_similarity([1.0, 0.0], [1.0, 0.0, 0.0])


class TestIndexContract:
    """Behaviour shared by every backend."""

    def test_basic_example(self, index):
        index.index(doc("a", [1.0, 0.0]))
        index.index(doc("b", [0.0, 1.0]))

        results = index.search([1.0, 0.0], top_k=1)

        assert [r.id for r in results] == ["a"]
        assert results[0].relevance_score == pytest.approx(1.0, abs=1e-5)

    def test_results_are_limited_and_descending(self, index):
        index.index(doc("a", [1.0, 0.0]))
        index.index(doc("b", [0.7, 0.7]))
        index.index(doc("c", [0.0, 1.0]))
        index.index(doc("d", [-1.0, 0.0]))

        results = index.search([1.0, 0.1], top_k=3)

        assert len(results) == 3
        scores = [r.relevance_score for r in results]
        assert scores == sorted(scores, reverse=True)
        assert [r.id for r in results] == ["a", "b", "c"]

    def test_ties_keep_insertion_order(self, index):
        for doc_id in ["first", "second", "third"]:
            index.index(doc(doc_id, [1.0, 1.0]))

        results = index.search([1.0, 1.0], top_k=3)

        assert [r.id for r in results] == ["first", "second", "third"]

    def test_zero_query_scores_zero(self, index):
        index.index(doc("a", [1.0, 0.0]))

        results = index.search([0.0, 0.0], top_k=1)

        assert results[0].relevance_score == 0.0

    def test_zero_document_scores_zero(self, index):
        index.index(doc("zero", [0.0, 0.0]))
        index.index(doc("a", [1.0, 0.0]))

        results = index.search([1.0, 0.0], top_k=2)

        assert [r.id for r in results] == ["a", "zero"]
        assert results[1].relevance_score == 0.0

    def test_reindex_overwrites(self, index):
        index.index(doc("a", [1.0, 0.0]))
        index.index(doc("b", [0.5, 0.5]))
        index.index(doc("a", [0.0, 1.0]))

        assert index.count() == 2
        results = index.search([0.0, 1.0], top_k=1)
        assert results[0].id == "a"
        assert results[0].relevance_score == pytest.approx(1.0, abs=1e-5)
        assert index.search([1.0, 0.0], top_k=1)[0].id == "b"

    def test_reindex_keeps_tie_position(self, index):
        index.index(doc("a", [1.0, 0.0]))
        index.index(doc("b", [1.0, 0.0]))
        index.index(doc("a", [2.0, 0.0]))

        assert [r.id for r in index.search([1.0, 0.0], top_k=2)] == ["a", "b"]

    def test_delete(self, index):
        index.index(doc("a", [1.0, 0.0]))

        assert index.delete("a") is True
        assert index.count() == 0
        assert index.search([1.0, 0.0], top_k=5) == []

    def test_delete_absent_returns_false(self, index):
        assert index.delete("missing") is False

    def test_empty_embedding_rejected(self, index):
        with pytest.raises(InvalidDocument):
            index.index(doc("a", []))

    def test_dimension_mismatch_rejected(self, index):
        index.index(doc("a", [1.0, 0.0]))

        with pytest.raises(InvalidDocument) as exc_info:
            index.index(doc("b", [1.0, 0.0, 0.0]))

        assert exc_info.value.document_id == "b"
        assert index.count() == 1

    def test_non_positive_top_k(self, index):
        index.index(doc("a", [1.0, 0.0]))

        assert index.search([1.0, 0.0], top_k=0) == []
        assert index.search([1.0, 0.0], top_k=-3) == []

    def test_empty_index_returns_nothing(self, index):
        assert index.search([1.0, 0.0], top_k=5) == []

    def test_query_dimension_mismatch(self, index):
        index.index(doc("a", [1.0, 0.0]))

        with pytest.raises(ValidationError):
            index.search([1.0, 0.0, 0.0], top_k=1)

    def test_stored_documents_are_not_mutated(self, index):
        index.index(doc("a", [1.0, 0.0]))

        index.search([1.0, 0.0], top_k=1)

        assert index.get("a").relevance_score is None

    def test_get_missing(self, index):
        assert index.get("missing") is None
