"""
Retrieval Index
===============

Stores embedded KnowledgeDocuments and answers cosine-similarity queries.

HOW IT WORKS:
1. Each document arrives with its embedding already computed
2. A query embedding is compared to every stored embedding
3. Scores are sorted descending (ties keep insertion order)
4. The top-k documents are returned as scored copies

SCALING CEILING:
RetrievalIndex is a plain in-memory map with a full linear scan per
query (O(N*d)). It is exact, not an approximate nearest-neighbour index.
FAISSRetrievalIndex (faiss_store.py) implements the same contract and is
the first thing to swap in for larger corpora.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import Optional, Sequence

import numpy as np

from careflow.errors import InvalidDocument, ValidationError
from careflow.schemas.models import KnowledgeDocument

logger = logging.getLogger(__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """
    Cosine similarity dot(a, b) / (|a| * |b|).

    A zero-magnitude vector on either side scores 0.0.

    Raises:
        ValidationError: If the vectors differ in dimension
    """
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    if va.shape != vb.shape:
        raise ValidationError(
            f"Vectors must have the same dimension ({va.size} != {vb.size})"
        )

    norm_a = np.linalg.norm(va)
    norm_b = np.linalg.norm(vb)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    similarity = float(np.dot(va, vb) / (norm_a * norm_b))
    # Rounding can push |x| a hair past 1
    return max(-1.0, min(1.0, similarity))


class BaseRetrievalIndex(ABC):
    """
    Contract shared by every retrieval backend.

    - index(): requires a non-empty embedding; overwrites by id
    - search(): scored copies, descending, at most top_k
    - delete(): False (not an error) when the id is absent
    - count(): number of indexed documents
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._dimension: Optional[int] = None

    @property
    def dimension(self) -> Optional[int]:
        """Embedding dimension fixed by the first indexed document."""
        return self._dimension

    def _validate_document(self, document: KnowledgeDocument) -> None:
        if not document.embedding:
            raise InvalidDocument(
                "Document must have an embedding vector", document.id
            )
        if self._dimension is not None and len(document.embedding) != self._dimension:
            raise InvalidDocument(
                f"Embedding dimension {len(document.embedding)} does not match "
                f"index dimension {self._dimension}",
                document.id,
            )

    def _validate_query(self, query_embedding: Sequence[float]) -> None:
        if not query_embedding:
            raise ValidationError("Query embedding must not be empty")
        if self._dimension is not None and len(query_embedding) != self._dimension:
            raise ValidationError(
                f"Query dimension {len(query_embedding)} does not match "
                f"index dimension {self._dimension}"
            )

    @abstractmethod
    def index(self, document: KnowledgeDocument) -> None:
        """Add or overwrite a document."""

    @abstractmethod
    def search(
        self,
        query_embedding: Sequence[float],
        top_k: int,
    ) -> list[KnowledgeDocument]:
        """Return the top_k most similar documents."""

    @abstractmethod
    def delete(self, document_id: str) -> bool:
        """Remove a document; False if it was not indexed."""

    @abstractmethod
    def count(self) -> int:
        """Number of indexed documents."""

    def get(self, document_id: str) -> Optional[KnowledgeDocument]:
        """Stored copy of a document, or None."""
        return None


class RetrievalIndex(BaseRetrievalIndex):
    """
    Exact in-memory retrieval index.

    Writes are atomic per document id (guarded by a re-entrant lock);
    there is no cross-document transaction because no invariant spans
    several documents.

    Usage:
        index = RetrievalIndex()
        index.index(KnowledgeDocument(id="a", content="...", embedding=[1, 0]))
        results = index.search([1, 0], top_k=1)
        results[0].relevance_score  # 1.0
    """

    def __init__(self) -> None:
        super().__init__()
        # dict keeps insertion order; overwriting a key keeps its slot
        self._documents: dict[str, KnowledgeDocument] = {}

    def index(self, document: KnowledgeDocument) -> None:
        with self._lock:
            self._validate_document(document)
            stored = document.model_copy(deep=True, update={"relevance_score": None})
            replaced = document.id in self._documents
            self._documents[document.id] = stored
            if self._dimension is None:
                self._dimension = len(document.embedding)

        action = "Re-indexed" if replaced else "Indexed"
        logger.info(f"{action} document: {document.id} - {document.title}")

    def search(
        self,
        query_embedding: Sequence[float],
        top_k: int,
    ) -> list[KnowledgeDocument]:
        if top_k <= 0:
            return []

        with self._lock:
            if not self._documents:
                logger.warning("Retrieval index is empty. No documents indexed yet.")
                return []
            self._validate_query(query_embedding)
            documents = list(self._documents.values())

        matrix = np.asarray([doc.embedding for doc in documents], dtype=np.float64)
        query = np.asarray(query_embedding, dtype=np.float64)

        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        dots = matrix @ query
        # Zero magnitude on either side scores 0, never NaN
        safe_norms = np.where(norms == 0, 1.0, norms)
        scores = np.where(norms == 0, 0.0, dots / safe_norms)
        scores = np.clip(scores, -1.0, 1.0)

        # Stable sort keeps insertion order for equal scores
        order = np.argsort(-scores, kind="stable")[:top_k]

        results = [
            documents[i].model_copy(update={"relevance_score": float(scores[i])})
            for i in order
        ]

        logger.info(f"Vector search completed. Found {len(results)} similar documents")
        return results

    def delete(self, document_id: str) -> bool:
        with self._lock:
            removed = self._documents.pop(document_id, None) is not None
            if not self._documents:
                self._dimension = None

        if removed:
            logger.info(f"Deleted document: {document_id}")
        return removed

    def count(self) -> int:
        with self._lock:
            return len(self._documents)

    def get(self, document_id: str) -> Optional[KnowledgeDocument]:
        with self._lock:
            document = self._documents.get(document_id)
            return document.model_copy(deep=True) if document else None
