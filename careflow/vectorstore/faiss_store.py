"""
FAISS Retrieval Index
=====================

A FAISS-backed implementation of the retrieval index contract.

WHAT IS FAISS?
- Facebook AI Similarity Search
- Efficient library for similarity search in high-dimensional vectors
- Optimized C++ with Python bindings

HOW COSINE SIMILARITY MAPS ONTO FAISS:
1. Every vector is L2-normalised before it enters the index
2. IndexFlatIP then scores by inner product == cosine similarity
3. A zero vector stays zero, so it scores 0 against everything
4. IndexIDMap2 lets us remove / overwrite individual documents

FAISS wants int64 ids, so string document ids are mapped to integers
allocated in insertion order. That integer doubles as the tie-breaker,
which keeps result order identical to the in-memory RetrievalIndex.
"""

import logging
from typing import Optional, Sequence

import faiss
import numpy as np

from careflow.schemas.models import KnowledgeDocument
from careflow.vectorstore.retrieval_index import BaseRetrievalIndex

logger = logging.getLogger(__name__)


def _normalize(vector: Sequence[float]) -> np.ndarray:
    """Row vector, float32, unit length (zero vectors left as-is)."""
    array = np.asarray(vector, dtype=np.float32).reshape(1, -1)
    norm = np.linalg.norm(array)
    if norm > 0:
        array = array / norm
    return np.ascontiguousarray(array, dtype=np.float32)


class FAISSRetrievalIndex(BaseRetrievalIndex):
    """
    Retrieval index stored in a flat FAISS inner-product index.

    Usage:
        index = FAISSRetrievalIndex()
        index.index(document)
        results = index.search(query_vector, top_k=5)
    """

    def __init__(self) -> None:
        super().__init__()
        self._index: Optional[faiss.IndexIDMap2] = None
        self._documents: dict[str, KnowledgeDocument] = {}
        self._int_ids: dict[str, int] = {}
        self._str_ids: dict[int, str] = {}
        self._next_id = 0

    def _create_index(self, dimension: int) -> faiss.IndexIDMap2:
        logger.info(f"Created new FAISS index with dimension {dimension}")
        return faiss.IndexIDMap2(faiss.IndexFlatIP(dimension))

    def index(self, document: KnowledgeDocument) -> None:
        with self._lock:
            self._validate_document(document)

            if self._index is None:
                self._dimension = len(document.embedding)
                self._index = self._create_index(self._dimension)

            int_id = self._int_ids.get(document.id)
            if int_id is None:
                int_id = self._next_id
                self._next_id += 1
                self._int_ids[document.id] = int_id
                self._str_ids[int_id] = document.id
            else:
                self._index.remove_ids(np.array([int_id], dtype=np.int64))

            self._index.add_with_ids(
                _normalize(document.embedding),
                np.array([int_id], dtype=np.int64),
            )
            self._documents[document.id] = document.model_copy(
                deep=True, update={"relevance_score": None}
            )

        logger.info(f"Indexed document in FAISS: {document.id} - {document.title}")

    def search(
        self,
        query_embedding: Sequence[float],
        top_k: int,
    ) -> list[KnowledgeDocument]:
        if top_k <= 0:
            return []

        with self._lock:
            if self._index is None or self._index.ntotal == 0:
                logger.warning("FAISS index is empty. No documents indexed yet.")
                return []
            self._validate_query(query_embedding)

            k = min(top_k, self._index.ntotal)
            scores, ids = self._index.search(_normalize(query_embedding), k)

            hits = [
                (float(score), int(int_id))
                for score, int_id in zip(scores[0], ids[0])
                if int_id != -1
            ]
            # Highest score first, then insertion order
            hits.sort(key=lambda hit: (-hit[0], hit[1]))

            results = []
            for score, int_id in hits:
                document = self._documents[self._str_ids[int_id]]
                score = max(-1.0, min(1.0, score))
                results.append(document.model_copy(update={"relevance_score": score}))

        logger.info(f"FAISS search completed. Found {len(results)} similar documents")
        return results

    def delete(self, document_id: str) -> bool:
        with self._lock:
            int_id = self._int_ids.pop(document_id, None)
            if int_id is None:
                return False

            self._index.remove_ids(np.array([int_id], dtype=np.int64))
            del self._str_ids[int_id]
            del self._documents[document_id]

            if not self._documents:
                self._index = None
                self._dimension = None

        logger.info(f"Deleted document from FAISS: {document_id}")
        return True

    def count(self) -> int:
        with self._lock:
            return len(self._documents)

    def get(self, document_id: str) -> Optional[KnowledgeDocument]:
        with self._lock:
            document = self._documents.get(document_id)
            return document.model_copy(deep=True) if document else None
