"""
Vector Store Module
===================

Embedding generation and retrieval indexes for semantic document search.
"""

from careflow.vectorstore.embeddings import EmbeddingClient, create_embeddings
from careflow.vectorstore.faiss_store import FAISSRetrievalIndex
from careflow.vectorstore.retrieval_index import (
    BaseRetrievalIndex,
    RetrievalIndex,
    cosine_similarity,
)

__all__ = [
    "BaseRetrievalIndex",
    "EmbeddingClient",
    "FAISSRetrievalIndex",
    "RetrievalIndex",
    "cosine_similarity",
    "create_embeddings",
]
