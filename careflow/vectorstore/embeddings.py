"""
Embedding Client
================

Query and document text become vectors through a LangChain Embeddings
object. Two backends are wired up:

- huggingface: sentence-transformers run in-process on CPU
  (all-MiniLM-L6-v2 by default, 384 dimensions, vectors pre-normalized)
- openai: text-embedding-3-small over the API (1536 dimensions)

One deployment uses one model, so every vector it produces has the same
dimension. Scores from indexes built with different models are not
comparable.
"""

import logging
from typing import Optional

from langchain_core.embeddings import Embeddings

from careflow.config import get_settings
from careflow.errors import ExternalServiceError

logger = logging.getLogger(__name__)


# Dimensions for common models
MODEL_DIMENSIONS = {
    # HuggingFace models
    "sentence-transformers/all-MiniLM-L6-v2": 384,
    "sentence-transformers/all-mpnet-base-v2": 768,
    "BAAI/bge-small-en-v1.5": 384,
    "BAAI/bge-base-en-v1.5": 768,
    # OpenAI models
    "text-embedding-3-small": 1536,
    "text-embedding-3-large": 3072,
    "text-embedding-ada-002": 1536,
}


def create_embeddings(provider: Optional[str] = None) -> Embeddings:
    """
    Build the LangChain embeddings backend.

    Args:
        provider: Override provider from settings ("huggingface" or "openai")

    Returns:
        LangChain Embeddings instance
    """
    settings = get_settings()
    provider = provider or settings.embedding_provider

    logger.info(f"Creating embeddings with provider: {provider}")

    if provider == "huggingface":
        from langchain_huggingface import HuggingFaceEmbeddings
        return HuggingFaceEmbeddings(
            model_name=settings.huggingface_embedding_model,
            model_kwargs={"device": "cpu"},  # Use "cuda" if GPU available
            encode_kwargs={"normalize_embeddings": True},
        )

    elif provider == "openai":
        from langchain_openai import OpenAIEmbeddings
        return OpenAIEmbeddings(
            model=settings.openai_embedding_model,
            openai_api_key=settings.openai_api_key,
        )

    else:
        raise ValueError(f"Unsupported embedding provider: {provider}")


class EmbeddingClient:
    """
    Turns text into fixed-dimension vectors.

    The underlying LangChain Embeddings object is created lazily so that
    constructing services never loads a model by itself.

    Usage:
        client = EmbeddingClient()
        vector = await client.embed("HbA1c targets in type 2 diabetes")
    """

    def __init__(
        self,
        embeddings: Optional[Embeddings] = None,
        provider: Optional[str] = None,
    ) -> None:
        self._settings = get_settings()
        self._provider = provider or self._settings.embedding_provider
        self._embeddings = embeddings

    def get_embeddings(self) -> Embeddings:
        """Get (and create on first use) the LangChain embeddings instance."""
        if self._embeddings is None:
            self._embeddings = create_embeddings(self._provider)
            logger.info(f"Initialized embeddings with provider: {self._provider}")
        return self._embeddings

    async def embed(self, text: str) -> list[float]:
        """
        Embed one query or document.

        Args:
            text: Text to embed

        Returns:
            The vector (never empty)

        Raises:
            ExternalServiceError: If the embedding backend fails
        """
        try:
            vector = await self.get_embeddings().aembed_query(text)
        except Exception as e:
            logger.error(f"Error generating embedding: {type(e).__name__}: {e}")
            raise ExternalServiceError(
                f"Embedding failed: {e}", service="embedding"
            ) from e

        if not vector:
            raise ExternalServiceError(
                "Embedding backend returned an empty vector", service="embedding"
            )
        return list(vector)

    async def embed_many(self, texts: list[str]) -> list[list[float]]:
        """Embed multiple texts in one batch call."""
        if not texts:
            return []
        try:
            vectors = await self.get_embeddings().aembed_documents(texts)
        except Exception as e:
            logger.error(f"Error generating batch embeddings: {e}")
            raise ExternalServiceError(
                f"Embedding failed: {e}", service="embedding"
            ) from e
        return [list(v) for v in vectors]

    @property
    def dimension(self) -> int:
        """
        Dimension of the configured model (384 if the model is not listed).
        """
        model = (
            self._settings.huggingface_embedding_model
            if self._provider == "huggingface"
            else self._settings.openai_embedding_model
        )
        return MODEL_DIMENSIONS.get(model, 384)
