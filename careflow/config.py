"""
Configuration Management
========================

All CareFlow settings live on one pydantic-settings class. Values come
from CAREFLOW_-prefixed environment variables (or a .env file), e.g.
CAREFLOW_LLM_PROVIDER=groq or CAREFLOW_RETRIEVAL_TOP_K=5.

LLM PROVIDERS:
1. ollama      - local models through an Ollama server
2. huggingface - HuggingFace Inference endpoints
3. groq        - Groq Cloud
4. google      - Google Gemini
5. openai      - OpenAI

Services read settings once, at construction. Tests that change the
environment must call get_settings.cache_clear() before building them.
"""

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    CareFlow settings.

    Defaults run everything locally (Ollama + sentence-transformers) with
    no external guideline source.
    """

    model_config = SettingsConfigDict(
        env_prefix="CAREFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # =========================================================================
    # LLM Provider Selection
    # =========================================================================
    llm_provider: Literal["ollama", "huggingface", "groq", "google", "openai"] = Field(
        default="ollama",
        description="Which LLM provider to use (ollama is free and local)"
    )

    # =========================================================================
    # API Keys (only needed for cloud providers)
    # =========================================================================
    openai_api_key: str = Field(default="", description="OpenAI API key")
    huggingface_api_key: str = Field(default="", description="HuggingFace API key")
    groq_api_key: str = Field(default="", description="Groq API key")
    google_api_key: str = Field(default="", description="Google API key")

    # =========================================================================
    # Model Configuration
    # =========================================================================
    ollama_model: str = Field(default="llama3.2")
    huggingface_model: str = Field(default="mistralai/Mistral-7B-Instruct-v0.2")
    groq_model: str = Field(default="llama-3.1-8b-instant")
    google_model: str = Field(default="gemini-1.5-flash")
    openai_model: str = Field(default="gpt-4o-mini")

    ollama_base_url: str = Field(
        default="http://localhost:11434",
        description="Ollama server URL"
    )

    # Temperature controls randomness: 0 = deterministic, 1 = creative
    llm_temperature: float = Field(
        default=0.3,
        ge=0.0,
        le=1.0,
        description="Default temperature when a caller passes no sampling params"
    )

    llm_max_tokens: int = Field(
        default=2000,
        gt=0,
        description="Default completion length"
    )

    # =========================================================================
    # Embedding Configuration
    # =========================================================================
    embedding_provider: Literal["huggingface", "openai"] = Field(
        default="huggingface",
        description="Embedding provider (huggingface is free and local)"
    )

    huggingface_embedding_model: str = Field(
        default="sentence-transformers/all-MiniLM-L6-v2",
        description="Free local embedding model"
    )

    openai_embedding_model: str = Field(
        default="text-embedding-3-small",
        description="OpenAI embedding model (paid)"
    )

    # =========================================================================
    # Retrieval / RAG Configuration
    # =========================================================================
    retrieval_top_k: int = Field(
        default=10,
        gt=0,
        description="Documents retrieved for the question itself"
    )

    expansion_top_k: int = Field(
        default=5,
        gt=0,
        description="Extra documents retrieved for the synonym-expanded question"
    )

    rag_temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=1.0,
        description="Low temperature keeps medical answers factual"
    )

    condition_vocabulary: list[str] = Field(
        default_factory=lambda: [
            "diabetes",
            "hypertension",
            "asthma",
            "depression",
            "anxiety",
        ],
        description="Condition labels matched (in order) against questions"
    )

    answer_language: str = Field(
        default="en",
        description="Language the generation model answers in"
    )

    enable_translation: bool = Field(
        default=False,
        description="Translate answers when the caller asks for another language"
    )

    chunk_size: int = Field(
        default=1000,
        description="Size of document chunks for embedding"
    )

    chunk_overlap: int = Field(
        default=200,
        description="Overlap between consecutive chunks"
    )

    # =========================================================================
    # External Guideline Source
    # =========================================================================
    guideline_source_url: Optional[str] = Field(
        default=None,
        description="Base URL of the national guideline API (None disables it)"
    )

    guideline_source_api_key: str = Field(default="")

    guideline_source_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Seconds before a guideline lookup is abandoned"
    )

    # =========================================================================
    # Workflow / Collaboration Configuration
    # =========================================================================
    workflow_success_policy: Literal["executed_steps", "all_steps"] = Field(
        default="executed_steps",
        description="How a run's overall success is computed"
    )

    collaboration_isolate_failures: bool = Field(
        default=False,
        description="Drop failed contributions instead of failing the collaboration"
    )

    collaboration_timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Per-agent contribution timeout in seconds (None = wait forever)"
    )

    # =========================================================================
    # Logging Configuration
    # =========================================================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level"
    )


@lru_cache()
def get_settings() -> Settings:
    """Settings are built once per process; cache_clear() rebuilds them."""
    return Settings()
