"""
Generation Client
=================

Creates chat models for the configured provider and exposes a single
async completion call used by agents, the planner, the collaboration
coordinator and the RAG service.

Provider packages are imported inside create_llm(), so importing
CareFlow never loads a provider SDK.

WHY ONE MODEL PER SAMPLING SETTING?
Temperature is a constructor argument on every LangChain chat model, so
the client builds (and caches) one model per SamplingParams value.
"""

import logging
from typing import Optional

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from careflow.config import get_settings
from careflow.errors import ExternalServiceError
from careflow.schemas.models import SamplingParams

logger = logging.getLogger(__name__)


def create_llm(
    provider: Optional[str] = None,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
) -> BaseChatModel:
    """
    Create an LLM instance based on the configured provider.

    Args:
        provider: Override the default provider from settings
        temperature: Override the default temperature
        max_tokens: Override the default completion length

    Returns:
        A LangChain chat model instance

    Raises:
        ValueError: If provider is not supported
    """
    settings = get_settings()
    provider = provider or settings.llm_provider
    temp = temperature if temperature is not None else settings.llm_temperature
    max_tokens = max_tokens or settings.llm_max_tokens

    logger.info(f"Creating LLM with provider: {provider} (temperature={temp})")

    if provider == "ollama":
        from langchain_community.chat_models import ChatOllama
        return ChatOllama(
            model=settings.ollama_model,
            base_url=settings.ollama_base_url,
            temperature=temp,
            num_predict=max_tokens,
        )

    elif provider == "huggingface":
        from langchain_huggingface import ChatHuggingFace, HuggingFaceEndpoint
        llm = HuggingFaceEndpoint(
            repo_id=settings.huggingface_model,
            huggingfacehub_api_token=settings.huggingface_api_key,
            temperature=temp,
            max_new_tokens=max_tokens,
        )
        return ChatHuggingFace(llm=llm)

    elif provider == "groq":
        from langchain_groq import ChatGroq
        return ChatGroq(
            model=settings.groq_model,
            api_key=settings.groq_api_key,
            temperature=temp,
            max_tokens=max_tokens,
        )

    elif provider == "google":
        from langchain_google_genai import ChatGoogleGenerativeAI
        return ChatGoogleGenerativeAI(
            model=settings.google_model,
            google_api_key=settings.google_api_key,
            temperature=temp,
            max_output_tokens=max_tokens,
        )

    elif provider == "openai":
        from langchain_openai import ChatOpenAI
        return ChatOpenAI(
            model=settings.openai_model,
            openai_api_key=settings.openai_api_key,
            temperature=temp,
            max_tokens=max_tokens,
        )

    else:
        raise ValueError(f"Unsupported LLM provider: {provider}")


class GenerationClient:
    """
    Free-text completions from a system prompt and a user prompt.

    Usage:
        client = GenerationClient()
        text = await client.complete(
            "You are a triage nurse.",
            "Assess: chest pain, 54yo",
            SamplingParams(temperature=0.1),
        )

    Passing a pre-built llm (e.g. a fake chat model in tests) pins every
    call to that model regardless of sampling params.
    """

    def __init__(
        self,
        llm: Optional[BaseChatModel] = None,
        provider: Optional[str] = None,
    ):
        self._settings = get_settings()
        self._provider = provider or self._settings.llm_provider
        self._llm = llm
        self._models: dict[SamplingParams, BaseChatModel] = {}

    def default_sampling(self) -> SamplingParams:
        return SamplingParams(
            temperature=self._settings.llm_temperature,
            max_tokens=self._settings.llm_max_tokens,
        )

    def _model_for(self, sampling: SamplingParams) -> BaseChatModel:
        if self._llm is not None:
            return self._llm

        model = self._models.get(sampling)
        if model is None:
            model = create_llm(self._provider, sampling.temperature, sampling.max_tokens)
            self._models[sampling] = model
        return model

    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        sampling: Optional[SamplingParams] = None,
    ) -> str:
        """
        Generate a completion.

        Args:
            system_prompt: Role and rules for the model
            user_prompt: The actual request
            sampling: Temperature / length (defaults from settings)

        Returns:
            The generated text

        Raises:
            ExternalServiceError: If the provider call fails
        """
        sampling = sampling or self.default_sampling()
        messages = [
            SystemMessage(content=system_prompt),
            HumanMessage(content=user_prompt),
        ]

        try:
            response = await self._model_for(sampling).ainvoke(messages)
        except Exception as e:
            logger.error(f"Generation failed: {type(e).__name__}: {e}")
            raise ExternalServiceError(
                f"Generation failed: {e}", service="generation"
            ) from e

        content = response.content
        # Some providers return a list of content blocks
        if isinstance(content, list):
            content = "".join(
                block if isinstance(block, str) else block.get("text", "")
                for block in content
            )
        return content
