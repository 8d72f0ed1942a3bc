"""Tests for the generation and embedding clients."""

from unittest.mock import AsyncMock, Mock

import pytest
from langchain_core.embeddings import DeterministicFakeEmbedding
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from langchain_core.messages import AIMessage

from careflow.errors import ExternalServiceError
from careflow.llm.generation import GenerationClient, create_llm
from careflow.schemas.models import SamplingParams
from careflow.vectorstore.embeddings import EmbeddingClient

from conftest import failing_llm


class TestGenerationClient:
    """Tests for GenerationClient."""

    @pytest.mark.asyncio
    async def test_complete_returns_text(self):
        client = GenerationClient(llm=FakeListChatModel(responses=["Hello"]))
        assert await client.complete("system", "user") == "Hello"

    @pytest.mark.asyncio
    async def test_sends_system_and_user_messages(self):
        llm = Mock()
        llm.ainvoke = AsyncMock(return_value=AIMessage(content="ok"))
        client = GenerationClient(llm=llm)

        await client.complete("be brief", "hi", SamplingParams(temperature=0.1))

        messages = llm.ainvoke.call_args.args[0]
        assert [m.type for m in messages] == ["system", "human"]
        assert messages[0].content == "be brief"
        assert messages[1].content == "hi"

    @pytest.mark.asyncio
    async def test_joins_content_blocks(self):
        llm = Mock()
        llm.ainvoke = AsyncMock(return_value=AIMessage(content=[
            {"type": "text", "text": "Hello "},
            "world",
        ]))

        assert await GenerationClient(llm=llm).complete("s", "u") == "Hello world"

    @pytest.mark.asyncio
    async def test_provider_failure_is_wrapped(self):
        client = GenerationClient(llm=failing_llm(RuntimeError("rate limited")))

        with pytest.raises(ExternalServiceError) as exc_info:
            await client.complete("s", "u")

        assert exc_info.value.service == "generation"
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    def test_default_sampling_from_settings(self, monkeypatch):
        monkeypatch.setenv("CAREFLOW_LLM_TEMPERATURE", "0.7")
        client = GenerationClient(llm=FakeListChatModel(responses=["x"]))

        assert client.default_sampling().temperature == 0.7

    def test_unsupported_provider(self):
        with pytest.raises(ValueError):
            create_llm(provider="carrier-pigeon")


class TestEmbeddingClient:
    """Tests for EmbeddingClient."""

    @pytest.mark.asyncio
    async def test_embed_has_fixed_dimension(self):
        client = EmbeddingClient(embeddings=DeterministicFakeEmbedding(size=16))

        first = await client.embed("chest pain")
        second = await client.embed("a much longer text about shortness of breath")

        assert len(first) == len(second) == 16
        assert await client.embed("chest pain") == first

    @pytest.mark.asyncio
    async def test_embed_many(self):
        client = EmbeddingClient(embeddings=DeterministicFakeEmbedding(size=8))

        vectors = await client.embed_many(["a", "b"])

        assert len(vectors) == 2
        assert await client.embed_many([]) == []

    @pytest.mark.asyncio
    async def test_backend_failure_is_wrapped(self):
        embeddings = Mock()
        embeddings.aembed_query = AsyncMock(side_effect=ConnectionError("offline"))

        with pytest.raises(ExternalServiceError) as exc_info:
            await EmbeddingClient(embeddings=embeddings).embed("text")

        assert exc_info.value.service == "embedding"

    @pytest.mark.asyncio
    async def test_empty_vector_is_an_error(self):
        embeddings = Mock()
        embeddings.aembed_query = AsyncMock(return_value=[])

        with pytest.raises(ExternalServiceError):
            await EmbeddingClient(embeddings=embeddings).embed("text")

    def test_dimension_for_default_model(self):
        assert EmbeddingClient(embeddings=DeterministicFakeEmbedding(size=8)).dimension == 384
