"""
RAG Query Service
=================

Answers clinical questions by combining vector retrieval, curated
guidelines and LLM generation.

PIPELINE (strictly ordered):

    question
       │
    ┌──▼────────────────┐
    │ 1. Retrieve       │ ──► embed question, top 10
    │ 2. Expand         │ ──► + synonyms, embed, top 5, merge by id
    └──┬────────────────┘
       │
    ┌──▼────────────────┐
    │ 3. Guidelines     │ ──► condition label → local + external,
    └──┬────────────────┘     newest first
       │
    ┌──▼────────────────┐
    │ 4. Generate       │ ──► low temperature answer
    └──┬────────────────┘
       │
    ┌──▼────────────────┐
    │ 5. Validate       │ ──► soft warnings per missing recommendation
    │ 6. Confidence     │ ──► mean(avg relevance, compliance)
    └──┬────────────────┘
       │
    RAGResponse

FAILURE MODEL:
Steps 1-4 either succeed or the whole query fails; there is no
partial RAGResponse. The external guideline source and the translation
helper are best-effort: they degrade to "no extra guidelines" and
"untranslated answer".

KNOWN WEAKNESSES:
- Validation is a literal, case-insensitive substring check of each
  guideline's key recommendation. A paraphrased recommendation counts
  as missing.
- Confidence is a heuristic, not a calibrated probability.
- Condition extraction takes the first vocabulary match; questions that
  mention several conditions are not disambiguated.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from careflow.config import get_settings
from careflow.errors import PartialFailure
from careflow.knowledge.guideline_source import GuidelineSource, create_guideline_source
from careflow.knowledge.knowledge_store import KnowledgeStore
from careflow.llm.generation import GenerationClient
from careflow.schemas.models import (
    Guideline,
    GuidelineValidation,
    KnowledgeDocument,
    RAGResponse,
    SamplingParams,
)
from careflow.vectorstore.embeddings import EmbeddingClient
from careflow.vectorstore.retrieval_index import BaseRetrievalIndex, RetrievalIndex

logger = logging.getLogger(__name__)


# The answer prompt is critical for grounding
# Key elements:
# 1. Clear clinical role
# 2. Explicit instruction to use the supplied documents and guidelines
# 3. Honesty about uncertainty
ANSWER_SYSTEM_PROMPT = """You are an experienced physician with access to a curated medical knowledge base.
Use the supplied documents, guidelines and patient context to give an accurate, evidence-based answer.

GUIDELINES:
- Follow the clinical guidelines provided below
- Include relevant ICD-10 codes where appropriate
- Be clear about uncertainty and limitations
- Recommend further examination when needed
- Refer to sources when possible

IMPORTANT: This is decision support, not a replacement for clinical judgement."""

ANSWER_USER_PROMPT = """Question: {question}

Patient context: {caller_context}

Clinical guidelines:
{guidelines}

Available medical knowledge:
{documents}

Give a structured, evidence-based answer."""

TRANSLATION_SYSTEM_PROMPT = """You are a professional medical translator.
Translate the text into the requested language. Keep medical terminology,
numbers and units exact. Return only the translation."""

DEFAULT_CONDITION = "general"
EMPTY_RETRIEVAL_RELEVANCE = 0.5


def _as_utc(moment: datetime) -> datetime:
    """Treat naive timestamps (e.g. from external feeds) as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


class RAGQueryService:
    """
    Retrieval-augmented question answering over the clinical corpus.

    Every collaborator is injected; nothing is global.

    Usage:
        service = RAGQueryService(
            embedding_client=EmbeddingClient(),
            index=RetrievalIndex(),
            knowledge_store=KnowledgeStore(),
            generation_client=GenerationClient(),
        )
        response = await service.query(
            "What is the HbA1c target for type 2 diabetes?",
            caller_context="68yo, on metformin",
        )
    """

    def __init__(
        self,
        embedding_client: Optional[EmbeddingClient] = None,
        index: Optional[BaseRetrievalIndex] = None,
        knowledge_store: Optional[KnowledgeStore] = None,
        generation_client: Optional[GenerationClient] = None,
        guideline_source: Optional[GuidelineSource] = None,
    ):
        self._settings = get_settings()
        self._embeddings = embedding_client or EmbeddingClient()
        self._index = index if index is not None else RetrievalIndex()
        self._knowledge_store = knowledge_store or KnowledgeStore()
        self._generation = generation_client or GenerationClient()
        self._guideline_source = guideline_source or create_guideline_source()

    @property
    def index(self) -> BaseRetrievalIndex:
        return self._index

    @property
    def knowledge_store(self) -> KnowledgeStore:
        return self._knowledge_store

    # =========================================================================
    # Main entry point
    # =========================================================================

    async def query(
        self,
        question: str,
        caller_context: str = "",
        language: Optional[str] = None,
    ) -> RAGResponse:
        """
        Answer a question with sources, guidelines and a confidence score.

        Args:
            question: Natural-language clinical question
            caller_context: Patient-specific context for the answer
            language: Language code for translated_answer (settings default)

        Returns:
            Complete RAGResponse

        Raises:
            ExternalServiceError: If embedding or generation fails
        """
        language = language or self._settings.answer_language
        logger.info(f"Processing RAG query: {question[:100]}")

        # Step 1 + 2: direct and synonym-expanded retrieval
        documents = await self.retrieve_relevant_documents(question)

        # Step 3: guidelines for the detected condition
        condition = self.extract_condition(question)
        guidelines = await self.get_guidelines(condition)

        # Step 4: answer
        answer = await self.generate_contextual_answer(
            question, documents, caller_context, guidelines
        )

        # Step 5 + 6: validation and confidence
        validation = self.validate_answer(answer, guidelines)
        confidence = self.calculate_confidence(documents, validation)

        sources = list(dict.fromkeys(doc.source for doc in documents))

        response = RAGResponse(
            answer=answer,
            translated_answer=await self.translate(answer, language),
            documents=documents,
            guidelines=guidelines,
            sources=sources,
            confidence_score=confidence,
            validation=validation,
            language=language,
        )

        logger.info(
            f"RAG query completed: condition={condition}, docs={len(documents)}, "
            f"guidelines={len(guidelines)}, confidence={confidence:.2f}"
        )
        return response

    # =========================================================================
    # Pipeline stages
    # =========================================================================

    async def retrieve_relevant_documents(
        self,
        query: str,
        top_k: Optional[int] = None,
    ) -> list[KnowledgeDocument]:
        """
        Direct + synonym-expanded similarity search.

        Duplicates keep their higher score. Results are sorted by score
        (direct hits first on ties) and truncated to top_k.
        """
        top_k = self._settings.retrieval_top_k if top_k is None else top_k
        if top_k <= 0:
            return []

        query_embedding = await self._embeddings.embed(query)
        direct = self._index.search(query_embedding, top_k)

        synonyms = self._knowledge_store.get_synonyms(query)
        expanded = []
        if synonyms:
            expanded_query = f"{query} {' '.join(synonyms)}"
            logger.debug(f"Expanded query: {expanded_query}")
            expanded_embedding = await self._embeddings.embed(expanded_query)
            expanded = self._index.search(
                expanded_embedding, min(self._settings.expansion_top_k, top_k)
            )

        merged: dict[str, KnowledgeDocument] = {}
        for document in direct + expanded:
            current = merged.get(document.id)
            if current is None or (document.relevance_score or 0.0) > (current.relevance_score or 0.0):
                merged[document.id] = document

        ranked = sorted(
            merged.values(),
            key=lambda doc: doc.relevance_score or 0.0,
            reverse=True,
        )
        # sorted() is stable, and reverse=True keeps equal items in order
        return ranked[:top_k]

    def extract_condition(self, question: str) -> str:
        """First vocabulary term contained in the question, else 'general'."""
        lowered = question.lower()
        for condition in self._settings.condition_vocabulary:
            if condition.lower() in lowered:
                return condition.lower()
        return DEFAULT_CONDITION

    async def get_guidelines(self, condition: str) -> list[Guideline]:
        """
        Local + external guidelines for a condition, newest first.

        External source failures are logged and ignored.
        """
        guidelines = self._knowledge_store.get_guidelines(condition)

        try:
            external = await self._guideline_source.fetch_guidelines(condition)
        except Exception as e:
            failure = PartialFailure(
                f"External guideline source unavailable for '{condition}': {e}",
                fallback="local guidelines only",
            )
            logger.warning(failure.message)
            external = []

        known_ids = {g.id for g in guidelines}
        guidelines.extend(g for g in external if g.id not in known_ids)

        return sorted(guidelines, key=lambda g: _as_utc(g.last_updated), reverse=True)

    async def generate_contextual_answer(
        self,
        question: str,
        documents: list[KnowledgeDocument],
        caller_context: str = "",
        guidelines: Optional[list[Guideline]] = None,
    ) -> str:
        """
        Generate an answer grounded in the documents and guidelines.

        Raises:
            ExternalServiceError: If the generation call fails
        """
        documents_text = "\n\n".join(
            f"Source: {doc.source}\nTitle: {doc.title}\nContent: {doc.content}"
            for doc in documents
        ) or "No documents found."

        guidelines_text = "\n".join(
            f"- {g.title} ({g.source}): {g.key_recommendation}"
            for g in guidelines or []
        ) or "No specific guidelines."

        user_prompt = ANSWER_USER_PROMPT.format(
            question=question,
            caller_context=caller_context or "Not provided",
            guidelines=guidelines_text,
            documents=documents_text,
        )

        sampling = SamplingParams(
            temperature=self._settings.rag_temperature,
            max_tokens=self._settings.llm_max_tokens,
        )
        return await self._generation.complete(ANSWER_SYSTEM_PROMPT, user_prompt, sampling)

    def validate_answer(self, answer: str, guidelines: list[Guideline]) -> GuidelineValidation:
        """
        Soft check that each guideline's key recommendation appears in the answer.

        Never blocks: missing recommendations only add warnings.
        """
        if not guidelines:
            return GuidelineValidation()

        lowered = answer.lower()
        warnings = []
        for guideline in guidelines:
            if guideline.key_recommendation.lower() not in lowered:
                warnings.append(
                    f"Consider including the recommendation from {guideline.source}: "
                    f"{guideline.key_recommendation}"
                )

        matched = len(guidelines) - len(warnings)
        return GuidelineValidation(
            is_compliant=not warnings,
            compliance_score=matched / len(guidelines),
            warnings=warnings,
        )

    @staticmethod
    def calculate_confidence(
        documents: list[KnowledgeDocument],
        validation: GuidelineValidation,
    ) -> float:
        """Mean of average document relevance (0.5 if none) and compliance."""
        if documents:
            relevance = sum(doc.relevance_score or 0.0 for doc in documents) / len(documents)
        else:
            relevance = EMPTY_RETRIEVAL_RELEVANCE

        confidence = (relevance + validation.compliance_score) / 2
        # Cosine scores can be negative
        return max(0.0, min(1.0, confidence))

    async def translate(self, answer: str, language: str) -> str:
        """Translate the answer; returns it unchanged when disabled or on failure."""
        if not self._settings.enable_translation or language == self._settings.answer_language:
            return answer

        try:
            return await self._generation.complete(
                TRANSLATION_SYSTEM_PROMPT,
                f"Target language: {language}\n\nText:\n{answer}",
                SamplingParams(temperature=0.0, max_tokens=self._settings.llm_max_tokens),
            )
        except Exception as e:
            failure = PartialFailure(f"Translation to {language} failed: {e}", fallback="original answer")
            logger.warning(failure.message)
            return answer

    # =========================================================================
    # Indexing
    # =========================================================================

    async def index_document(self, document: KnowledgeDocument) -> KnowledgeDocument:
        """
        Embed a document's content, index it and store the full record.

        Returns:
            The stored document (with its embedding)

        Raises:
            ExternalServiceError: If embedding fails
            InvalidDocument: If the embedding does not fit the index
        """
        embedding = await self._embeddings.embed(document.content)
        embedded = document.model_copy(update={"embedding": embedding})

        self._index.index(embedded)
        self._knowledge_store.store_document(embedded)

        logger.info(f"Indexed medical document: {document.title or document.id}")
        return embedded

    def remove_document(self, document_id: str) -> bool:
        """Remove a document from the index and the knowledge store."""
        removed = self._index.delete(document_id)
        stored = self._knowledge_store.delete_document(document_id)
        return removed or stored
