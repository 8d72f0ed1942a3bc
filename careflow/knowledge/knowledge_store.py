"""
Knowledge Store
===============

Authoritative clinical reference data used by the RAG pipeline:

- Guidelines: sourced recommendations, keyed by condition label
- Synonyms: a small thesaurus used to expand search queries
- Documents: full KnowledgeDocument records (the index only keeps
  what it needs to score them)

The store ships with sample data for diabetes, hypertension and
headache. Production deployments seed it from their own guideline
catalogue with add_guideline() / add_synonyms().
"""

import logging
import threading
from datetime import timedelta
from typing import Optional

from careflow.schemas.models import Guideline, KnowledgeDocument, utcnow

logger = logging.getLogger(__name__)


def _default_guidelines() -> dict[str, list[Guideline]]:
    now = utcnow()
    return {
        "diabetes": [
            Guideline(
                id="GL-DM-001",
                title="Type 2 Diabetes Management Guidelines",
                source="National Health Authority",
                key_recommendation="HbA1c target <7% for most adults",
                last_updated=now - timedelta(days=30),
                conditions=["Diabetes", "Type 2 Diabetes"],
            )
        ],
        "hypertension": [
            Guideline(
                id="GL-HT-001",
                title="Hypertension Treatment Guidelines",
                source="National Health Authority",
                key_recommendation="Blood pressure target <140/90 mmHg",
                last_updated=now - timedelta(days=45),
                conditions=["Hypertension", "High Blood Pressure"],
            )
        ],
    }


DEFAULT_SYNONYMS = {
    "diabetes": ["diabetes mellitus", "hyperglycemia", "high blood sugar"],
    "hypertension": ["high blood pressure", "elevated blood pressure", "BP"],
    "headache": ["cephalalgia", "head pain", "migraine"],
}


class KnowledgeStore:
    """
    In-memory guideline catalogue, synonym thesaurus and document store.

    All lookups are case-insensitive. Returned lists are copies, so
    callers may sort or extend them freely.

    Usage:
        store = KnowledgeStore()
        store.get_guidelines("Diabetes")       # [GL-DM-001]
        store.get_synonyms("type 2 diabetes")  # ["diabetes mellitus", ...]
    """

    def __init__(self, seed: bool = True):
        """
        Args:
            seed: Load the built-in sample guidelines and synonyms
        """
        self._lock = threading.RLock()
        self._documents: dict[str, KnowledgeDocument] = {}
        self._guidelines: dict[str, list[Guideline]] = {}
        self._synonyms: dict[str, list[str]] = {}

        if seed:
            for condition, guidelines in _default_guidelines().items():
                for guideline in guidelines:
                    self.add_guideline(condition, guideline)
            for term, synonyms in DEFAULT_SYNONYMS.items():
                self.add_synonyms(term, synonyms)
            logger.info("Knowledge store initialized with sample data")

    # =========================================================================
    # Documents
    # =========================================================================

    def store_document(self, document: KnowledgeDocument) -> None:
        """Store (or overwrite) the full record of a document."""
        with self._lock:
            self._documents[document.id] = document.model_copy(deep=True)
        logger.info(f"Stored document in knowledge store: {document.title}")

    def delete_document(self, document_id: str) -> bool:
        with self._lock:
            removed = self._documents.pop(document_id, None) is not None
        if removed:
            logger.info(f"Deleted document from knowledge store: {document_id}")
        return removed

    def get_document(self, document_id: str) -> Optional[KnowledgeDocument]:
        with self._lock:
            document = self._documents.get(document_id)
            return document.model_copy(deep=True) if document else None

    # =========================================================================
    # Guidelines
    # =========================================================================

    def add_guideline(self, condition: str, guideline: Guideline) -> None:
        """Attach a guideline to a condition label (replaces same id)."""
        key = condition.strip().lower()
        with self._lock:
            existing = [g for g in self._guidelines.get(key, []) if g.id != guideline.id]
            existing.append(guideline)
            self._guidelines[key] = existing

    def get_guidelines(self, condition: str) -> list[Guideline]:
        """Guidelines for a condition label; empty list when unknown."""
        with self._lock:
            return list(self._guidelines.get(condition.strip().lower(), []))

    # =========================================================================
    # Synonyms
    # =========================================================================

    def add_synonyms(self, term: str, synonyms: list[str]) -> None:
        """Add synonyms for a term, keeping existing ones."""
        key = term.strip().lower()
        with self._lock:
            current = self._synonyms.setdefault(key, [])
            for synonym in synonyms:
                if synonym not in current:
                    current.append(synonym)

    def get_synonyms(self, query: str) -> list[str]:
        """
        Synonyms of every thesaurus entry related to the query.

        An entry is related when the query contains its term or one of
        its synonyms, or when the query itself is part of them (a bare
        "hyperglycemia" still finds the diabetes entry).

        Args:
            query: Free-text question or search term

        Returns:
            Distinct synonyms in thesaurus order
        """
        lowered = query.strip().lower()
        if not lowered:
            return []

        terms: list[str] = []
        with self._lock:
            for key, synonyms in self._synonyms.items():
                candidates = [key] + [s.lower() for s in synonyms]
                related = any(
                    candidate in lowered or lowered in candidate
                    for candidate in candidates
                )
                if related:
                    terms.extend(s for s in synonyms if s not in terms)

        return terms
