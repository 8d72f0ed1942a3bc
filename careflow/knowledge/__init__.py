"""Knowledge Module - guidelines, synonyms and external guideline feeds."""

from careflow.knowledge.guideline_source import (
    GuidelineSource,
    HttpGuidelineSource,
    NullGuidelineSource,
    create_guideline_source,
)
from careflow.knowledge.knowledge_store import KnowledgeStore

__all__ = [
    "GuidelineSource",
    "HttpGuidelineSource",
    "KnowledgeStore",
    "NullGuidelineSource",
    "create_guideline_source",
]
