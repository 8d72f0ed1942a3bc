"""
External Guideline Sources
==========================

Read-only feeds of clinical guidelines maintained outside CareFlow
(e.g. a national health directorate API).

These sources are slow and unreliable by nature. The RAG service
treats any failure here as "no extra guidelines", so implementations
raise ExternalServiceError and let the caller degrade.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx
from pydantic import ValidationError as PydanticValidationError

from careflow.config import get_settings
from careflow.errors import ExternalServiceError
from careflow.schemas.models import Guideline

logger = logging.getLogger(__name__)


class GuidelineSource(ABC):
    """Something that can return guidelines for a condition label."""

    @abstractmethod
    async def fetch_guidelines(self, condition: str) -> list[Guideline]:
        """
        Fetch guidelines for a condition.

        Raises:
            ExternalServiceError: If the source cannot be reached
        """
        pass

    async def close(self) -> None:
        """Release any held resources."""
        return None


class NullGuidelineSource(GuidelineSource):
    """Used when no external source is configured."""

    async def fetch_guidelines(self, condition: str) -> list[Guideline]:
        return []


class HttpGuidelineSource(GuidelineSource):
    """
    Guideline feed served over HTTP.

    Expects GET {base_url}/guidelines?condition=<label> to return either
    a JSON list of guideline objects or {"guidelines": [...]}. Entries
    that do not validate as a Guideline are skipped.

    Usage:
        source = HttpGuidelineSource("https://guidelines.example.org/api")
        guidelines = await source.fetch_guidelines("diabetes")
        await source.close()
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Args:
            base_url: API root of the guideline service
            api_key: Bearer token (optional)
            timeout: Request timeout in seconds
            client: Pre-built client (tests pass one with a mock transport)
        """
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._client = client

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            headers = {"Accept": "application/json"}
            if self.api_key:
                headers["Authorization"] = f"Bearer {self.api_key}"
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers=headers,
                timeout=self.timeout,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch_guidelines(self, condition: str) -> list[Guideline]:
        client = await self._get_client()

        try:
            response = await client.get("/guidelines", params={"condition": condition})
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Guideline source request failed for '{condition}': {e}")
            raise ExternalServiceError(
                f"Guideline source failed: {e}", service="guideline_source"
            ) from e

        return self._parse(payload)

    def _parse(self, payload: Any) -> list[Guideline]:
        if isinstance(payload, dict):
            payload = payload.get("guidelines", [])
        if not isinstance(payload, list):
            raise ExternalServiceError(
                "Guideline source returned an unexpected payload",
                service="guideline_source",
            )

        guidelines = []
        for item in payload:
            try:
                guidelines.append(Guideline.model_validate(item))
            except PydanticValidationError as e:
                logger.warning(f"Skipping malformed guideline: {e.error_count()} errors")

        logger.info(f"Fetched {len(guidelines)} guidelines from external source")
        return guidelines


def create_guideline_source() -> GuidelineSource:
    """Build the guideline source configured in settings."""
    settings = get_settings()
    if not settings.guideline_source_url:
        return NullGuidelineSource()
    return HttpGuidelineSource(
        base_url=settings.guideline_source_url,
        api_key=settings.guideline_source_api_key,
        timeout=settings.guideline_source_timeout,
    )
