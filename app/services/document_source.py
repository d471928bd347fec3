"""
Document sources supply the text of a site's legal documents.
"""

import logging
from typing import Optional, Protocol

import httpx
from pydantic import BaseModel

from app.core.config import settings
from app.db.models.site import Site
from app.schemas.analysis import ContentType

logger = logging.getLogger(__name__)


class SourceDocument(BaseModel):
    content: str
    content_type: ContentType


class DocumentSource(Protocol):
    async def fetch(self, site: Site) -> Optional[SourceDocument]:
        ...


class ScraperServiceSource:
    """
    Fetches extracted document text from the external scraper service.

    POST {SCRAPER_SERVICE_URL}/extract with the document URL; the service
    answers {"content": ..., "content_type": ...} or 404 when it finds nothing.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = (base_url or settings.SCRAPER_SERVICE_URL or "").rstrip("/")
        self.api_key = api_key or settings.SCRAPER_API_KEY
        self.timeout = timeout or settings.SCRAPER_TIMEOUT
        self.transport = transport

    def is_configured(self) -> bool:
        return bool(self.base_url)

    @staticmethod
    def _target(site: Site):
        if site.tos_url:
            return site.tos_url, ContentType.TERMS_OF_SERVICE
        if site.privacy_policy_url:
            return site.privacy_policy_url, ContentType.PRIVACY_POLICY
        return f"https://{site.domain}", ContentType.TERMS_OF_SERVICE

    async def fetch(self, site: Site) -> Optional[SourceDocument]:
        """
        Raises:
            ValueError: If the scraper service is not configured
            httpx.HTTPError: On transport errors and non-404 error responses
        """
        if not self.is_configured():
            raise ValueError("Scraper service not configured (SCRAPER_SERVICE_URL missing)")

        url, default_type = self._target(site)
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            response = await client.post(
                f"{self.base_url}/extract",
                json={"url": url, "domain": site.domain, "content_type": default_type.value},
                headers=headers,
            )
            if response.status_code == 404:
                logger.info(f"No document found for {site.domain} at {url}")
                return None
            response.raise_for_status()
            data = response.json()

        content = (data.get("content") or "").strip()
        if not content:
            logger.info(f"Scraper returned empty content for {site.domain}")
            return None
        return SourceDocument(content=content, content_type=data.get("content_type") or default_type)
