"""
Firecrawl render/scrape client.

Firecrawl renders a page (JavaScript included) and returns it as markdown,
optionally with every link found on it. Used two ways:
  - listing pages: formats markdown + links, links feed article discovery
  - article pages: markdown only (deep scrape adds waitFor for slow pages)

API: POST {base_url}/scrape  → {"success": bool, "data": {markdown, links, metadata}}
"""

import logging
from contextlib import asynccontextmanager
from typing import Iterable, Optional

import httpx

from pmnews.config import Settings, get_settings
from pmnews.errors import NotConfiguredError, UpstreamError
from pmnews.schemas.news import ScrapedPage

logger = logging.getLogger(__name__)


class FirecrawlTool:
    """Thin async wrapper around the Firecrawl scrape endpoint."""

    def __init__(
        self,
        api_key: str = "",
        base_url: str = "https://api.firecrawl.dev/v1",
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None, client: Optional[httpx.AsyncClient] = None):
        settings = settings or get_settings()
        return cls(
            api_key=settings.firecrawl_api_key,
            base_url=settings.firecrawl_base_url,
            timeout=settings.http_timeout,
            client=client,
        )

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    @asynccontextmanager
    async def _session(self):
        if self._client is not None:
            yield self._client
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                yield client

    async def scrape(
        self,
        url: str,
        formats: Iterable[str] = ("markdown",),
        wait_for: Optional[int] = None,
    ) -> ScrapedPage:
        """
        Scrape one URL.

        Raises:
            NotConfiguredError: no API key
            UpstreamError: transport failure, non-2xx status or success=false
        """
        if not self.configured:
            raise NotConfiguredError("Firecrawl API key is not configured")

        payload = {
            "url": url,
            "formats": list(formats),
            "onlyMainContent": True,
        }
        if wait_for:
            payload["waitFor"] = wait_for

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with self._session() as client:
                response = await client.post(f"{self.base_url}/scrape", json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise UpstreamError(f"Firecrawl request failed for {url}: {e}") from e

        if response.status_code != 200:
            raise UpstreamError(f"Firecrawl HTTP {response.status_code} for {url}")

        try:
            body = response.json()
        except ValueError as e:
            raise UpstreamError(f"Firecrawl returned invalid JSON for {url}") from e

        if body.get("success") is False:
            raise UpstreamError(f"Firecrawl error for {url}: {body.get('error', 'unknown')}")

        data = body.get("data") or {}
        return ScrapedPage(
            url=url,
            markdown=data.get("markdown") or "",
            links=[link for link in (data.get("links") or []) if isinstance(link, str)],
            metadata=data.get("metadata") or {},
        )
