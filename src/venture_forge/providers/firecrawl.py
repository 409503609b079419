"""Firecrawl web search and scrape."""

from __future__ import annotations

from typing import Any

import httpx

from venture_forge.errors import ProviderRequestError
from venture_forge.providers.base import SearchHit
from venture_forge.providers.http import ProviderHttpClient


class FirecrawlSearchProvider:
    service = "firecrawl"

    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._http = ProviderHttpClient(
            service=self.service,
            base_url=base_url,
            timeout_seconds=timeout_seconds,
            transport=transport,
        )

    async def search(self, *, api_key: str, query: str, limit: int) -> list[SearchHit]:
        body = await self._http.post_json(
            "search",
            payload={
                "query": query,
                "limit": limit,
                "scrapeOptions": {"formats": ["markdown"]},
            },
            headers=_auth(api_key),
        )
        _ensure_success(body)
        data = body.get("data")
        if not isinstance(data, list):
            raise ProviderRequestError(self.service, "search response has no data array")
        return [_to_hit(item) for item in data if isinstance(item, dict)]

    async def scrape(self, *, api_key: str, url: str) -> SearchHit:
        body = await self._http.post_json(
            "scrape",
            payload={"url": url, "formats": ["markdown"]},
            headers=_auth(api_key),
        )
        _ensure_success(body)
        data = body.get("data")
        if not isinstance(data, dict):
            raise ProviderRequestError(self.service, "scrape response has no data object")
        hit = _to_hit(data)
        return SearchHit(url=hit.url or url, title=hit.title, markdown=hit.markdown)

    async def aclose(self) -> None:
        await self._http.aclose()


def _auth(api_key: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {api_key}"}


def _ensure_success(body: dict[str, Any]) -> None:
    if body.get("success") is False:
        raise ProviderRequestError(
            FirecrawlSearchProvider.service,
            str(body.get("error") or "request was not successful"),
        )


def _to_hit(item: dict[str, Any]) -> SearchHit:
    metadata = item.get("metadata") if isinstance(item.get("metadata"), dict) else {}
    url = item.get("url") or metadata.get("sourceURL") or ""
    title = item.get("title") or metadata.get("title") or ""
    markdown = item.get("markdown") or item.get("description") or ""
    return SearchHit(url=str(url), title=str(title), markdown=str(markdown))
