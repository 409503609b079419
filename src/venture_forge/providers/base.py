"""Provider interfaces consumed by the gateway."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(slots=True)
class SearchHit:
    """One search result, optionally with scraped page content."""

    url: str
    title: str
    markdown: str = ""


class TextGenerator(Protocol):
    """Content-generation provider; one call per key attempt."""

    service: str

    async def generate(self, *, api_key: str, prompt: str, json_mode: bool) -> str:
        """Return raw completion text or raise ``ProviderRequestError``."""

    async def aclose(self) -> None:
        """Release HTTP resources."""


class SearchProvider(Protocol):
    """Web search/scrape provider; one call per key attempt."""

    service: str

    async def search(self, *, api_key: str, query: str, limit: int) -> list[SearchHit]:
        """Return search hits with page content when the provider supplies it."""

    async def scrape(self, *, api_key: str, url: str) -> SearchHit:
        """Fetch one page as markdown."""

    async def aclose(self) -> None:
        """Release HTTP resources."""
