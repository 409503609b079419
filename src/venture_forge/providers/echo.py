"""Offline deterministic providers for demos and integration tests."""

from __future__ import annotations

import json
import re

from venture_forge.providers.base import SearchHit

REQUIRED_KEYS_PATTERN = re.compile(r"^Required JSON keys:\s*(?P<keys>.+)$", re.MULTILINE)
STARTUP_NAME_PATTERN = re.compile(r'^Startup name:\s*"?(?P<name>[^"\n]+)"?$', re.MULTILINE)


class EchoTextGenerator:
    """Answers every prompt with placeholder values for the keys it asks for."""

    service = "echo"

    async def generate(self, *, api_key: str, prompt: str, json_mode: bool) -> str:  # noqa: ARG002
        name_match = STARTUP_NAME_PATTERN.search(prompt)
        subject = name_match.group("name").strip() if name_match else "startup"
        if not json_mode:
            return f"# Echo output for {subject}\n\n{prompt.strip().splitlines()[0]}"
        keys_match = REQUIRED_KEYS_PATTERN.search(prompt)
        keys = (
            [key.strip() for key in keys_match.group("keys").split(",") if key.strip()]
            if keys_match
            else ["text"]
        )
        return json.dumps({key: f"{key} for {subject}" for key in keys}, ensure_ascii=False)

    async def aclose(self) -> None:
        return None


class EchoSearchProvider:
    """Returns synthetic hits whose content repeats the query."""

    service = "echo"

    async def search(self, *, api_key: str, query: str, limit: int) -> list[SearchHit]:  # noqa: ARG002
        slug = re.sub(r"[^a-z0-9]+", "-", query.lower()).strip("-") or "query"
        return [
            SearchHit(
                url=f"https://example.com/{slug}/{position}",
                title=f"{query} #{position}",
                markdown=f"Echo search result {position} for: {query}",
            )
            for position in range(1, limit + 1)
        ]

    async def scrape(self, *, api_key: str, url: str) -> SearchHit:  # noqa: ARG002
        return SearchHit(url=url, title=url, markdown=f"Echo page content for {url}")

    async def aclose(self) -> None:
        return None
