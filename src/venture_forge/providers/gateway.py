"""Text and search capabilities bound to the rotating key pool."""

from __future__ import annotations

import json
import logging
from typing import Any

from sqlalchemy.engine import Engine

from venture_forge.config import Settings
from venture_forge.errors import ArtifactContractError
from venture_forge.providers.base import SearchHit, SearchProvider, TextGenerator
from venture_forge.providers.client import ResilientProviderClient
from venture_forge.providers.echo import EchoSearchProvider, EchoTextGenerator
from venture_forge.providers.firecrawl import FirecrawlSearchProvider
from venture_forge.providers.gemini import GeminiTextGenerator
from venture_forge.providers.key_rotation import KeyRotationManager
from venture_forge.providers.openai_chat import OpenAiChatGenerator

logger = logging.getLogger(__name__)


class ProviderGateway:
    """What generation routines see: completions and searches, nothing about keys."""

    def __init__(
        self,
        *,
        client: ResilientProviderClient,
        text_generator: TextGenerator,
        search_provider: SearchProvider,
        search_results_limit: int = 5,
    ) -> None:
        self.client = client
        self.text_generator = text_generator
        self.search_provider = search_provider
        self.search_results_limit = search_results_limit

    async def complete_text(self, prompt: str) -> str:
        return await self.client.call_with_rotation(
            self.text_generator.service,
            lambda key: self.text_generator.generate(api_key=key, prompt=prompt, json_mode=False),
        )

    async def complete_json(self, prompt: str) -> dict[str, Any]:
        """Request a JSON object completion and decode it."""

        raw = await self.client.call_with_rotation(
            self.text_generator.service,
            lambda key: self.text_generator.generate(api_key=key, prompt=prompt, json_mode=True),
        )
        return parse_json_object(raw)

    async def search(self, query: str, *, limit: int | None = None) -> list[SearchHit]:
        effective_limit = limit or self.search_results_limit
        hits = await self.client.call_with_rotation(
            self.search_provider.service,
            lambda key: self.search_provider.search(
                api_key=key,
                query=query,
                limit=effective_limit,
            ),
        )
        logger.info("Search %r returned %d hit(s)", query, len(hits))
        return hits

    async def scrape(self, url: str) -> SearchHit:
        return await self.client.call_with_rotation(
            self.search_provider.service,
            lambda key: self.search_provider.scrape(api_key=key, url=url),
        )

    async def aclose(self) -> None:
        await self.text_generator.aclose()
        await self.search_provider.aclose()


def parse_json_object(raw: str) -> dict[str, Any]:
    """Decode a model completion that should be one JSON object.

    Models occasionally wrap JSON in a fenced code block; the fence is dropped.
    """

    text = raw.strip()
    if text.startswith("```"):
        text = text.split("\n", 1)[1] if "\n" in text else ""
        text = text.rsplit("```", 1)[0]
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as error:
        raise ArtifactContractError(f"Completion is not valid JSON: {error}") from error
    if not isinstance(payload, dict):
        raise ArtifactContractError("Completion JSON must be an object")
    return payload


def build_provider_gateway(settings: Settings, *, engine: Engine) -> ProviderGateway:
    """Wire adapters, key pools and the rotation manager from settings."""

    providers = settings.providers
    text_generator: TextGenerator
    if providers.text_provider == "gemini":
        text_generator = GeminiTextGenerator(
            model=providers.gemini_model,
            base_url=providers.gemini_base_url,
            timeout_seconds=providers.request_timeout_seconds,
        )
    elif providers.text_provider == "openai":
        text_generator = OpenAiChatGenerator(
            model=providers.openai_model,
            base_url=providers.openai_base_url,
            timeout_seconds=providers.request_timeout_seconds,
        )
    elif providers.text_provider == "echo":
        text_generator = EchoTextGenerator()
    else:
        raise ValueError(f"Unsupported text provider: {providers.text_provider!r}")

    search_provider: SearchProvider
    if providers.search_provider == "firecrawl":
        search_provider = FirecrawlSearchProvider(
            base_url=providers.firecrawl_base_url,
            timeout_seconds=providers.request_timeout_seconds,
        )
    elif providers.search_provider == "echo":
        search_provider = EchoSearchProvider()
    else:
        raise ValueError(f"Unsupported search provider: {providers.search_provider!r}")

    services = {text_generator.service, search_provider.service}
    client = ResilientProviderClient(
        rotation=KeyRotationManager(engine),
        key_pools={service: settings.key_pool(service) for service in services},
        max_concurrency=providers.max_concurrency,
    )
    return ProviderGateway(
        client=client,
        text_generator=text_generator,
        search_provider=search_provider,
        search_results_limit=providers.search_results_limit,
    )
