"""Provider calls with bounded concurrency and rate-limit key rotation."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import TypeVar

from venture_forge.errors import AllKeysExhausted, NoKeysConfigured
from venture_forge.providers.failure_classifier import classify_provider_failure
from venture_forge.providers.key_rotation import KeyRotationManager

logger = logging.getLogger(__name__)

T = TypeVar("T")

ProviderOperation = Callable[[str], Awaitable[T]]


class ResilientProviderClient:
    """Runs one provider operation against a key pool, rotating on rate limits.

    Each service gets its own semaphore so a burst of concurrent tasks never
    holds more than ``max_concurrency`` in-flight requests per provider.
    """

    def __init__(
        self,
        *,
        rotation: KeyRotationManager,
        key_pools: Mapping[str, tuple[str, ...]],
        max_concurrency: int = 4,
    ) -> None:
        if max_concurrency <= 0:
            raise ValueError("max_concurrency must be positive")
        self.rotation = rotation
        self.key_pools = dict(key_pools)
        self.max_concurrency = max_concurrency
        self._semaphores: dict[str, asyncio.Semaphore] = {}

    def pool_for(self, service: str) -> tuple[str, ...]:
        return self.key_pools.get(service, ())

    async def call_with_rotation(self, service: str, operation: ProviderOperation[T]) -> T:
        """Call ``operation(key)`` starting at the persisted key index.

        Rate-limited attempts advance the shared cursor and move on to the next
        key; any other failure propagates unchanged. At most one attempt per key.
        """

        keys = self.pool_for(service)
        if not keys:
            raise NoKeysConfigured(service)

        cursor = await self.rotation.current_cursor(service)
        attempts = 0
        last_error: Exception | None = None
        while attempts < len(keys):
            attempts += 1
            key = keys[cursor.index % len(keys)]
            try:
                async with self._semaphore(service):
                    return await operation(key)
            except Exception as error:
                classification = classify_provider_failure(error)
                if not classification.rotates_key:
                    raise
                last_error = error
                logger.warning(
                    "%s key #%d rate-limited (attempt %d/%d, rule=%s, pattern=%s)",
                    service,
                    cursor.index % len(keys),
                    attempts,
                    len(keys),
                    classification.matched_rule,
                    classification.matched_pattern,
                )
                cursor = await self.rotation.rotate(
                    service,
                    observed=cursor,
                    pool_size=len(keys),
                )

        raise AllKeysExhausted(service, attempts) from last_error

    def _semaphore(self, service: str) -> asyncio.Semaphore:
        semaphore = self._semaphores.get(service)
        if semaphore is None:
            semaphore = asyncio.Semaphore(self.max_concurrency)
            self._semaphores[service] = semaphore
        return semaphore
