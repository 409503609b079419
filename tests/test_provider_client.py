from __future__ import annotations

import asyncio

import allure
import pytest
from conftest import rate_limited

from venture_forge.errors import AllKeysExhausted, NoKeysConfigured, ProviderRequestError
from venture_forge.providers.client import ResilientProviderClient
from venture_forge.providers.key_rotation import KeyRotationManager

pytestmark = [
    allure.epic("Provider Resilience"),
    allure.feature("Resilient Client"),
]


def _client(repository, keys: tuple[str, ...], *, max_concurrency: int = 4):
    rotation = KeyRotationManager(repository.engine)
    client = ResilientProviderClient(
        rotation=rotation,
        key_pools={"gemini": keys},
        max_concurrency=max_concurrency,
    )
    return client, rotation


def test_rate_limited_key_is_rotated_to_next(repository) -> None:
    client, rotation = _client(repository, ("k1", "k2"))
    calls: list[str] = []

    async def operation(key: str) -> str:
        calls.append(key)
        if key == "k1":
            raise rate_limited("gemini")
        return f"answer via {key}"

    result = asyncio.run(client.call_with_rotation("gemini", operation))

    assert result == "answer via k2"
    assert calls == ["k1", "k2"]
    assert rotation.list_states()[0].key_index == 1


def test_next_call_starts_from_persisted_index(repository) -> None:
    client, rotation = _client(repository, ("k1", "k2", "k3"))
    cursor = asyncio.run(rotation.current_cursor("gemini"))
    cursor = asyncio.run(rotation.rotate("gemini", observed=cursor, pool_size=3))
    asyncio.run(rotation.rotate("gemini", observed=cursor, pool_size=3))
    calls: list[str] = []

    async def operation(key: str) -> str:
        calls.append(key)
        return key

    assert asyncio.run(client.call_with_rotation("gemini", operation)) == "k3"
    assert calls == ["k3"]


def test_every_key_rate_limited_raises_exhausted_after_one_attempt_each(repository) -> None:
    client, rotation = _client(repository, ("k1", "k2", "k3"))
    calls: list[str] = []

    async def operation(key: str) -> str:
        calls.append(key)
        raise rate_limited("gemini")

    with pytest.raises(AllKeysExhausted) as excinfo:
        asyncio.run(client.call_with_rotation("gemini", operation))

    assert calls == ["k1", "k2", "k3"]
    assert excinfo.value.attempts == 3
    assert isinstance(excinfo.value.__cause__, ProviderRequestError)
    assert rotation.list_states()[0].key_index == 0


def test_empty_pool_fails_without_calling_provider(repository) -> None:
    client, _ = _client(repository, ())
    calls: list[str] = []

    async def operation(key: str) -> str:
        calls.append(key)
        return key

    with pytest.raises(NoKeysConfigured, match="gemini"):
        asyncio.run(client.call_with_rotation("gemini", operation))
    assert calls == []


def test_non_rate_limit_error_propagates_without_rotation(repository) -> None:
    client, rotation = _client(repository, ("k1", "k2"))
    calls: list[str] = []

    async def operation(key: str) -> str:
        calls.append(key)
        raise ProviderRequestError("gemini", "API key not valid", status_code=400)

    with pytest.raises(ProviderRequestError, match="API key not valid"):
        asyncio.run(client.call_with_rotation("gemini", operation))

    assert calls == ["k1"]
    assert rotation.list_states()[0].rotations == 0


def test_concurrent_callers_hitting_same_limit_rotate_once(repository) -> None:
    client, rotation = _client(repository, ("k1", "k2", "k3"), max_concurrency=4)
    callers = 4

    async def _scenario() -> list[str]:
        entered = 0
        all_entered = asyncio.Event()

        async def operation(key: str) -> str:
            nonlocal entered
            if key == "k1":
                entered += 1
                if entered == callers:
                    all_entered.set()
                await all_entered.wait()
                raise rate_limited("gemini")
            return key

        return await asyncio.gather(
            *(client.call_with_rotation("gemini", operation) for _ in range(callers)),
        )

    results = asyncio.run(_scenario())

    assert results == ["k2"] * callers
    state = rotation.list_states()[0]
    assert state.key_index == 1
    assert state.rotations == 1


def test_cancelled_call_does_not_rotate(repository) -> None:
    client, rotation = _client(repository, ("k1", "k2"))

    async def operation(key: str) -> str:
        await asyncio.Event().wait()
        return key

    with pytest.raises(TimeoutError):
        asyncio.run(
            asyncio.wait_for(client.call_with_rotation("gemini", operation), timeout=0.05),
        )

    state = rotation.list_states()[0]
    assert state.key_index == 0
    assert state.rotations == 0


def test_in_flight_calls_are_capped_per_service(repository) -> None:
    client, _ = _client(repository, ("k1",), max_concurrency=2)
    in_flight = 0
    peak = 0

    async def operation(key: str) -> str:
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.01)
        in_flight -= 1
        return key

    async def _scenario() -> list[str]:
        return await asyncio.gather(
            *(client.call_with_rotation("gemini", operation) for _ in range(6)),
        )

    assert asyncio.run(_scenario()) == ["k1"] * 6
    assert peak == 2


def test_client_rejects_non_positive_concurrency(repository) -> None:
    with pytest.raises(ValueError, match="max_concurrency"):
        _client(repository, ("k1",), max_concurrency=0)
