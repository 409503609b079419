"""Shared test fixtures."""

from __future__ import annotations

import asyncio
import json
from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from venture_forge.errors import ProviderRequestError
from venture_forge.orchestrator.models import StartupCreate, StartupView
from venture_forge.orchestrator.repository import StartupRepository
from venture_forge.providers.base import SearchProvider, TextGenerator
from venture_forge.providers.client import ResilientProviderClient
from venture_forge.providers.echo import REQUIRED_KEYS_PATTERN, EchoSearchProvider
from venture_forge.providers.gateway import ProviderGateway
from venture_forge.providers.key_rotation import KeyRotationManager


class CountingTextGenerator:
    """Echo-style generator that numbers every answer and remembers prompts."""

    service = "echo"

    def __init__(self, *, fail_when: Callable[[str], BaseException | None] | None = None) -> None:
        self.prompts: list[str] = []
        self.keys_used: list[str] = []
        self.fail_when = fail_when

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def generate(self, *, api_key: str, prompt: str, json_mode: bool) -> str:
        self.prompts.append(prompt)
        self.keys_used.append(api_key)
        if self.fail_when is not None:
            error = self.fail_when(prompt)
            if error is not None:
                raise error
        if not json_mode:
            return f"# Endpoints\n\nanswer #{self.calls}"
        match = REQUIRED_KEYS_PATTERN.search(prompt)
        keys = [key.strip() for key in match.group("keys").split(",")] if match else ["text"]
        return json.dumps({key: f"{key} #{self.calls}" for key in keys})

    async def aclose(self) -> None:
        return None


class BlockingTextGenerator:
    """Never answers until cancelled."""

    service = "echo"

    def __init__(self) -> None:
        self.started = asyncio.Event()

    async def generate(self, *, api_key: str, prompt: str, json_mode: bool) -> str:
        self.started.set()
        await asyncio.Event().wait()
        raise AssertionError("unreachable")

    async def aclose(self) -> None:
        return None


def rate_limited(service: str = "echo") -> ProviderRequestError:
    return ProviderRequestError(service, "Too Many Requests", status_code=429)


@pytest.fixture()
def repository(tmp_path: Path) -> Iterator[StartupRepository]:
    repo = StartupRepository(tmp_path / "venture.db")
    repo.init_schema()
    yield repo
    repo.close()


@pytest.fixture()
def startup(repository: StartupRepository) -> StartupView:
    return repository.create_startup(
        StartupCreate(name="Tidewise", idea="Tide-aware scheduling for coastal fishing crews"),
    )


@pytest.fixture()
def make_gateway(repository: StartupRepository) -> Callable[..., ProviderGateway]:
    def _make(
        text_generator: TextGenerator | None = None,
        *,
        search_provider: SearchProvider | None = None,
        keys: tuple[str, ...] = ("echo-key",),
        search_results_limit: int = 2,
    ) -> ProviderGateway:
        return ProviderGateway(
            client=ResilientProviderClient(
                rotation=KeyRotationManager(repository.engine),
                key_pools={"echo": keys},
            ),
            text_generator=text_generator or CountingTextGenerator(),
            search_provider=search_provider or EchoSearchProvider(),
            search_results_limit=search_results_limit,
        )

    return _make


@pytest.fixture()
def echo_env(monkeypatch, tmp_path: Path) -> Path:
    """Point ``Settings.from_env`` at offline providers and a temporary database."""

    db_path = tmp_path / "cli.db"
    monkeypatch.setenv("VENTURE_FORGE_DB_PATH", str(db_path))
    monkeypatch.setenv("VENTURE_FORGE_TEXT_PROVIDER", "echo")
    monkeypatch.setenv("VENTURE_FORGE_SEARCH_PROVIDER", "echo")
    monkeypatch.setenv("VENTURE_FORGE_SEARCH_RESULTS_LIMIT", "2")
    monkeypatch.delenv("VENTURE_FORGE_SCORECARD_API_KEY", raising=False)
    monkeypatch.delenv("VENTURE_FORGE_USER_ID", raising=False)
    return db_path
