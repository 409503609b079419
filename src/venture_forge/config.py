"""Runtime configuration for the generation pipeline and its providers."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import urlparse

SUPPORTED_TEXT_PROVIDERS = ("gemini", "openai", "echo")
SUPPORTED_SEARCH_PROVIDERS = ("firecrawl", "echo")


@dataclass(slots=True)
class ProviderSettings:
    """Outbound AI/search provider settings and key pools."""

    text_provider: str = "gemini"
    search_provider: str = "firecrawl"
    gemini_api_keys: tuple[str, ...] = ()
    gemini_model: str = "gemini-2.5-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    openai_api_keys: tuple[str, ...] = ()
    openai_model: str = "gpt-5-nano"
    openai_base_url: str = "https://api.openai.com/v1"
    firecrawl_api_keys: tuple[str, ...] = ()
    firecrawl_base_url: str = "https://api.firecrawl.dev/v1"
    search_results_limit: int = 5
    request_timeout_seconds: float = 120.0
    max_concurrency: int = 4


@dataclass(slots=True)
class EvaluationSettings:
    """Best-effort scorecard evaluation settings."""

    api_key: str | None = None
    base_url: str = "https://api.scorecard.io/api/v2"
    config_path: Path | None = None
    request_timeout_seconds: float = 30.0


@dataclass(slots=True)
class PipelineSettings:
    """Task orchestration settings."""

    task_timeout_seconds: float = 600.0


@dataclass(slots=True)
class UserContextSettings:
    """Verified caller identity the record store is scoped to."""

    user_id: str = "default_user"
    user_name: str = "Default User"


@dataclass(slots=True)
class Settings:
    """Application settings grouped by domain concerns."""

    db_path: Path = Path(".venture_forge.db")
    sqlite_busy_timeout_ms: int = 5_000
    providers: ProviderSettings = field(default_factory=ProviderSettings)
    evaluation: EvaluationSettings = field(default_factory=EvaluationSettings)
    pipeline: PipelineSettings = field(default_factory=PipelineSettings)
    user_context: UserContextSettings = field(default_factory=UserContextSettings)

    @classmethod
    def from_env(cls, db_path: Path | None = None) -> Settings:
        """Load settings from environment with sane defaults for local development."""

        evaluation_config = os.getenv("VENTURE_FORGE_SCORECARD_CONFIG_PATH", "").strip()
        return cls(
            db_path=db_path or Path(os.getenv("VENTURE_FORGE_DB_PATH", ".venture_forge.db")),
            sqlite_busy_timeout_ms=int(os.getenv("VENTURE_FORGE_SQLITE_BUSY_TIMEOUT_MS", "5000")),
            providers=ProviderSettings(
                text_provider=os.getenv("VENTURE_FORGE_TEXT_PROVIDER", "gemini").strip().lower(),
                search_provider=(
                    os.getenv("VENTURE_FORGE_SEARCH_PROVIDER", "firecrawl").strip().lower()
                ),
                gemini_api_keys=_collect_keys("VENTURE_FORGE_GEMINI_API_KEYS"),
                gemini_model=os.getenv("VENTURE_FORGE_GEMINI_MODEL", "gemini-2.5-flash"),
                gemini_base_url=os.getenv(
                    "VENTURE_FORGE_GEMINI_BASE_URL",
                    "https://generativelanguage.googleapis.com/v1beta",
                ),
                openai_api_keys=_collect_keys("VENTURE_FORGE_OPENAI_API_KEYS"),
                openai_model=os.getenv("VENTURE_FORGE_OPENAI_MODEL", "gpt-5-nano"),
                openai_base_url=os.getenv(
                    "VENTURE_FORGE_OPENAI_BASE_URL",
                    "https://api.openai.com/v1",
                ),
                firecrawl_api_keys=_collect_keys("VENTURE_FORGE_FIRECRAWL_API_KEYS"),
                firecrawl_base_url=os.getenv(
                    "VENTURE_FORGE_FIRECRAWL_BASE_URL",
                    "https://api.firecrawl.dev/v1",
                ),
                search_results_limit=int(os.getenv("VENTURE_FORGE_SEARCH_RESULTS_LIMIT", "5")),
                request_timeout_seconds=float(
                    os.getenv("VENTURE_FORGE_PROVIDER_TIMEOUT_SECONDS", "120"),
                ),
                max_concurrency=int(os.getenv("VENTURE_FORGE_PROVIDER_MAX_CONCURRENCY", "4")),
            ),
            evaluation=EvaluationSettings(
                api_key=os.getenv("VENTURE_FORGE_SCORECARD_API_KEY") or None,
                base_url=os.getenv(
                    "VENTURE_FORGE_SCORECARD_BASE_URL",
                    "https://api.scorecard.io/api/v2",
                ),
                config_path=Path(evaluation_config) if evaluation_config else None,
                request_timeout_seconds=float(
                    os.getenv("VENTURE_FORGE_SCORECARD_TIMEOUT_SECONDS", "30"),
                ),
            ),
            pipeline=PipelineSettings(
                task_timeout_seconds=float(
                    os.getenv("VENTURE_FORGE_TASK_TIMEOUT_SECONDS", "600"),
                ),
            ),
            user_context=UserContextSettings(
                user_id=os.getenv("VENTURE_FORGE_USER_ID", "default_user"),
                user_name=os.getenv("VENTURE_FORGE_USER_NAME", "Default User"),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error for unsupported providers or invalid limits."""

        providers = self.providers
        if providers.text_provider not in SUPPORTED_TEXT_PROVIDERS:
            raise ValueError(
                f"Unsupported VENTURE_FORGE_TEXT_PROVIDER: {providers.text_provider!r}. "
                f"Use one of {SUPPORTED_TEXT_PROVIDERS}.",
            )
        if providers.search_provider not in SUPPORTED_SEARCH_PROVIDERS:
            raise ValueError(
                f"Unsupported VENTURE_FORGE_SEARCH_PROVIDER: {providers.search_provider!r}. "
                f"Use one of {SUPPORTED_SEARCH_PROVIDERS}.",
            )
        if providers.max_concurrency <= 0:
            raise ValueError("VENTURE_FORGE_PROVIDER_MAX_CONCURRENCY must be > 0.")
        if providers.search_results_limit <= 0:
            raise ValueError("VENTURE_FORGE_SEARCH_RESULTS_LIMIT must be > 0.")
        if providers.request_timeout_seconds <= 0:
            raise ValueError("VENTURE_FORGE_PROVIDER_TIMEOUT_SECONDS must be > 0.")
        if self.pipeline.task_timeout_seconds <= 0:
            raise ValueError("VENTURE_FORGE_TASK_TIMEOUT_SECONDS must be > 0.")
        for name, url in (
            ("VENTURE_FORGE_GEMINI_BASE_URL", providers.gemini_base_url),
            ("VENTURE_FORGE_OPENAI_BASE_URL", providers.openai_base_url),
            ("VENTURE_FORGE_FIRECRAWL_BASE_URL", providers.firecrawl_base_url),
            ("VENTURE_FORGE_SCORECARD_BASE_URL", self.evaluation.base_url),
        ):
            _validate_base_url(name, url)

    def key_pool(self, service: str) -> tuple[str, ...]:
        """Return the configured API key pool for a provider service."""

        pools = {
            "gemini": self.providers.gemini_api_keys,
            "openai": self.providers.openai_api_keys,
            "firecrawl": self.providers.firecrawl_api_keys,
        }
        if service == "echo":
            return ("echo-key",)
        if service not in pools:
            raise ValueError(f"Unknown provider service: {service!r}")
        return pools[service]


def _collect_keys(name: str) -> tuple[str, ...]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return ()
    return _normalize_keys(raw.split(","))


def _normalize_keys(values: list[str] | tuple[str, ...]) -> tuple[str, ...]:
    deduped: list[str] = []
    seen: set[str] = set()
    for value in values:
        normalized = value.strip()
        if not normalized or normalized in seen:
            continue
        seen.add(normalized)
        deduped.append(normalized)
    return tuple(deduped)


def _validate_base_url(name: str, value: str) -> None:
    parsed = urlparse(value)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(
            f"Invalid {name}: {value!r}. Expected an absolute URL with http:// or https:// scheme.",
        )
