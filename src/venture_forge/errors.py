"""Error taxonomy shared by the orchestrator and provider layers.

Caller/state errors (``RecordNotFound``, ``UnknownTask``,
``PrerequisitesNotMet``) are never retried. Provider errors are either
rotated through (rate limits) or propagated. ``GenerationFailed`` is what the
orchestrator surfaces for anything that went wrong inside a generation
routine, with the underlying error chained as ``__cause__``.
"""

from __future__ import annotations

from collections.abc import Sequence


class VentureForgeError(Exception):
    """Base class for all domain errors."""


class OrchestratorError(VentureForgeError):
    """Caller or record-state error; retrying without changes will not help."""


class RecordNotFound(OrchestratorError):
    def __init__(self, startup_id: str) -> None:
        self.startup_id = startup_id
        super().__init__(f"Startup record not found: {startup_id}")


class UnknownTask(OrchestratorError):
    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"Unknown task id: {task_id!r}")


class PrerequisitesNotMet(OrchestratorError):
    def __init__(self, task_id: str, missing: Sequence[str]) -> None:
        self.task_id = task_id
        self.missing = tuple(missing)
        super().__init__(
            f"Task {task_id} cannot run yet; missing prerequisites: {', '.join(self.missing)}",
        )


class GenerationFailed(VentureForgeError):
    """A generation routine raised; the output field was not written."""

    def __init__(self, task_id: str, reason: str) -> None:
        self.task_id = task_id
        self.reason = reason
        super().__init__(f"Task {task_id} failed: {reason}")


class GenerationTimedOut(GenerationFailed):
    def __init__(self, task_id: str, timeout_seconds: float) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(task_id, f"generation timed out after {timeout_seconds:g}s")


class ArtifactContractError(VentureForgeError, ValueError):
    """Generated or stored artifact does not match its declared shape."""


class ProviderError(VentureForgeError):
    """Base class for outbound provider failures."""


class ProviderRequestError(ProviderError):
    """One provider call failed; ``status_code`` is 0 for transport errors."""

    def __init__(self, service: str, message: str, *, status_code: int = 0) -> None:
        self.service = service
        self.status_code = status_code
        self.message = message
        prefix = f"HTTP {status_code} " if status_code else ""
        super().__init__(f"{service}: {prefix}{message}".strip())


class NoKeysConfigured(ProviderError):
    def __init__(self, service: str) -> None:
        self.service = service
        super().__init__(f"No API keys configured for provider service {service!r}")


class AllKeysExhausted(ProviderError):
    def __init__(self, service: str, attempts: int) -> None:
        self.service = service
        self.attempts = attempts
        super().__init__(
            f"All {attempts} API key(s) for {service!r} are rate-limited; retry later",
        )
