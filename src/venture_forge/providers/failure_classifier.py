"""Deterministic provider failure classification for key rotation policy."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from venture_forge.errors import ProviderRequestError

PROVIDER_FAILURE_CLASSIFIER_VERSION = 1

_RATE_LIMIT_STATUS_CODES: frozenset[int] = frozenset({429})

_RATE_LIMIT_PATTERNS: tuple[str, ...] = (
    "rate limit",
    "rate_limit",
    "ratelimit",
    "too many requests",
    "resource_exhausted",
    "resource exhausted",
    "quota",
)
_ACCESS_OR_AUTH_PATTERNS: tuple[str, ...] = (
    "unauthorized",
    "forbidden",
    "permission denied",
    "invalid api key",
    "api key not valid",
    "authentication",
)
_TRANSIENT_PATTERNS: tuple[str, ...] = (
    "temporarily unavailable",
    "service unavailable",
    "connection reset",
    "timed out",
    "timeout",
)


class ProviderFailureClass(str, Enum):
    """Normalized failure classes used by the rotation policy."""

    RATE_LIMITED = "rate_limited"
    ACCESS_OR_AUTH = "access_or_auth"
    TRANSIENT = "transient"
    NON_RETRYABLE = "non_retryable"


@dataclass(slots=True)
class ProviderFailureClassification:
    """Normalized failure classification result."""

    failure_class: ProviderFailureClass
    matched_rule: str
    matched_pattern: str | None

    @property
    def rotates_key(self) -> bool:
        return self.failure_class is ProviderFailureClass.RATE_LIMITED

    def to_log_details(self) -> dict[str, object]:
        return {
            "classifier_version": PROVIDER_FAILURE_CLASSIFIER_VERSION,
            "failure_class": self.failure_class.value,
            "matched_rule": self.matched_rule,
            "matched_pattern": self.matched_pattern,
        }


def classify_provider_failure(error: BaseException) -> ProviderFailureClassification:
    """Classify one provider failure; only rate limits rotate the key."""

    status_code = error.status_code if isinstance(error, ProviderRequestError) else 0
    if status_code in _RATE_LIMIT_STATUS_CODES:
        return ProviderFailureClassification(
            failure_class=ProviderFailureClass.RATE_LIMITED,
            matched_rule="rate_limit_status",
            matched_pattern=str(status_code),
        )

    haystack = str(error).lower()
    pattern = _first_match(haystack, _RATE_LIMIT_PATTERNS)
    if pattern is not None:
        return ProviderFailureClassification(
            failure_class=ProviderFailureClass.RATE_LIMITED,
            matched_rule="rate_limit_message",
            matched_pattern=pattern,
        )

    pattern = _first_match(haystack, _ACCESS_OR_AUTH_PATTERNS)
    if pattern is not None or status_code in {401, 403}:
        return ProviderFailureClassification(
            failure_class=ProviderFailureClass.ACCESS_OR_AUTH,
            matched_rule="access_or_auth",
            matched_pattern=pattern,
        )

    pattern = _first_match(haystack, _TRANSIENT_PATTERNS)
    if pattern is not None or status_code >= 500:  # noqa: PLR2004
        return ProviderFailureClassification(
            failure_class=ProviderFailureClass.TRANSIENT,
            matched_rule="transient_status" if pattern is None else "transient_message",
            matched_pattern=pattern,
        )

    return ProviderFailureClassification(
        failure_class=ProviderFailureClass.NON_RETRYABLE,
        matched_rule="fallback_non_retryable",
        matched_pattern=None,
    )


def _first_match(haystack: str, patterns: tuple[str, ...]) -> str | None:
    for pattern in patterns:
        if pattern in haystack:
            return pattern
    return None
