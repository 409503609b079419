"""Shared async HTTP plumbing for provider adapters."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from venture_forge import __version__
from venture_forge.errors import ProviderRequestError

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = f"venture-forge/{__version__}"
_ERROR_PREVIEW_CHARS = 500


class ProviderHttpClient:
    """``httpx.AsyncClient`` wrapper that maps failures to ``ProviderRequestError``."""

    def __init__(
        self,
        *,
        service: str,
        base_url: str,
        timeout_seconds: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.service = service
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/",
            timeout=httpx.Timeout(timeout_seconds, connect=10.0),
            headers={"User-Agent": DEFAULT_USER_AGENT},
            transport=transport,
            follow_redirects=True,
        )

    async def post_json(
        self,
        path: str,
        *,
        payload: dict[str, Any],
        headers: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """POST JSON and return the decoded object body."""

        try:
            response = await self._client.post(path.lstrip("/"), json=payload, headers=headers)
        except httpx.TimeoutException as error:
            logger.warning("Timeout calling %s %s", self.service, path)
            raise ProviderRequestError(self.service, "request timed out") from error
        except httpx.HTTPError as error:
            logger.warning("HTTP error calling %s %s: %s", self.service, path, error)
            raise ProviderRequestError(self.service, str(error) or type(error).__name__) from error

        if not response.is_success:
            raise ProviderRequestError(
                self.service,
                _error_message(response),
                status_code=response.status_code,
            )
        try:
            body = response.json()
        except ValueError as error:
            raise ProviderRequestError(
                self.service,
                "response body is not valid JSON",
                status_code=response.status_code,
            ) from error
        if not isinstance(body, dict):
            raise ProviderRequestError(
                self.service,
                "response body is not a JSON object",
                status_code=response.status_code,
            )
        return body

    async def aclose(self) -> None:
        await self._client.aclose()


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:_ERROR_PREVIEW_CHARS] or response.reason_phrase
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict):
            parts = [str(error.get(key)) for key in ("status", "type", "message") if error.get(key)]
            if parts:
                return ": ".join(parts)[:_ERROR_PREVIEW_CHARS]
        if isinstance(error, str) and error:
            return error[:_ERROR_PREVIEW_CHARS]
    return response.text[:_ERROR_PREVIEW_CHARS] or response.reason_phrase
