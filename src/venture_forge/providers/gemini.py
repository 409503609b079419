"""Google Gemini content generation over the Generative Language REST API."""

from __future__ import annotations

from typing import Any

import httpx

from venture_forge.errors import ProviderRequestError
from venture_forge.providers.http import ProviderHttpClient


class GeminiTextGenerator:
    service = "gemini"

    def __init__(
        self,
        *,
        model: str,
        base_url: str,
        timeout_seconds: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.model = model
        self._http = ProviderHttpClient(
            service=self.service,
            base_url=base_url,
            timeout_seconds=timeout_seconds,
            transport=transport,
        )

    async def generate(self, *, api_key: str, prompt: str, json_mode: bool) -> str:
        payload: dict[str, Any] = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
        if json_mode:
            payload["generationConfig"] = {"responseMimeType": "application/json"}
        body = await self._http.post_json(
            f"models/{self.model}:generateContent",
            payload=payload,
            headers={"x-goog-api-key": api_key},
        )
        text = _first_candidate_text(body)
        if not text:
            raise ProviderRequestError(self.service, "no content received from Gemini API")
        return text

    async def aclose(self) -> None:
        await self._http.aclose()


def _first_candidate_text(body: dict[str, Any]) -> str:
    candidates = body.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return ""
    content = candidates[0].get("content") if isinstance(candidates[0], dict) else None
    parts = content.get("parts") if isinstance(content, dict) else None
    if not isinstance(parts, list):
        return ""
    texts = [part.get("text", "") for part in parts if isinstance(part, dict)]
    return "".join(text for text in texts if isinstance(text, str)).strip()
