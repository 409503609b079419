"""OpenAI-compatible chat completions (any base URL speaking the same API)."""

from __future__ import annotations

import httpx

from venture_forge.errors import ProviderRequestError
from venture_forge.providers.http import ProviderHttpClient


class OpenAiChatGenerator:
    service = "openai"

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
        body = await self._http.post_json(
            "chat/completions",
            payload={
                "model": self.model,
                "messages": [{"role": "user", "content": prompt}],
                "response_format": {"type": "json_object" if json_mode else "text"},
            },
            headers={"Authorization": f"Bearer {api_key}"},
        )
        choices = body.get("choices")
        message = choices[0].get("message") if isinstance(choices, list) and choices else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str) or not content.strip():
            raise ProviderRequestError(self.service, "no content received from OpenAI API")
        return content.strip()

    async def aclose(self) -> None:
        await self._http.aclose()
