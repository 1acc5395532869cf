"""OpenAI provider (chat completions)."""

from __future__ import annotations

import logging
import time

from .base import BaseProvider, ProviderResult

logger = logging.getLogger(__name__)


class OpenAIProvider(BaseProvider):
    name = "openai"
    label = "OpenAI"
    default_model = "gpt-4o-mini"
    default_base_url = "https://api.openai.com/v1"

    async def generate(
        self,
        prompt: str,
        *,
        model: str = "",
        temperature: float = 0.0,
        max_tokens: int = 512,
        timeout_seconds: float = 60.0,
    ) -> ProviderResult:
        model = model or self.default_model
        t0 = time.monotonic()

        data = await self._post_json(
            f"{self._base_url or self.default_base_url}/chat/completions",
            {
                "model": model,
                "messages": [{"role": "user", "content": prompt}],
                "max_tokens": max_tokens,
                "temperature": temperature,
            },
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
            timeout_seconds=timeout_seconds,
        )

        elapsed = (time.monotonic() - t0) * 1000
        if not isinstance(data, dict):
            raise self._unexpected_response()
        choices = data.get("choices") or [{}]
        if not isinstance(choices, list) or not isinstance(choices[0], dict):
            raise self._unexpected_response()
        message = choices[0].get("message") or {}
        if not isinstance(message, dict):
            raise self._unexpected_response()
        text = message.get("content") or ""
        if not isinstance(text, str):
            raise self._unexpected_response()
        if not text:
            logger.warning("%s returned an empty completion for model %s", self.name, model)
        usage = data.get("usage") or {}

        return ProviderResult(
            raw_text=text,
            model=model,
            provider=self.name,
            prompt_tokens=usage.get("prompt_tokens", 0),
            completion_tokens=usage.get("completion_tokens", 0),
            latency_ms=round(elapsed, 2),
        )
