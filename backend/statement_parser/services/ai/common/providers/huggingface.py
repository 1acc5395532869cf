"""Hugging Face provider (instruction text-generation inference)."""

from __future__ import annotations

import logging
import time
from urllib.parse import quote

from .base import BaseProvider, ProviderResult

logger = logging.getLogger(__name__)


def wrap_instruction(prompt: str) -> str:
    """Wrap *prompt* in the ``[INST]`` markers instruction-tuned models expect."""
    return f"[INST] {prompt}\n[/INST]"


class HuggingFaceProvider(BaseProvider):
    name = "huggingface"
    label = "Hugging Face"
    default_model = "google/flan-t5-large"
    default_base_url = "https://router.huggingface.co/hf-inference/models"

    async def generate(
        self,
        prompt: str,
        *,
        model: str = "",
        temperature: float = 0.2,
        max_tokens: int = 512,
        timeout_seconds: float = 60.0,
    ) -> ProviderResult:
        model = model or self.default_model
        t0 = time.monotonic()

        data = await self._post_json(
            f"{self._base_url or self.default_base_url}/{quote(model, safe='/')}",
            {
                "inputs": wrap_instruction(prompt),
                "parameters": {
                    "max_new_tokens": max_tokens,
                    "temperature": temperature,
                    "return_full_text": False,
                },
            },
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
            timeout_seconds=timeout_seconds,
        )

        elapsed = (time.monotonic() - t0) * 1000

        # The endpoint answers with either an object or a one-element list.
        if isinstance(data, list):
            data = data[0] if data else {}
        if not isinstance(data, dict):
            raise self._unexpected_response()
        text = data.get("generated_text") or ""
        if not text:
            logger.warning("%s returned no generated_text for model %s", self.name, model)

        return ProviderResult(
            raw_text=text,
            model=model,
            provider=self.name,
            prompt_tokens=len(prompt.split()),
            completion_tokens=len(text.split()),
            latency_ms=round(elapsed, 2),
        )
