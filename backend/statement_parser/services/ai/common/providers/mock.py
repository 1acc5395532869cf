"""Mock provider: deterministic responses for tests and offline runs."""

from __future__ import annotations

import json
import time

from .base import BaseProvider, ProviderResult

MOCK_RESPONSE = json.dumps(
    {
        "issuer": "Not Found",
        "cardLast4": "Not Found",
        "statementPeriod": "Not Found",
        "dueDate": "Not Found",
        "totalBalance": "Not Found",
        "minimumPayment": "Not Found",
    }
)


class MockProvider(BaseProvider):
    name = "mock"
    label = "Mock"
    default_model = "mock-v1"

    async def generate(
        self,
        prompt: str,
        *,
        model: str = "",
        temperature: float = 0.0,
        max_tokens: int = 512,
        timeout_seconds: float = 60.0,
    ) -> ProviderResult:
        t0 = time.monotonic()
        text = MOCK_RESPONSE
        elapsed = (time.monotonic() - t0) * 1000
        return ProviderResult(
            raw_text=text,
            model=model or self.default_model,
            provider=self.name,
            prompt_tokens=len(prompt.split()),
            completion_tokens=len(text.split()),
            latency_ms=round(elapsed, 2),
        )
