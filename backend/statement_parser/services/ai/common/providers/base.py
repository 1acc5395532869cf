"""Abstract base for all AI providers."""

from __future__ import annotations

import abc
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from statement_parser.core.exceptions import BackendError, BackendErrorKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProviderResult:
    """Immutable result returned by every provider."""

    raw_text: str
    model: str
    provider: str
    prompt_tokens: int = 0
    completion_tokens: int = 0
    latency_ms: float = 0.0


class BaseProvider(abc.ABC):
    """Contract that every AI provider must implement.

    Providers talk to their backend over ``httpx.AsyncClient``; *transport*
    is passed through to the client so tests can plug in ``httpx.MockTransport``.
    """

    name: str = "base"
    label: str = "AI"
    default_model: str = ""
    default_base_url: str = ""

    def __init__(
        self,
        api_key: str = "",
        *,
        base_url: str = "",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._transport = transport

    @abc.abstractmethod
    async def generate(
        self,
        prompt: str,
        *,
        model: str = "",
        temperature: float = 0.0,
        max_tokens: int = 512,
        timeout_seconds: float = 60.0,
    ) -> ProviderResult:
        """Send *prompt* and return a ``ProviderResult``."""

    def _client(self, timeout_seconds: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout_seconds, transport=self._transport)

    async def _post_json(
        self,
        url: str,
        payload: dict[str, Any],
        *,
        headers: dict[str, str],
        timeout_seconds: float,
    ) -> Any:
        """POST *payload* and return the decoded JSON body.

        Transport failures and non-2xx statuses are raised as ``BackendError``.
        """
        try:
            async with self._client(timeout_seconds) as client:
                resp = await client.post(url, headers=headers, json=payload)
        except httpx.HTTPError as exc:
            logger.warning("%s request failed: %s", self.name, exc)
            raise BackendError(
                BackendErrorKind.TRANSPORT,
                f"Could not reach the {self.label} API: {exc.__class__.__name__}",
            ) from exc

        if resp.is_error:
            message = _error_message(resp) or f"{self.label} API error: {resp.status_code}"
            logger.warning("%s returned HTTP %s: %s", self.name, resp.status_code, message)
            raise BackendError(
                BackendErrorKind.HTTP_STATUS,
                message,
                status_code=resp.status_code,
            )

        try:
            return resp.json()
        except ValueError as exc:
            raise self._unexpected_response() from exc

    def _unexpected_response(self) -> BackendError:
        return BackendError(
            BackendErrorKind.HTTP_STATUS,
            f"{self.label} API returned an unexpected response",
        )


def _error_message(resp: httpx.Response) -> str:
    """Pull the backend's own error text out of an error body, if any."""
    try:
        body = resp.json()
    except ValueError:
        return ""
    if not isinstance(body, dict):
        return ""
    error = body.get("error")
    if isinstance(error, dict):
        return str(error.get("message") or "")
    if isinstance(error, str):
        return error
    return ""
