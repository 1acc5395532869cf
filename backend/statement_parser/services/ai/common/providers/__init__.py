"""Provider factory: returns the configured provider instance.

Unlike a best-effort fallback, a provider that is not allowed, unknown or
missing its API key is a configuration error and raises ``BackendError``.
"""

from __future__ import annotations

import logging

from statement_parser.core.config import PROVIDER_KEY_ENV, get_settings
from statement_parser.core.exceptions import BackendError, BackendErrorKind

from .base import BaseProvider, ProviderResult
from .mock import MockProvider

logger = logging.getLogger(__name__)

__all__ = ["get_provider", "BaseProvider", "ProviderResult", "MockProvider"]


def get_provider(provider_name: str) -> BaseProvider:
    """Return a provider instance for *provider_name*."""
    settings = get_settings()
    name = provider_name.lower().strip()

    if name not in settings.ai_allowed_providers:
        logger.warning("Provider %r not in allowlist", name)
        raise BackendError(
            BackendErrorKind.UNCONFIGURED,
            f"AI provider {name!r} is not enabled. Check AI_ALLOWED_PROVIDERS.",
        )

    if name == "mock":
        return MockProvider()

    if name in PROVIDER_KEY_ENV and not settings.api_key_for(name):
        env_name = PROVIDER_KEY_ENV[name]
        logger.warning("%s not set, cannot call %s", env_name, name)
        raise BackendError(
            BackendErrorKind.UNCONFIGURED,
            f"{name} API key is not configured. Set {env_name} in the environment.",
        )

    if name == "openai":
        from .openai import OpenAIProvider

        return OpenAIProvider(api_key=settings.openai_api_key, base_url=settings.openai_api_base)

    if name == "groq":
        from .groq import GroqProvider

        return GroqProvider(api_key=settings.groq_api_key, base_url=settings.groq_api_base)

    if name == "huggingface":
        from .huggingface import HuggingFaceProvider

        return HuggingFaceProvider(
            api_key=settings.huggingface_api_key,
            base_url=settings.huggingface_api_base,
        )

    logger.warning("Unknown provider %r", name)
    raise BackendError(BackendErrorKind.UNCONFIGURED, f"Unknown AI provider {name!r}.")
