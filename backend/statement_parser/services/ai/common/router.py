"""AI Router: resolves provider + model with override > ENV > provider-default chain."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from statement_parser.core.config import get_settings

from .providers import BaseProvider, ProviderResult, get_provider

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResolvedConfig:
    """Final resolved provider + model after the override chain."""

    provider: BaseProvider
    model: str
    temperature: float
    max_tokens: int
    timeout_seconds: float

    async def generate(self, prompt: str) -> ProviderResult:
        """Call the provider with the resolved parameters."""
        return await self.provider.generate(
            prompt,
            model=self.model,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            timeout_seconds=self.timeout_seconds,
        )


def resolve(
    scope: str,
    *,
    override_provider: str | None = None,
    override_model: str | None = None,
) -> ResolvedConfig:
    """Resolve provider + model for a given *scope*.

    Resolution chain (first non-empty wins):
      1. ``override_provider`` / ``override_model`` (runtime request param,
         only when ``enable_ai_overrides=True``).
      2. ENV: ``AI_PROVIDER`` / ``AI_MODEL``.
      3. The provider's own default model.

    Model validation: if the resolved model is not in the allowlist for
    that provider, we fall back to the first allowed model.

    Raises ``BackendError`` when the provider cannot be built.
    """
    settings = get_settings()

    # --- 1. Determine provider name ---
    provider_name = ""

    if settings.enable_ai_overrides and override_provider:
        provider_name = override_provider.lower().strip()

    if not provider_name:
        provider_name = settings.ai_provider.lower().strip()

    # --- 2. Determine model ---
    model = ""

    if settings.enable_ai_overrides and override_model:
        model = override_model.strip()

    if not model:
        model = settings.ai_model.strip()

    # --- 3. Validate model against allowlist ---
    allowed_models = settings.ai_allowed_models.get(provider_name, [])
    if allowed_models and model and model not in allowed_models:
        logger.warning(
            "Model %r not in allowlist for %r, using first allowed: %r",
            model,
            provider_name,
            allowed_models[0],
        )
        model = allowed_models[0]

    # --- 4. Build provider instance ---
    provider = get_provider(provider_name)
    model = model or provider.default_model

    temperature = settings.ai_temperature
    if provider_name == "huggingface":
        temperature = settings.huggingface_temperature

    logger.debug("Resolved scope=%s provider=%s model=%s", scope, provider.name, model)

    return ResolvedConfig(
        provider=provider,
        model=model,
        temperature=temperature,
        max_tokens=settings.ai_max_tokens,
        timeout_seconds=settings.ai_timeout_seconds,
    )
