from functools import lru_cache
import json
from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ALLOWED_MODELS: dict[str, list[str]] = {
    "openai": ["gpt-4o-mini", "gpt-4o"],
    "groq": ["llama-3.1-8b-instant", "llama-3.3-70b-versatile"],
    "huggingface": ["google/flan-t5-large", "mistralai/Mistral-7B-Instruct-v0.3"],
    "mock": [],
}

PROVIDER_KEY_ENV = {
    "openai": "OPENAI_API_KEY",
    "groq": "GROQ_API_KEY",
    "huggingface": "HUGGINGFACE_API_KEY",
}


def _parse_list_value(value: str) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        raw = value.strip()
        if raw == "":
            return []
        try:
            parsed = json.loads(raw)
            if isinstance(parsed, list):
                return [str(item).strip() for item in parsed if str(item).strip()]
        except ValueError:
            pass
        return [item.strip() for item in raw.split(",") if item.strip()]
    if isinstance(value, list):
        return [str(item).strip() for item in value if str(item).strip()]
    return []


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        extra="forbid",
        validate_by_name=True,
        populate_by_name=True,
    )

    docs_enabled: bool = Field(default=True)
    openapi_enabled: bool = Field(default=True)
    expose_error_details: bool = False
    log_level: str = "INFO"

    # --- AI backend ---
    ai_provider: str = Field(
        default="openai",
        validation_alias=AliasChoices("AI_PROVIDER", "ai_provider"),
    )
    ai_model: str = Field(
        default="",
        validation_alias=AliasChoices("AI_MODEL", "ai_model"),
    )
    ai_allowed_providers_raw: str = Field(
        default="openai,groq,huggingface,mock",
        validation_alias=AliasChoices("AI_ALLOWED_PROVIDERS", "ai_allowed_providers_raw"),
    )
    ai_allowed_models_raw: str = Field(
        default="",
        validation_alias=AliasChoices("AI_ALLOWED_MODELS", "ai_allowed_models_raw"),
    )
    enable_ai_overrides: bool = False
    ai_temperature: float = 0.0
    huggingface_temperature: float = 0.2
    ai_max_tokens: int = 512
    ai_timeout_seconds: float = 60.0

    openai_api_key: str = ""
    groq_api_key: str = ""
    huggingface_api_key: str = Field(
        default="",
        validation_alias=AliasChoices("HUGGINGFACE_API_KEY", "HF_TOKEN", "huggingface_api_key"),
    )
    openai_api_base: str = "https://api.openai.com/v1"
    groq_api_base: str = "https://api.groq.com/openai/v1"
    huggingface_api_base: str = "https://router.huggingface.co/hf-inference/models"

    # --- Documents ---
    pdf_max_pages: int = 3
    pdf_max_size_mb: int = 25
    statement_sessions_max: int = 100

    cors_allow_origins: list[str] = Field(default_factory=list)
    cors_allow_methods: list[str] = Field(default_factory=lambda: ["GET", "POST", "OPTIONS"])
    cors_allow_headers: list[str] = Field(default_factory=lambda: ["Content-Type", "Accept"])

    @field_validator(
        "cors_allow_origins",
        "cors_allow_methods",
        "cors_allow_headers",
        mode="before",
    )
    @classmethod
    def _split_csv(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            if value.strip() == "":
                return []
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @property
    def ai_allowed_providers(self) -> list[str]:
        return [item.lower() for item in _parse_list_value(self.ai_allowed_providers_raw)]

    @property
    def ai_allowed_models(self) -> dict[str, list[str]]:
        """Per-provider model allowlist; ``AI_ALLOWED_MODELS`` is a JSON object."""
        raw = self.ai_allowed_models_raw.strip()
        if not raw:
            return dict(DEFAULT_ALLOWED_MODELS)
        try:
            parsed = json.loads(raw)
        except ValueError:
            return dict(DEFAULT_ALLOWED_MODELS)
        if not isinstance(parsed, dict):
            return dict(DEFAULT_ALLOWED_MODELS)
        return {str(k).lower(): _parse_list_value(v) for k, v in parsed.items()}

    @property
    def pdf_max_bytes(self) -> int:
        return self.pdf_max_size_mb * 1024 * 1024

    def api_key_for(self, provider_name: str) -> str:
        return {
            "openai": self.openai_api_key,
            "groq": self.groq_api_key,
            "huggingface": self.huggingface_api_key,
        }.get(provider_name, "")

    def validate_required_config(self) -> list[str]:
        errors: list[str] = []
        provider = self.ai_provider.lower().strip()
        if provider not in self.ai_allowed_providers:
            errors.append(f"AI_PROVIDER {provider!r} is not in AI_ALLOWED_PROVIDERS")
        env_name = PROVIDER_KEY_ENV.get(provider)
        if env_name and not self.api_key_for(provider):
            errors.append(f"{env_name} is not set")
        if self.pdf_max_pages < 1:
            errors.append("PDF_MAX_PAGES must be at least 1")
        return errors


@lru_cache

def get_settings() -> Settings:
    return Settings()
