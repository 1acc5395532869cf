"""Groq provider (OpenAI-compatible API)."""

from __future__ import annotations

from .openai import OpenAIProvider


class GroqProvider(OpenAIProvider):
    name = "groq"
    label = "Groq"
    default_model = "llama-3.1-8b-instant"
    default_base_url = "https://api.groq.com/openai/v1"
