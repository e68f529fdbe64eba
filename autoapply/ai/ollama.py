"""Ollama local LLM provider (OpenAI-compatible API)."""

import os
from typing import Any

from autoapply.ai.openai import OpenAIProvider

_OLLAMA_BASE_URL = "http://localhost:11434/v1"


class OllamaProvider(OpenAIProvider):
    """Local Ollama instance reached through the OpenAI SDK. No API key needed."""

    @property
    def provider_id(self) -> str:
        return "ollama"

    @property
    def default_model(self) -> str:
        return "llama3"

    @property
    def env_var(self) -> None:
        return None

    def _client_options(self, api_key: str | None) -> dict[str, Any]:
        # The SDK insists on a key; Ollama ignores it.
        return {
            "base_url": os.environ.get("OLLAMA_BASE_URL", _OLLAMA_BASE_URL),
            "api_key": "ollama",
        }
