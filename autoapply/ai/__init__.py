"""LLM provider registry with lazy loading.

Usage:
    from autoapply.ai import get_provider
    from autoapply.ai.client import AIClient

    client = AIClient(get_provider("gemini"), timeout_s=60)
    response = await client.request(AIRequest(kind=..., payload=...))
"""

import importlib

from autoapply.ai.base import LLMProvider, parse_json_response

__all__ = ["LLMProvider", "available_providers", "get_provider", "parse_json_response"]

# Lazy registry: maps provider name → (module_path, class_name)
_REGISTRY: dict[str, tuple[str, str]] = {
    "anthropic": ("autoapply.ai.anthropic", "AnthropicProvider"),
    "openai": ("autoapply.ai.openai", "OpenAIProvider"),
    "gemini": ("autoapply.ai.gemini", "GeminiProvider"),
    "ollama": ("autoapply.ai.ollama", "OllamaProvider"),
}


def get_provider(name: str) -> LLMProvider:
    """Instantiate and return an LLM provider by name.

    Raises:
        ValueError: If the provider name is unknown.
    """
    if name not in _REGISTRY:
        valid = ", ".join(sorted(_REGISTRY))
        msg = f"Unknown LLM provider '{name}'. Available: {valid}"
        raise ValueError(msg)

    module_path, class_name = _REGISTRY[name]
    module = importlib.import_module(module_path)
    cls = getattr(module, class_name)
    return cls()  # type: ignore[no-any-return]


def available_providers() -> list[str]:
    """Return sorted list of registered provider names."""
    return sorted(_REGISTRY)
