"""Abstract base class for LLM providers and shared response parsing."""

import importlib
import json
import logging
import os
import re
from abc import ABC, abstractmethod
from types import ModuleType
from typing import Any

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are an assistant embedded in a job application tool. "
    "Answer with ONLY a JSON value (no markdown, no explanation)."
)


def parse_json_response(raw_text: str) -> Any:
    """Parse an LLM response as JSON.

    Handles markdown-wrapped JSON (```json ... ```) and plain JSON.

    Raises:
        ValueError: If the text is not valid JSON after unwrapping.
    """
    cleaned = re.sub(r"^```(?:json)?\s*\n?", "", raw_text.strip())
    cleaned = re.sub(r"\n?```\s*$", "", cleaned)

    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        msg = f"Failed to parse LLM response as JSON: {e}"
        raise ValueError(msg) from e


class LLMProvider(ABC):
    """Base class that every LLM provider must implement.

    ``complete`` owns the steps every provider shares: API key lookup,
    model and system prompt defaults. Subclasses only talk to their SDK
    in ``_send``.
    """

    max_output_tokens = 2048

    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Unique identifier for this provider (e.g. 'anthropic')."""

    @property
    @abstractmethod
    def default_model(self) -> str:
        """The default model ID used when no override is specified."""

    @property
    @abstractmethod
    def env_var(self) -> str | None:
        """Environment variable name for the API key, or None if not needed."""

    def complete(
        self,
        prompt: str,
        model: str | None = None,
        *,
        system: str | None = None,
    ) -> str:
        """Send a prompt to the LLM and return the raw response text.

        Blocking; callers on the event loop run it in a worker thread.

        Args:
            prompt: User message.
            model: Override the provider's default model. None uses default.
            system: Override the system prompt. None falls back to DEFAULT_SYSTEM_PROMPT.

        Raises:
            ValueError: If the provider needs an API key and none is set.
            ImportError: If the provider's SDK is not installed.
        """
        api_key = self._api_key()
        use_model = model or self.default_model
        logger.debug("%s request (%s, %d chars)", self.provider_id, use_model, len(prompt))
        return self._send(
            prompt,
            use_model,
            system if system is not None else DEFAULT_SYSTEM_PROMPT,
            api_key,
        )

    @abstractmethod
    def _send(self, prompt: str, model: str, system: str, api_key: str | None) -> str:
        """Perform the SDK call and return the reply text."""

    def _api_key(self) -> str | None:
        if self.env_var is None:
            return None
        api_key = os.environ.get(self.env_var)
        if not api_key:
            msg = f"{self.env_var} environment variable is required"
            raise ValueError(msg)
        return api_key

    def _require_sdk(self, module: str, package: str, extra: str) -> ModuleType:
        """Import an optional SDK or explain which extra installs it."""
        try:
            return importlib.import_module(module)
        except ImportError:
            msg = (
                f"{package} is required for the {self.provider_id} provider. "
                f"Install with: pip install 'autoapply[{extra}]'"
            )
            raise ImportError(msg) from None
