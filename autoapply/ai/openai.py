"""OpenAI LLM provider, also the transport for OpenAI-compatible servers."""

from typing import Any

from autoapply.ai.base import LLMProvider


class OpenAIProvider(LLMProvider):
    """LLM provider using the OpenAI chat completions API."""

    @property
    def provider_id(self) -> str:
        return "openai"

    @property
    def default_model(self) -> str:
        return "gpt-4o-mini"

    @property
    def env_var(self) -> str | None:
        return "OPENAI_API_KEY"

    def _client_options(self, api_key: str | None) -> dict[str, Any]:
        return {"api_key": api_key}

    def _send(self, prompt: str, model: str, system: str, api_key: str | None) -> str:
        openai = self._require_sdk("openai", "openai", "openai")
        client = openai.OpenAI(**self._client_options(api_key))
        response = client.chat.completions.create(
            model=model,
            max_tokens=self.max_output_tokens,
            messages=[
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
        )
        return response.choices[0].message.content or ""
