"""Anthropic Claude LLM provider."""

from autoapply.ai.base import LLMProvider


class AnthropicProvider(LLMProvider):
    """LLM provider using the Anthropic Claude API."""

    @property
    def provider_id(self) -> str:
        return "anthropic"

    @property
    def default_model(self) -> str:
        return "claude-sonnet-4-20250514"

    @property
    def env_var(self) -> str:
        return "ANTHROPIC_API_KEY"

    def _send(self, prompt: str, model: str, system: str, api_key: str | None) -> str:
        anthropic = self._require_sdk("anthropic", "anthropic", "anthropic")
        message = anthropic.Anthropic(api_key=api_key).messages.create(
            model=model,
            max_tokens=self.max_output_tokens,
            system=system,
            messages=[{"role": "user", "content": prompt}],
        )
        # Replies are a list of content blocks; only text blocks carry answers.
        return "".join(block.text for block in message.content if hasattr(block, "text"))
