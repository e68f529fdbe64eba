"""Google Gemini LLM provider (google-genai SDK)."""

from autoapply.ai.base import LLMProvider


class GeminiProvider(LLMProvider):
    """LLM provider using the Google Gemini API (google-genai SDK)."""

    @property
    def provider_id(self) -> str:
        return "gemini"

    @property
    def default_model(self) -> str:
        return "gemini-2.5-flash"

    @property
    def env_var(self) -> str:
        return "GOOGLE_API_KEY"

    def _send(self, prompt: str, model: str, system: str, api_key: str | None) -> str:
        genai = self._require_sdk("google.genai", "google-genai", "gemini")
        response = genai.Client(api_key=api_key).models.generate_content(
            model=model,
            contents=prompt,
            config=genai.types.GenerateContentConfig(
                system_instruction=system,
                max_output_tokens=self.max_output_tokens,
            ),
        )
        return response.text or ""
