"""Tests for LLM provider adapter pattern and registry."""

from unittest.mock import MagicMock, patch

import pytest

from autoapply.ai import available_providers, get_provider, parse_json_response
from autoapply.ai.base import DEFAULT_SYSTEM_PROMPT, LLMProvider


# ---------------------------------------------------------------------------
# Registry tests
# ---------------------------------------------------------------------------
class TestProviderRegistry:
    @pytest.mark.parametrize("name", ["anthropic", "openai", "gemini", "ollama"])
    def test_get_provider(self, name: str) -> None:
        provider = get_provider(name)
        assert isinstance(provider, LLMProvider)
        assert provider.provider_id == name

    def test_unknown_provider_raises(self) -> None:
        with pytest.raises(ValueError, match="Unknown LLM provider 'nope'"):
            get_provider("nope")

    def test_available_providers_sorted(self) -> None:
        assert available_providers() == ["anthropic", "gemini", "ollama", "openai"]


# ---------------------------------------------------------------------------
# Provider metadata and missing prerequisites
# ---------------------------------------------------------------------------
class TestProviderDefaults:
    @pytest.mark.parametrize(
        ("name", "model", "env_var"),
        [
            ("anthropic", "claude-sonnet-4-20250514", "ANTHROPIC_API_KEY"),
            ("openai", "gpt-4o-mini", "OPENAI_API_KEY"),
            ("gemini", "gemini-2.5-flash", "GOOGLE_API_KEY"),
            ("ollama", "llama3", None),
        ],
    )
    def test_defaults(self, name: str, model: str, env_var: str | None) -> None:
        provider = get_provider(name)
        assert provider.default_model == model
        assert provider.env_var == env_var

    @pytest.mark.parametrize("name", ["anthropic", "openai", "gemini"])
    def test_missing_api_key(self, name: str) -> None:
        provider = get_provider(name)
        with (
            patch.dict("os.environ", {}, clear=True),
            pytest.raises(ValueError, match=f"{provider.env_var} environment variable is required"),
        ):
            provider.complete("prompt")

    def test_anthropic_missing_sdk(self) -> None:
        provider = get_provider("anthropic")
        with (
            patch.dict("os.environ", {"ANTHROPIC_API_KEY": "test-key"}),
            patch.dict("sys.modules", {"anthropic": None}),
            pytest.raises(ImportError, match="anthropic is required"),
        ):
            provider.complete("prompt")

    def test_openai_missing_sdk(self) -> None:
        provider = get_provider("openai")
        with (
            patch.dict("os.environ", {"OPENAI_API_KEY": "test-key"}),
            patch.dict("sys.modules", {"openai": None}),
            pytest.raises(ImportError, match="openai is required"),
        ):
            provider.complete("prompt")

    def test_gemini_missing_sdk(self) -> None:
        provider = get_provider("gemini")
        with (
            patch.dict("os.environ", {"GOOGLE_API_KEY": "test-key"}),
            patch.dict("sys.modules", {"google": None, "google.genai": None}),
            pytest.raises(ImportError, match="google-genai is required"),
        ):
            provider.complete("prompt")

    def test_ollama_missing_sdk(self) -> None:
        provider = get_provider("ollama")
        with (
            patch.dict("sys.modules", {"openai": None}),
            pytest.raises(ImportError, match="openai is required"),
        ):
            provider.complete("prompt")


# ---------------------------------------------------------------------------
# system kwarg tests
# ---------------------------------------------------------------------------
class TestCompleteSystemKwarg:
    """Each provider sends the request's system prompt, else the default one."""

    def _anthropic_module(self) -> tuple[MagicMock, MagicMock]:
        mock_client = MagicMock()
        mock_client.messages.create.return_value.content = [MagicMock(text="ok")]
        mock_anthropic = MagicMock()
        mock_anthropic.Anthropic.return_value = mock_client
        return mock_anthropic, mock_client

    def test_anthropic_uses_custom_system(self) -> None:
        mock_anthropic, mock_client = self._anthropic_module()
        with (
            patch.dict("os.environ", {"ANTHROPIC_API_KEY": "key"}),
            patch.dict("sys.modules", {"anthropic": mock_anthropic}),
        ):
            assert get_provider("anthropic").complete("text", system="custom system prompt") == "ok"

        call_kwargs = mock_client.messages.create.call_args.kwargs
        assert call_kwargs["system"] == "custom system prompt"
        assert call_kwargs["model"] == "claude-sonnet-4-20250514"

    def test_anthropic_falls_back_to_default_system(self) -> None:
        mock_anthropic, mock_client = self._anthropic_module()
        with (
            patch.dict("os.environ", {"ANTHROPIC_API_KEY": "key"}),
            patch.dict("sys.modules", {"anthropic": mock_anthropic}),
        ):
            get_provider("anthropic").complete("text", "claude-other")

        call_kwargs = mock_client.messages.create.call_args.kwargs
        assert call_kwargs["system"] == DEFAULT_SYSTEM_PROMPT
        assert call_kwargs["model"] == "claude-other"

    def test_gemini_uses_custom_system(self) -> None:
        mock_types = MagicMock()
        mock_genai = MagicMock()
        mock_genai.types = mock_types
        mock_genai.Client.return_value.models.generate_content.return_value.text = "ok"
        mock_google = MagicMock()
        mock_google.genai = mock_genai

        with (
            patch.dict("os.environ", {"GOOGLE_API_KEY": "key"}),
            patch.dict(
                "sys.modules",
                {"google": mock_google, "google.genai": mock_genai, "google.genai.types": mock_types},
            ),
        ):
            assert get_provider("gemini").complete("text", system="custom system prompt") == "ok"

        call_kwargs = mock_types.GenerateContentConfig.call_args.kwargs
        assert call_kwargs["system_instruction"] == "custom system prompt"

    @pytest.mark.parametrize("name", ["openai", "ollama"])
    def test_openai_compatible_use_custom_system(self, name: str) -> None:
        mock_openai = MagicMock()
        mock_resp = MagicMock()
        mock_resp.choices[0].message.content = "ok"
        mock_openai.OpenAI.return_value.chat.completions.create.return_value = mock_resp

        with (
            patch.dict("os.environ", {"OPENAI_API_KEY": "key"}),
            patch.dict("sys.modules", {"openai": mock_openai}),
        ):
            get_provider(name).complete("text", system="custom system prompt")

        messages = mock_openai.OpenAI.return_value.chat.completions.create.call_args.kwargs[
            "messages"
        ]
        system_msg = next(m for m in messages if m["role"] == "system")
        assert system_msg["content"] == "custom system prompt"


# ---------------------------------------------------------------------------
# Shared request path
# ---------------------------------------------------------------------------
class _EchoProvider(LLMProvider):
    provider_id = "echo"  # type: ignore[assignment]
    default_model = "echo-1"  # type: ignore[assignment]
    env_var = "ECHO_API_KEY"  # type: ignore[assignment]

    def __init__(self) -> None:
        self.sent: list[tuple[str, str, str, str | None]] = []

    def _send(self, prompt: str, model: str, system: str, api_key: str | None) -> str:
        self.sent.append((prompt, model, system, api_key))
        return "reply"


class TestSharedComplete:
    def test_defaults_filled_before_send(self) -> None:
        provider = _EchoProvider()
        with patch.dict("os.environ", {"ECHO_API_KEY": "k"}):
            assert provider.complete("hi") == "reply"
        assert provider.sent == [("hi", "echo-1", DEFAULT_SYSTEM_PROMPT, "k")]

    def test_missing_key_never_reaches_send(self) -> None:
        provider = _EchoProvider()
        with patch.dict("os.environ", {}, clear=True), pytest.raises(ValueError):
            provider.complete("hi")
        assert provider.sent == []

    def test_anthropic_joins_text_blocks(self) -> None:
        mock_anthropic = MagicMock()
        tool_block = MagicMock(spec=[])
        mock_anthropic.Anthropic.return_value.messages.create.return_value.content = [
            MagicMock(text="[1, "),
            tool_block,
            MagicMock(text="2]"),
        ]
        with (
            patch.dict("os.environ", {"ANTHROPIC_API_KEY": "key"}),
            patch.dict("sys.modules", {"anthropic": mock_anthropic}),
        ):
            assert get_provider("anthropic").complete("text") == "[1, 2]"

        call_kwargs = mock_anthropic.Anthropic.return_value.messages.create.call_args.kwargs
        assert call_kwargs["max_tokens"] == LLMProvider.max_output_tokens

    def test_ollama_targets_local_server_without_key(self) -> None:
        mock_openai = MagicMock()
        mock_openai.OpenAI.return_value.chat.completions.create.return_value.choices[
            0
        ].message.content = None
        with (
            patch.dict("os.environ", {"OLLAMA_BASE_URL": "http://gpu-box:11434/v1"}, clear=True),
            patch.dict("sys.modules", {"openai": mock_openai}),
        ):
            assert get_provider("ollama").complete("text") == ""

        mock_openai.OpenAI.assert_called_once_with(
            base_url="http://gpu-box:11434/v1", api_key="ollama"
        )
        call_kwargs = mock_openai.OpenAI.return_value.chat.completions.create.call_args.kwargs
        assert call_kwargs["model"] == "llama3"


# ---------------------------------------------------------------------------
# Shared response parsing
# ---------------------------------------------------------------------------
class TestParseJsonResponse:
    def test_plain_json(self) -> None:
        assert parse_json_response('{"match_score": 4}') == {"match_score": 4}

    def test_markdown_wrapped_json(self) -> None:
        assert parse_json_response('```json\n{"match_score": 4}\n```') == {"match_score": 4}

    def test_markdown_no_language_hint(self) -> None:
        assert parse_json_response("```\n[1, 2]\n```") == [1, 2]

    def test_malformed_json_raises(self) -> None:
        with pytest.raises(ValueError, match="Failed to parse LLM response"):
            parse_json_response("this is not json {{{")
