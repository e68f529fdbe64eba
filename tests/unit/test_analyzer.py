"""Tests for AI-backed resume analysis."""

import json
from unittest.mock import AsyncMock, MagicMock

import pytest

from autoapply.ai.base import LLMProvider
from autoapply.ai.client import AIClient, AIRequest, AIRequestKind, AIResponse
from autoapply.core.errors import AIUnavailableError
from autoapply.profile.analyzer import PROFILE_SYSTEM_PROMPT, analyze_resume

SAMPLE_REPLY = {
    "name": "Jane Doe",
    "first_name": "Jane",
    "last_name": "Doe",
    "email": "jane.doe@example.com",
    "phone": "5551234567",
    "city": "Berlin, Berlin, Germany",
    "headline": "Senior Python Engineer",
    "years_of_experience": 8,
}


def _client(response: AIResponse) -> MagicMock:
    client = MagicMock(spec=AIClient)
    client.provider_id = "mock"
    client.request = AsyncMock(return_value=response)
    return client


class TestAnalyzeResume:
    async def test_successful_analysis(self) -> None:
        client = _client(AIResponse(success=True, data=SAMPLE_REPLY))
        profile = await analyze_resume("Jane Doe, Senior Python Engineer, 8 years...", client)

        assert profile.name == "Jane Doe"
        assert profile.years_of_experience == 8
        assert profile.resume_text == "Jane Doe, Senior Python Engineer, 8 years..."

        request: AIRequest = client.request.call_args[0][0]
        assert request.kind is AIRequestKind.FREE_FORM_PROMPT
        assert request.payload["system"] == PROFILE_SYSTEM_PROMPT
        assert request.payload["json"] is True

    async def test_null_fields_ignored(self) -> None:
        client = _client(AIResponse(success=True, data={"name": "Jane Doe", "email": None}))
        profile = await analyze_resume("resume", client)
        assert profile.email == ""

    async def test_failure_raises(self) -> None:
        client = _client(AIResponse(success=False, error="GOOGLE_API_KEY environment variable is required"))
        with pytest.raises(AIUnavailableError, match="GOOGLE_API_KEY"):
            await analyze_resume("resume", client)

    async def test_non_object_reply_raises(self) -> None:
        client = _client(AIResponse(success=True, data=["Jane Doe"]))
        with pytest.raises(AIUnavailableError, match="non-object"):
            await analyze_resume("resume", client)

    async def test_invalid_fields_raise(self) -> None:
        client = _client(AIResponse(success=True, data={"email": "not-an-email"}))
        with pytest.raises(AIUnavailableError, match="invalid fields"):
            await analyze_resume("resume", client)


class TestAnalyzeResumeWithProvider:
    async def test_markdown_wrapped_reply_through_client(self) -> None:
        """A provider returning fenced JSON still produces a profile."""
        provider = MagicMock(spec=LLMProvider)
        provider.provider_id = "mock"
        provider.complete.return_value = "```json\n" + json.dumps(SAMPLE_REPLY) + "\n```"

        profile = await analyze_resume("resume text", AIClient(provider))

        assert profile.name == "Jane Doe"
        assert provider.complete.call_args.kwargs["system"] == PROFILE_SYSTEM_PROMPT
