"""Request/response client in front of the LLM providers.

Every call is a remote procedure with bounded latency: the blocking provider
SDK runs in a worker thread under a timeout. ``request`` never raises for
transport or parsing problems; it reports them in the response instead.
"""

import asyncio
import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

from autoapply.ai.base import LLMProvider, parse_json_response
from autoapply.ai.prompts import (
    answer_questions_prompt,
    classify_companies_prompt,
    free_form_prompt,
    score_job_match_prompt,
)

logger = logging.getLogger(__name__)


class AIRequestKind(str, Enum):
    CLASSIFY_COMPANIES = "classify-companies"
    SCORE_JOB_MATCH = "score-job-match"
    ANSWER_QUESTIONS = "answer-questions"
    FREE_FORM_PROMPT = "free-form-prompt"


class AIRequest(BaseModel):
    kind: AIRequestKind
    payload: dict[str, Any] = Field(default_factory=dict)


class AIResponse(BaseModel):
    success: bool
    data: Any = None
    error: str = ""


_PROMPT_BUILDERS: dict[AIRequestKind, Callable[[dict[str, Any]], tuple[str | None, str]]] = {
    AIRequestKind.CLASSIFY_COMPANIES: classify_companies_prompt,
    AIRequestKind.SCORE_JOB_MATCH: score_job_match_prompt,
    AIRequestKind.ANSWER_QUESTIONS: answer_questions_prompt,
    AIRequestKind.FREE_FORM_PROMPT: free_form_prompt,
}


class AIClient:
    """Routes typed requests to a single LLM provider."""

    def __init__(
        self,
        provider: LLMProvider,
        *,
        model: str | None = None,
        timeout_s: float = 60.0,
    ) -> None:
        self._provider = provider
        self._model = model
        self._timeout_s = timeout_s

    @property
    def provider_id(self) -> str:
        return self._provider.provider_id

    async def request(self, request: AIRequest) -> AIResponse:
        system, prompt = _PROMPT_BUILDERS[request.kind](request.payload)
        try:
            raw = await asyncio.wait_for(
                asyncio.to_thread(self._provider.complete, prompt, self._model, system=system),
                timeout=self._timeout_s,
            )
        except asyncio.TimeoutError:
            msg = f"{request.kind.value} timed out after {self._timeout_s:.0f}s"
            logger.warning(msg)
            return AIResponse(success=False, error=msg)
        except Exception as e:
            logger.warning("%s failed via %s: %s", request.kind.value, self.provider_id, e)
            return AIResponse(success=False, error=str(e))

        if not raw:
            return AIResponse(success=False, error="empty response")

        if request.kind is AIRequestKind.FREE_FORM_PROMPT and not request.payload.get("json"):
            return AIResponse(success=True, data=raw)

        try:
            data = parse_json_response(raw)
        except ValueError as e:
            logger.warning("%s returned unparseable reply: %s", request.kind.value, e)
            return AIResponse(success=False, error=str(e))
        return AIResponse(success=True, data=data)
