"""Resume analysis: turns resume text into ProfileData via the AI client."""

import logging

from pydantic import ValidationError

from autoapply.ai.client import AIClient, AIRequest, AIRequestKind
from autoapply.core.errors import AIUnavailableError
from autoapply.profile.schema import ProfileData

logger = logging.getLogger(__name__)

PROFILE_SYSTEM_PROMPT = (
    "You are a resume analyzer. Extract the candidate's personal details "
    "from the resume text provided.\n\n"
    "Return ONLY a JSON object (no markdown, no explanation) with these fields:\n"
    "- name (string): the candidate's full name\n"
    "- first_name (string)\n"
    "- last_name (string)\n"
    "- email (string): empty string if absent\n"
    "- phone (string): digits only, empty string if absent\n"
    "- city (string): current city as 'City, Region, Country' if known\n"
    "- headline (string): one-line professional summary\n"
    "- years_of_experience (int or null): total years of professional experience"
)


async def analyze_resume(resume_text: str, client: AIClient) -> ProfileData:
    """Extract ProfileData from resume text. The resume itself is kept on the profile.

    Raises:
        AIUnavailableError: If the AI reply is missing or does not fit ProfileData.
    """
    logger.info("Analyzing resume with %s (%d chars)", client.provider_id, len(resume_text))
    response = await client.request(
        AIRequest(
            kind=AIRequestKind.FREE_FORM_PROMPT,
            payload={"system": PROFILE_SYSTEM_PROMPT, "prompt": resume_text, "json": True},
        ),
    )
    if not response.success:
        msg = f"Resume analysis failed: {response.error}"
        raise AIUnavailableError(msg)
    if not isinstance(response.data, dict):
        msg = "Resume analysis returned a non-object reply"
        raise AIUnavailableError(msg)

    fields = {k: v for k, v in response.data.items() if v is not None}
    try:
        return ProfileData.model_validate({**fields, "resume_text": resume_text})
    except ValidationError as e:
        msg = f"Resume analysis returned invalid fields: {e}"
        raise AIUnavailableError(msg) from e
