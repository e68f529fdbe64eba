"""Prompt builders for each AI request kind."""

import json
from typing import Any

CLASSIFY_COMPANIES_SYSTEM = (
    "You classify employers. For every company name given, decide whether it is a "
    "product company (builds and sells its own products) or a service company "
    "(consulting, outsourcing, staffing, IT services). Leave out companies you do "
    "not recognise.\n\n"
    "Return ONLY a JSON object (no markdown, no explanation):\n"
    '{"product_companies": [string], "service_companies": [string]}\n'
    "Use the company names exactly as given."
)

SCORE_JOB_MATCH_SYSTEM = (
    "You compare a job posting against a candidate resume.\n\n"
    "Return ONLY a JSON object (no markdown, no explanation):\n"
    '{"company_name": string, "company_type": "product" or "service", '
    '"industry": string, "match_score": integer 1-5}\n'
    "5 means the candidate fits the role very well, 1 means not at all."
)

ANSWER_QUESTIONS_SYSTEM = (
    "You fill in job application forms on behalf of the candidate described by the "
    "profile and resume. Answer every question truthfully from the profile; when the "
    "profile is silent, give the most reasonable answer that keeps the candidate "
    "eligible. Numeric questions (years of experience, notice period, salary) must be "
    "answered with digits only. For questions listing options, answer with one of the "
    "options exactly as written. Checkbox answers are \"Yes\" or \"No\".\n\n"
    "Return ONLY a JSON object (no markdown, no explanation) with the same sections "
    "and the questions as keys:\n"
    '{"inputs": {question: answer}, "radios": {question: answer}, '
    '"dropdowns": {question: answer}, "checkboxes": {question: answer}}'
)


def classify_companies_prompt(payload: dict[str, Any]) -> tuple[str, str]:
    companies = payload.get("companies", [])
    prompt = "Companies:\n" + "\n".join(f"- {name}" for name in companies)
    return CLASSIFY_COMPANIES_SYSTEM, prompt


def score_job_match_prompt(payload: dict[str, Any]) -> tuple[str, str]:
    job = payload.get("job", {})
    prompt = (
        f"Job title: {job.get('title', '')}\n"
        f"Company: {job.get('company', '')}\n"
        f"Location: {job.get('location', '')}\n"
        f"Description:\n{job.get('description', '')}\n\n"
        f"Resume:\n{payload.get('resume', '')}"
    )
    return SCORE_JOB_MATCH_SYSTEM, prompt


def answer_questions_prompt(payload: dict[str, Any]) -> tuple[str, str]:
    prompt = (
        f"Candidate profile:\n{json.dumps(payload.get('profile', {}), indent=2)}\n\n"
        f"Job: {json.dumps(payload.get('job', {}))}\n\n"
        f"Questions:\n{json.dumps(payload.get('questions', {}), indent=2)}"
    )
    return ANSWER_QUESTIONS_SYSTEM, prompt


def free_form_prompt(payload: dict[str, Any]) -> tuple[str | None, str]:
    return payload.get("system"), str(payload.get("prompt", ""))
