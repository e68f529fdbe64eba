"""LinkedIn search URL vocabulary.

Pure functions, no browser dependency.
"""

import logging
from urllib.parse import parse_qs, quote_plus, urlencode, urlparse

from autoapply.core.schemas import TargetQuery
from autoapply.platforms.base import SearchVocabulary

logger = logging.getLogger(__name__)

LINKEDIN_BASE = "https://www.linkedin.com"
SEARCH_PATH = "/jobs/search/"

KEYWORD_PARAM = "keywords"
LOCATION_PARAM = "location"
QUICK_APPLY_PARAM = "f_AL"
JOB_TYPE_PARAM = "f_JT"
WORKPLACE_PARAM = "f_WT"

# --- Mapping tables: substring of the free-text name → site code ---

JOB_TYPE_MAP: dict[str, str] = {
    "full": "F",
    "part": "P",
    "contract": "C",
    "temporary": "T",
    "intern": "I",
    "volunteer": "V",
    "other": "O",
}

WORKPLACE_TYPE_MAP: dict[str, str] = {
    "on-site": "1",
    "onsite": "1",
    "remote": "2",
    "hybrid": "3",
}


def _map_value(name: str, mapping: dict[str, str], label: str) -> str:
    """Return the code of the first mapping key found in name (case-insensitive)."""
    text = name.strip().lower()
    if not text:
        return ""
    for key, code in mapping.items():
        if key in text:
            return code
    logger.warning("Unknown %s '%s', searching without that filter", label, name)
    return ""


class LinkedInSearchVocabulary(SearchVocabulary):
    """Search URLs for linkedin.com/jobs/search."""

    def job_type_code(self, name: str) -> str:
        return _map_value(name, JOB_TYPE_MAP, "job type")

    def workplace_code(self, name: str) -> str:
        return _map_value(name, WORKPLACE_TYPE_MAP, "workplace type")

    def build_url(self, query: TargetQuery) -> str:
        """Build the search URL. Empty facets are left out of the query string."""
        params: dict[str, str] = {KEYWORD_PARAM: query.keyword}
        if query.location:
            params[LOCATION_PARAM] = query.location
        if query.job_type_code:
            params[JOB_TYPE_PARAM] = query.job_type_code
        if query.workplace_code:
            params[WORKPLACE_PARAM] = query.workplace_code
        if query.quick_apply:
            params[QUICK_APPLY_PARAM] = "true"
        return f"{LINKEDIN_BASE}{SEARCH_PATH}?{urlencode(params, quote_via=quote_plus)}"

    def parse_url(self, url: str) -> TargetQuery | None:
        parsed = urlparse(url)
        if parsed.path.rstrip("/").lower() != SEARCH_PATH.rstrip("/"):
            return None
        params = parse_qs(parsed.query)

        def first(name: str) -> str:
            values = params.get(name)
            return values[0].strip() if values else ""

        return TargetQuery(
            keyword=first(KEYWORD_PARAM),
            location=first(LOCATION_PARAM),
            job_type_code=first(JOB_TYPE_PARAM),
            workplace_code=first(WORKPLACE_PARAM),
            quick_apply=first(QUICK_APPLY_PARAM).lower() == "true",
        )
