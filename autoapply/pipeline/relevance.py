"""RelevanceFilter: narrows a discovered batch before any item is opened.

Order:
  1. AlreadyAppliedFilter   — card shows "Applied", or in today's ledger
  2. IgnoreCompaniesFilter  — user's ignore list, substring match
  3. company-type gate      — one batched AI call, fails open
  4. match-score gate       — per item after selection, failures score NEUTRAL_SCORE
"""

import logging
from collections.abc import Callable

from pydantic import BaseModel

from autoapply.ai.client import AIClient, AIRequest, AIRequestKind
from autoapply.core.config import MatchingConfig
from autoapply.core.schemas import CandidateItem, JobDetail
from autoapply.core.store import PersistenceStore
from autoapply.profile.schema import ProfileData

logger = logging.getLogger(__name__)

NEUTRAL_SCORE = 3

# A filter is a callable that takes items and returns a subset.
Filter = Callable[[list[CandidateItem]], list[CandidateItem]]


class AlreadyAppliedFilter:
    """Remove items the site marks as applied or that are in today's ledger."""

    def __init__(self, store: PersistenceStore) -> None:
        self._store = store

    def __call__(self, items: list[CandidateItem]) -> list[CandidateItem]:
        result = [i for i in items if not self._applied(i)]
        removed = len(items) - len(result)
        if removed:
            logger.debug("AlreadyAppliedFilter: removed %d items", removed)
        return result

    def _applied(self, item: CandidateItem) -> bool:
        if item.applied_status.strip().lower().startswith("applied"):
            return True
        return self._store.was_applied(item.title, item.company)


class IgnoreCompaniesFilter:
    """Remove items whose company contains any ignored name (case-insensitive)."""

    def __init__(self, ignore_companies: list[str]) -> None:
        self._names = [n.lower().strip() for n in ignore_companies if n.strip()]

    def __call__(self, items: list[CandidateItem]) -> list[CandidateItem]:
        if not self._names:
            return items
        result = [i for i in items if not any(n in i.company.lower() for n in self._names)]
        removed = len(items) - len(result)
        if removed:
            logger.debug("IgnoreCompaniesFilter: removed %d items", removed)
        return result


def run_filter_chain(items: list[CandidateItem], filters: list[Filter]) -> list[CandidateItem]:
    """Apply filters in order, short-circuiting on an empty batch."""
    for f in filters:
        if not items:
            break
        items = f(items)
    return items


class MatchVerdict(BaseModel):
    score: int
    company_type: str = ""
    admitted: bool
    degraded: bool = False


class RelevanceFilter:
    """Static filters plus the two AI-backed gates."""

    def __init__(
        self,
        ai: AIClient,
        config: MatchingConfig,
        store: PersistenceStore,
        profile: ProfileData,
    ) -> None:
        self._ai = ai
        self._config = config
        self._profile = profile
        self._filters: list[Filter] = [
            AlreadyAppliedFilter(store),
            IgnoreCompaniesFilter(config.ignore_companies),
        ]

    async def narrow(self, items: list[CandidateItem]) -> list[CandidateItem]:
        """Run the static filters and the company-type gate over a batch."""
        result = run_filter_chain(items, self._filters)
        result = await self._company_type_gate(result)
        logger.info("Relevance: %d of %d items kept", len(result), len(items))
        return result

    async def admit(self, item: CandidateItem, detail: JobDetail) -> MatchVerdict:
        """Score one selected item against the profile and apply the minimum."""
        verdict = await self.score(item, detail)
        admitted = verdict.score >= self._config.min_score
        if not admitted:
            logger.info(
                "Skipping '%s' @ %s: score %d < %d",
                item.title, item.company, verdict.score, self._config.min_score,
            )
        return verdict.model_copy(update={"admitted": admitted})

    async def score(self, item: CandidateItem, detail: JobDetail) -> MatchVerdict:
        response = await self._ai.request(
            AIRequest(
                kind=AIRequestKind.SCORE_JOB_MATCH,
                payload={
                    "job": {
                        "title": detail.title or item.title,
                        "company": detail.company or item.company,
                        "location": detail.location or item.location,
                        "description": detail.description,
                    },
                    "resume": self._profile.resume_text,
                },
            ),
        )
        if not response.success or not isinstance(response.data, dict):
            logger.warning(
                "Scoring unavailable for '%s' (%s), using neutral score %d",
                item.title, response.error or "malformed reply", NEUTRAL_SCORE,
            )
            return MatchVerdict(score=NEUTRAL_SCORE, admitted=False, degraded=True)
        try:
            score = int(response.data.get("match_score"))
        except (TypeError, ValueError):
            logger.warning("Unreadable match_score for '%s', using neutral score", item.title)
            return MatchVerdict(score=NEUTRAL_SCORE, admitted=False, degraded=True)
        return MatchVerdict(
            score=min(max(score, 1), 5),
            company_type=str(response.data.get("company_type") or "").lower(),
            admitted=False,
        )

    async def classify_companies(self, companies: list[str]) -> dict[str, str] | None:
        """Map lowercased company name → "product" or "service". None on failure."""
        response = await self._ai.request(
            AIRequest(kind=AIRequestKind.CLASSIFY_COMPANIES, payload={"companies": companies}),
        )
        if not response.success or not isinstance(response.data, dict):
            return None
        kinds: dict[str, str] = {}
        for name in response.data.get("product_companies") or []:
            kinds[str(name).strip().lower()] = "product"
        for name in response.data.get("service_companies") or []:
            kinds.setdefault(str(name).strip().lower(), "service")
        return kinds

    async def _company_type_gate(self, items: list[CandidateItem]) -> list[CandidateItem]:
        want_product = self._config.apply_to_product_companies
        want_service = self._config.apply_to_service_companies
        if (want_product and want_service) or not items:
            return items

        companies = sorted({i.company for i in items})
        kinds = await self.classify_companies(companies)
        if kinds is None:
            logger.warning("Company classification failed, keeping all %d items", len(items))
            return items

        allowed = {k for k, on in (("product", want_product), ("service", want_service)) if on}
        result = [i for i in items if kinds.get(i.company.strip().lower()) in allowed]
        logger.debug("Company-type gate: removed %d items", len(items) - len(result))
        return result
