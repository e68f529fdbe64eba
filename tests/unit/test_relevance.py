"""Tests for RelevanceFilter: static filters, company-type gate, match-score gate."""

from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from autoapply.ai.client import AIClient, AIRequest, AIRequestKind, AIResponse
from autoapply.core.config import MatchingConfig
from autoapply.core.db import init_db
from autoapply.core.schemas import AppliedRecord, CandidateItem, JobDetail
from autoapply.core.store import PersistenceStore
from autoapply.pipeline.relevance import (
    NEUTRAL_SCORE,
    AlreadyAppliedFilter,
    IgnoreCompaniesFilter,
    RelevanceFilter,
    run_filter_chain,
)
from autoapply.profile.schema import ProfileData


@pytest.fixture
def store(tmp_path: Path) -> PersistenceStore:
    return PersistenceStore(init_db(tmp_path / "test.db"))


def _item(title: str = "Python Developer", company: str = "Acme", **kw: Any) -> CandidateItem:
    return CandidateItem(title=title, company=company, **kw)


def _ai(*responses: AIResponse) -> MagicMock:
    ai = MagicMock(spec=AIClient)
    ai.request = AsyncMock(side_effect=list(responses))
    return ai


def _filter(
    store: PersistenceStore,
    ai: MagicMock,
    **matching: Any,
) -> RelevanceFilter:
    return RelevanceFilter(
        ai, MatchingConfig(**matching), store, ProfileData(name="Jane Smith", resume_text="Python, 6 years"),
    )


# ---------------------------------------------------------------------------
# Static filters
# ---------------------------------------------------------------------------


class TestAlreadyAppliedFilter:
    def test_applied_badge_removed(self, store: PersistenceStore) -> None:
        items = [_item(applied_status="Applied 2 days ago"), _item("Backend Engineer")]
        result = AlreadyAppliedFilter(store)(items)
        assert [i.title for i in result] == ["Backend Engineer"]

    def test_ledger_entry_removed(self, store: PersistenceStore) -> None:
        store.record_applied(AppliedRecord(title="Python Developer", company="Acme"))
        result = AlreadyAppliedFilter(store)([_item(), _item(company="Globex")])
        assert [i.company for i in result] == ["Globex"]

    def test_ledger_match_ignores_case_and_spacing(self, store: PersistenceStore) -> None:
        store.record_applied(AppliedRecord(title="Python  Developer", company="ACME"))
        assert AlreadyAppliedFilter(store)([_item()]) == []


class TestIgnoreCompaniesFilter:
    def test_substring_case_insensitive(self) -> None:
        items = [_item(company="Acme Staffing Ltd"), _item(company="Globex")]
        result = IgnoreCompaniesFilter(["acme staffing"])(items)
        assert [i.company for i in result] == ["Globex"]

    def test_empty_list_keeps_all(self) -> None:
        items = [_item(), _item(company="Globex")]
        assert IgnoreCompaniesFilter(["", " "])(items) == items


class TestFilterChain:
    def test_short_circuits_on_empty(self) -> None:
        second = MagicMock(return_value=[])
        assert run_filter_chain([_item()], [lambda items: [], second]) == []
        second.assert_not_called()


# ---------------------------------------------------------------------------
# Company-type gate
# ---------------------------------------------------------------------------


class TestCompanyTypeGate:
    async def test_skipped_when_both_enabled(self, store: PersistenceStore) -> None:
        ai = _ai()
        items = [_item(), _item(company="Globex")]
        assert await _filter(store, ai).narrow(items) == items
        ai.request.assert_not_called()

    async def test_keeps_only_enabled_category(self, store: PersistenceStore) -> None:
        ai = _ai(AIResponse(success=True, data={
            "product_companies": ["Acme"],
            "service_companies": ["Globex"],
        }))
        items = [_item(), _item(company="Globex"), _item(company="Unknown Co")]
        result = await _filter(store, ai, apply_to_service_companies=False).narrow(items)
        assert [i.company for i in result] == ["Acme"]

        request: AIRequest = ai.request.call_args[0][0]
        assert request.kind is AIRequestKind.CLASSIFY_COMPANIES
        assert request.payload["companies"] == ["Acme", "Globex", "Unknown Co"]

    async def test_case_insensitive_company_names(self, store: PersistenceStore) -> None:
        ai = _ai(AIResponse(success=True, data={"service_companies": ["globex "]}))
        items = [_item(company="Globex")]
        result = await _filter(store, ai, apply_to_product_companies=False).narrow(items)
        assert len(result) == 1

    async def test_failure_fails_open(self, store: PersistenceStore) -> None:
        ai = _ai(AIResponse(success=False, error="timeout"))
        items = [_item(), _item(company="Globex")]
        result = await _filter(store, ai, apply_to_service_companies=False).narrow(items)
        assert result == items

    async def test_static_filters_run_first(self, store: PersistenceStore) -> None:
        ai = _ai()
        items = [_item(applied_status="Applied")]
        result = await _filter(store, ai, apply_to_service_companies=False).narrow(items)
        assert result == []
        ai.request.assert_not_called()


# ---------------------------------------------------------------------------
# Match-score gate
# ---------------------------------------------------------------------------


class TestMatchScoreGate:
    async def test_score_above_minimum_admitted(self, store: PersistenceStore) -> None:
        ai = _ai(AIResponse(success=True, data={"match_score": 4, "company_type": "Product"}))
        verdict = await _filter(store, ai).admit(_item(), JobDetail(description="Build APIs"))
        assert verdict.score == 4
        assert verdict.company_type == "product"
        assert verdict.admitted is True
        assert verdict.degraded is False

        request: AIRequest = ai.request.call_args[0][0]
        assert request.kind is AIRequestKind.SCORE_JOB_MATCH
        assert request.payload["job"]["title"] == "Python Developer"
        assert request.payload["job"]["description"] == "Build APIs"
        assert request.payload["resume"] == "Python, 6 years"

    async def test_score_below_minimum_rejected(self, store: PersistenceStore) -> None:
        ai = _ai(AIResponse(success=True, data={"match_score": 2}))
        verdict = await _filter(store, ai).admit(_item(), JobDetail())
        assert verdict.admitted is False

    async def test_transport_failure_neutral_passes_minimum_three(self, store: PersistenceStore) -> None:
        ai = _ai(AIResponse(success=False, error="connection refused"))
        verdict = await _filter(store, ai, min_score=3).admit(_item(), JobDetail())
        assert verdict.score == NEUTRAL_SCORE == 3
        assert verdict.degraded is True
        assert verdict.admitted is True

    async def test_transport_failure_neutral_fails_minimum_four(self, store: PersistenceStore) -> None:
        ai = _ai(AIResponse(success=False, error="connection refused"))
        verdict = await _filter(store, ai, min_score=4).admit(_item(), JobDetail())
        assert verdict.score == 3
        assert verdict.admitted is False

    async def test_unreadable_score_is_neutral(self, store: PersistenceStore) -> None:
        ai = _ai(AIResponse(success=True, data={"match_score": "great"}))
        verdict = await _filter(store, ai).admit(_item(), JobDetail())
        assert verdict.score == NEUTRAL_SCORE
        assert verdict.degraded is True

    async def test_non_object_reply_is_neutral(self, store: PersistenceStore) -> None:
        ai = _ai(AIResponse(success=True, data=[1, 2]))
        verdict = await _filter(store, ai).admit(_item(), JobDetail())
        assert verdict.score == NEUTRAL_SCORE

    async def test_score_clamped(self, store: PersistenceStore) -> None:
        ai = _ai(AIResponse(success=True, data={"match_score": 9}))
        verdict = await _filter(store, ai).admit(_item(), JobDetail())
        assert verdict.score == 5
