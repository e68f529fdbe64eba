"""Orchestrator: wires scheduler, discovery, relevance, submission and quota.

Data flow per segment:
  1. Quota gate (before any item is opened)
  2. Make sure the loaded page shows the segment's search
  3. Discovery batcher → candidate items
  4. Relevance filter → surviving items
  5. Per item: select, score, submit
  6. Next results page, or advance to the next segment
The deadline timer only flags expiry; it is acted on between items.
"""

import logging
from enum import Enum

from pydantic import BaseModel

from autoapply.ai.client import AIClient
from autoapply.core.config import Settings
from autoapply.core.errors import (
    AutoApplyError,
    ConfigurationError,
    NavigationMismatchError,
    QuotaExceededError,
    RunStoppedError,
    ValidationBlockedError,
)
from autoapply.core.schemas import CandidateItem
from autoapply.core.store import PersistenceStore
from autoapply.pipeline.context import DeadlineTimer, DelayKind, RunContext
from autoapply.pipeline.discovery import ItemDiscoveryBatcher
from autoapply.pipeline.quota_manager import QuotaManager
from autoapply.pipeline.relevance import RelevanceFilter
from autoapply.pipeline.scheduler import SegmentScheduler
from autoapply.pipeline.submission import SubmissionPhase, SubmissionProtocol
from autoapply.platforms.base import PageAdapter
from autoapply.profile.schema import ProfileData

logger = logging.getLogger(__name__)

SELECT_ATTEMPTS = 3


class BatchOutcome(str, Enum):
    EXHAUSTED = "exhausted"
    EXPIRED = "expired"
    RESTART = "restart"
    STOPPED = "stopped"


class RunSummary(BaseModel):
    """Counters for one orchestrator run."""

    segments: int = 0
    items_seen: int = 0
    submitted: int = 0
    duplicates: int = 0
    skipped: int = 0
    failed: int = 0
    stopped: bool = False
    completed: bool = False


class Orchestrator:
    """Top-level driver of one apply run."""

    def __init__(
        self,
        settings: Settings,
        store: PersistenceStore,
        adapter: PageAdapter,
        scheduler: SegmentScheduler,
        ai: AIClient,
        profile: ProfileData,
        *,
        ctx: RunContext | None = None,
        scan_interval_s: float = 0.3,
        sweep_interval_s: float = 2.0,
    ) -> None:
        self._settings = settings
        self._adapter = adapter
        self._scheduler = scheduler
        self._owns_ctx = ctx is None
        self._ctx = ctx or RunContext(store, settings.delays)
        self._timer = DeadlineTimer(self._ctx)
        self._quota = QuotaManager(store, settings.quota)
        self._batcher = ItemDiscoveryBatcher(adapter, self._ctx, scan_interval_s=scan_interval_s)
        self._relevance = RelevanceFilter(ai, settings.matching, store, profile)
        self._protocol = SubmissionProtocol(
            adapter, ai, store, profile, self._ctx, sweep_interval_s=sweep_interval_s,
        )
        self._redirects = 0
        self.summary = RunSummary()

    @property
    def context(self) -> RunContext:
        return self._ctx

    async def run(self, *, resume: bool = False) -> RunSummary:
        """Run segments until the cycle ends, a stop arrives, or the quota is hit.

        Raises QuotaExceededError and ConfigurationError; both end the run.
        """
        self.summary = RunSummary()
        self._ctx.reset_controls()
        self._quota.ensure_available()

        cursor = self._scheduler.resume() if resume else None
        if cursor is None:
            if resume:
                logger.info("No run to resume, starting from the first segment")
            self._scheduler.start_new(self._settings.campaigns)

        try:
            while True:
                self.summary.segments += 1
                outcome = await self._run_segment()
                if outcome is BatchOutcome.STOPPED:
                    logger.info("Run stopped by request")
                    self.summary.stopped = True
                    self._scheduler.stop()
                    break
                if self._scheduler.advance() is None:
                    self.summary.completed = True
                    break
        finally:
            self._timer.cancel()
            if self._owns_ctx:
                self._ctx.close()

        logger.info(
            "Run finished: %d segment(s), %d item(s) seen, %d submitted, %d skipped, %d failed",
            self.summary.segments, self.summary.items_seen, self.summary.submitted,
            self.summary.skipped, self.summary.failed,
        )
        return self.summary

    # --- segment loop ---

    async def _run_segment(self) -> BatchOutcome:
        self._redirects = 0
        self._timer.arm(self._scheduler.remaining_budget() / 1000)

        while True:
            if self._ctx.stopped:
                return BatchOutcome.STOPPED
            if self._ctx.segment_expired:
                return BatchOutcome.EXPIRED
            await self._pause_gate()
            if self._ctx.stopped:
                return BatchOutcome.STOPPED

            await self._ensure_segment_page()
            items = await self._batcher.collect()
            self.summary.items_seen += len(items)
            items = await self._relevance.narrow(items)

            outcome = await self._process_batch(items)
            if outcome is BatchOutcome.RESTART:
                continue
            if outcome is not BatchOutcome.EXHAUSTED:
                return outcome

            if not await self._ctx.delay(DelayKind.LONG):
                return BatchOutcome.STOPPED
            if self._ctx.segment_expired:
                return BatchOutcome.EXPIRED
            if not await self._adapter.go_to_next_results_page():
                logger.info("No more result pages for this segment")
                return BatchOutcome.EXHAUSTED
            await self._adapter.wait_for_dom_settled()

    async def _process_batch(self, items: list[CandidateItem]) -> BatchOutcome:
        for item in items:
            if self._ctx.stopped:
                return BatchOutcome.STOPPED
            if self._ctx.segment_expired:
                return BatchOutcome.EXPIRED
            await self._pause_gate()
            if self._ctx.stopped:
                return BatchOutcome.STOPPED
            self._quota.ensure_available()
            try:
                await self._check_page_drift()
            except NavigationMismatchError as e:
                logger.warning("%s, reloading %s", e, e.expected_url)
                return BatchOutcome.RESTART

            try:
                await self._process_item(item)
            except (QuotaExceededError, ConfigurationError):
                raise
            except RunStoppedError:
                await self._protocol.discard_if_open()
                return BatchOutcome.STOPPED
            except ValidationBlockedError as e:
                await self._protocol.discard_if_open()
                if (
                    e.phase == SubmissionPhase.REAL_RUN.value
                    and self._settings.abort_run_on_real_run_validation
                ):
                    raise
                logger.warning("Skipping '%s' @ %s: %s", item.title, item.company, e)
                self.summary.failed += 1
            except AutoApplyError as e:
                await self._protocol.discard_if_open()
                logger.warning("Skipping '%s' @ %s: %s", item.title, item.company, e)
                self.summary.failed += 1
            except Exception:
                await self._protocol.discard_if_open()
                logger.warning(
                    "Unexpected error on '%s' @ %s", item.title, item.company, exc_info=True,
                )
                self.summary.failed += 1

            if not await self._ctx.delay(DelayKind.SHORT):
                return BatchOutcome.STOPPED
        return BatchOutcome.EXHAUSTED

    async def _process_item(self, item: CandidateItem) -> None:
        if not await self._select(item):
            logger.warning("Could not select '%s' @ %s", item.title, item.company)
            self.summary.skipped += 1
            return

        detail = await self._adapter.read_job_detail()
        verdict = await self._relevance.admit(item, detail)
        if not verdict.admitted:
            self.summary.skipped += 1
            return

        result = await self._protocol.apply(item, detail, match_score=verdict.score)
        if result.submitted:
            self.summary.submitted += 1
        if result.duplicate:
            self.summary.duplicates += 1

    async def _select(self, item: CandidateItem) -> bool:
        """Select the item and confirm the detail pane shows it."""
        for attempt in range(1, SELECT_ATTEMPTS + 1):
            await self._adapter.select_item(item)
            await self._ctx.delay(DelayKind.VERY_SHORT)
            await self._adapter.wait_for_dom_settled()
            if await self._adapter.is_showing_item(item):
                return True
            logger.debug("Selection attempt %d did not show '%s'", attempt, item.title)
        return False

    # --- Private helpers ---

    async def _pause_gate(self) -> None:
        """Freeze the segment budget while paused."""
        if not self._ctx.paused:
            return
        self._scheduler.pause()
        self._timer.cancel()
        await self._ctx.wait_while_paused()
        if self._ctx.stopped:
            return
        self._scheduler.resume_segment()
        self._timer.arm(self._scheduler.remaining_budget() / 1000)

    async def _page_matches(self) -> bool:
        query = self._scheduler.current_target_query()
        return self._scheduler.matches_current_page(query, await self._adapter.current_location())

    async def _check_page_drift(self) -> None:
        """Raise NavigationMismatchError while a redirect is still allowed."""
        if await self._page_matches():
            return
        if not self._can_redirect():
            logger.debug("Page differs from the segment's search, redirects used up")
            return
        msg = "Page no longer shows the segment's search"
        raise NavigationMismatchError(msg, expected_url=self._scheduler.target_url())

    def _can_redirect(self) -> bool:
        return self._redirects < self._settings.max_segment_redirects

    async def _ensure_segment_page(self) -> None:
        """Navigate to the segment's search unless the page already shows it."""
        if await self._page_matches():
            return
        if not self._can_redirect():
            logger.warning(
                "Page still differs from the segment's search after %d redirects, continuing",
                self._redirects,
            )
            return
        self._redirects += 1
        url = self._scheduler.target_url()
        logger.info("Navigating to %s", url)
        await self._adapter.navigate(url)
        await self._adapter.wait_for_dom_settled()
