"""SegmentScheduler: owns the persisted cursor into the campaign iteration space.

Nesting order, outermost first: campaign → workplace type → job type →
location. Location advances fastest. Empty facet lists (or lists whose
members are all blank) iterate as one unconstrained entry.

The cursor is the only persisted progress. It is written as the last step of
every transition, so a crash replays at most the segment that was starting.
"""

import logging
import time
from collections.abc import Callable, Iterator
from urllib.parse import unquote_plus

from pydantic import BaseModel, ValidationError

from autoapply.core.config import CampaignConfig
from autoapply.core.errors import ConfigurationError
from autoapply.core.schemas import EffectiveFacet, ResumableCursor, TargetQuery
from autoapply.core.store import PersistenceStore
from autoapply.pipeline.budget import DEFAULT_SEGMENT_MINUTES, parse_minutes, resolve_campaign
from autoapply.platforms.base import SearchVocabulary

logger = logging.getLogger(__name__)

CURSOR_KEY = "cursor"

_UNCONSTRAINED = EffectiveFacet(name="", timer_minutes=0.0)


def now_ms() -> int:
    return int(time.time() * 1000)


class Segment(BaseModel):
    """One (campaign, workplace type, job type, location) combination."""

    campaign_index: int
    workplace_index: int
    type_index: int
    location_index: int
    keyword: str
    workplace: EffectiveFacet
    job_type: EffectiveFacet
    location: EffectiveFacet
    duration_ms: int


def _named(members: list[EffectiveFacet]) -> list[EffectiveFacet]:
    named = [m for m in members if m.name.strip()]
    return named or [_UNCONSTRAINED]


def segment_facets(
    campaign: CampaignConfig,
) -> tuple[list[EffectiveFacet], list[EffectiveFacet], list[EffectiveFacet]]:
    """Iterable (locations, job_types, workplaces) for a campaign, timers resolved."""
    effective = resolve_campaign(campaign)
    return (
        _named(effective.locations),
        _named(effective.job_types),
        _named(effective.workplace_types),
    )


def segment_duration_minutes(campaign: CampaignConfig, loc: int, typ: int, wp: int) -> float:
    """The location's own timer, else the nearest resolved ancestor timer."""
    effective = resolve_campaign(campaign)
    locations, job_types, workplaces = segment_facets(campaign)
    for facet in (locations[loc], job_types[typ], workplaces[wp]):
        if facet.name and facet.timer_minutes > 0:
            return facet.timer_minutes
    return effective.timer_minutes or DEFAULT_SEGMENT_MINUTES


def validate_campaigns(campaigns: list[CampaignConfig]) -> None:
    """Raise ConfigurationError unless every campaign has a usable location."""
    if not campaigns:
        msg = "No campaigns configured. Add at least one campaign with a location and timer."
        raise ConfigurationError(msg)
    for index, campaign in enumerate(campaigns):
        usable = [
            loc for loc in campaign.locations
            if loc.name.strip() and parse_minutes(loc.timer_minutes) > 0
        ]
        if not usable:
            label = campaign.title or f"#{index + 1}"
            msg = (
                f"Campaign '{label}' needs at least one location with a name "
                "and a positive timer (minutes)"
            )
            raise ConfigurationError(msg, settings_hint=f"campaigns[{index}].locations")


def iter_segments(campaigns: list[CampaignConfig]) -> Iterator[Segment]:
    """Every segment of one full cycle, in visiting order."""
    for c, campaign in enumerate(campaigns):
        locations, job_types, workplaces = segment_facets(campaign)
        for w in range(len(workplaces)):
            for t in range(len(job_types)):
                for loc in range(len(locations)):
                    yield _segment(campaign, c, loc, t, w)


def _segment(campaign: CampaignConfig, c: int, loc: int, typ: int, wp: int) -> Segment:
    locations, job_types, workplaces = segment_facets(campaign)
    minutes = segment_duration_minutes(campaign, loc, typ, wp)
    return Segment(
        campaign_index=c,
        workplace_index=wp,
        type_index=typ,
        location_index=loc,
        keyword=campaign.title,
        workplace=workplaces[wp],
        job_type=job_types[typ],
        location=locations[loc],
        duration_ms=int(minutes * 60_000),
    )


def _same_text(a: str, b: str) -> bool:
    return " ".join(unquote_plus(a).lower().split()) == " ".join(unquote_plus(b).lower().split())


def _location_matches(expected: str, actual: str) -> bool:
    """Locations match case-insensitively, with containment either way.

    The site expands short names ("Bangalore" → "Bangalore, Karnataka, India").
    An unconstrained segment matches any location.
    """
    want = " ".join(expected.lower().split())
    have = " ".join(unquote_plus(actual).lower().split())
    if not want:
        return True
    return bool(have) and (want in have or have in want)


class SegmentScheduler:
    """Decides which segment runs next and persists where the run is."""

    def __init__(
        self,
        store: PersistenceStore,
        vocabulary: SearchVocabulary,
        *,
        loop_mode: bool = False,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._store = store
        self._vocabulary = vocabulary
        self._loop_mode = loop_mode
        self._clock = clock
        self._cursor: ResumableCursor | None = None

    @property
    def cursor(self) -> ResumableCursor | None:
        return self._cursor

    def load(self) -> ResumableCursor | None:
        """Read the persisted cursor, or None if there is no run to resume."""
        raw = self._store.get(CURSOR_KEY)
        if raw is None:
            self._cursor = None
            return None
        try:
            self._cursor = ResumableCursor.model_validate(raw)
        except ValidationError:
            logger.warning("Persisted cursor is unreadable, discarding it", exc_info=True)
            self._store.remove(CURSOR_KEY)
            self._cursor = None
        return self._cursor

    def start_new(self, campaigns: list[CampaignConfig]) -> ResumableCursor:
        """Validate campaigns and persist a cursor at the first segment."""
        validate_campaigns(campaigns)
        cursor = ResumableCursor(campaigns=[c.model_copy(deep=True) for c in campaigns])
        self._enter_segment(cursor, 0, 0, 0, 0)
        logger.info("Started new run over %d campaign(s)", len(campaigns))
        return cursor

    def resume(self) -> ResumableCursor | None:
        """Pick up the persisted cursor.

        A paused cursor restarts its frozen remaining budget from now; a
        cursor left running keeps counting from its original start.
        """
        cursor = self.load()
        if cursor is None:
            return None
        cursor.running = True
        if cursor.paused:
            cursor.paused = False
            cursor.segment_start_time = self._clock()
        self._persist(cursor)
        logger.info(
            "Resuming segment %s with %.1f min left",
            self._describe(cursor), max(self.remaining_budget(), 0) / 60_000,
        )
        return cursor

    def advance(self) -> ResumableCursor | None:
        """Move to the next segment, location fastest.

        Returns the updated cursor, or None when the cycle is exhausted and
        loop mode is off (the cursor is then removed).
        """
        cursor = self._require_cursor()
        campaigns = cursor.campaigns
        loc = cursor.location_index + 1
        typ = cursor.type_index
        wp = cursor.workplace_index
        camp = cursor.campaign_index

        while camp < len(campaigns):
            locations, job_types, workplaces = segment_facets(campaigns[camp])
            if loc >= len(locations):
                loc, typ = 0, typ + 1
            if typ >= len(job_types):
                typ, wp = 0, wp + 1
            if wp >= len(workplaces):
                loc, typ, wp, camp = 0, 0, 0, camp + 1
                continue
            self._enter_segment(cursor, camp, loc, typ, wp)
            return cursor

        if self._loop_mode:
            logger.info("All campaigns done, loop mode restarts from the first segment")
            self._enter_segment(cursor, 0, 0, 0, 0)
            return cursor

        logger.info("All campaigns done")
        self.stop()
        return None

    def current_segment(self) -> Segment:
        cursor = self._require_cursor()
        campaign = cursor.campaigns[cursor.campaign_index]
        return _segment(
            campaign,
            cursor.campaign_index,
            cursor.location_index,
            cursor.type_index,
            cursor.workplace_index,
        )

    def current_target_query(self) -> TargetQuery:
        segment = self.current_segment()
        return TargetQuery(
            keyword=segment.keyword,
            location=segment.location.name,
            job_type_code=self._vocabulary.job_type_code(segment.job_type.name),
            workplace_code=self._vocabulary.workplace_code(segment.workplace.name),
            quick_apply=True,
        )

    def target_url(self) -> str:
        return self._vocabulary.build_url(self.current_target_query())

    def matches_current_page(self, query: TargetQuery, current_url: str) -> bool:
        """Compare path, keyword, location and the quick-apply flag with the loaded page.

        Job type and workplace codes are not compared.
        """
        shown = self._vocabulary.parse_url(current_url)
        if shown is None:
            return False
        return (
            _same_text(query.keyword, shown.keyword)
            and _location_matches(query.location, shown.location)
            and query.quick_apply == shown.quick_apply
        )

    def remaining_budget(self, now: int | None = None) -> int:
        """Milliseconds left in the segment. Zero or less means advance."""
        cursor = self._require_cursor()
        if cursor.paused:
            return cursor.segment_duration_ms
        now = self._clock() if now is None else now
        return cursor.segment_duration_ms - (now - cursor.segment_start_time)

    def pause(self, now: int | None = None) -> None:
        """Freeze the segment: remaining time becomes the new duration."""
        cursor = self._require_cursor()
        if cursor.paused:
            return
        now = self._clock() if now is None else now
        cursor.segment_duration_ms = max(self.remaining_budget(now), 0)
        cursor.segment_start_time = now
        cursor.paused = True
        self._persist(cursor)
        logger.info("Paused with %.1f min left in segment", cursor.segment_duration_ms / 60_000)

    def resume_segment(self, now: int | None = None) -> None:
        """Restart the frozen segment's clock from now."""
        cursor = self._require_cursor()
        if not cursor.paused:
            return
        cursor.segment_start_time = self._clock() if now is None else now
        cursor.paused = False
        self._persist(cursor)
        logger.info("Resumed segment %s", self._describe(cursor))

    def stop(self) -> None:
        """Destroy the cursor."""
        self._store.remove(CURSOR_KEY)
        self._cursor = None

    # --- Private helpers ---

    def _require_cursor(self) -> ResumableCursor:
        if self._cursor is None:
            msg = "No active cursor, call start_new() or resume() first"
            raise RuntimeError(msg)
        return self._cursor

    def _enter_segment(self, cursor: ResumableCursor, camp: int, loc: int, typ: int, wp: int) -> None:
        campaign = cursor.campaigns[camp]
        cursor.campaign_index = camp
        cursor.location_index = loc
        cursor.type_index = typ
        cursor.workplace_index = wp
        cursor.segment_start_time = self._clock()
        cursor.segment_duration_ms = int(segment_duration_minutes(campaign, loc, typ, wp) * 60_000)
        cursor.running = True
        cursor.paused = False
        self._persist(cursor)
        logger.info(
            "Segment %s for %.1f min",
            self._describe(cursor), cursor.segment_duration_ms / 60_000,
        )

    def _persist(self, cursor: ResumableCursor) -> None:
        self._cursor = cursor
        self._store.set(CURSOR_KEY, cursor.model_dump(mode="json"))

    @staticmethod
    def _describe(cursor: ResumableCursor) -> str:
        campaign = cursor.campaigns[cursor.campaign_index]
        locations, job_types, workplaces = segment_facets(campaign)
        parts = [
            campaign.title or "(untitled)",
            workplaces[cursor.workplace_index].name or "any workplace",
            job_types[cursor.type_index].name or "any type",
            locations[cursor.location_index].name or "any location",
        ]
        return " / ".join(parts)
