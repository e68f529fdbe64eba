"""ItemDiscoveryBatcher: scroll the results surface and collect every item once.

Scan loop, stopping at the first of:
  - STALE_SCAN_LIMIT consecutive scans without a new item
  - MAX_SCANS scans in total
  - the results surface reporting its bottom (after one last scan)
The first structural selector with more than PREFERRED_MIN_HITS hits wins a
scan; otherwise the first selector with any hits is used. Items are keyed by
their serialized markup.
"""

import logging
from typing import Any

from autoapply.core.schemas import CandidateItem
from autoapply.pipeline.context import RunContext
from autoapply.platforms.base import PageAdapter

logger = logging.getLogger(__name__)

MAX_SCANS = 50
STALE_SCAN_LIMIT = 15
PREFERRED_MIN_HITS = 10


def pick_hits(hit_lists: list[list[Any]]) -> list[Any]:
    """Prefer the first selector with more than PREFERRED_MIN_HITS hits."""
    for hits in hit_lists:
        if len(hits) > PREFERRED_MIN_HITS:
            return hits
    for hits in hit_lists:
        if hits:
            return hits
    return []


class ItemDiscoveryBatcher:
    """Collects the current results page into a position-ordered batch."""

    def __init__(
        self,
        adapter: PageAdapter,
        ctx: RunContext,
        *,
        scan_interval_s: float = 0.3,
    ) -> None:
        self._adapter = adapter
        self._ctx = ctx
        self._scan_interval_s = scan_interval_s

    async def collect(self) -> list[CandidateItem]:
        seen: dict[str, tuple[float, Any]] = {}
        stale = 0
        reached_bottom = False
        scans = 0

        for scans in range(1, MAX_SCANS + 1):
            if self._ctx.stopped:
                break
            new = await self._scan(seen)
            stale = 0 if new else stale + 1
            logger.debug("Scan %d: %d new, %d total, %d stale", scans, new, len(seen), stale)
            if reached_bottom or stale >= STALE_SCAN_LIMIT:
                break
            reached_bottom = await self._adapter.scroll_results()
            await self._ctx.sleep(self._scan_interval_s)

        ordered = sorted(seen.values(), key=lambda entry: entry[0])
        items = await self._extract(ordered)
        logger.info(
            "Discovered %d items (%d containers, %d scans)", len(items), len(seen), scans,
        )
        return items

    async def _scan(self, seen: dict[str, tuple[float, Any]]) -> int:
        new = 0
        for handle in pick_hits(await self._adapter.query_item_candidates()):
            key = await self._adapter.item_key(handle)
            if not key or key in seen:
                continue
            seen[key] = (await self._adapter.item_position(handle), handle)
            new += 1
        return new

    async def _extract(self, ordered: list[tuple[float, Any]]) -> list[CandidateItem]:
        """Scroll each item into view and read its fields; drop incomplete items."""
        items: list[CandidateItem] = []
        seen_ids: set[str] = set()
        for position, handle in ordered:
            if self._ctx.stopped:
                break
            await self._adapter.scroll_into_view(handle)
            item = await self._adapter.extract_item(handle)
            if item is None or not item.title.strip() or not item.company.strip():
                continue
            if item.job_id:
                if item.job_id in seen_ids:
                    continue
                seen_ids.add(item.job_id)
            items.append(item.model_copy(update={"position": position}))
        return items
