"""LinkedIn DOM parser: result items, detail pane, dialog controls and actions.

Design rules:
  - Every selector lookup uses a fallback tuple.
  - Titles are split on '\\n' and the first line taken.
  - Missing fields return "" and never crash.
"""

import logging
from typing import Any, Protocol, runtime_checkable

from autoapply.core.schemas import ActionKind, CandidateItem, ControlKind, FormControl, JobDetail
from autoapply.platforms.linkedin.selectors import (
    DETAIL_COMPANY_SELECTORS,
    DETAIL_DESCRIPTION_SELECTORS,
    DETAIL_LOCATION_SELECTORS,
    DETAIL_TITLE_SELECTORS,
    EXTERNAL_LABELS,
    ITEM_COMPANY_SELECTORS,
    ITEM_LOCATION_SELECTORS,
    ITEM_STATE_SELECTORS,
    ITEM_TITLE_SELECTORS,
    JOB_ID_ATTR,
    JOB_ID_ATTR_FALLBACK,
    NEXT_LABELS,
    SUBMIT_LABELS,
)

logger = logging.getLogger(__name__)


@runtime_checkable
class ElementLike(Protocol):
    """Minimal element interface so tests can use AsyncMock instead of patchright."""

    async def query_selector(self, selector: str) -> "ElementLike | None": ...
    async def get_attribute(self, name: str) -> str | None: ...
    async def text_content(self) -> str | None: ...


def normalize_text(text: str | None) -> str:
    """Collapse whitespace; first line only for multi-line titles."""
    if not text:
        return ""
    return " ".join(text.strip().split("\n")[0].split())


def classify_action(label: str) -> ActionKind:
    """Map a dialog button label to its action class."""
    text = " ".join(label.lower().split())
    if not text:
        return ActionKind.NONE
    if any(text.startswith(lbl) for lbl in EXTERNAL_LABELS):
        return ActionKind.EXTERNAL
    if any(text == lbl or text.startswith(lbl + " ") for lbl in SUBMIT_LABELS):
        return ActionKind.SUBMIT
    if any(text == lbl or text.startswith(lbl + " ") for lbl in NEXT_LABELS):
        return ActionKind.NEXT
    return ActionKind.NONE


def control_from_descriptor(descriptor: dict[str, Any], handle: Any) -> FormControl | None:
    """Build a FormControl from the JS-side description of a form grouping.

    Returns None for groupings without a recognizable control.
    """
    try:
        kind = ControlKind(descriptor.get("kind", ""))
    except ValueError:
        return None
    label = " ".join(str(descriptor.get("label") or "").split())
    if label.endswith("Required"):
        label = label[: -len("Required")].strip()
    options = [" ".join(str(o).split()) for o in descriptor.get("options") or []]
    return FormControl(
        kind=kind,
        label=label,
        options=options,
        value=str(descriptor.get("value") or ""),
        checked=bool(descriptor.get("checked")),
        multiline=bool(descriptor.get("multiline")),
        required=bool(descriptor.get("required")),
        handle=handle,
    )


class LinkedInParser:
    """Reads result items and the detail pane into pipeline models."""

    async def parse_item(self, card: ElementLike, position: float = 0.0) -> CandidateItem | None:
        """Parse a result item. Returns None if title or company is missing."""
        title = normalize_text(await self.text_fallback(card, ITEM_TITLE_SELECTORS))
        company = normalize_text(await self.text_fallback(card, ITEM_COMPANY_SELECTORS))
        if not title or not company:
            logger.debug("Item missing title or company, skipping")
            return None
        return CandidateItem(
            title=title,
            company=company,
            job_id=await self._parse_job_id(card),
            location=normalize_text(await self.text_fallback(card, ITEM_LOCATION_SELECTORS)),
            applied_status=normalize_text(await self.text_fallback(card, ITEM_STATE_SELECTORS)),
            position=position,
            handle=card,
        )

    async def parse_detail(self, page: ElementLike, job_id: str = "") -> JobDetail:
        description = await self.text_fallback(page, DETAIL_DESCRIPTION_SELECTORS)
        return JobDetail(
            title=normalize_text(await self.text_fallback(page, DETAIL_TITLE_SELECTORS)),
            company=normalize_text(await self.text_fallback(page, DETAIL_COMPANY_SELECTORS)),
            location=normalize_text(await self.text_fallback(page, DETAIL_LOCATION_SELECTORS)),
            description=" ".join(description.split()),
            job_id=job_id,
        )

    # --- Private helpers ---

    async def _parse_job_id(self, card: ElementLike) -> str:
        """Extract job ID from item attributes (primary then fallback)."""
        try:
            for attr in (JOB_ID_ATTR, JOB_ID_ATTR_FALLBACK):
                job_id = await card.get_attribute(attr)
                if job_id and job_id.strip():
                    return job_id.strip()
            inner = await card.query_selector(f"[{JOB_ID_ATTR_FALLBACK}]")
            if inner is not None:
                job_id = await inner.get_attribute(JOB_ID_ATTR_FALLBACK)
                if job_id and job_id.strip():
                    return job_id.strip()
        except Exception:
            logger.debug("Error extracting job id", exc_info=True)
        return ""

    async def text_fallback(self, parent: ElementLike, selectors: tuple[str, ...]) -> str:
        """Try selectors in order, return first non-empty text or ""."""
        try:
            el = await self.find_first(parent, selectors)
            if el is None:
                return ""
            text = await el.text_content()
            return text.strip() if text else ""
        except Exception:
            logger.debug("Error parsing text with fallback selectors", exc_info=True)
            return ""

    async def find_first(
        self, parent: ElementLike, selectors: tuple[str, ...]
    ) -> ElementLike | None:
        """Return the first element matching any selector in order."""
        for selector in selectors:
            try:
                el = await parent.query_selector(selector)
                if el is not None:
                    return el
            except Exception:
                logger.debug("Selector '%s' raised, trying next", selector, exc_info=True)
        return None
