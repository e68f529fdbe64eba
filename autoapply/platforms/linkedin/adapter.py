"""LinkedIn page adapter: binds the PageAdapter capabilities to a patchright Page."""

import logging
import re
from typing import Any
from urllib.parse import parse_qs, urlparse

from autoapply.core.schemas import (
    ActionKind,
    CandidateItem,
    ControlKind,
    DialogAction,
    FormControl,
    JobDetail,
    ReopenStrategy,
)
from autoapply.platforms.base import PageAdapter
from autoapply.platforms.linkedin.parser import (
    LinkedInParser,
    classify_action,
    control_from_descriptor,
    normalize_text,
)
from autoapply.platforms.linkedin.selectors import (
    ANY_MODAL_SELECTOR,
    APPLY_BUTTON_BY_ID,
    APPLY_BUTTON_TEXT,
    CONFIRMATION_HEADERS,
    CONTROL_GROUP_SELECTORS,
    DETAIL_CONTAINER_SELECTORS,
    DIALOG_HEADER_SELECTORS,
    DIALOG_SELECTORS,
    DISCARD_CONFIRM_SELECTOR,
    DISMISS_SELECTOR,
    FOLLOW_CHECKBOX_ID,
    FORM_DIALOG_MARKERS,
    ITEM_SELECTORS,
    ITEM_TITLE_SELECTORS,
    NEXT_PAGE_SELECTORS,
    PILL_CLASS,
    POST_SUBMIT_BODY_TEXTS,
    POST_SUBMIT_BUTTON_LABELS,
    POST_SUBMIT_HEADERS,
    RESELECT_SELECTORS,
    RESULTS_PANE_SELECTORS,
    SAFETY_REMINDER_HEADER,
    SAVE_CONFIRMATION_HEADER,
    VALIDATION_ERROR_SELECTORS,
)

logger = logging.getLogger(__name__)

_DOM_SETTLED_JS = """
([quietMs, timeoutMs]) => new Promise((resolve) => {
    let quiet = null;
    const observer = new MutationObserver(() => {
        clearTimeout(quiet);
        quiet = setTimeout(done, quietMs);
    });
    const deadline = setTimeout(done, timeoutMs);
    function done() {
        observer.disconnect();
        clearTimeout(quiet);
        clearTimeout(deadline);
        resolve(true);
    }
    observer.observe(document.body, {childList: true, subtree: true, attributes: true});
    quiet = setTimeout(done, quietMs);
})
"""

_SCROLL_RESULTS_JS = """
(selectors) => {
    let pane = null;
    for (const selector of selectors) {
        pane = document.querySelector(selector);
        if (pane && pane.scrollHeight > pane.clientHeight) break;
        pane = null;
    }
    const target = pane || document.scrollingElement;
    target.scrollBy(0, Math.max(target.clientHeight * 0.8, 200));
    return target.scrollTop + target.clientHeight >= target.scrollHeight - 2;
}
"""

_ITEM_POSITION_JS = """
(el) => {
    const pane = el.closest('.scaffold-layout__list > div, .jobs-search-results-list');
    return el.getBoundingClientRect().top + (pane ? pane.scrollTop : window.scrollY);
}
"""

_IS_FILTER_LIKE_JS = """
(el) => {
    if (el.closest('.artdeco-pill') || el.closest('[data-test-filter]')) return true;
    if (el.id && el.id.includes('searchFilter')) return true;
    if (el.classList.contains('search-reusables__filter-pill-button')) return true;
    return (el.getAttribute('aria-label') || '').toLowerCase().includes('filter');
}
"""

_DESCRIBE_CONTROL_JS = """
(el) => {
    const text = (n) => n ? (n.innerText || n.textContent || '').trim() : '';
    const heading = () => text(el.querySelector('legend span[aria-hidden="true"]'))
        || text(el.querySelector('legend')) || text(el.querySelector('label'));
    const labelFor = (input) => {
        const lbl = input.id ? el.querySelector(`label[for="${CSS.escape(input.id)}"]`) : null;
        return text(lbl) || input.value || '';
    };
    const select = el.querySelector('select');
    if (select) {
        const options = Array.from(select.options).map((o) => o.textContent.trim());
        const value = select.selectedIndex > 0 ? options[select.selectedIndex] : '';
        return {kind: 'select', label: heading(), options, value, required: select.required};
    }
    const radios = Array.from(el.querySelectorAll('input[type="radio"]'));
    if (radios.length) {
        const checked = radios.find((r) => r.checked);
        return {
            kind: 'radio', label: heading(), options: radios.map(labelFor),
            value: checked ? labelFor(checked) : '', required: radios.some((r) => r.required),
        };
    }
    const boxes = Array.from(el.querySelectorAll('input[type="checkbox"]'));
    if (boxes.length) {
        return {
            kind: 'checkbox', label: heading(), options: boxes.map(labelFor),
            checked: boxes.some((b) => b.checked), required: boxes.some((b) => b.required),
        };
    }
    const field = el.querySelector('textarea, input:not([type="hidden"]):not([type="file"])');
    if (field) {
        return {
            kind: 'text', label: text(el.querySelector('label')) || field.getAttribute('aria-label') || '',
            value: field.value || '', multiline: field.tagName === 'TEXTAREA', required: field.required,
        };
    }
    return null;
}
"""

_IS_FORM_DIALOG_JS = """
(el) => el.matches('.jobs-easy-apply-modal') || !!el.querySelector('.fb-dash-form-element')
"""

_TRUE_VALUES = {"true", "yes", "checked", "y"}
_JOB_VIEW_RE = re.compile(r"/jobs/view/(\d+)")


class LinkedInAdapter(PageAdapter):
    """LinkedIn jobs search page adapter.

    Requires a browser page object (patchright Page) injected via constructor.
    """

    def __init__(self, page: Any) -> None:
        self._page = page
        self._parser = LinkedInParser()

    # --- navigation ---

    async def current_location(self) -> str:
        return str(self._page.url)

    async def navigate(self, url: str) -> None:
        logger.info("Navigating to %s", url)
        await self._page.goto(url, wait_until="domcontentloaded")

    async def wait_for_dom_settled(self, quiet_ms: int = 400, timeout_ms: int = 5000) -> None:
        try:
            await self._page.evaluate(_DOM_SETTLED_JS, [quiet_ms, timeout_ms])
        except Exception:
            # a navigation tears down the execution context mid-wait
            logger.debug("DOM settle wait interrupted", exc_info=True)

    async def dispatch_click(self, handle: Any) -> None:
        await handle.click()

    # --- results list ---

    async def query_item_candidates(self) -> list[list[Any]]:
        hits: list[list[Any]] = []
        for selector in ITEM_SELECTORS:
            try:
                hits.append(await self._page.query_selector_all(selector))
            except Exception:
                logger.debug("Item selector '%s' raised", selector, exc_info=True)
                hits.append([])
        return hits

    async def item_key(self, handle: Any) -> str:
        try:
            return str(await handle.evaluate("el => el.outerHTML"))
        except Exception:
            logger.debug("Could not serialize item", exc_info=True)
            return ""

    async def item_position(self, handle: Any) -> float:
        try:
            return float(await handle.evaluate(_ITEM_POSITION_JS))
        except Exception:
            logger.debug("Could not read item position", exc_info=True)
            return 0.0

    async def scroll_results(self) -> bool:
        try:
            return bool(await self._page.evaluate(_SCROLL_RESULTS_JS, list(RESULTS_PANE_SELECTORS)))
        except Exception:
            logger.debug("Results scroll failed", exc_info=True)
            return True

    async def scroll_into_view(self, handle: Any) -> None:
        try:
            await handle.scroll_into_view_if_needed()
            await self._page.wait_for_timeout(150)
        except Exception:
            logger.debug("Failed to scroll item into view", exc_info=True)

    async def extract_item(self, handle: Any) -> CandidateItem | None:
        return await self._parser.parse_item(handle, await self.item_position(handle))

    async def go_to_next_results_page(self) -> bool:
        for selector in NEXT_PAGE_SELECTORS:
            try:
                button = await self._page.query_selector(selector)
                if button is None or not await button.is_visible() or not await button.is_enabled():
                    continue
                await button.click()
                await self.wait_for_dom_settled()
                logger.info("Moved to the next results page")
                return True
            except Exception:
                logger.debug("Next-page selector '%s' failed", selector, exc_info=True)
        return False

    # --- detail pane ---

    async def select_item(self, item: CandidateItem) -> None:
        handle = item.handle
        if handle is not None:
            try:
                link = await self._parser.find_first(handle, ITEM_TITLE_SELECTORS)
                await (link or handle).click()
                return
            except Exception:
                logger.debug("Stale item handle for '%s', reselecting", item.title, exc_info=True)
        await self.reselect_item(item)

    async def read_job_detail(self) -> JobDetail:
        return await self._parser.parse_detail(self._page, job_id=self._current_job_id())

    async def is_showing_item(self, item: CandidateItem) -> bool:
        if item.job_id and item.job_id == self._current_job_id():
            return True
        detail = await self.read_job_detail()
        return _contains_either(detail.title, item.title) and _contains_either(
            detail.company, item.company,
        )

    async def reselect_item(self, item: CandidateItem) -> bool:
        candidates: list[Any] = []
        if item.job_id:
            for selector in RESELECT_SELECTORS:
                el = await self._safe_query(selector.format(job_id=item.job_id))
                if el is not None:
                    candidates.append(el)
                    break
        if not candidates:
            for selector in ITEM_TITLE_SELECTORS:
                for link in await self._safe_query_all(selector):
                    if _contains_either(normalize_text(await link.text_content()), item.title):
                        candidates.append(link)
                        break
                if candidates:
                    break
        if not candidates:
            logger.warning("Could not find '%s' in the results list", item.title)
            return False
        target = candidates[0]
        await target.scroll_into_view_if_needed()
        await target.click()
        await self.wait_for_dom_settled()
        return True

    async def find_apply_control(self, strategy: ReopenStrategy, item: CandidateItem) -> Any | None:
        if strategy is ReopenStrategy.SCOPED:
            for selector in DETAIL_CONTAINER_SELECTORS:
                container = await self._safe_query(selector)
                if container is None:
                    continue
                for button in await container.query_selector_all("button"):
                    if await self._is_apply_button(button) and not await self._in_pill(button):
                        return button
            return None
        if strategy is ReopenStrategy.GLOBAL:
            for button in await self._safe_query_all("button"):
                if await self._is_apply_button(button) and not await button.evaluate(_IS_FILTER_LIKE_JS):
                    return button
            return None
        if strategy is ReopenStrategy.IDENTIFIER:
            if not item.job_id:
                return None
            button = await self._safe_query(APPLY_BUTTON_BY_ID.format(job_id=item.job_id))
            if button is not None and await button.is_visible():
                return button
            return None
        for button in await self._safe_query_all("button"):
            if await self._is_apply_button(button):
                return button
        return None

    # --- submission dialog ---

    async def dialog_open(self) -> bool:
        return await self._dialog() is not None

    async def wait_for_dialog(self, timeout_ms: int = 5000) -> bool:
        try:
            await self._page.wait_for_selector(", ".join(DIALOG_SELECTORS), timeout=timeout_ms)
        except Exception:
            logger.debug("Dialog did not appear within %d ms", timeout_ms)
            return False
        return True

    async def primary_action(self) -> DialogAction:
        dialog = await self._dialog()
        if dialog is None:
            return DialogAction()
        found: dict[ActionKind, DialogAction] = {}
        for button in await dialog.query_selector_all("button"):
            try:
                if not await button.is_visible():
                    continue
                label = normalize_text(await button.text_content())
                kind = classify_action(label)
                if kind is ActionKind.NONE:
                    label = normalize_text(await button.get_attribute("aria-label"))
                    kind = classify_action(label)
                if kind is not ActionKind.NONE and kind not in found:
                    found[kind] = DialogAction(kind=kind, label=label, handle=button)
            except Exception:
                logger.debug("Could not read dialog button", exc_info=True)
        for kind in (ActionKind.SUBMIT, ActionKind.NEXT, ActionKind.EXTERNAL):
            if kind in found:
                return found[kind]
        return DialogAction()

    async def list_controls(self) -> list[FormControl]:
        dialog = await self._dialog()
        if dialog is None:
            return []
        for selector in CONTROL_GROUP_SELECTORS:
            groups = await dialog.query_selector_all(selector)
            if not groups:
                continue
            controls: list[FormControl] = []
            for group in groups:
                try:
                    descriptor = await group.evaluate(_DESCRIBE_CONTROL_JS)
                except Exception:
                    logger.debug("Could not describe form grouping", exc_info=True)
                    continue
                if descriptor:
                    control = control_from_descriptor(descriptor, group)
                    if control is not None:
                        controls.append(control)
            return controls
        return []

    async def set_control_value(self, control: FormControl, value: str) -> None:
        group = control.handle
        if control.kind is ControlKind.TEXT:
            field = await group.query_selector('textarea, input:not([type="hidden"]):not([type="file"])')
            if field is None:
                return
            await field.fill(value)
            if await field.get_attribute("role") == "combobox":
                # typeahead: pick the first suggestion
                await self._page.wait_for_timeout(1000)
                await field.press("ArrowDown")
                await field.press("Enter")
        elif control.kind is ControlKind.SELECT:
            select = await group.query_selector("select")
            if select is not None:
                await select.select_option(label=value)
        elif control.kind is ControlKind.RADIO:
            label = await self._matching_label(group, [value])
            if label is not None:
                await label.click()
        else:
            await self._set_checkboxes(group, value)

    async def has_validation_error(self) -> bool:
        dialog = await self._dialog()
        if dialog is None:
            return False
        for selector in VALIDATION_ERROR_SELECTORS:
            for el in await dialog.query_selector_all(selector):
                if await el.is_visible() and normalize_text(await el.text_content()):
                    return True
        return False

    async def submission_confirmed(self) -> bool:
        for modal in await self._visible_modals():
            header = (await self._header_text(modal)).lower()
            if any(text in header for text in CONFIRMATION_HEADERS):
                return True
        return False

    async def close_dialog(self) -> bool:
        dialog = await self._dialog()
        if dialog is None:
            return False
        return await self._click_first(dialog, DISMISS_SELECTOR)

    async def confirm_discard(self) -> bool:
        if await self._click_first(self._page, DISCARD_CONFIRM_SELECTOR):
            return True
        for modal in await self._visible_modals():
            if await self._click_button_labelled(modal, ("discard",)):
                return True
        return False

    async def uncheck_follow_toggle(self) -> bool:
        checkbox = await self._safe_query(f"#{FOLLOW_CHECKBOX_ID}")
        if checkbox is None or not await checkbox.is_checked():
            return False
        label = await self._safe_query(f'label[for="{FOLLOW_CHECKBOX_ID}"]')
        if label is not None:
            await label.click()
        else:
            await checkbox.set_checked(False, force=True)
        logger.debug("Unchecked follow-company toggle")
        return True

    # --- interstitials ---

    async def dismiss_safety_reminder(self) -> bool:
        return await self._dismiss_modal_with_header(SAFETY_REMINDER_HEADER)

    async def dismiss_save_confirmation(self) -> bool:
        return await self._dismiss_modal_with_header(SAVE_CONFIRMATION_HEADER)

    async def dismiss_post_submit_dialog(self, *, include_confirmation: bool = True) -> bool:
        for modal in await self._visible_modals():
            header = (await self._header_text(modal)).lower()
            body = normalize_text(await modal.text_content()).lower()
            confirmation = any(text in header for text in CONFIRMATION_HEADERS)
            if confirmation and not include_confirmation:
                continue
            is_form = await modal.evaluate(_IS_FORM_DIALOG_JS) or any(
                marker in header or marker in body for marker in FORM_DIALOG_MARKERS
            )
            if is_form and not confirmation:
                continue
            if not (
                any(text in header for text in POST_SUBMIT_HEADERS)
                or any(text in body for text in POST_SUBMIT_BODY_TEXTS)
            ):
                continue
            if (
                await self._click_button_labelled(modal, ("not now",))
                or await self._click_first(modal, DISMISS_SELECTOR)
                or await self._click_button_labelled(modal, POST_SUBMIT_BUTTON_LABELS)
            ):
                logger.debug("Dismissed post-submit dialog '%s'", header)
                return True
        return False

    # --- Private helpers ---

    def _current_job_id(self) -> str:
        parsed = urlparse(str(self._page.url))
        ids = parse_qs(parsed.query).get("currentJobId")
        if ids:
            return ids[0]
        match = _JOB_VIEW_RE.search(parsed.path)
        return match.group(1) if match else ""

    async def _dialog(self) -> Any | None:
        for selector in DIALOG_SELECTORS:
            el = await self._safe_query(selector)
            if el is not None and await el.is_visible():
                return el
        return None

    async def _visible_modals(self) -> list[Any]:
        modals = []
        for modal in await self._safe_query_all(ANY_MODAL_SELECTOR):
            try:
                if await modal.is_visible():
                    modals.append(modal)
            except Exception:
                logger.debug("Modal detached while checking visibility", exc_info=True)
        return modals

    async def _header_text(self, modal: Any) -> str:
        text = await self._parser.text_fallback(modal, DIALOG_HEADER_SELECTORS)
        return normalize_text(text)

    async def _dismiss_modal_with_header(self, header_text: str) -> bool:
        for modal in await self._visible_modals():
            if header_text in (await self._header_text(modal)).lower():
                if await self._click_first(modal, DISMISS_SELECTOR):
                    logger.info("Dismissed '%s' dialog", header_text)
                    return True
        return False

    async def _is_apply_button(self, button: Any) -> bool:
        try:
            text = normalize_text(await button.text_content()).lower()
            aria = (await button.get_attribute("aria-label") or "").lower()
            if APPLY_BUTTON_TEXT not in text and APPLY_BUTTON_TEXT not in aria:
                return False
            return bool(await button.is_visible())
        except Exception:
            logger.debug("Could not inspect button", exc_info=True)
            return False

    async def _in_pill(self, button: Any) -> bool:
        return bool(await button.evaluate(f"el => !!el.closest('.{PILL_CLASS}')"))

    async def _matching_label(self, group: Any, wanted: list[str]) -> Any | None:
        labels = await group.query_selector_all("label")
        texts = [normalize_text(await lbl.text_content()).lower() for lbl in labels]
        for want in (w.strip().lower() for w in wanted):
            for label, text in zip(labels, texts):
                if text == want:
                    return label
            for label, text in zip(labels, texts):
                if text and want and (want in text or text in want):
                    return label
        return None

    async def _set_checkboxes(self, group: Any, value: str) -> None:
        boxes = await group.query_selector_all('input[type="checkbox"]')
        if not boxes:
            return
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES or lowered in ("false", "no", "n", ""):
            await boxes[0].set_checked(lowered in _TRUE_VALUES, force=True)
            return
        label = await self._matching_label(group, value.split(","))
        if label is not None:
            await label.click()

    async def _click_first(self, parent: Any, selector: str) -> bool:
        try:
            el = await parent.query_selector(selector)
            if el is None or not await el.is_visible():
                return False
            await el.click()
            return True
        except Exception:
            logger.debug("Click on '%s' failed", selector, exc_info=True)
            return False

    async def _click_button_labelled(self, parent: Any, labels: tuple[str, ...]) -> bool:
        try:
            for button in await parent.query_selector_all("button"):
                text = normalize_text(await button.text_content()).lower()
                if text in labels and await button.is_visible():
                    await button.click()
                    return True
        except Exception:
            logger.debug("Labelled button click failed", exc_info=True)
        return False

    async def _safe_query(self, selector: str) -> Any | None:
        try:
            return await self._page.query_selector(selector)
        except Exception:
            logger.debug("Selector '%s' raised", selector, exc_info=True)
            return None

    async def _safe_query_all(self, selector: str) -> list[Any]:
        try:
            return list(await self._page.query_selector_all(selector))
        except Exception:
            logger.debug("Selector '%s' raised", selector, exc_info=True)
            return []


def _contains_either(a: str, b: str) -> bool:
    """Case-insensitive containment in either direction; blanks never match."""
    a, b = a.strip().lower(), b.strip().lower()
    return bool(a and b) and (a in b or b in a)
