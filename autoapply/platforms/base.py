"""Abstract capability interfaces between the pipeline and a target site.

The pipeline never touches markup. Everything it needs from the loaded page
goes through ``PageAdapter``; everything it needs to build and recognise a
search URL goes through ``SearchVocabulary``.
"""

from abc import ABC, abstractmethod
from typing import Any

from autoapply.core.schemas import (
    CandidateItem,
    DialogAction,
    FormControl,
    JobDetail,
    ReopenStrategy,
    TargetQuery,
)


class SearchVocabulary(ABC):
    """Maps free-text facets to the site's fixed codes and back from URLs."""

    @abstractmethod
    def job_type_code(self, name: str) -> str:
        """Code for a job type name, or "" when unrecognized (no filter)."""

    @abstractmethod
    def workplace_code(self, name: str) -> str:
        """Code for a workplace type name, or "" when unrecognized (no filter)."""

    @abstractmethod
    def build_url(self, query: TargetQuery) -> str:
        """Absolute search URL for the query."""

    @abstractmethod
    def parse_url(self, url: str) -> TargetQuery | None:
        """Query shown by a loaded URL, or None if it is not a search page."""


class PageAdapter(ABC):
    """Capabilities of the currently loaded page.

    Element handles are opaque to callers. Lookups that fail return None,
    False or "" rather than raising.
    """

    # --- navigation ---

    @abstractmethod
    async def current_location(self) -> str:
        """The loaded page's URL."""

    @abstractmethod
    async def navigate(self, url: str) -> None:
        """Load url and wait for the document."""

    @abstractmethod
    async def wait_for_dom_settled(self, quiet_ms: int = 400, timeout_ms: int = 5000) -> None:
        """Return once the DOM has stopped mutating for quiet_ms (or after timeout_ms)."""

    @abstractmethod
    async def dispatch_click(self, handle: Any) -> None:
        """Click an element handle returned by this adapter."""

    # --- results list ---

    @abstractmethod
    async def query_item_candidates(self) -> list[list[Any]]:
        """Item containers, one hit list per structural selector, most specific first."""

    @abstractmethod
    async def item_key(self, handle: Any) -> str:
        """Serialized markup of an item container."""

    @abstractmethod
    async def item_position(self, handle: Any) -> float:
        """Vertical on-screen position of an item container."""

    @abstractmethod
    async def scroll_results(self) -> bool:
        """Scroll the results surface one step. Returns True at the bottom."""

    @abstractmethod
    async def scroll_into_view(self, handle: Any) -> None:
        """Bring an item into view so lazily rendered content is filled in."""

    @abstractmethod
    async def extract_item(self, handle: Any) -> CandidateItem | None:
        """Read title, company and identifiers from an item container."""

    @abstractmethod
    async def go_to_next_results_page(self) -> bool:
        """Click the next-page control. Returns False when there is none."""

    # --- detail pane ---

    @abstractmethod
    async def select_item(self, item: CandidateItem) -> None:
        """Open the item in the detail pane."""

    @abstractmethod
    async def read_job_detail(self) -> JobDetail:
        """Fields of the item currently shown in the detail pane."""

    @abstractmethod
    async def is_showing_item(self, item: CandidateItem) -> bool:
        """Whether the page still shows this item's details."""

    @abstractmethod
    async def reselect_item(self, item: CandidateItem) -> bool:
        """Find the item in the list again and select it. Returns False if not found."""

    @abstractmethod
    async def find_apply_control(self, strategy: ReopenStrategy, item: CandidateItem) -> Any | None:
        """Locate the quick-apply control using one lookup strategy."""

    # --- submission dialog ---

    @abstractmethod
    async def dialog_open(self) -> bool:
        """Whether the submission dialog is open."""

    @abstractmethod
    async def wait_for_dialog(self, timeout_ms: int = 5000) -> bool:
        """Wait for the submission dialog to open."""

    @abstractmethod
    async def primary_action(self) -> DialogAction:
        """The dialog's visible primary action."""

    @abstractmethod
    async def list_controls(self) -> list[FormControl]:
        """Labelled controls on the dialog's current page."""

    @abstractmethod
    async def set_control_value(self, control: FormControl, value: str) -> None:
        """Fill a control: text, option text, or "true"/"false" for checkboxes."""

    @abstractmethod
    async def has_validation_error(self) -> bool:
        """Whether the dialog shows an inline validation error."""

    @abstractmethod
    async def submission_confirmed(self) -> bool:
        """Whether the dialog shows the submission confirmation header."""

    @abstractmethod
    async def close_dialog(self) -> bool:
        """Click the dialog's close control. Returns False if absent."""

    @abstractmethod
    async def confirm_discard(self) -> bool:
        """Click the discard confirmation. Returns False if absent."""

    @abstractmethod
    async def uncheck_follow_toggle(self) -> bool:
        """Untick the default "follow company" checkbox. Returns True if changed."""

    # --- interstitials ---

    @abstractmethod
    async def dismiss_safety_reminder(self) -> bool:
        """Dismiss the safety reminder dialog. Returns True if one was shown."""

    @abstractmethod
    async def dismiss_save_confirmation(self) -> bool:
        """Dismiss the "save this application?" prompt. Returns True if one was shown."""

    @abstractmethod
    async def dismiss_post_submit_dialog(self, *, include_confirmation: bool = True) -> bool:
        """Dismiss one confirmation or upsell dialog. Returns True if one was shown.

        With include_confirmation=False the submission confirmation is left open.
        """
