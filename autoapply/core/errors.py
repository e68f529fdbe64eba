"""Error taxonomy for the apply pipeline.

Fatality, as enforced by the orchestrator:
  ConfigurationError      — fatal to start, no cursor is created
  DialogNotFoundError     — fatal to the item, batch continues
  ControlNotFoundError    — fatal to the item, batch continues
  ValidationBlockedError  — fatal to the item (run-fatal when configured for the real run)
  AIUnavailableError      — fatal to the item when fetching answers, neutral score when scoring
  NavigationMismatchError — recoverable, triggers a redirect and a loop re-entry
  QuotaExceededError      — fatal to the run
  RunStoppedError         — user asked to stop, unwinds the current item
"""


class AutoApplyError(Exception):
    """Base class for errors raised by the apply pipeline."""


class ConfigurationError(AutoApplyError):
    """Campaign configuration cannot be started. The user must fix it first."""

    def __init__(self, message: str, *, settings_hint: str = "campaigns") -> None:
        super().__init__(message)
        self.settings_hint = settings_hint


class DialogNotFoundError(AutoApplyError):
    """The submission dialog did not open, or vanished mid-flow."""


class ControlNotFoundError(AutoApplyError):
    """An expected control (apply button, next/submit action) is missing."""


class ValidationBlockedError(AutoApplyError):
    """The dialog reported an inline validation error after advancing."""

    def __init__(self, message: str, *, phase: str) -> None:
        super().__init__(message)
        self.phase = phase


class AIUnavailableError(AutoApplyError):
    """The AI client returned no usable reply."""


class NavigationMismatchError(AutoApplyError):
    """The loaded page no longer matches the active segment's query."""

    def __init__(self, message: str, *, expected_url: str = "") -> None:
        super().__init__(message)
        self.expected_url = expected_url


class QuotaExceededError(AutoApplyError):
    """Daily submission cap reached."""

    def __init__(self, count: int, limit: int) -> None:
        super().__init__(
            f"Daily application limit reached: {count}/{limit} submitted today",
        )
        self.count = count
        self.limit = limit


class RunStoppedError(AutoApplyError):
    """A stop was requested while an item was in flight."""
