"""RunContext: the pause/stop signals, delay points and segment deadline of one run.

Only the orchestrator holds a RunContext; it hands it to the components it
drives. Every delay point is a suspension point where a stop is observed.
Pause/resume/stop requests arrive through the ``control`` store key, written
either in-process or by another process (the CLI).
"""

import asyncio
import logging
from datetime import datetime
from enum import Enum
from typing import Any

from autoapply.browser.actions import cancellable_sleep, random_duration
from autoapply.core.config import DelayConfig
from autoapply.core.store import PersistenceStore

logger = logging.getLogger(__name__)

CONTROL_KEY = "control"

# Longest uninterrupted wait before the control key is polled again
POLL_INTERVAL_S = 0.5


class DelayKind(str, Enum):
    VERY_SHORT = "very_short"
    SHORT = "short"
    LONG = "long"


class ControlCommand(str, Enum):
    PAUSE = "pause"
    RESUME = "resume"
    STOP = "stop"


def write_control(store: PersistenceStore, command: ControlCommand) -> None:
    """Request pause/resume/stop of whichever process is running."""
    store.set(CONTROL_KEY, {"command": command.value, "at": datetime.now().isoformat()})


class RunContext:
    """Cooperative cancellation, pause state and delays for one run."""

    def __init__(self, store: PersistenceStore, delays: DelayConfig) -> None:
        self._store = store
        self._delays = delays
        self._stop_event = asyncio.Event()
        self._paused = False
        self.segment_expired = False
        self._unsubscribe = store.subscribe(self._on_store_change)

    # --- signals ---

    @property
    def stopped(self) -> bool:
        self.refresh()
        return self._stop_event.is_set()

    @property
    def paused(self) -> bool:
        self.refresh()
        return self._paused and not self._stop_event.is_set()

    def refresh(self) -> None:
        """Re-read the control key written by other processes."""
        self._apply_control(self._store.get(CONTROL_KEY))

    def request_stop(self) -> None:
        write_control(self._store, ControlCommand.STOP)

    def request_pause(self) -> None:
        write_control(self._store, ControlCommand.PAUSE)

    def request_resume(self) -> None:
        write_control(self._store, ControlCommand.RESUME)

    def reset_controls(self) -> None:
        """Forget leftover commands from a previous run."""
        self._store.remove(CONTROL_KEY)
        self._paused = False
        self._stop_event.clear()

    def close(self) -> None:
        self._unsubscribe()

    # --- waiting ---

    async def sleep(self, seconds: float) -> bool:
        """Wait up to ``seconds``. Returns False as soon as a stop is observed."""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + max(seconds, 0.0)
        while True:
            if self.stopped:
                return False
            remaining = deadline - loop.time()
            if remaining <= 0:
                return True
            if not await cancellable_sleep(min(remaining, POLL_INTERVAL_S), self._stop_event):
                return False

    async def delay(self, kind: DelayKind) -> bool:
        """Sleep one of the configured delay points with jitter."""
        base = {
            DelayKind.VERY_SHORT: self._delays.very_short_s,
            DelayKind.SHORT: self._delays.short_s,
            DelayKind.LONG: self._delays.long_s,
        }[kind]
        duration = random_duration(base, base * (1.0 + self._delays.jitter))
        if duration <= 0:
            if self.stopped:
                return False
            return await cancellable_sleep(0, self._stop_event)
        return await self.sleep(duration)

    async def wait_while_paused(self) -> None:
        """Block while paused, polling at the very-short delay."""
        if not self.paused:
            return
        logger.info("Paused, waiting for resume or stop")
        while self.paused:
            await cancellable_sleep(
                max(self._delays.very_short_s, POLL_INTERVAL_S), self._stop_event,
            )
        if not self._stop_event.is_set():
            logger.info("Resumed")

    # --- Private helpers ---

    def _on_store_change(self, key: str, value: Any) -> None:
        if key == CONTROL_KEY:
            self._apply_control(value)

    def _apply_control(self, value: Any) -> None:
        command = value.get("command") if isinstance(value, dict) else None
        if command == ControlCommand.STOP.value:
            if not self._stop_event.is_set():
                logger.info("Stop requested")
            self._stop_event.set()
        elif command == ControlCommand.PAUSE.value:
            self._paused = True
        else:
            self._paused = False


class DeadlineTimer:
    """Marks the segment expired when its budget runs out.

    It only sets a flag; the orchestrator acts on it at its next iteration
    boundary so an in-flight dialog step is never torn.
    """

    def __init__(self, ctx: RunContext) -> None:
        self._ctx = ctx
        self._handle: asyncio.TimerHandle | None = None

    @property
    def armed(self) -> bool:
        return self._handle is not None

    def arm(self, seconds: float) -> None:
        self.cancel()
        self._ctx.segment_expired = False
        if seconds <= 0:
            self._ctx.segment_expired = True
            return
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(seconds, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _fire(self) -> None:
        self._handle = None
        self._ctx.segment_expired = True
        logger.info("Segment time budget used up")
