"""PersistenceStore: durable key/value storage with change notifications.

Backed by the SQLite connection from ``init_db``. Values are JSON. Other
processes (the CLI ``pause``/``stop`` commands) write through their own
store; a running process observes those writes by re-reading keys.
"""

import logging
import sqlite3
from collections.abc import Callable
from datetime import date
from typing import Any

from autoapply.core.db import (
    count_applied,
    delete_value,
    get_value,
    insert_applied_record,
    is_applied,
    list_applied,
    set_value,
)
from autoapply.core.schemas import AppliedRecord

logger = logging.getLogger(__name__)

# callback(key, new_value); new_value is None when the key was removed
ChangeListener = Callable[[str, Any], None]


class PersistenceStore:
    """Process-wide durable storage used by the scheduler, run context and ledger."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn
        self._listeners: list[ChangeListener] = []

    @property
    def conn(self) -> sqlite3.Connection:
        return self._conn

    def get(self, key: str, default: Any = None) -> Any:
        value = get_value(self._conn, key)
        return default if value is None else value

    def set(self, key: str, value: Any) -> None:
        set_value(self._conn, key, value)
        self._notify(key, value)

    def remove(self, key: str) -> None:
        if delete_value(self._conn, key):
            self._notify(key, None)

    def subscribe(self, listener: ChangeListener) -> Callable[[], None]:
        """Register a change listener. Returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, key: str, value: Any) -> None:
        for listener in list(self._listeners):
            try:
                listener(key, value)
            except Exception:
                logger.warning("Store listener failed for key '%s'", key, exc_info=True)

    # --- ledger ---

    def record_applied(self, record: AppliedRecord) -> bool:
        """Append to the day's ledger. Returns False for a same-day duplicate."""
        inserted = insert_applied_record(self._conn, record)
        if inserted:
            logger.info("Recorded application: %s @ %s", record.title, record.company)
        else:
            logger.info(
                "Already recorded today, skipping ledger write: %s @ %s",
                record.title, record.company,
            )
        return inserted

    def applied_count(self, target_date: date | None = None) -> int:
        return count_applied(self._conn, target_date)

    def applied_records(self, target_date: date | None = None) -> list[AppliedRecord]:
        return list_applied(self._conn, target_date)

    def was_applied(self, title: str, company: str, target_date: date | None = None) -> bool:
        return is_applied(self._conn, title, company, target_date)
