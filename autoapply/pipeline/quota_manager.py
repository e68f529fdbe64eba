"""Quota manager: daily submission cap, enforced before any item is opened.

The count is read from the date-bucketed ledger, so it resets on its own
when the day changes.
"""

import logging
from datetime import date

from autoapply.core.config import QuotaConfig
from autoapply.core.errors import QuotaExceededError
from autoapply.core.store import PersistenceStore

logger = logging.getLogger(__name__)


class QuotaManager:
    """Enforces the daily application limit.

    Usage::

        qm = QuotaManager(store, QuotaConfig(max_applications_per_day=50))
        qm.ensure_available()  # raises QuotaExceededError at the cap
    """

    def __init__(self, store: PersistenceStore, config: QuotaConfig) -> None:
        self._store = store
        self._config = config

    @property
    def limit(self) -> int:
        return self._config.max_applications_per_day

    def applied_today(self, today: date | None = None) -> int:
        return self._store.applied_count(today)

    def remaining(self, today: date | None = None) -> int:
        """How many more submissions are allowed today."""
        return max(0, self.limit - self.applied_today(today))

    def ensure_available(self, today: date | None = None) -> None:
        """Raise QuotaExceededError when today's count has reached the limit."""
        count = self.applied_today(today)
        if count >= self.limit:
            raise QuotaExceededError(count, self.limit)
        logger.debug("Quota OK: %d/%d applications today", count, self.limit)
