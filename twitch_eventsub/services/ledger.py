import logging
from collections import OrderedDict
from datetime import timedelta
from threading import Lock
from typing import Callable, Optional

import pendulum
from pendulum import DateTime

logger = logging.getLogger(__name__)


class NotificationLedger:
    """Remembers delivery ids so retried notifications are processed once.

    Without a retention window the history grows for the lifetime of the
    process. With one, ids older than the window are forgotten and a very
    late retry of such an id would be processed again.
    """

    def __init__(
        self,
        retention: Optional[float] = None,
        clock: Callable[[], DateTime] = lambda: pendulum.now("UTC"),
    ) -> None:
        self._history: OrderedDict[str, DateTime] = OrderedDict()
        self._retention = retention
        self._clock = clock
        self._lock = Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._history)

    def __contains__(self, message_id: object) -> bool:
        with self._lock:
            return message_id in self._history

    def seen(self, message_id: str) -> bool:
        """Return True if the id was recorded before, otherwise record it."""
        now = self._clock()
        with self._lock:
            self._evict(now)
            if message_id in self._history:
                return True
            self._history[message_id] = now
            return False

    def _evict(self, now: DateTime) -> None:
        if self._retention is None:
            return
        cutoff = now - timedelta(seconds=self._retention)
        evicted = 0
        # Insertion order is arrival order, so the oldest ids come first.
        while self._history:
            message_id, first_seen = next(iter(self._history.items()))
            if first_seen > cutoff:
                break
            del self._history[message_id]
            evicted += 1
        if evicted:
            logger.debug(f"Evicted {evicted} delivery ids from the ledger")
