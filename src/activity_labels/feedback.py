"""In-process queue of user label feedback awaiting submission."""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Callable, Optional

from .models import ActivityRecord, TimeGranule

logger = logging.getLogger(__name__)

FeedbackSink = Callable[[ActivityRecord], None]


class FeedbackQueue:
    """Keeps the latest labels of each record until a submitter drains them.

    Re-queuing a timestamp replaces its pending entry, so only the most recent
    labels of a minute are submitted.
    """

    def __init__(self, max_pending: Optional[int] = None) -> None:
        self._lock = threading.Lock()
        self._pending: OrderedDict[TimeGranule, ActivityRecord] = OrderedDict()
        self._max_pending = max_pending

    def __call__(self, record: ActivityRecord) -> None:
        self.add(record)

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def add(self, record: ActivityRecord) -> None:
        with self._lock:
            self._pending.pop(record.timestamp, None)
            self._pending[record.timestamp] = record.copy()
            self._trim_locked()
        logger.debug("Queued feedback for %s", record.timestamp)

    @property
    def max_pending(self) -> Optional[int]:
        return self._max_pending

    @max_pending.setter
    def max_pending(self, value: Optional[int]) -> None:
        with self._lock:
            self._max_pending = value
            self._trim_locked()

    def _trim_locked(self) -> None:
        if self._max_pending is None:
            return
        while len(self._pending) > self._max_pending:
            dropped, _ = self._pending.popitem(last=False)
            logger.warning("Feedback queue full; dropping %s", dropped)

    def pending(self) -> list[ActivityRecord]:
        with self._lock:
            return [record.copy() for record in self._pending.values()]

    def drain(self) -> list[ActivityRecord]:
        """Remove and return everything queued, oldest first."""
        with self._lock:
            records = list(self._pending.values())
            self._pending.clear()
        return records
