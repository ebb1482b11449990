"""Local change notifications for the activity store."""

from __future__ import annotations

import logging
import threading
from typing import Callable

logger = logging.getLogger(__name__)

RECORDS_UPDATED = "activity_labels.records_updated"

Listener = Callable[[str], None]


class ChangeNotifier:
    """Broadcasts a payload-less "records updated" event to local listeners.

    Publishing never raises: a failing listener is logged and skipped.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: list[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; the returned callable removes it again."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            self.unsubscribe(listener)

        return unsubscribe

    def unsubscribe(self, listener: Listener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def publish(self, event: str = RECORDS_UPDATED) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(event)
            except Exception:
                logger.exception("Listener %r failed to handle %s", listener, event)
