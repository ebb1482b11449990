"""Removal of orphan records left behind by recordings that never finished."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Callable

from . import db
from .models import TimeGranule

if TYPE_CHECKING:
    from .store import ActivityStore

logger = logging.getLogger(__name__)

ArtifactCheck = Callable[[TimeGranule], bool]


class OrphanReclaimer:
    """Deletes records that have no server prediction and no pending archive.

    Records from the last guard-band seconds are never touched: they may
    belong to the recording that is still in progress.
    """

    def __init__(self, store: "ActivityStore", artifact_exists: ArtifactCheck) -> None:
        self._store = store
        self._artifact_exists = artifact_exists

    def reclaim(self, from_timestamp: TimeGranule) -> list[TimeGranule]:
        """Delete orphans in [from_timestamp, now - guard band]; return their timestamps."""
        deleted: list[TimeGranule] = []
        with self._store.locked() as conn:
            cutoff = self._store.now().shifted(-self._store.config.guard_band_seconds)
            candidates = db.fetch_unpredicted_timestamps(conn, from_timestamp, cutoff)
            with db.transaction(conn):
                for timestamp in candidates:
                    if self._artifact_exists(timestamp):
                        # Still waiting for the server to predict this minute.
                        continue
                    affected = db.delete_activity(conn, timestamp)
                    if affected != 1:
                        logger.error(
                            "Deleting orphan %s affected %d records", timestamp, affected
                        )
                    if affected > 0:
                        logger.debug("Deleted orphan record %s", timestamp)
                        deleted.append(timestamp)

        logger.info(
            "Orphan cleanup from %s: %d candidates, %d deleted",
            from_timestamp,
            len(candidates),
            len(deleted),
        )
        if deleted:
            self._store.notifier.publish()
        return deleted
