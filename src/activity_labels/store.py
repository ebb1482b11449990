"""The activity store: the single interface the application uses to touch data.

One ``ActivityStore`` is constructed per process and handed to every caller.
Every public operation runs under one store-wide re-entrant lock, so a
read-modify-write sequence is never interleaved with another operation.
Change notifications and feedback submissions happen after the local write
has been committed; their failures are logged and never undo the write.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterator, Optional, Sequence

from . import db
from .config import (
    LOCATION_BUBBLE_CENTER_DEFAULT,
    MAX_STORED_EXAMPLES_DEFAULT,
    NOTIFICATION_INTERVAL_DEFAULT,
    StoreConfig,
)
from .feedback import FeedbackSink
from .frequency import count_labels, rank_labels
from .models import (
    ActivityRecord,
    BubbleCenter,
    LabelKind,
    LabelSource,
    Settings,
    TimeGranule,
)
from .notify import ChangeNotifier
from .reclaim import ArtifactCheck, OrphanReclaimer
from .segments import (
    ContinuousSegment,
    merge_continuous_activities,
    single_segment_from_records,
    split_to_separate_segments,
)

logger = logging.getLogger(__name__)

_UNSET = object()


class ActivityStore:
    """Minute activity records and the settings row, behind one lock."""

    def __init__(
        self,
        db_path: Path | str,
        *,
        config: Optional[StoreConfig] = None,
        notifier: Optional[ChangeNotifier] = None,
        feedback: Optional[FeedbackSink] = None,
        clock: Callable[[], TimeGranule] = TimeGranule.now,
    ) -> None:
        self.db_path = db_path
        self.config = config or StoreConfig()
        self.notifier = notifier or ChangeNotifier()
        self._feedback = feedback
        self._clock = clock
        self._lock = threading.RLock()
        self._conn = db.open_database(db_path, check_same_thread=False)

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    def __enter__(self) -> "ActivityStore":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def now(self) -> TimeGranule:
        return self._clock()

    @contextmanager
    def locked(self) -> Iterator[sqlite3.Connection]:
        """Hold the store lock and expose the connection for a compound operation."""
        with self._lock:
            yield self._conn

    # Settings

    def get_settings(self) -> Settings:
        """Return the settings row, creating it with defaults if it is missing."""
        with self._lock:
            rows = db.fetch_settings_rows(self._conn)
            if not rows:
                logger.info("There is no settings record yet. Creating one.")
                return self._create_settings()
            if len(rows) > 1:
                logger.error("Found %d settings records; using the first.", len(rows))
            return db.row_to_settings(rows[0])

    def update_settings(
        self,
        *,
        max_stored_examples: Optional[int] = None,
        notification_interval_seconds: Optional[int] = None,
        home_sensing_used: Optional[bool] = None,
        location_bubble_used: Optional[bool] = None,
        location_bubble_center: object = _UNSET,
    ) -> Settings:
        """Change only the given settings fields and return the fresh row.

        Passing ``location_bubble_center=None`` resets the centre to the
        default coordinate.
        """
        changes: dict[str, object] = {
            "max_stored_examples": max_stored_examples,
            "notification_interval_seconds": notification_interval_seconds,
            "home_sensing_used": home_sensing_used,
            "location_bubble_used": location_bubble_used,
        }
        if location_bubble_center is not _UNSET:
            changes["location_bubble_center"] = (
                LOCATION_BUBBLE_CENTER_DEFAULT
                if location_bubble_center is None
                else BubbleCenter(*location_bubble_center)  # type: ignore[misc]
            )

        with self._lock:
            self.get_settings()
            affected = db.update_settings(self._conn, **changes)  # type: ignore[arg-type]
            if affected is not None:
                if affected <= 0:
                    logger.error("Settings update affected no records in the DB")
                elif affected > 1:
                    logger.error("Settings update affected %d records in the DB", affected)
            return self.get_settings()

    def _create_settings(self) -> Settings:
        settings = Settings(
            uuid=str(uuid.uuid4()).upper(),
            max_stored_examples=MAX_STORED_EXAMPLES_DEFAULT,
            notification_interval_seconds=NOTIFICATION_INTERVAL_DEFAULT,
            home_sensing_used=False,
            location_bubble_used=False,
            location_bubble_center=LOCATION_BUBBLE_CENTER_DEFAULT,
        )
        db.insert_settings(self._conn, settings)
        return settings

    # Activity records

    def create_new(self, timestamp: Optional[TimeGranule] = None) -> Optional[ActivityRecord]:
        """Insert an unlabeled record for a minute (the current one by default).

        Returns None, and leaves the existing record untouched, when the
        minute already has a record.
        """
        if timestamp is None:
            timestamp = self.now().truncated()
        with self._lock:
            if db.fetch_activity_rows(self._conn, timestamp):
                logger.error(
                    "Tried to create new activity with timestamp %s but there is already one.",
                    timestamp,
                )
                return None
            record = ActivityRecord(timestamp=timestamp)
            db.put_activity(self._conn, record)
        self._notify_changed()
        return record

    def fetch(self, timestamp: TimeGranule) -> Optional[ActivityRecord]:
        with self._lock:
            rows = db.fetch_activity_rows(self._conn, timestamp)
        if not rows:
            logger.info("No matching activity record for timestamp %s", timestamp)
            return None
        if len(rows) > 1:
            logger.error("Found %d records for timestamp %s", len(rows), timestamp)
        return db.row_to_activity(rows[0])

    def set_values(
        self,
        record: ActivityRecord,
        label_source: LabelSource,
        server_main_label: Optional[str],
        user_main_label: Optional[str],
        secondary_labels: Optional[Sequence[str]],
        mood_labels: Optional[Sequence[str]],
        *,
        notify_downstream: bool,
    ) -> None:
        """Overwrite every label of ``record`` in the DB and in the object itself.

        The passed object is mutated in place so long-lived references never
        diverge from the stored row. With ``notify_downstream`` the updated
        record is also handed to the feedback queue.
        """
        with self._lock:
            self._write_values_locked(
                record, label_source, server_main_label, user_main_label, secondary_labels, mood_labels
            )
        self._notify_changed()
        if notify_downstream:
            self._submit_feedback(record)

    def set_server_prediction(self, record: ActivityRecord, prediction: Optional[str]) -> None:
        """Store a new server prediction, keeping all other labels as they are."""
        with self._lock:
            self._write_values_locked(
                record,
                record.label_source,
                prediction,
                record.user_main_label,
                record.secondary_labels,
                record.mood_labels,
            )
        self._notify_changed()

    def set_user_labels(
        self,
        record: ActivityRecord,
        label_source: LabelSource,
        user_main_label: Optional[str],
        secondary_labels: Optional[Sequence[str]],
        mood_labels: Optional[Sequence[str]],
    ) -> None:
        """Apply labels reported by the user and queue them as feedback."""
        with self._lock:
            self._write_values_locked(
                record,
                label_source,
                record.server_main_label,
                user_main_label,
                secondary_labels,
                mood_labels,
            )
        self._notify_changed()
        self._submit_feedback(record)

    def _write_values_locked(
        self,
        record: ActivityRecord,
        label_source: LabelSource,
        server_main_label: Optional[str],
        user_main_label: Optional[str],
        secondary_labels: Optional[Sequence[str]],
        mood_labels: Optional[Sequence[str]],
    ) -> None:
        # Caller holds self._lock.
        secondary = list(secondary_labels or [])
        moods = list(mood_labels or [])
        affected = db.update_activity_labels(
            self._conn,
            record.timestamp,
            label_source=label_source,
            server_main_label=server_main_label,
            user_main_label=user_main_label,
            secondary_labels=secondary,
            mood_labels=moods,
        )
        if affected <= 0:
            logger.error("Update didn't affect any records. Timestamp %s", record.timestamp)
        elif affected > 1:
            logger.error("Update affected %d records. Timestamp %s", affected, record.timestamp)

        record.label_source = label_source
        record.server_main_label = server_main_label
        record.user_main_label = user_main_label
        record.secondary_labels = secondary
        record.mood_labels = moods

    def delete_record(self, timestamp: TimeGranule) -> bool:
        with self._lock:
            affected = db.delete_activity(self._conn, timestamp)
        if affected <= 0:
            logger.error("Delete didn't affect any records. Timestamp %s", timestamp)
            return False
        if affected > 1:
            logger.error("Delete affected %d records. Timestamp %s", affected, timestamp)
        self._notify_changed()
        return True

    # Range queries

    def records_in_range(self, start: TimeGranule, end: TimeGranule) -> list[ActivityRecord]:
        """Records with start <= timestamp <= end, ascending; empty when start > end."""
        with self._lock:
            rows = db.fetch_activities_in_range(self._conn, start, end)
        return [db.row_to_activity(row) for row in rows]

    def continuous_activities(
        self, start: TimeGranule, end: TimeGranule
    ) -> list[ContinuousSegment]:
        with self._lock:
            records = self.records_in_range(start, end)
        return merge_continuous_activities(records, minute_seconds=self.config.minute_seconds)

    def single_continuous_activity(
        self, start: TimeGranule, end: TimeGranule
    ) -> Optional[ContinuousSegment]:
        """All records of the range as one segment, whatever their labels.

        The result may mix different labels and span gaps; callers opt in to
        that.
        """
        with self._lock:
            records = self.records_in_range(start, end)
        return single_segment_from_records(records)

    @staticmethod
    def split_segment(segment: ContinuousSegment) -> list[ContinuousSegment]:
        return split_to_separate_segments(segment)

    def label_counts(
        self, from_time: Optional[TimeGranule], kind: LabelKind
    ) -> dict[str, int]:
        """Per-label minute counts from ``from_time`` (or all history) until now."""
        start = from_time if from_time is not None else TimeGranule(0)
        with self._lock:
            records = self.records_in_range(start, self.now())
        return count_labels(records, kind)

    def frequent_labels(
        self, from_time: Optional[TimeGranule], kind: LabelKind
    ) -> list[str]:
        """Used labels in descending order of frequency (ties in first-seen order)."""
        ranked = rank_labels(self.label_counts(from_time, kind))
        for label, count in ranked:
            logger.debug("Frequently used. label: %s. Count: %d.", label, count)
        return [label for label, _ in ranked]

    def latest_verified_record(self, start_from: TimeGranule) -> Optional[ActivityRecord]:
        """The newest record since ``start_from`` that carries user labels."""
        with self._lock:
            records = self.records_in_range(start_from, self.now())
        for record in reversed(records):
            if record.has_user_provided_labels():
                return record
        return None

    # Maintenance

    def clear_orphan_records(
        self, from_timestamp: TimeGranule, artifact_exists: ArtifactCheck
    ) -> list[TimeGranule]:
        reclaimer = OrphanReclaimer(self, artifact_exists)
        return reclaimer.reclaim(from_timestamp)

    # Outgoing events

    def _notify_changed(self) -> None:
        self.notifier.publish()

    def _submit_feedback(self, record: ActivityRecord) -> None:
        if self._feedback is None:
            return
        try:
            self._feedback(record.copy())
        except Exception:
            logger.exception("Failed to queue feedback for %s", record.timestamp)
