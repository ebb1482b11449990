"""SQLite database layer for minute activity records and the settings row."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from .labels import make_csv, parse_csv
from .models import ActivityRecord, BubbleCenter, LabelSource, Settings, TimeGranule


SCHEMA_VERSION = 1

ACTIVITY_COLUMNS = (
    "timestamp",
    "label_source",
    "main_activity_server_prediction",
    "main_activity_user_correction",
    "secondary_activities_csv",
    "moods_csv",
)

SETTINGS_COLUMNS = (
    "uuid",
    "max_stored_examples",
    "notification_interval_seconds",
    "home_sensing",
    "bubble_used",
    "bubble_center_lat",
    "bubble_center_long",
)

_UNSET = object()


def open_database(path: Path | str, *, check_same_thread: bool = True) -> sqlite3.Connection:
    """Open (and initialize) the SQLite database."""
    conn = sqlite3.connect(
        path,
        isolation_level=None,
        check_same_thread=check_same_thread,
    )
    conn.row_factory = sqlite3.Row
    initialize_schema(conn)
    return conn


@contextmanager
def transaction(conn: sqlite3.Connection) -> Iterator[sqlite3.Connection]:
    """Group several statements so they commit or roll back together."""
    conn.execute("BEGIN")
    try:
        yield conn
    except BaseException:
        conn.execute("ROLLBACK")
        raise
    else:
        conn.execute("COMMIT")


def initialize_schema(conn: sqlite3.Connection) -> None:
    version = conn.execute("PRAGMA user_version;").fetchone()[0]
    if version not in (0, SCHEMA_VERSION):
        # Stored data from another schema version is discarded.
        conn.executescript(
            """
            DROP TABLE IF EXISTS activities;
            DROP TABLE IF EXISTS settings;
            """
        )
    conn.executescript(
        f"""
        CREATE TABLE IF NOT EXISTS activities (
            timestamp INTEGER PRIMARY KEY,
            label_source INTEGER,
            main_activity_server_prediction TEXT,
            main_activity_user_correction TEXT,
            secondary_activities_csv TEXT,
            moods_csv TEXT
        );

        CREATE TABLE IF NOT EXISTS settings (
            uuid TEXT PRIMARY KEY,
            max_stored_examples INTEGER,
            notification_interval_seconds INTEGER,
            home_sensing INTEGER,
            bubble_used INTEGER,
            bubble_center_lat DOUBLE PRECISION,
            bubble_center_long DOUBLE PRECISION
        );

        PRAGMA user_version = {SCHEMA_VERSION};
        """
    )


# Activity records


def put_activity(conn: sqlite3.Connection, record: ActivityRecord) -> None:
    """Write a record, replacing any row stored under the same timestamp."""
    conn.execute(
        """
        INSERT INTO activities (
            timestamp,
            label_source,
            main_activity_server_prediction,
            main_activity_user_correction,
            secondary_activities_csv,
            moods_csv
        ) VALUES (?, ?, ?, ?, ?, ?)
        ON CONFLICT(timestamp) DO UPDATE SET
            label_source = excluded.label_source,
            main_activity_server_prediction = excluded.main_activity_server_prediction,
            main_activity_user_correction = excluded.main_activity_user_correction,
            secondary_activities_csv = excluded.secondary_activities_csv,
            moods_csv = excluded.moods_csv
        """,
        (
            record.timestamp.seconds,
            int(record.label_source),
            record.server_main_label,
            record.user_main_label,
            make_csv(record.secondary_labels),
            make_csv(record.mood_labels),
        ),
    )


def fetch_activity_rows(conn: sqlite3.Connection, timestamp: TimeGranule) -> list[sqlite3.Row]:
    """Fetch the rows stored for one timestamp (normally zero or one)."""
    return list(
        conn.execute(
            f"SELECT {', '.join(ACTIVITY_COLUMNS)} FROM activities WHERE timestamp = ?",
            (timestamp.seconds,),
        )
    )


def fetch_activities_in_range(
    conn: sqlite3.Connection, start: TimeGranule, end: TimeGranule
) -> list[sqlite3.Row]:
    """Fetch rows with start <= timestamp <= end in ascending time order."""
    if start.is_later_than(end):
        return []
    return list(
        conn.execute(
            f"""
            SELECT {', '.join(ACTIVITY_COLUMNS)}
            FROM activities
            WHERE timestamp >= ? AND timestamp <= ?
            ORDER BY timestamp ASC;
            """,
            (start.seconds, end.seconds),
        )
    )


def fetch_unpredicted_timestamps(
    conn: sqlite3.Connection, start: TimeGranule, end: TimeGranule
) -> list[TimeGranule]:
    """Timestamps in [start, end] whose server prediction is still missing."""
    if start.is_later_than(end):
        return []
    rows = conn.execute(
        """
        SELECT timestamp
        FROM activities
        WHERE timestamp >= ? AND timestamp <= ?
            AND main_activity_server_prediction IS NULL
        ORDER BY timestamp ASC;
        """,
        (start.seconds, end.seconds),
    )
    return [TimeGranule(row["timestamp"]) for row in rows]


def update_activity_labels(
    conn: sqlite3.Connection,
    timestamp: TimeGranule,
    *,
    label_source: LabelSource,
    server_main_label: Optional[str],
    user_main_label: Optional[str],
    secondary_labels: Optional[list[str]],
    mood_labels: Optional[list[str]],
) -> int:
    """Rewrite every label column of a record; returns the affected row count."""
    cur = conn.execute(
        """
        UPDATE activities SET
            label_source = ?,
            main_activity_server_prediction = ?,
            main_activity_user_correction = ?,
            secondary_activities_csv = ?,
            moods_csv = ?
        WHERE timestamp = ?
        """,
        (
            int(label_source),
            server_main_label,
            user_main_label,
            make_csv(secondary_labels),
            make_csv(mood_labels),
            timestamp.seconds,
        ),
    )
    return cur.rowcount


def delete_activity(conn: sqlite3.Connection, timestamp: TimeGranule) -> int:
    cur = conn.execute("DELETE FROM activities WHERE timestamp = ?", (timestamp.seconds,))
    return cur.rowcount


def row_to_activity(row: Optional[sqlite3.Row]) -> ActivityRecord:
    """Build an ActivityRecord from a row of the activities table."""
    if row is None:
        raise ValueError("Cannot extract an activity record from a missing row")
    return ActivityRecord(
        timestamp=TimeGranule(row["timestamp"]),
        label_source=LabelSource(row["label_source"]),
        server_main_label=row["main_activity_server_prediction"],
        user_main_label=row["main_activity_user_correction"],
        secondary_labels=parse_csv(row["secondary_activities_csv"]),
        mood_labels=parse_csv(row["moods_csv"]),
    )


# Settings


def fetch_settings_rows(conn: sqlite3.Connection) -> list[sqlite3.Row]:
    return list(
        conn.execute(f"SELECT {', '.join(SETTINGS_COLUMNS)} FROM settings ORDER BY rowid")
    )


def insert_settings(conn: sqlite3.Connection, settings: Settings) -> None:
    conn.execute(
        f"INSERT INTO settings ({', '.join(SETTINGS_COLUMNS)}) VALUES (?, ?, ?, ?, ?, ?, ?)",
        (
            settings.uuid,
            settings.max_stored_examples,
            settings.notification_interval_seconds,
            1 if settings.home_sensing_used else 0,
            1 if settings.location_bubble_used else 0,
            settings.location_bubble_center.latitude,
            settings.location_bubble_center.longitude,
        ),
    )


def update_settings(
    conn: sqlite3.Connection,
    *,
    max_stored_examples: Optional[int] = None,
    notification_interval_seconds: Optional[int] = None,
    home_sensing_used: Optional[bool] = None,
    location_bubble_used: Optional[bool] = None,
    location_bubble_center: object = _UNSET,
) -> Optional[int]:
    """Update only the provided settings columns.

    Returns the affected row count, or None when nothing was provided.
    """
    fields: list[str] = []
    params: list[object] = []

    if max_stored_examples is not None:
        fields.append("max_stored_examples = ?")
        params.append(max_stored_examples)
    if notification_interval_seconds is not None:
        fields.append("notification_interval_seconds = ?")
        params.append(notification_interval_seconds)
    if home_sensing_used is not None:
        fields.append("home_sensing = ?")
        params.append(1 if home_sensing_used else 0)
    if location_bubble_used is not None:
        fields.append("bubble_used = ?")
        params.append(1 if location_bubble_used else 0)
    if location_bubble_center is not _UNSET:
        center = BubbleCenter(*location_bubble_center)  # type: ignore[misc]
        fields.append("bubble_center_lat = ?")
        params.append(center.latitude)
        fields.append("bubble_center_long = ?")
        params.append(center.longitude)

    if not fields:
        return None

    cur = conn.execute(f"UPDATE settings SET {', '.join(fields)}", params)
    return cur.rowcount


def row_to_settings(row: Optional[sqlite3.Row]) -> Settings:
    if row is None:
        raise ValueError("Cannot extract settings from a missing row")
    return Settings(
        uuid=row["uuid"],
        max_stored_examples=row["max_stored_examples"],
        notification_interval_seconds=row["notification_interval_seconds"],
        home_sensing_used=row["home_sensing"] > 0,
        location_bubble_used=row["bubble_used"] > 0,
        location_bubble_center=BubbleCenter(
            latitude=row["bubble_center_lat"],
            longitude=row["bubble_center_long"],
        ),
    )
