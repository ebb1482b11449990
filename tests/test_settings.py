"""Tests for the single settings row."""

import logging
import uuid
from pathlib import Path

import pytest

from activity_labels import db
from activity_labels.config import (
    LOCATION_BUBBLE_CENTER_DEFAULT,
    MAX_STORED_EXAMPLES_DEFAULT,
    NOTIFICATION_INTERVAL_DEFAULT,
)
from activity_labels.models import BubbleCenter, Settings
from activity_labels.store import ActivityStore


def test_settings_created_with_defaults(store: ActivityStore) -> None:
    """Test lazy creation of the settings row."""
    settings = store.get_settings()

    assert settings.max_stored_examples == MAX_STORED_EXAMPLES_DEFAULT
    assert settings.notification_interval_seconds == NOTIFICATION_INTERVAL_DEFAULT
    assert settings.home_sensing_used is False
    assert settings.location_bubble_used is False
    assert settings.location_bubble_center == LOCATION_BUBBLE_CENTER_DEFAULT
    assert settings.uuid == settings.uuid.upper()
    uuid.UUID(settings.uuid)


def test_settings_creation_is_idempotent(store: ActivityStore) -> None:
    """Test that repeated reads keep the same identity."""
    assert store.get_settings().uuid == store.get_settings().uuid
    with store.locked() as conn:
        assert len(db.fetch_settings_rows(conn)) == 1


def test_settings_uuid_survives_reopening(db_path: Path) -> None:
    """Test that the identity is persisted."""
    with ActivityStore(db_path) as first_store:
        first_uuid = first_store.get_settings().uuid
    with ActivityStore(db_path) as second_store:
        assert second_store.get_settings().uuid == first_uuid


def test_partial_update_leaves_other_fields(store: ActivityStore) -> None:
    """Test that only provided fields change."""
    original = store.get_settings()

    updated = store.update_settings(notification_interval_seconds=900)

    assert updated.notification_interval_seconds == 900
    assert updated.max_stored_examples == original.max_stored_examples
    assert updated.uuid == original.uuid
    assert store.get_settings() == updated


def test_update_flags_and_bubble_center(store: ActivityStore) -> None:
    """Test the boolean flags and the bubble centre."""
    updated = store.update_settings(
        home_sensing_used=True,
        location_bubble_used=True,
        location_bubble_center=(32.88, -117.23),
    )

    assert updated.home_sensing_used is True
    assert updated.location_bubble_used is True
    assert updated.location_bubble_center == BubbleCenter(32.88, -117.23)

    reset = store.update_settings(location_bubble_center=None)
    assert reset.location_bubble_center == LOCATION_BUBBLE_CENTER_DEFAULT
    assert reset.location_bubble_used is True


def test_update_before_first_read_creates_row(store: ActivityStore) -> None:
    """Test that an update works on a fresh database."""
    updated = store.update_settings(max_stored_examples=42)
    assert updated.max_stored_examples == 42
    with store.locked() as conn:
        assert len(db.fetch_settings_rows(conn)) == 1


def test_update_without_changes_returns_current(store: ActivityStore) -> None:
    """Test that an empty update is a plain read."""
    assert store.update_settings() == store.get_settings()


def test_duplicate_settings_rows_are_reported(
    store: ActivityStore, caplog: pytest.LogCaptureFixture
) -> None:
    """Test that extra rows are logged and the first row is still used."""
    first = store.get_settings()
    with store.locked() as conn:
        db.insert_settings(
            conn,
            Settings(
                uuid="SECOND",
                max_stored_examples=1,
                notification_interval_seconds=1,
                home_sensing_used=True,
                location_bubble_used=True,
                location_bubble_center=BubbleCenter(1.0, 1.0),
            ),
        )

    with caplog.at_level(logging.ERROR):
        settings = store.get_settings()

    assert settings.uuid == first.uuid
    assert any("settings records" in record.message for record in caplog.records)
