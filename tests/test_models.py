"""Tests for the domain models and label CSV helpers."""

from datetime import datetime, timezone

import pytest

from activity_labels.labels import make_csv, parse_csv
from activity_labels.models import ActivityRecord, LabelSource, TimeGranule


def test_time_granule_ordering_and_arithmetic() -> None:
    """Test comparisons and second-based arithmetic."""
    early = TimeGranule(120)
    late = TimeGranule(180)
    assert early < late
    assert late.is_later_than(early)
    assert not early.is_later_than(early)
    assert early + 60 == late
    assert late - early == 60
    assert early.shifted(-60) == TimeGranule(60)
    assert TimeGranule(120) == TimeGranule(120)
    assert int(late) == 180


def test_time_granule_truncates_to_minute() -> None:
    """Test truncation to the enclosing minute boundary."""
    assert TimeGranule(1_700_000_099).truncated() == TimeGranule(1_700_000_040)
    assert TimeGranule(1_700_000_040).truncated() == TimeGranule(1_700_000_040)


def test_time_granule_is_immutable() -> None:
    """Test that a granule cannot be reassigned."""
    granule = TimeGranule(60)
    with pytest.raises(AttributeError):
        granule.seconds = 120  # type: ignore[misc]


def test_time_granule_datetime_conversion() -> None:
    """Test conversion to and from aware datetimes."""
    value = datetime(2023, 11, 14, 22, 14, tzinfo=timezone.utc)
    granule = TimeGranule.from_datetime(value)
    assert granule.to_datetime() == value


def test_record_defaults() -> None:
    """Test that a fresh record carries no labels."""
    record = ActivityRecord(timestamp=TimeGranule(60))
    assert record.label_source is LabelSource.DEFAULT
    assert record.server_main_label is None
    assert record.user_main_label is None
    assert record.secondary_labels == []
    assert record.mood_labels == []
    assert record.main_label is None
    assert not record.has_user_provided_labels()


def test_main_label_prefers_user_correction() -> None:
    """Test that the user's correction overrides the server prediction."""
    record = ActivityRecord(timestamp=TimeGranule(60), server_main_label="sitting")
    assert record.main_label == "sitting"
    record.user_main_label = "walking"
    assert record.main_label == "walking"
    assert record.has_user_provided_labels()


def test_labels_equivalent_ignores_order() -> None:
    """Test label equivalence on resolved main label and unordered tag sets."""
    first = ActivityRecord(
        timestamp=TimeGranule(60),
        user_main_label="walking",
        secondary_labels=["outdoors", "with friends"],
        mood_labels=["happy", "calm"],
    )
    second = ActivityRecord(
        timestamp=TimeGranule(120),
        server_main_label="walking",
        secondary_labels=["with friends", "outdoors"],
        mood_labels=["calm", "happy"],
    )
    assert first.labels_equivalent(second)

    second.mood_labels = ["calm"]
    assert not first.labels_equivalent(second)


def test_copy_is_independent() -> None:
    """Test that copies do not share label lists."""
    record = ActivityRecord(timestamp=TimeGranule(60), secondary_labels=["outdoors"])
    clone = record.copy()
    clone.secondary_labels.append("indoors")
    assert record.secondary_labels == ["outdoors"]
    assert clone == ActivityRecord(
        timestamp=TimeGranule(60), secondary_labels=["outdoors", "indoors"]
    )


@pytest.mark.parametrize(
    "labels",
    [
        [],
        ["walking"],
        ["at home", "with family", "eating"],
        ["zeta", "alpha"],
    ],
)
def test_label_csv_round_trip(labels: list[str]) -> None:
    """Test that serialized label sets come back unchanged and in order."""
    assert parse_csv(make_csv(labels)) == labels


def test_label_csv_empty_values() -> None:
    """Test the empty collection and empty string conventions."""
    assert make_csv([]) == ""
    assert make_csv(None) == ""
    assert parse_csv("") == []
    assert parse_csv(None) == []
    assert make_csv(["a", "b"]) == "a,b"
