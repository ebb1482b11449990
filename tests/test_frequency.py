"""Tests for label counting and ranking."""

from activity_labels.frequency import count_labels, rank_labels
from activity_labels.models import ActivityRecord, LabelKind, TimeGranule


def _record(seconds: int, **labels: object) -> ActivityRecord:
    return ActivityRecord(timestamp=TimeGranule(seconds), **labels)  # type: ignore[arg-type]


def test_count_main_labels() -> None:
    """Test counting user-corrected main labels."""
    records = [
        _record(0, user_main_label="walking"),
        _record(60, user_main_label="walking"),
        _record(120, user_main_label="sitting"),
        _record(180, server_main_label="running"),
    ]

    counts = count_labels(records, LabelKind.MAIN)

    assert counts == {"walking": 2, "sitting": 1}
    assert [label for label, _ in rank_labels(counts)][0] == "walking"


def test_count_secondary_and_mood_occurrences() -> None:
    """Test that each tag occurrence is counted once per record."""
    records = [
        _record(0, secondary_labels=["outdoors", "with friends"], mood_labels=["happy"]),
        _record(60, secondary_labels=["outdoors"], mood_labels=[]),
    ]

    assert count_labels(records, LabelKind.SECONDARY) == {"outdoors": 2, "with friends": 1}
    assert count_labels(records, LabelKind.MOOD) == {"happy": 1}


def test_count_no_records() -> None:
    """Test that nothing is counted for an empty history."""
    assert count_labels([], LabelKind.MAIN) == {}


def test_rank_ties_keep_first_seen_order() -> None:
    """Test that equal counts keep the order in which labels first appeared."""
    records = [
        _record(0, mood_labels=["calm"]),
        _record(60, mood_labels=["happy"]),
        _record(120, mood_labels=["tired", "happy"]),
        _record(180, mood_labels=["calm"]),
    ]

    ranked = rank_labels(count_labels(records, LabelKind.MOOD))

    assert ranked == [("calm", 2), ("happy", 2), ("tired", 1)]
