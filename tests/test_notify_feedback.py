"""Tests for the change notifier and the feedback queue."""

import logging

import pytest

from activity_labels.feedback import FeedbackQueue
from activity_labels.models import ActivityRecord, TimeGranule
from activity_labels.notify import RECORDS_UPDATED, ChangeNotifier


def test_publish_reaches_every_listener() -> None:
    """Test that all subscribers receive the event."""
    notifier = ChangeNotifier()
    first: list[str] = []
    second: list[str] = []
    notifier.subscribe(first.append)
    notifier.subscribe(second.append)

    notifier.publish()

    assert first == [RECORDS_UPDATED]
    assert second == [RECORDS_UPDATED]


def test_publish_without_listeners() -> None:
    """Test that publishing to nobody is fine."""
    ChangeNotifier().publish()


def test_unsubscribe() -> None:
    """Test removing a listener through the returned callable."""
    notifier = ChangeNotifier()
    received: list[str] = []
    unsubscribe = notifier.subscribe(received.append)

    unsubscribe()
    unsubscribe()
    notifier.publish()

    assert received == []


def test_failing_listener_is_logged_and_skipped(caplog: pytest.LogCaptureFixture) -> None:
    """Test that one failing listener does not stop the others."""
    notifier = ChangeNotifier()
    received: list[str] = []

    def broken(event: str) -> None:
        raise RuntimeError("boom")

    notifier.subscribe(broken)
    notifier.subscribe(received.append)

    with caplog.at_level(logging.ERROR):
        notifier.publish()

    assert received == [RECORDS_UPDATED]
    assert any("failed to handle" in record.message for record in caplog.records)


def test_feedback_queue_keeps_latest_per_minute() -> None:
    """Test that re-queued minutes replace their pending entry."""
    queue = FeedbackQueue()
    record = ActivityRecord(timestamp=TimeGranule(60), user_main_label="walking")
    other = ActivityRecord(timestamp=TimeGranule(120), user_main_label="sitting")

    queue.add(record)
    queue.add(other)
    record.user_main_label = "running"
    queue(record)

    assert len(queue) == 2
    assert [item.user_main_label for item in queue.pending()] == ["sitting", "running"]
    assert [item.timestamp for item in queue.drain()] == [TimeGranule(120), TimeGranule(60)]
    assert len(queue) == 0


def test_feedback_queue_stores_copies() -> None:
    """Test that later changes to a record do not leak into the queue."""
    queue = FeedbackQueue()
    record = ActivityRecord(timestamp=TimeGranule(60), secondary_labels=["outdoors"])
    queue.add(record)
    record.secondary_labels.append("indoors")

    assert queue.drain()[0].secondary_labels == ["outdoors"]


def test_feedback_queue_drops_oldest_when_full() -> None:
    """Test the optional bound on pending entries."""
    queue = FeedbackQueue(max_pending=2)
    for seconds in (60, 120, 180):
        queue.add(ActivityRecord(timestamp=TimeGranule(seconds)))

    assert [item.timestamp for item in queue.drain()] == [TimeGranule(120), TimeGranule(180)]


def test_feedback_queue_lowering_bound_trims_oldest() -> None:
    """Test that shrinking max_pending drops the oldest entries at once."""
    queue = FeedbackQueue()
    for seconds in (60, 120, 180):
        queue.add(ActivityRecord(timestamp=TimeGranule(seconds)))

    queue.max_pending = 1

    assert len(queue) == 1
    assert queue.pending()[0].timestamp == TimeGranule(180)
