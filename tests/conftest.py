"""Pytest configuration and fixtures for activity-labels tests."""

from collections.abc import Iterator
from pathlib import Path
from typing import Optional

import pytest

from activity_labels.feedback import FeedbackQueue
from activity_labels.models import ActivityRecord, LabelSource, TimeGranule
from activity_labels.notify import ChangeNotifier
from activity_labels.store import ActivityStore

# A minute boundary: 1700000040 == 60 * 28333334
BASE = 1_700_000_040


class FakeClock:
    """Controllable replacement for TimeGranule.now."""

    def __init__(self, seconds: int) -> None:
        self.current = TimeGranule(seconds)

    def __call__(self) -> TimeGranule:
        return self.current

    def advance(self, seconds: int) -> None:
        self.current = self.current.shifted(seconds)


def minute(index: int) -> TimeGranule:
    """Timestamp of the index-th minute after BASE."""
    return TimeGranule(BASE + 60 * index)


@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "activity.sqlite3"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(BASE + 60 * 60)


@pytest.fixture
def feedback() -> FeedbackQueue:
    return FeedbackQueue()


@pytest.fixture
def notifier() -> ChangeNotifier:
    return ChangeNotifier()


@pytest.fixture
def events(notifier: ChangeNotifier) -> list[str]:
    """Collects every event published through the notifier fixture."""
    received: list[str] = []
    notifier.subscribe(received.append)
    return received


@pytest.fixture
def store(
    db_path: Path, clock: FakeClock, feedback: FeedbackQueue, notifier: ChangeNotifier
) -> Iterator[ActivityStore]:
    activity_store = ActivityStore(
        db_path, notifier=notifier, feedback=feedback, clock=clock
    )
    try:
        yield activity_store
    finally:
        activity_store.close()


def add_record(
    store: ActivityStore,
    index: int,
    *,
    server: Optional[str] = None,
    user: Optional[str] = None,
    secondary: tuple[str, ...] = (),
    moods: tuple[str, ...] = (),
) -> ActivityRecord:
    """Create the record for a minute and give it labels without feedback."""
    record = store.create_new(minute(index))
    assert record is not None
    if server is None and user is None and not secondary and not moods:
        return record
    source = LabelSource.USER_CORRECTED if user is not None else LabelSource.SERVER_PREDICTION
    store.set_values(
        record,
        source,
        server,
        user,
        list(secondary),
        list(moods),
        notify_downstream=False,
    )
    return record
