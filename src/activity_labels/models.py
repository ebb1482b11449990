"""Domain models for minute-level activity labels."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import NamedTuple, Optional


SECONDS_PER_MINUTE = 60


@dataclass(frozen=True, order=True, slots=True)
class TimeGranule:
    """A minute-resolution point in time, stored as seconds since the epoch.

    Producers are expected to truncate to a minute boundary; the value is
    not rounded here.
    """

    seconds: int

    @classmethod
    def now(cls) -> "TimeGranule":
        return cls(int(time.time()))

    @classmethod
    def from_datetime(cls, value: datetime) -> "TimeGranule":
        return cls(int(value.timestamp()))

    def truncated(self) -> "TimeGranule":
        return TimeGranule(self.seconds - self.seconds % SECONDS_PER_MINUTE)

    def to_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.seconds, tz=timezone.utc)

    def shifted(self, seconds: int) -> "TimeGranule":
        return TimeGranule(self.seconds + seconds)

    def is_later_than(self, other: "TimeGranule") -> bool:
        return self.seconds > other.seconds

    def __add__(self, seconds: int) -> "TimeGranule":
        if not isinstance(seconds, int):
            return NotImplemented
        return self.shifted(seconds)

    def __sub__(self, other: "TimeGranule") -> int:
        if not isinstance(other, TimeGranule):
            return NotImplemented
        return self.seconds - other.seconds

    def __int__(self) -> int:
        return self.seconds

    def __str__(self) -> str:
        return f"{self.seconds} ({self.to_datetime().strftime('%Y-%m-%d %H:%M:%S')} UTC)"


class LabelSource(IntEnum):
    """Provenance of the main activity label of a record."""

    DEFAULT = 0
    SERVER_PREDICTION = 1
    USER_CORRECTED = 2


class LabelKind(str, Enum):
    MAIN = "main"
    SECONDARY = "secondary"
    MOOD = "mood"


@dataclass(slots=True)
class ActivityRecord:
    """The stored label state for a single minute."""

    timestamp: TimeGranule
    label_source: LabelSource = LabelSource.DEFAULT
    server_main_label: Optional[str] = None
    user_main_label: Optional[str] = None
    secondary_labels: list[str] = field(default_factory=list)
    mood_labels: list[str] = field(default_factory=list)

    @property
    def main_label(self) -> Optional[str]:
        """The user's correction when present, otherwise the server prediction."""
        if self.user_main_label is not None:
            return self.user_main_label
        return self.server_main_label

    def has_user_provided_labels(self) -> bool:
        return self.user_main_label is not None

    def labels_equivalent(self, other: "ActivityRecord") -> bool:
        return (
            self.main_label == other.main_label
            and set(self.secondary_labels) == set(other.secondary_labels)
            and set(self.mood_labels) == set(other.mood_labels)
        )

    def copy(self) -> "ActivityRecord":
        return ActivityRecord(
            timestamp=self.timestamp,
            label_source=self.label_source,
            server_main_label=self.server_main_label,
            user_main_label=self.user_main_label,
            secondary_labels=list(self.secondary_labels),
            mood_labels=list(self.mood_labels),
        )


class BubbleCenter(NamedTuple):
    latitude: float
    longitude: float


@dataclass(frozen=True, slots=True)
class Settings:
    """Snapshot of the single settings row."""

    uuid: str
    max_stored_examples: int
    notification_interval_seconds: int
    home_sensing_used: bool
    location_bubble_used: bool
    location_bubble_center: BubbleCenter
