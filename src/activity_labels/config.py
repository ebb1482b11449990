"""Configuration models and defaults for the activity label store."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

from .models import BubbleCenter


MAX_STORED_EXAMPLES_DEFAULT = 600
NOTIFICATION_INTERVAL_DEFAULT = 600
LOCATION_BUBBLE_CENTER_DEFAULT = BubbleCenter(latitude=0.0, longitude=0.0)


@dataclass(slots=True)
class StoreConfig:
    """Runtime configuration for the activity store."""

    minute: timedelta = timedelta(minutes=1)
    orphan_guard_band: timedelta = timedelta(seconds=60)

    @classmethod
    def from_values(cls, guard_band_seconds: float | None = None) -> "StoreConfig":
        guard_band = guard_band_seconds if guard_band_seconds is not None else 60.0
        return cls(orphan_guard_band=timedelta(seconds=max(guard_band, 0.0)))

    @property
    def minute_seconds(self) -> int:
        return int(self.minute.total_seconds())

    @property
    def guard_band_seconds(self) -> int:
        return int(self.orphan_guard_band.total_seconds())
