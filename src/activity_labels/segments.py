"""Grouping of minute records into continuous activities."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from .models import SECONDS_PER_MINUTE, ActivityRecord, TimeGranule


@dataclass(frozen=True, slots=True)
class ContinuousSegment:
    """One or more minute records treated as a single activity.

    Segments are derived on read and never stored.
    """

    records: tuple[ActivityRecord, ...]

    def __post_init__(self) -> None:
        records = tuple(self.records)
        if not records:
            raise ValueError("A continuous segment needs at least one record")
        object.__setattr__(self, "records", records)

    @property
    def start_timestamp(self) -> TimeGranule:
        return self.records[0].timestamp

    @property
    def end_timestamp(self) -> TimeGranule:
        return self.records[-1].timestamp

    @property
    def duration_seconds(self) -> int:
        return self.end_timestamp - self.start_timestamp + SECONDS_PER_MINUTE

    @property
    def main_label(self) -> Optional[str]:
        return self.records[0].main_label

    @property
    def secondary_labels(self) -> list[str]:
        return list(self.records[0].secondary_labels)

    @property
    def mood_labels(self) -> list[str]:
        return list(self.records[0].mood_labels)

    def timestamps(self) -> list[TimeGranule]:
        return [record.timestamp for record in self.records]

    def __len__(self) -> int:
        return len(self.records)


def merge_continuous_activities(
    records: Sequence[ActivityRecord], *, minute_seconds: int = SECONDS_PER_MINUTE
) -> list[ContinuousSegment]:
    """Group ascending records into maximal runs of equivalent labels.

    A run breaks when labels differ or when the next record is not exactly
    one minute after the previous one.
    """
    segments: list[ContinuousSegment] = []
    current: list[ActivityRecord] = []
    for record in records:
        if current and _continues(current[-1], record, minute_seconds):
            current.append(record)
            continue
        if current:
            segments.append(ContinuousSegment(current))
        current = [record]
    if current:
        segments.append(ContinuousSegment(current))
    return segments


def single_segment_from_records(
    records: Sequence[ActivityRecord],
) -> Optional[ContinuousSegment]:
    """Wrap every record in one segment, ignoring gaps and label changes."""
    if not records:
        return None
    return ContinuousSegment(records)


def split_to_separate_segments(segment: ContinuousSegment) -> list[ContinuousSegment]:
    """Break a segment into one segment per minute record, keeping order."""
    return [ContinuousSegment([record]) for record in segment.records]


def _continues(previous: ActivityRecord, record: ActivityRecord, minute_seconds: int) -> bool:
    return (
        record.timestamp - previous.timestamp == minute_seconds
        and previous.labels_equivalent(record)
    )
