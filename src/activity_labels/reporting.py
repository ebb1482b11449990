"""Simple reporting utilities for CLI output."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

import typer

from .models import LabelKind, TimeGranule
from .segments import ContinuousSegment
from .store import ActivityStore


class SummaryPrinter:
    """Render human-readable summaries in the console."""

    def __init__(self, store: ActivityStore) -> None:
        self.store = store

    def print_segments(
        self, start: TimeGranule, end: TimeGranule, *, merge: bool = True
    ) -> None:
        if merge:
            segments = self.store.continuous_activities(start, end)
        else:
            single = self.store.single_continuous_activity(start, end)
            segments = [single] if single else []
        if not segments:
            typer.echo("No activity recorded in the selected range.")
            return

        typer.echo(f"Activities {format_time(start)} - {format_time(end)}")
        typer.echo("-" * 60)
        for segment in segments:
            typer.echo(format_segment(segment))

    def print_frequent_labels(
        self, since: Optional[TimeGranule], kind: LabelKind, limit: int = 10
    ) -> None:
        counts = self.store.label_counts(since, kind)
        labels = self.store.frequent_labels(since, kind)
        if not labels:
            typer.echo(f"No {kind.value} labels reported yet.")
            return
        typer.echo(f"Most used {kind.value} labels:")
        for label in labels[:limit]:
            typer.echo(f"  {label:<30} {counts.get(label, 0):>6}")


def format_segment(segment: ContinuousSegment) -> str:
    main = segment.main_label or "(unlabeled)"
    extras = describe_labels(segment.secondary_labels, segment.mood_labels)
    line = (
        f"{format_time(segment.start_timestamp)} - {format_time(segment.end_timestamp)}"
        f"  {format_duration(segment.duration_seconds)}  {main}"
    )
    return f"{line}  [{extras}]" if extras else line


def describe_labels(secondary: Iterable[str], moods: Iterable[str]) -> str:
    parts = list(secondary) + [f"mood:{mood}" for mood in moods]
    return ", ".join(parts)


def format_time(timestamp: TimeGranule) -> str:
    return datetime.fromtimestamp(timestamp.seconds).strftime("%Y-%m-%d %H:%M")


def format_duration(seconds: float) -> str:
    total_seconds = int(round(seconds))
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"
