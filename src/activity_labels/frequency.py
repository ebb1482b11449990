"""Label usage statistics."""

from __future__ import annotations

from collections import Counter
from typing import Iterable, Mapping

from .models import ActivityRecord, LabelKind


def count_labels(records: Iterable[ActivityRecord], kind: LabelKind) -> dict[str, int]:
    """Count how many minutes each label was reported for.

    Only user corrections count for main labels; server predictions are not
    confirmed by the user. Keys appear in first-seen order.
    """
    counts: Counter[str] = Counter()
    for record in records:
        if kind is LabelKind.MAIN:
            if record.user_main_label is not None:
                counts[record.user_main_label] += 1
        elif kind is LabelKind.SECONDARY:
            counts.update(record.secondary_labels)
        elif kind is LabelKind.MOOD:
            counts.update(record.mood_labels)
        else:
            raise ValueError(f"Unknown label kind: {kind!r}")
    return {label: count for label, count in counts.items() if count > 0}


def rank_labels(counts: Mapping[str, int]) -> list[tuple[str, int]]:
    """Order labels by descending count; ties keep the mapping's order."""
    return sorted(counts.items(), key=lambda item: item[1], reverse=True)
