"""Helpers to flatten label sets into the stored CSV columns."""

from __future__ import annotations

from typing import Iterable, Optional

LABEL_SEPARATOR = ","


def make_csv(labels: Optional[Iterable[str]]) -> str:
    """Join labels with commas; no labels gives the empty string.

    Labels must not contain the separator themselves.
    """
    if not labels:
        return ""
    return LABEL_SEPARATOR.join(labels)


def parse_csv(csv: Optional[str]) -> list[str]:
    """Split a stored CSV column back into its ordered labels."""
    if not csv:
        return []
    return csv.split(LABEL_SEPARATOR)
