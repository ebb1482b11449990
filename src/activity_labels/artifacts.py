"""Lookup of the per-minute sensor archives kept on disk."""

from __future__ import annotations

from pathlib import Path

from .models import TimeGranule


ARTIFACT_SUFFIX = ".zip"


class ArtifactDirectory:
    """Answers whether a sensor archive is still pending for a minute."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def path_for(self, timestamp: TimeGranule) -> Path:
        return self.root / f"{timestamp.seconds}{ARTIFACT_SUFFIX}"

    def exists(self, timestamp: TimeGranule) -> bool:
        return self.path_for(timestamp).is_file()

    def __call__(self, timestamp: TimeGranule) -> bool:
        return self.exists(timestamp)
