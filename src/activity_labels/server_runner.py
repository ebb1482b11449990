"""Helpers to launch the local JSON API."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import uvicorn

from .config import StoreConfig
from .paths import get_artifact_dir, get_db_path
from .webapp import create_app


def run_server(
    *,
    host: str = "127.0.0.1",
    port: int = 8766,
    db_path: Optional[Path] = None,
    artifact_dir: Optional[Path] = None,
    config: Optional[StoreConfig] = None,
    log_level: str = "info",
) -> None:
    """Start the FastAPI app under uvicorn until interrupted."""
    app = create_app(
        db_path=db_path or get_db_path(),
        artifact_dir=artifact_dir or get_artifact_dir(),
        config=config or StoreConfig(),
    )

    logging.getLogger("uvicorn.error").setLevel(log_level.upper())
    uvicorn.run(app, host=host, port=port, log_level=log_level)
