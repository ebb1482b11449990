"""FastAPI application that exposes a local JSON API over the activity store."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict

from .artifacts import ArtifactDirectory
from .config import StoreConfig
from .feedback import FeedbackQueue
from .labels import LABEL_SEPARATOR
from .models import ActivityRecord, LabelKind, LabelSource, Settings, TimeGranule
from .paths import get_artifact_dir, get_db_path
from .segments import ContinuousSegment
from .store import ActivityStore

logger = logging.getLogger(__name__)


class RecordCreate(BaseModel):
    timestamp: Optional[int] = None

    model_config = ConfigDict(extra="forbid")


class LabelUpdate(BaseModel):
    label_source: LabelSource = LabelSource.USER_CORRECTED
    main_label: Optional[str] = None
    secondary_labels: list[str] = []
    mood_labels: list[str] = []

    model_config = ConfigDict(extra="forbid")


class PredictionUpdate(BaseModel):
    prediction: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class SettingsUpdate(BaseModel):
    max_stored_examples: Optional[int] = None
    notification_interval_seconds: Optional[int] = None
    home_sensing_used: Optional[bool] = None
    location_bubble_used: Optional[bool] = None
    location_bubble_center: Optional[tuple[float, float]] = None

    model_config = ConfigDict(extra="forbid")


def create_app(
    *,
    db_path: Optional[Path] = None,
    artifact_dir: Optional[Path] = None,
    config: Optional[StoreConfig] = None,
) -> FastAPI:
    """Instantiate the FastAPI application."""
    feedback_queue = FeedbackQueue()
    store = ActivityStore(
        Path(db_path or get_db_path()),
        config=config or StoreConfig(),
        feedback=feedback_queue,
    )
    feedback_queue.max_pending = store.get_settings().max_stored_examples
    artifacts = ArtifactDirectory(Path(artifact_dir or get_artifact_dir()))

    app = FastAPI(title="Activity Labels", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.store = store
    app.state.artifacts = artifacts
    app.state.feedback_queue = feedback_queue

    @app.on_event("startup")
    async def _startup() -> None:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s %(message)s",
        )
        logger.info("Activity store open at %s", store.db_path)

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        store.close()
        logger.info("Activity store at %s closed", store.db_path)

    @app.get("/api/status")
    def status(request: Request) -> Dict[str, Any]:
        return {
            "database_path": str(request.app.state.store.db_path),
            "artifact_dir": str(request.app.state.artifacts.root),
            "pending_feedback": len(request.app.state.feedback_queue),
        }

    @app.post("/api/records", status_code=201)
    def create_record(payload: RecordCreate, request: Request) -> Dict[str, Any]:
        timestamp = TimeGranule(payload.timestamp) if payload.timestamp is not None else None
        record = request.app.state.store.create_new(timestamp)
        if record is None:
            raise HTTPException(status_code=409, detail="Record already exists")
        return _record_payload(record)

    @app.get("/api/records/{timestamp}")
    def get_record(timestamp: int, request: Request) -> Dict[str, Any]:
        return _record_payload(_require_record(request, timestamp))

    @app.delete("/api/records/{timestamp}")
    def delete_record(timestamp: int, request: Request) -> Dict[str, Any]:
        if not request.app.state.store.delete_record(TimeGranule(timestamp)):
            raise HTTPException(status_code=404, detail="Record not found")
        return {"deleted": timestamp}

    @app.put("/api/records/{timestamp}/labels")
    def update_labels(timestamp: int, payload: LabelUpdate, request: Request) -> Dict[str, Any]:
        main_label = _clean_label(payload.main_label)
        secondary = [label.strip() for label in payload.secondary_labels if label.strip()]
        moods = [label.strip() for label in payload.mood_labels if label.strip()]
        for label in [main_label or "", *secondary, *moods]:
            if LABEL_SEPARATOR in label:
                raise HTTPException(
                    status_code=400, detail=f"Label {label!r} contains {LABEL_SEPARATOR!r}"
                )
        record = _require_record(request, timestamp)
        request.app.state.store.set_user_labels(
            record, payload.label_source, main_label, secondary, moods
        )
        return _record_payload(record)

    @app.post("/api/feedback/drain")
    def drain_feedback(request: Request) -> Dict[str, Any]:
        records = request.app.state.feedback_queue.drain()
        logger.info("Handed %d feedback record(s) to a submitter", len(records))
        return {"records": [_record_payload(record) for record in records]}

    @app.put("/api/records/{timestamp}/prediction")
    def update_prediction(
        timestamp: int, payload: PredictionUpdate, request: Request
    ) -> Dict[str, Any]:
        record = _require_record(request, timestamp)
        request.app.state.store.set_server_prediction(record, _clean_label(payload.prediction))
        return _record_payload(record)

    @app.get("/api/segments")
    def segments(
        request: Request,
        start: Optional[int] = Query(
            default=None, description="First timestamp (seconds since epoch, inclusive)."
        ),
        end: Optional[int] = Query(
            default=None, description="Last timestamp (seconds since epoch, inclusive)."
        ),
        merge: bool = Query(
            default=True, description="Merge by labels; false wraps the range in one segment."
        ),
        split: bool = Query(default=False, description="Return one segment per minute."),
    ) -> Dict[str, Any]:
        store: ActivityStore = request.app.state.store
        start_ts, end_ts = _resolve_range(store, start, end)
        if merge:
            found = store.continuous_activities(start_ts, end_ts)
        else:
            single = store.single_continuous_activity(start_ts, end_ts)
            found = [single] if single else []
        if split:
            found = [piece for segment in found for piece in store.split_segment(segment)]
        return {
            "start": start_ts.seconds,
            "end": end_ts.seconds,
            "segments": [_segment_payload(segment) for segment in found],
        }

    @app.get("/api/labels/{kind}")
    def label_frequencies(
        kind: LabelKind,
        request: Request,
        since: Optional[int] = Query(
            default=None, description="Count from this timestamp; omit for all history."
        ),
    ) -> Dict[str, Any]:
        store: ActivityStore = request.app.state.store
        from_time = TimeGranule(since) if since is not None else None
        counts = store.label_counts(from_time, kind)
        ranked = store.frequent_labels(from_time, kind)
        return {
            "kind": kind.value,
            "labels": [{"label": label, "count": counts[label]} for label in ranked],
        }

    @app.get("/api/verified/latest")
    def latest_verified(
        request: Request,
        since: int = Query(default=0, description="Earliest timestamp to consider."),
    ) -> Dict[str, Any]:
        record = request.app.state.store.latest_verified_record(TimeGranule(since))
        return {"record": _record_payload(record) if record else None}

    @app.post("/api/maintenance/reclaim")
    def reclaim(
        request: Request,
        since: int = Query(default=0, description="Earliest timestamp to check."),
    ) -> Dict[str, Any]:
        deleted = request.app.state.store.clear_orphan_records(
            TimeGranule(since), request.app.state.artifacts
        )
        return {"deleted": [timestamp.seconds for timestamp in deleted]}

    @app.get("/api/settings")
    def get_settings(request: Request) -> Dict[str, Any]:
        return _settings_payload(request.app.state.store.get_settings())

    @app.patch("/api/settings")
    def update_settings(payload: SettingsUpdate, request: Request) -> Dict[str, Any]:
        updates = payload.model_dump(exclude_unset=True)
        for key in ("max_stored_examples", "notification_interval_seconds"):
            if key in updates and (updates[key] is None or updates[key] < 0):
                raise HTTPException(status_code=400, detail=f"{key} must be non-negative")
        settings = request.app.state.store.update_settings(**updates)
        request.app.state.feedback_queue.max_pending = settings.max_stored_examples
        return _settings_payload(settings)

    return app


def _require_record(request: Request, timestamp: int) -> ActivityRecord:
    record = request.app.state.store.fetch(TimeGranule(timestamp))
    if record is None:
        raise HTTPException(status_code=404, detail="Record not found")
    return record


def _resolve_range(
    store: ActivityStore, start: Optional[int], end: Optional[int]
) -> tuple[TimeGranule, TimeGranule]:
    end_ts = TimeGranule(end) if end is not None else store.now()
    if start is not None:
        return TimeGranule(start), end_ts
    day_start = _start_of_day(datetime.fromtimestamp(end_ts.seconds))
    return TimeGranule.from_datetime(day_start), end_ts


def _start_of_day(value: datetime) -> datetime:
    return value.replace(hour=0, minute=0, second=0, microsecond=0)


def _clean_label(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _record_payload(record: ActivityRecord) -> Dict[str, Any]:
    return {
        "timestamp": record.timestamp.seconds,
        "label_source": record.label_source.name,
        "server_main_label": record.server_main_label,
        "user_main_label": record.user_main_label,
        "main_label": record.main_label,
        "secondary_labels": list(record.secondary_labels),
        "mood_labels": list(record.mood_labels),
    }


def _segment_payload(segment: ContinuousSegment) -> Dict[str, Any]:
    return {
        "start_timestamp": segment.start_timestamp.seconds,
        "end_timestamp": segment.end_timestamp.seconds,
        "duration_seconds": segment.duration_seconds,
        "main_label": segment.main_label,
        "secondary_labels": segment.secondary_labels,
        "mood_labels": segment.mood_labels,
        "records": [_record_payload(record) for record in segment.records],
    }


def _settings_payload(settings: Settings) -> Dict[str, Any]:
    return {
        "uuid": settings.uuid,
        "max_stored_examples": settings.max_stored_examples,
        "notification_interval_seconds": settings.notification_interval_seconds,
        "home_sensing_used": settings.home_sensing_used,
        "location_bubble_used": settings.location_bubble_used,
        "location_bubble_center": {
            "latitude": settings.location_bubble_center.latitude,
            "longitude": settings.location_bubble_center.longitude,
        },
    }
