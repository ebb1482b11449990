"""Command-line interface for the activity label store."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Iterator, List, Optional

import typer

from .artifacts import ArtifactDirectory
from .config import StoreConfig
from .models import LabelKind, LabelSource, TimeGranule
from .paths import get_artifact_dir, get_db_path
from .server_runner import run_server
from .store import ActivityStore

app = typer.Typer(help="Per-minute activity labels and continuous activities.")


@app.callback(no_args_is_help=True)
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logs.")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )


DB_OPTION = typer.Option(
    None, "--db", path_type=Path, help="Location of the activity SQLite database."
)


@app.command()
def record(
    at: Optional[str] = typer.Option(
        None, "--at", help="Minute to record (epoch seconds or ISO time). Defaults to now."
    ),
    db_path: Optional[Path] = DB_OPTION,
) -> None:
    """Start a new, unlabeled minute record."""
    timestamp = _parse_time(at).truncated() if at else None
    with _open_store(db_path) as store:
        created = store.create_new(timestamp)
    if created is None:
        typer.echo("A record already exists for that minute.", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Created record {created.timestamp.seconds}")


@app.command()
def label(
    timestamp: str = typer.Argument(..., help="Minute of the record (epoch seconds or ISO time)."),
    main_label: Optional[str] = typer.Option(None, "--main", help="Main activity."),
    secondary: List[str] = typer.Option([], "--secondary", "-s", help="Secondary activity."),
    mood: List[str] = typer.Option([], "--mood", "-m", help="Mood."),
    db_path: Optional[Path] = DB_OPTION,
) -> None:
    """Apply user-confirmed labels to a minute record."""
    with _open_store(db_path) as store:
        target = _require_record(store, _parse_time(timestamp))
        store.set_user_labels(
            target,
            LabelSource.USER_CORRECTED,
            main_label,
            secondary,
            mood,
        )
    typer.echo(f"Labeled {target.timestamp.seconds}: {target.main_label or '(none)'}")


@app.command()
def predict(
    timestamp: str = typer.Argument(..., help="Minute of the record (epoch seconds or ISO time)."),
    prediction: str = typer.Argument(..., help="Main activity predicted by the server."),
    db_path: Optional[Path] = DB_OPTION,
) -> None:
    """Store a server prediction for a minute record."""
    with _open_store(db_path) as store:
        target = _require_record(store, _parse_time(timestamp))
        store.set_server_prediction(target, prediction)
    typer.echo(f"Prediction for {target.timestamp.seconds}: {prediction}")


@app.command()
def show(
    start: Optional[str] = typer.Option(
        None, "--start", help="First minute (epoch seconds or ISO time). Defaults to today."
    ),
    end: Optional[str] = typer.Option(
        None, "--end", help="Last minute (epoch seconds or ISO time). Defaults to now."
    ),
    merge: bool = typer.Option(
        True,
        "--merge/--no-merge",
        help="Merge minutes by labels, or show the whole range as one activity.",
    ),
    db_path: Optional[Path] = DB_OPTION,
) -> None:
    """Print continuous activities for a time range."""
    from .reporting import SummaryPrinter

    with _open_store(db_path) as store:
        end_ts = _parse_time(end) if end else store.now()
        if start:
            start_ts = _parse_time(start)
        else:
            day = datetime.fromtimestamp(end_ts.seconds)
            start_ts = TimeGranule.from_datetime(
                day.replace(hour=0, minute=0, second=0, microsecond=0)
            )
        SummaryPrinter(store).print_segments(start_ts, end_ts, merge=merge)


@app.command()
def frequent(
    kind: LabelKind = typer.Argument(LabelKind.MAIN, help="Which labels to rank."),
    since: Optional[str] = typer.Option(
        None, "--since", help="Count from this time (epoch seconds or ISO). Defaults to all history."
    ),
    limit: int = typer.Option(10, "--limit", min=1, help="Number of labels to show."),
    db_path: Optional[Path] = DB_OPTION,
) -> None:
    """Rank labels by how many minutes they were reported for."""
    from .reporting import SummaryPrinter

    since_ts = _parse_time(since) if since else None
    with _open_store(db_path) as store:
        SummaryPrinter(store).print_frequent_labels(since_ts, kind, limit=limit)


@app.command()
def reclaim(
    since: Optional[str] = typer.Option(
        None, "--since", help="Earliest minute to check (epoch seconds or ISO). Defaults to all."
    ),
    artifact_dir: Optional[Path] = typer.Option(
        None, "--artifacts", path_type=Path, help="Directory of pending sensor archives."
    ),
    guard_band: float = typer.Option(
        60.0, "--guard-band", min=0.0, help="Seconds of recent records never touched."
    ),
    db_path: Optional[Path] = DB_OPTION,
) -> None:
    """Delete records with no prediction whose sensor archive is gone."""
    since_ts = _parse_time(since) if since else TimeGranule(0)
    artifacts = ArtifactDirectory(artifact_dir or get_artifact_dir())
    config = StoreConfig.from_values(guard_band_seconds=guard_band)
    with _open_store(db_path, config=config) as store:
        deleted = store.clear_orphan_records(since_ts, artifacts)
    typer.echo(f"Deleted {len(deleted)} orphan record(s).")


@app.command()
def settings(
    max_stored: Optional[int] = typer.Option(
        None, "--max-stored", min=0, help="Maximum number of stored examples."
    ),
    interval: Optional[int] = typer.Option(
        None, "--interval", min=0, help="Notification interval in seconds."
    ),
    home_sensing: Optional[bool] = typer.Option(
        None, "--home-sensing/--no-home-sensing", help="Toggle sensing while at home."
    ),
    bubble: Optional[bool] = typer.Option(
        None, "--bubble/--no-bubble", help="Toggle the location bubble."
    ),
    latitude: Optional[float] = typer.Option(None, "--lat", help="Bubble centre latitude."),
    longitude: Optional[float] = typer.Option(None, "--lon", help="Bubble centre longitude."),
    reset_center: bool = typer.Option(
        False, "--reset-center", help="Move the bubble centre back to the default."
    ),
    db_path: Optional[Path] = DB_OPTION,
) -> None:
    """Show the settings, applying any provided changes first."""
    if (latitude is None) != (longitude is None):
        typer.echo("--lat and --lon must be given together.", err=True)
        raise typer.Exit(code=1)

    changes: dict[str, object] = {
        "max_stored_examples": max_stored,
        "notification_interval_seconds": interval,
        "home_sensing_used": home_sensing,
        "location_bubble_used": bubble,
    }
    if reset_center:
        changes["location_bubble_center"] = None
    elif latitude is not None and longitude is not None:
        changes["location_bubble_center"] = (latitude, longitude)

    with _open_store(db_path) as store:
        current = store.update_settings(**changes)  # type: ignore[arg-type]

    typer.echo(f"UUID:                  {current.uuid}")
    typer.echo(f"Max stored examples:   {current.max_stored_examples}")
    typer.echo(f"Notification interval: {current.notification_interval_seconds}s")
    typer.echo(f"Home sensing:          {'on' if current.home_sensing_used else 'off'}")
    typer.echo(f"Location bubble:       {'on' if current.location_bubble_used else 'off'}")
    center = current.location_bubble_center
    typer.echo(f"Bubble centre:         {center.latitude:.6f}, {center.longitude:.6f}")


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind the API."),
    port: int = typer.Option(8766, "--port", min=1, max=65535, help="TCP port for the API."),
    db_path: Optional[Path] = DB_OPTION,
    artifact_dir: Optional[Path] = typer.Option(
        None, "--artifacts", path_type=Path, help="Directory of pending sensor archives."
    ),
) -> None:
    """Serve the JSON API for the store."""
    run_server(
        host=host,
        port=port,
        db_path=db_path or get_db_path(),
        artifact_dir=artifact_dir or get_artifact_dir(),
    )


@contextmanager
def _open_store(
    db_path: Optional[Path], config: Optional[StoreConfig] = None
) -> Iterator[ActivityStore]:
    store = ActivityStore(db_path or get_db_path(), config=config)
    try:
        yield store
    finally:
        store.close()


def _require_record(store: ActivityStore, timestamp: TimeGranule):
    found = store.fetch(timestamp)
    if found is None:
        typer.echo(f"No record for {timestamp.seconds}.", err=True)
        raise typer.Exit(code=1)
    return found


def _parse_time(value: str) -> TimeGranule:
    if value.lstrip("-").isdigit():
        return TimeGranule(int(value))
    try:
        return TimeGranule.from_datetime(datetime.fromisoformat(value))
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid time: {value}") from exc
