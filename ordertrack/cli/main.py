"""Command-line interface for ordertrack.

Commands read the same ORDERTRACK_* environment as the service, so the
CLI and a running server share one store.
"""

from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime
from typing import Any

import click

from ordertrack.config import load_config
from ordertrack.ledger.diff import diff as structural_diff
from ordertrack.ledger.projector import HistoryProjector
from ordertrack.ledger.reconcile import ReconciliationEngine
from ordertrack.ledger.store import SnapshotStore, build_backend
from ordertrack.models.history import Diff, diff_to_dict
from ordertrack.models.orders import field_label, format_value
from ordertrack.observability.logging import setup_logging


def _open_store() -> SnapshotStore:
    config = load_config()
    backend = build_backend(config.store.backend, config.store.path)
    return SnapshotStore(backend, key_prefix=config.store.key_prefix)


def _load_json_object(path: str) -> dict[str, Any]:
    try:
        with open(path, encoding="utf-8") as fh:
            value = json.load(fh)
    except (OSError, ValueError) as exc:
        raise click.ClickException(f"cannot read {path}: {exc}") from exc
    if not isinstance(value, dict):
        raise click.ClickException(f"{path} must contain a JSON object")
    return value


def _echo_diff(changes: Diff) -> None:
    if not changes:
        click.echo("No changes.")
        return
    for path, entry in changes.items():
        click.echo(f"{field_label(path)}: {format_value(entry.old)} -> {format_value(entry.new)}")


def _format_timestamp(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=UTC).strftime("%Y-%m-%d %H:%M UTC")


@click.group()
@click.version_option(package_name="ordertrack")
def cli() -> None:
    """Track order records and their change history."""
    setup_logging(load_config().log.level, json_output=False)


@cli.command()
def serve() -> None:
    """Run the REST API (and the refresh loop when enabled)."""
    from ordertrack.app import main

    asyncio.run(main())


@cli.command()
@click.argument("reference_number")
@click.option("--all-fields", is_flag=True, help="Show every recorded change, not just known fields.")
@click.option("--json", "output_json", is_flag=True, help="Output events as JSON.")
def history(reference_number: str, all_fields: bool, output_json: bool) -> None:
    """Show the change history of REFERENCE_NUMBER, newest first."""
    store = _open_store()
    projector = HistoryProjector()
    snapshots = store.read(reference_number)
    events = projector.project_all_fields(snapshots) if all_fields else projector.project(snapshots)

    if output_json:
        click.echo(json.dumps([event.to_dict() for event in events], indent=2))
        return
    if not events:
        click.echo("No history recorded for this order yet.")
        return
    for event in events:
        heading = "Initial State Recorded" if event.is_initial else "Changes Detected"
        click.echo(f"{_format_timestamp(event.timestamp)}  {heading}")
        if not event.changes:
            click.echo("  No relevant changes in this snapshot.")
        for path, entry in event.changes.items():
            click.echo(f"  {field_label(path)}: {format_value(entry.old)} -> {format_value(entry.new)}")


@cli.command()
@click.argument("reference_number")
@click.argument("record_file", type=click.Path(exists=True, dir_okay=False))
def reconcile(reference_number: str, record_file: str) -> None:
    """Record RECORD_FILE as the latest state of REFERENCE_NUMBER."""
    engine = ReconciliationEngine(_open_store())
    changes = engine.reconcile(reference_number, _load_json_object(record_file))
    _echo_diff(changes)


@cli.command(name="diff")
@click.argument("old_file", type=click.Path(exists=True, dir_okay=False))
@click.argument("new_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--json", "output_json", is_flag=True, help="Output the diff as JSON.")
def diff_command(old_file: str, new_file: str, output_json: bool) -> None:
    """Diff two record files without touching the store."""
    changes = structural_diff(_load_json_object(old_file), _load_json_object(new_file))
    if output_json:
        click.echo(json.dumps(diff_to_dict(changes), indent=2))
    else:
        _echo_diff(changes)
