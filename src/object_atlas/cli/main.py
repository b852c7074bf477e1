"""CLI entry point for object-atlas.

Invoked as::

    object-atlas [OPTIONS] COMMAND [ARGS]...

or, during development::

    python -m object_atlas.cli.main

Commands
--------
version      Show version information
uuid         Generate unique identifiers
operations   Show records from an operation log file
demo         Build a small object tree and exercise the registry
"""
from __future__ import annotations

import logging
import sys
import threading
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

console = Console()


# ------------------------------------------------------------------
# Root group
# ------------------------------------------------------------------


@click.group()
@click.version_option(package_name="object-atlas")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging level for registry diagnostics.",
)
def cli(log_level: str) -> None:
    """Tag-indexed object registry tools"""
    logging.basicConfig(level=getattr(logging, log_level.upper()))


@cli.command(name="version")
def version_command() -> None:
    """Show detailed version information."""
    from object_atlas import __version__

    console.print(f"[bold]object-atlas[/bold] v{__version__}")


# ------------------------------------------------------------------
# uuid
# ------------------------------------------------------------------


@cli.command(name="uuid")
@click.option("--count", "-n", type=click.IntRange(min=1), default=1, show_default=True)
def uuid_command(count: int) -> None:
    """Generate COUNT random unique identifiers."""
    from object_atlas.objects.ops import ObjectOps

    for _ in range(count):
        click.echo(ObjectOps.generate_unique_id())


# ------------------------------------------------------------------
# operations
# ------------------------------------------------------------------


@cli.command(name="operations")
@click.argument("log_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--tail", "-t", type=click.IntRange(min=1), default=None, help="Show only the last N records.")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print raw JSON lines.")
def operations_command(log_file: Path, tail: int | None, as_json: bool) -> None:
    """Show records from the operation log LOG_FILE."""
    import json

    from object_atlas.telemetry.operation_log import OperationLog

    records = OperationLog(log_file).read_log(tail=tail)
    if not records:
        console.print("[yellow]No operation records found.[/yellow]")
        return

    if as_json:
        for record in records:
            click.echo(json.dumps(record, separators=(",", ":")))
        return

    table = Table(title=f"Operations ({len(records)})")
    table.add_column("Timestamp", style="dim")
    table.add_column("Operation", style="bold")
    table.add_column("Details")
    for record in records:
        details = record.get("details") or {}
        rendered = ", ".join(f"{k}={v}" for k, v in details.items()) if isinstance(details, dict) else str(details)
        table.add_row(str(record.get("timestamp", "")), str(record.get("operation", "")), rendered)
    console.print(table)


# ------------------------------------------------------------------
# demo
# ------------------------------------------------------------------


@cli.command(name="demo")
@click.option("--timeout", type=float, default=0.5, show_default=True, help="Retrieval timeout in seconds.")
def demo_command(timeout: float) -> None:
    """Create, tag, subscribe, clone, and retrieve a few objects."""
    from object_atlas.config import AtlasConfig
    from object_atlas.convenience import Atlas
    from object_atlas.retrieval.policy import RetryPolicy

    arrivals: list[str] = []
    arrivals_lock = threading.Lock()

    def on_arrival(obj: object) -> None:
        with arrivals_lock:
            arrivals.append(getattr(obj, "name", repr(obj)))

    with Atlas(AtlasConfig(timeout=timeout)) as atlas:
        model = atlas.new("Model")
        atlas.apply_settings(model, {"name": "House"})
        for child_name in ("Door", "Window"):
            part = atlas.new("Part")
            atlas.apply_settings(part, {"name": child_name, "parent": model, "anchored": True})

        handle = atlas.bind_to_tag(atlas.ops.reserved_tag, on_arrival)
        copy = atlas.deep_clone(model)
        atlas.apply_settings(copy, {"name": "Shed"})

        result = atlas.retrieve(atlas.ops.reserved_tag, "door", RetryPolicy(timeout=timeout))
        missing = atlas.retrieve(atlas.ops.reserved_tag, "chimney", RetryPolicy(timeout=timeout))
        atlas.subscriber.drain(timeout=5.0)
        handle.cancel()

        table = Table(title="Tagged objects")
        table.add_column("Name", style="bold")
        table.add_column("Class")
        table.add_column("Parent")
        table.add_column("Tags")
        for obj in atlas.index.objects_with_tag(atlas.ops.reserved_tag):
            parent = obj.parent.name if obj.parent is not None else "-"
            table.add_row(obj.name, obj.class_name, parent, ", ".join(sorted(atlas.index.tags_of(obj))))
        console.print(table)

        console.print(
            f"Retrieve 'door': [green]{result.outcome.value}[/green] "
            f"after {result.attempts} attempt(s)"
        )
        console.print(
            f"Retrieve 'chimney': [yellow]{missing.outcome.value}[/yellow] "
            f"after {missing.attempts} attempt(s)"
        )
        with arrivals_lock:
            console.print(f"Subscription deliveries: {len(arrivals)} ({', '.join(sorted(arrivals))})")

    if not result.found:
        sys.exit(1)


if __name__ == "__main__":
    cli()
