"""
Command-line interface for the parcel tracker.
Provides commands for tracking parcels, listing carriers and serving the API.
"""

import asyncio
import json
import random
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table
from rich.panel import Panel

from parceltrack import __version__

console = Console()


@click.group()
@click.version_option(version=__version__, prog_name="parceltrack")
@click.option(
    "--config", "-c",
    type=click.Path(exists=True),
    help="Path to configuration file"
)
@click.pass_context
def cli(ctx, config):
    """Parcel Tracker - Korean carrier tracking aggregation"""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config


def _load_config(ctx):
    from parceltrack.config import init_config

    config = init_config(ctx.obj.get("config_path"))
    errors = config.validate()
    if errors:
        for error in errors:
            console.print(f"[red]✗ {error}[/red]")
        ctx.exit(1)
    return config


@cli.command()
@click.argument("carrier")
@click.argument("tracking_number")
@click.option("--json", "as_json", is_flag=True, help="Print the raw JSON result")
@click.option("--deadline", type=float, help="Global deadline in seconds")
@click.option("--seed", type=int, help="Seed for synthetic fallback data")
@click.option("--verbose", "-v", is_flag=True, help="Log progress and show source attempts")
@click.pass_context
def track(ctx, carrier, tracking_number, as_json, deadline, seed, verbose):
    """Track a parcel by CARRIER and TRACKING_NUMBER."""
    from parceltrack.logging_config import setup_logging
    from parceltrack.models import parse_tracking_request
    from parceltrack.tracking.errors import RequestValidationError
    from parceltrack.tracking.orchestrator import DeadlineOrchestrator

    config = _load_config(ctx)
    if deadline is not None:
        config.global_deadline = deadline
    if seed is not None:
        config.synthetic_seed = seed

    setup_logging(config, console=verbose, log_to_file=False)

    try:
        identifier = parse_tracking_request({"carrier": carrier, "trackingNumber": tracking_number})
    except RequestValidationError as e:
        console.print(f"[red]✗ {e}[/red]")
        ctx.exit(2)

    rng = random.Random(config.synthetic_seed) if config.synthetic_seed is not None else None
    orchestrator = DeadlineOrchestrator(config, rng=rng)
    outcome = asyncio.run(orchestrator.lookup(identifier))
    result = outcome.result

    if as_json:
        click.echo(json.dumps(result.to_payload(), ensure_ascii=False, indent=2))
        return

    status_color = "yellow" if result.degraded else "green"
    lines = [
        f"[bold]{result.carrier_name}[/bold] {identifier.tracking_number}",
        f"Status: [{status_color}]{result.current_status.value}[/{status_color}]",
    ]
    if result.current_location:
        lines.append(f"Location: {result.current_location}")
    if result.delivered_at:
        lines.append(f"Delivered: {result.delivered_at:%Y-%m-%d %H:%M}")
    elif result.estimated_delivery:
        lines.append(f"Estimated delivery: {result.estimated_delivery:%Y-%m-%d %H:%M}")
    lines.append(f"Source: {result.source}")

    console.print(Panel.fit("\n".join(lines), title="Tracking Result"))

    if result.error:
        console.print(f"[yellow]! {result.error}[/yellow]")

    table = Table(title="Timeline")
    table.add_column("Time", style="cyan")
    table.add_column("Status")
    table.add_column("Location")
    table.add_column("Description")

    for event in result.events:
        table.add_row(
            f"{event.time:%Y-%m-%d %H:%M}",
            event.status.value,
            event.location or "-",
            event.description or "",
        )

    console.print(table)

    if verbose and outcome.attempts:
        attempts = Table(title="Source Attempts")
        attempts.add_column("Source", style="cyan")
        attempts.add_column("Outcome")
        attempts.add_column("Elapsed")
        attempts.add_column("Error")

        for attempt in outcome.attempts:
            color = "green" if attempt.outcome == "success" else "red"
            attempts.add_row(
                attempt.adapter,
                f"[{color}]{attempt.outcome}[/{color}]",
                f"{attempt.elapsed:.2f}s",
                attempt.error or "",
            )

        console.print(attempts)


@cli.command()
def carriers():
    """List supported carriers."""
    from parceltrack.carriers import CARRIERS
    from parceltrack.tracking.chain import supports_realtime

    table = Table(title="Supported Carriers")
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Code")
    table.add_column("Real-time")

    for info in CARRIERS.values():
        realtime = "[green]✓[/green]" if supports_realtime(info.carrier_id) else "[dim]-[/dim]"
        table.add_row(info.carrier_id.value, info.name, info.code, realtime)

    console.print(table)


@cli.command()
@click.option("--host", help="Bind address (default SERVER_HOST)")
@click.option("--port", type=int, help="Port (default SERVER_PORT)")
@click.pass_context
def serve(ctx, host, port):
    """Serve the tracking HTTP API."""
    from parceltrack.logging_config import setup_logging

    config = _load_config(ctx)
    setup_logging(config)

    host = host or config.server_host
    port = port or config.server_port

    console.print(Panel.fit(
        f"[bold blue]Parcel Tracker v{__version__}[/bold blue]\n"
        f"Listening on http://{host}:{port}\n"
        "Press Ctrl+C to stop",
        title="Starting Server"
    ))

    try:
        from parceltrack.server import run_server
    except ImportError:
        console.print("[red]Error: fastapi and uvicorn are required to serve the API[/red]")
        console.print("Install them with: pip install parceltrack[server]")
        ctx.exit(1)

    run_server(host, port)


@cli.command()
@click.argument("config_path", type=click.Path())
def init(config_path):
    """Initialize configuration file."""
    config_path = Path(config_path)

    if config_path.exists():
        if not click.confirm(f"{config_path} already exists. Overwrite?"):
            return

    template = '''# Parcel Tracker Configuration

# Deadlines (seconds)
TRACK_GLOBAL_DEADLINE=10
TRACK_ADAPTER_TIMEOUT=4
TRACK_ADAPTER_BUDGET_FRACTION=0.8

# Sources
STRUCTURED_API_URL=https://apis.tracker.delivery
TRACK_USER_AGENT=

# Synthetic fallback (leave empty for random data)
SYNTHETIC_SEED=

# Logging
LOG_LEVEL=INFO
LOG_FILE=logs/parceltrack.log

# HTTP server
SERVER_HOST=127.0.0.1
SERVER_PORT=8000
'''

    config_path.write_text(template, encoding='utf-8')
    console.print(f"[green]✓ Configuration file created: {config_path}[/green]")
    console.print("\nEdit this file with your settings, then run:")
    console.print(f"  parceltrack --config {config_path} serve")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
