"""Houseboard CLI — run the server, run the generator, poke the API.

Usage:
    houseboard serve                          # Run the API server (uvicorn)
    houseboard generate --interval 0.5        # Run the bundled event generator
    houseboard leaderboard --window 5min      # Show standings
    houseboard recent --limit 10              # Newest events
    houseboard stats                          # Store-wide totals
    houseboard submit Gryff 10                # Award points by hand
    houseboard generator start|stop|status    # Control the supervised generator
"""

from __future__ import annotations

import json
import os
import sys
import uuid
from typing import Optional

import click
import httpx

from houseboard import __version__
from houseboard.events.types import HOUSES, TimeWindow
from houseboard.generator.emitter import main as emitter_main

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:5000"


def _api_url() -> str:
    return os.environ.get("HOUSEBOARD_API_URL", DEFAULT_API_URL).rstrip("/")


def _client() -> httpx.Client:
    """Build an HTTP client pointed at the Houseboard backend."""
    return httpx.Client(base_url=_api_url(), timeout=10.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _request(method: str, path: str, **kwargs) -> dict:
    """Call the API and return the JSON body, exiting on failure."""
    try:
        with _client() as c:
            r = c.request(method, path, **kwargs)
    except httpx.HTTPError as e:
        click.secho(f"Error: cannot reach {_api_url()}: {e}", fg="red", err=True)
        sys.exit(1)

    try:
        body = r.json()
    except ValueError:
        body = {"success": False, "error": r.text or f"HTTP {r.status_code}"}

    if r.status_code >= 400 or not body.get("success", True):
        click.secho(f"Error ({r.status_code}): {body.get('error', r.text)}", fg="red", err=True)
        sys.exit(1)
    return body


def _pretty_json(data: dict | list) -> str:
    return json.dumps(data, indent=2, default=str)


def _print_table(rows: list[dict], columns: list[tuple[str, str, int]]):
    """Print a simple ASCII table.

    columns: list of (header, dict_key, width)
    """
    header = "  ".join(h.ljust(w) for h, _, w in columns)
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for row in rows:
        line = "  ".join(str(row.get(k, "—"))[:w].ljust(w) for _, k, w in columns)
        click.echo(line)


_HOUSE_COLORS = {
    "Gryff": "red",
    "Slyth": "green",
    "Raven": "blue",
    "Huff": "yellow",
}


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="houseboard")
def main():
    """Houseboard — live house points leaderboard."""


main.add_command(emitter_main, name="generate")


@main.command()
@click.option("--host", default=None, help="Bind address (default: HOUSEBOARD_HOST)")
@click.option("--port", "-p", type=int, default=None, help="Port (default: HOUSEBOARD_PORT)")
@click.option("--reload", is_flag=True, help="Auto-reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API server."""
    import uvicorn

    from houseboard.config import settings

    uvicorn.run(
        "houseboard.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_config=None,  # structlog owns logging
    )


@main.command()
@click.option(
    "--window", "-w",
    type=click.Choice([w.value for w in TimeWindow]),
    default=TimeWindow.ALL.value,
    show_default=True,
)
@click.option("--json", "as_json", is_flag=True, help="Print raw JSON")
def leaderboard(window: str, as_json: bool):
    """Show the house standings."""
    body = _request("GET", "/api/leaderboard", params={"timeWindow": window})
    if as_json:
        click.echo(_pretty_json(body))
        return

    click.secho(f"Leaderboard ({body['timeWindow']}) at {body['timestamp']}", bold=True)
    click.echo()
    for rank, entry in enumerate(body["leaderboard"], start=1):
        house = click.style(f"{entry['house']:6s}", fg=_HOUSE_COLORS.get(entry["house"], "white"))
        click.echo(f"  {rank}. {house}  {entry['points']:>6} pts  ({entry['events']} events)")


@main.command()
@click.option("--limit", "-l", default=20, show_default=True, help="Max results")
def recent(limit: int):
    """List the newest events."""
    body = _request("GET", "/api/events/recent", params={"limit": limit})
    events = body["events"]
    if not events:
        click.echo("No events yet.")
        return
    _print_table(events, [
        ("ID", "id", 36),
        ("HOUSE", "category", 6),
        ("POINTS", "points", 6),
        ("TIMESTAMP", "timestamp", 32),
    ])


@main.command()
def stats():
    """Show store-wide totals."""
    body = _request("GET", "/api/stats")
    s = body["stats"]
    click.echo(f"  Events:  {s['totalEvents']}")
    click.echo(f"  Points:  {s['totalPoints']}")
    click.echo(f"  Oldest:  {s['oldestEvent'] or '—'}")
    click.echo(f"  Newest:  {s['newestEvent'] or '—'}")


@main.command()
@click.argument("house", type=click.Choice([h.value for h in HOUSES]))
@click.argument("points", type=int)
@click.option("--id", "event_id", default=None, help="Event id (default: random UUID)")
@click.option("--timestamp", default=None, help="ISO-8601 time (default: now)")
def submit(house: str, points: int, event_id: Optional[str], timestamp: Optional[str]):
    """Award POINTS to HOUSE."""
    payload: dict = {"id": event_id or str(uuid.uuid4()), "category": house, "points": points}
    if timestamp:
        payload["timestamp"] = timestamp
    body = _request("POST", "/api/events", json=payload)
    event = body["event"]
    click.secho(f"Stored {event['id']}: {event['category']} +{event['points']}", fg="green")


@main.group()
def generator():
    """Control the supervised event generator."""


def _print_generator_status(status: dict) -> None:
    color = "green" if status["state"] == "running" else "white"
    click.echo(f"  State:     {click.style(status['state'], fg=color)}")
    click.echo(f"  PID:       {status['pid'] or '—'}")
    click.echo(f"  Lines:     {status['linesRead']} read, {status['linesRejected']} rejected")
    click.echo(f"  Ingested:  {status['eventsIngested']}")


@generator.command("start")
def generator_start():
    """Start the generator (no-op if running)."""
    body = _request("POST", "/api/generator/start")
    click.secho(body["message"], fg="green" if body["changed"] else "yellow")
    _print_generator_status(body["status"])


@generator.command("stop")
def generator_stop():
    """Stop the generator (no-op if stopped)."""
    body = _request("POST", "/api/generator/stop")
    click.secho(body["message"], fg="green" if body["changed"] else "yellow")
    _print_generator_status(body["status"])


@generator.command("status")
def generator_status():
    """Show generator state and counters."""
    body = _request("GET", "/api/generator/status")
    _print_generator_status(body["status"])


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    main()
