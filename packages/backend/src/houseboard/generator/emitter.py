"""Bundled event generator — prints random house point events as JSON lines.

This is the program the supervisor spawns by default. It knows nothing
about the backend: it writes one JSON object per line to stdout and a
few diagnostics to stderr, and exits on SIGTERM / broken pipe.

Usage:
    python -m houseboard.generator.emitter --interval 0.5 --count 20
"""

import json
import random
import sys
import time
import uuid
from datetime import datetime, timezone
from typing import Iterator, Optional, TextIO

import click

from houseboard.events.types import HOUSES


def random_events(
    rng: random.Random,
    max_points: int = 10,
    count: int = 0,
) -> Iterator[dict]:
    """Yield `count` random events (forever if count is 0)."""
    emitted = 0
    while count == 0 or emitted < count:
        yield {
            "id": str(uuid.UUID(int=rng.getrandbits(128), version=4)),
            "category": rng.choice(HOUSES).value,
            "points": rng.randint(1, max_points),
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        emitted += 1


def emit(
    out: TextIO,
    interval: float,
    count: int = 0,
    max_points: int = 10,
    seed: Optional[int] = None,
) -> int:
    """Write events to `out`, one per line, sleeping `interval` between them."""
    rng = random.Random(seed)
    written = 0
    for event in random_events(rng, max_points=max_points, count=count):
        if written and interval > 0:
            time.sleep(interval)
        out.write(json.dumps(event) + "\n")
        out.flush()
        written += 1
    return written


@click.command()
@click.option("--interval", "-i", default=1.0, show_default=True, help="Seconds between events")
@click.option("--count", "-n", default=0, show_default=True, help="Events to emit (0 = forever)")
@click.option("--max-points", default=10, show_default=True, help="Upper bound for points per event")
@click.option("--seed", type=int, default=None, help="Random seed for reproducible runs")
def main(interval: float, count: int, max_points: int, seed: Optional[int]):
    """Emit random house point events as JSON lines on stdout."""
    if max_points < 1:
        raise click.BadParameter("must be at least 1", param_hint="--max-points")
    click.echo(f"emitter: interval={interval}s count={count or 'inf'}", err=True)
    try:
        written = emit(sys.stdout, interval, count=count, max_points=max_points, seed=seed)
    except (BrokenPipeError, KeyboardInterrupt):
        return
    click.echo(f"emitter: done after {written} events", err=True)


if __name__ == "__main__":
    main()
