"""Aggregation engine — per-house totals over a snapshot of events.

Learn: This is a pure function. It never touches the database; the query
surface fetches a snapshot and hands it over. That keeps the ranking rules
(zero-fill, ordering, tie-break) testable without any I/O.

Ranking: points descending, ties broken by the canonical House order
(Gryff, Slyth, Raven, Huff). Python's sort is stable, but we do not rely
on grouping order — the tie-break is part of the sort key.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Protocol

from houseboard.events.types import HOUSE_RANK, HOUSES, House, TimeWindow


class ScoredEvent(Protocol):
    category: str
    points: int
    timestamp: datetime


@dataclass(frozen=True)
class LeaderboardEntry:
    house: House
    points: int
    events: int

    def to_dict(self) -> dict:
        return {"house": self.house.value, "points": self.points, "events": self.events}


def aggregate(
    events: Iterable[ScoredEvent],
    window: TimeWindow,
    now: datetime,
) -> list[LeaderboardEntry]:
    """Return exactly one entry per house, ranked."""
    cutoff = window.cutoff(now)

    points = {house: 0 for house in HOUSES}
    counts = {house: 0 for house in HOUSES}
    for event in events:
        if cutoff is not None and event.timestamp < cutoff:
            continue
        house = House(event.category)
        points[house] += event.points
        counts[house] += 1

    entries = [
        LeaderboardEntry(house=house, points=points[house], events=counts[house])
        for house in HOUSES
    ]
    entries.sort(key=lambda entry: (-entry.points, HOUSE_RANK[entry.house]))
    return entries
