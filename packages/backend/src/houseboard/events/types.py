"""Closed vocabularies: houses, time windows, real-time message types.

Learn: Centralizing these as enums means a typo is an AttributeError at
import time, not a silently empty leaderboard. The declaration order of
House is the canonical order used to break leaderboard ties.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import Optional


class House(str, Enum):
    GRYFF = "Gryff"
    SLYTH = "Slyth"
    RAVEN = "Raven"
    HUFF = "Huff"


# Canonical order. Index is the tie-break rank.
HOUSES: tuple[House, ...] = tuple(House)
HOUSE_RANK: dict[House, int] = {house: rank for rank, house in enumerate(HOUSES)}


class TimeWindow(str, Enum):
    ALL = "all"
    LAST_5_MINUTES = "5min"
    LAST_1_HOUR = "1hour"

    @property
    def span(self) -> Optional[timedelta]:
        return _WINDOW_SPANS[self]

    def cutoff(self, now: datetime) -> Optional[datetime]:
        """Inclusive lower bound for this window, or None for 'all'."""
        span = self.span
        return None if span is None else now - span


_WINDOW_SPANS: dict[TimeWindow, Optional[timedelta]] = {
    TimeWindow.ALL: None,
    TimeWindow.LAST_5_MINUTES: timedelta(minutes=5),
    TimeWindow.LAST_1_HOUR: timedelta(hours=1),
}


# ─── Real-time message types ─────────────────────────────

NEW_POINTS = "newPoints"
PONG = "pong"
