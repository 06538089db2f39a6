"""Pydantic response schemas for the read endpoints and event submission.

Learn: The wire format is camelCase (timeWindow, totalEvents) because the
browser client expects it. Python attributes stay snake_case; the alias
generator does the translation and FastAPI serializes response models by
alias. Every body carries `success` so clients can branch on one field.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from houseboard.events.types import House, TimeWindow


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ─── Events ──────────────────────────────────────────────

class EventRead(_CamelModel):
    id: str
    category: House
    points: int
    timestamp: datetime


class EventCreated(_CamelModel):
    success: bool = True
    event: EventRead


class RecentEventsResponse(_CamelModel):
    success: bool = True
    events: list[EventRead]


# ─── Leaderboard ─────────────────────────────────────────

class LeaderboardEntryRead(_CamelModel):
    house: House
    points: int
    events: int


class LeaderboardResponse(_CamelModel):
    success: bool = True
    time_window: TimeWindow
    timestamp: datetime
    leaderboard: list[LeaderboardEntryRead]


# ─── Stats ───────────────────────────────────────────────

class StatsRead(_CamelModel):
    total_events: int
    total_points: int
    oldest_event: Optional[datetime]
    newest_event: Optional[datetime]


class StatsResponse(_CamelModel):
    success: bool = True
    stats: StatsRead


# ─── Generator control ───────────────────────────────────

class GeneratorStatusRead(_CamelModel):
    state: str
    pid: Optional[int]
    started_at: Optional[datetime]
    lines_read: int
    events_ingested: int
    lines_rejected: int
    last_exit_code: Optional[int]


class GeneratorControlResponse(_CamelModel):
    success: bool = True
    message: str
    changed: bool
    status: GeneratorStatusRead


class GeneratorStatusResponse(_CamelModel):
    success: bool = True
    status: GeneratorStatusRead


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
