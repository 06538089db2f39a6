"""Query surface — read-only views over the event store.

Learn: Every read is recomputed from the raw events. The leaderboard
pulls the window's snapshot from the store (index-backed range query) and
hands it to the pure aggregation engine with the same `now` used for the
cutoff, so the SQL filter and the in-memory filter agree exactly.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from houseboard.db.models import HousePoint
from houseboard.events.store import EventStore
from houseboard.events.types import TimeWindow
from houseboard.services.aggregation import LeaderboardEntry, aggregate


@dataclass(frozen=True)
class StoreStats:
    total_events: int
    total_points: int
    oldest_event: Optional[datetime]
    newest_event: Optional[datetime]


class LeaderboardService:
    """Leaderboard, recent events and store-wide stats."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = EventStore(db)

    async def leaderboard(
        self,
        window: TimeWindow = TimeWindow.ALL,
        now: Optional[datetime] = None,
    ) -> list[LeaderboardEntry]:
        now = now or datetime.now(timezone.utc)
        events = await self.store.query_range(since=window.cutoff(now))
        return aggregate(events, window, now)

    async def recent_events(self, limit: int = 50) -> list[HousePoint]:
        return await self.store.query_range(limit=limit)

    async def stats(self) -> StoreStats:
        oldest = await self.store.oldest()
        newest = await self.store.newest()
        return StoreStats(
            total_events=await self.store.count(),
            total_points=await self.store.total_points(),
            oldest_event=oldest.timestamp if oldest else None,
            newest_event=newest.timestamp if newest else None,
        )
