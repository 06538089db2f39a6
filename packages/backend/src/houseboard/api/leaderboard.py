"""Read endpoints — leaderboard, recent events, stats.

Learn: Routes translate HTTP to service calls and map domain errors to
HTTPException. The app-level handler in main.py turns every HTTPException
into the {success: false, error} body the client expects.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query

from houseboard.api.deps import get_leaderboard_service
from houseboard.config import settings
from houseboard.errors import StoreError
from houseboard.events.types import TimeWindow
from houseboard.schemas.leaderboard import (
    EventRead,
    LeaderboardEntryRead,
    LeaderboardResponse,
    RecentEventsResponse,
    StatsRead,
    StatsResponse,
)
from houseboard.services.leaderboard import LeaderboardService

router = APIRouter()


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def get_leaderboard(
    time_window: TimeWindow = Query(TimeWindow.ALL, alias="timeWindow"),
    svc: LeaderboardService = Depends(get_leaderboard_service),
):
    """Per-house totals for the window, highest first."""
    now = datetime.now(timezone.utc)
    try:
        entries = await svc.leaderboard(time_window, now=now)
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return LeaderboardResponse(
        time_window=time_window,
        timestamp=now,
        leaderboard=[LeaderboardEntryRead(**entry.to_dict()) for entry in entries],
    )


@router.get("/events/recent", response_model=RecentEventsResponse)
async def get_recent_events(
    limit: int = Query(
        settings.recent_events_default_limit,
        ge=1,
        le=settings.recent_events_max_limit,
    ),
    svc: LeaderboardService = Depends(get_leaderboard_service),
):
    """Newest events first, at most `limit` of them."""
    try:
        events = await svc.recent_events(limit)
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return RecentEventsResponse(
        events=[EventRead.model_validate(event.to_payload()) for event in events]
    )


@router.get("/stats", response_model=StatsResponse)
async def get_stats(svc: LeaderboardService = Depends(get_leaderboard_service)):
    """Store-wide counts and time span."""
    try:
        stats = await svc.stats()
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return StatsResponse(
        stats=StatsRead(
            total_events=stats.total_events,
            total_points=stats.total_points,
            oldest_event=stats.oldest_event,
            newest_event=stats.newest_event,
        )
    )
