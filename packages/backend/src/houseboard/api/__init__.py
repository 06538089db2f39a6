"""API route aggregation.

All routers registered here get mounted in main.py. The liveness probe
sits at the root (/health); everything else lives under /api.
"""

from fastapi import APIRouter

from houseboard.api.events import router as events_router
from houseboard.api.generator import router as generator_router
from houseboard.api.health import router as health_router
from houseboard.api.leaderboard import router as leaderboard_router

api_router = APIRouter(prefix="/api")

api_router.include_router(leaderboard_router, tags=["leaderboard"])
api_router.include_router(events_router, tags=["events"])
api_router.include_router(generator_router, tags=["generator"])

__all__ = ["api_router", "health_router"]
