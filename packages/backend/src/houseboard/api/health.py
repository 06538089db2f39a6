"""Liveness probe.

Learn: Deliberately dependency-free — it answers as long as the event
loop is serving requests. Store health shows up per request instead
(a failing query returns 503 with the error).
"""

from datetime import datetime, timezone

from fastapi import APIRouter

from houseboard import __version__

router = APIRouter()


@router.get("/health")
async def health_check():
    """Static OK status with the current server time."""
    return {
        "status": "OK",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": __version__,
    }
