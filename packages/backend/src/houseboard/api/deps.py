"""FastAPI dependencies for the long-lived components.

The notifier, pipeline and supervisor are built once per app in
create_app() and parked on app.state; routes reach them through these.
"""

from fastapi import Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from houseboard.db.engine import get_db
from houseboard.generator.supervisor import GeneratorSupervisor
from houseboard.realtime.notifier import Notifier
from houseboard.services.ingestion import IngestionPipeline
from houseboard.services.leaderboard import LeaderboardService


def get_pipeline(request: Request) -> IngestionPipeline:
    return request.app.state.pipeline


def get_supervisor(request: Request) -> GeneratorSupervisor:
    return request.app.state.supervisor


def get_notifier(request: Request) -> Notifier:
    return request.app.state.notifier


def get_leaderboard_service(db: AsyncSession = Depends(get_db)) -> LeaderboardService:
    return LeaderboardService(db)
