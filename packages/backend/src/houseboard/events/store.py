"""Event store — append-only log of house point events.

Learn: The store is write-once per key. There is no update and no delete;
standings are always recomputed from the raw events. Duplicate ids are
caught by the unique constraint rather than a read-then-write check, so
two concurrent appends of the same id cannot both succeed.

The store does not commit — callers own the transaction (same as the
rest of the codebase). IngestionPipeline commits after a successful append.
"""

from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncIterator, Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from houseboard.db.models import HousePoint
from houseboard.errors import DuplicateEventError, StoreError
from houseboard.events.types import House

logger = structlog.get_logger()


@asynccontextmanager
async def _store_errors(operation: str) -> AsyncIterator[None]:
    """Translate backing-store failures into StoreError."""
    try:
        yield
    except (SQLAlchemyError, OSError) as e:
        logger.error("store.failure", operation=operation, error=str(e))
        raise StoreError(f"Event store {operation} failed: {e}") from e


class EventStore:
    """Append-only event store backed by SQLAlchemy."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def append(
        self,
        event_id: str,
        category: House,
        points: int,
        timestamp: datetime,
    ) -> HousePoint:
        """Append one event. Raises DuplicateEventError if the id exists."""
        row = HousePoint(
            event_id=event_id,
            category=category.value,
            points=points,
            timestamp=timestamp,
        )
        async with _store_errors("append"):
            self.db.add(row)
            try:
                await self.db.flush()
            except IntegrityError as e:
                await self.db.rollback()
                if await self._exists(event_id):
                    raise DuplicateEventError(event_id) from e
                raise
        return row

    async def _exists(self, event_id: str) -> bool:
        result = await self.db.execute(
            select(HousePoint.seq).where(HousePoint.event_id == event_id)
        )
        return result.first() is not None

    async def query_range(
        self,
        since: Optional[datetime] = None,
        category: Optional[House] = None,
        limit: Optional[int] = None,
    ) -> list[HousePoint]:
        """Events with timestamp >= since (and of `category`), newest first."""
        query = select(HousePoint).order_by(
            HousePoint.timestamp.desc(), HousePoint.seq.desc()
        )
        if since is not None:
            query = query.where(HousePoint.timestamp >= since)
        if category is not None:
            query = query.where(HousePoint.category == category.value)
        if limit is not None:
            query = query.limit(limit)

        async with _store_errors("query"):
            result = await self.db.execute(query)
            return list(result.scalars().all())

    async def count(self) -> int:
        async with _store_errors("count"):
            result = await self.db.execute(select(func.count(HousePoint.seq)))
            return result.scalar_one()

    async def total_points(self) -> int:
        async with _store_errors("sum"):
            result = await self.db.execute(
                select(func.coalesce(func.sum(HousePoint.points), 0))
            )
            return int(result.scalar_one())

    async def oldest(self) -> Optional[HousePoint]:
        async with _store_errors("oldest"):
            result = await self.db.execute(
                select(HousePoint)
                .order_by(HousePoint.timestamp.asc(), HousePoint.seq.asc())
                .limit(1)
            )
            return result.scalars().first()

    async def newest(self) -> Optional[HousePoint]:
        rows = await self.query_range(limit=1)
        return rows[0] if rows else None
