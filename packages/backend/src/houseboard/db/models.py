"""SQLAlchemy ORM models — single source of truth for the database schema.

Learn: Declarative ORM mapping with SQLAlchemy 2.0 style (Mapped[] +
mapped_column). The house_points table is append-only: the application
never issues UPDATE or DELETE against it, and the invariants the pipeline
validates (known house, positive points, unique id) are repeated as
database constraints so nothing that bypasses the pipeline can break them.

Key concepts:
- `seq` is an internal autoincrement key; `event_id` is the caller's id.
- Two indexes cover the two read paths: all events by recency, and one
  house's events by recency.
- UTCDateTime stores naive UTC and hands back aware UTC, so SQLite and
  PostgreSQL behave the same.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    String,
    TypeDecorator,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from houseboard.events.types import HOUSES


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UTCDateTime(TypeDecorator):
    """Timezone-aware UTC datetimes on every backend."""

    impl = DateTime
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).replace(tzinfo=None)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)


_HOUSE_VALUES = ", ".join(f"'{house.value}'" for house in HOUSES)


class HousePoint(Base):
    """One immutable scoring event — points awarded to a house at an instant."""

    __tablename__ = "house_points"
    __table_args__ = (
        Index("idx_house_points_timestamp", "timestamp"),
        Index("idx_house_points_category_timestamp", "category", "timestamp"),
        CheckConstraint("points >= 1", name="ck_house_points_points_positive"),
        CheckConstraint(
            f"category IN ({_HOUSE_VALUES})", name="ck_house_points_category"
        ),
    )

    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    category: Mapped[str] = mapped_column(String(16), nullable=False)
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        UTCDateTime(), nullable=False, default=utcnow, server_default=func.now()
    )

    def to_payload(self) -> dict:
        """Wire shape shared by the API and the real-time channel."""
        return {
            "id": self.event_id,
            "category": self.category,
            "points": self.points,
            "timestamp": self.timestamp.isoformat(),
        }

    def __repr__(self) -> str:
        return (
            f"HousePoint(id={self.event_id!r}, category={self.category!r}, "
            f"points={self.points}, timestamp={self.timestamp!r})"
        )
