"""Ingestion pipeline — validate, persist, then broadcast one event.

Learn: Both event sources (the HTTP submission endpoint and the generator
supervisor) funnel through IngestionPipeline.ingest(). Every call:
1. Validates the raw mapping (category → points → timestamp → id)
2. Appends it to the event store in its own session and commits
3. Only after a successful commit, broadcasts a newPoints message

A validation, duplicate or store failure raises before step 3, so a
failed ingest never produces a notification. Failures are not retried —
resubmission is the caller's job.
"""

from datetime import datetime, timezone
from typing import Any, Mapping

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from houseboard.db.models import HousePoint
from houseboard.errors import DuplicateEventError, EventValidationError, StoreError
from houseboard.events.store import EventStore
from houseboard.events.types import NEW_POINTS, House
from houseboard.realtime.notifier import Notifier

logger = structlog.get_logger()

MAX_ID_LENGTH = 200
# Upper bound of a 32-bit signed INTEGER column (PostgreSQL int4).
MAX_POINTS = 2**31 - 1


# ═══════════════════════════════════════════════════════════
# Validation
# ═══════════════════════════════════════════════════════════


def parse_category(value: Any) -> House:
    if not isinstance(value, str):
        raise EventValidationError("category", f"must be one of {_house_names()}")
    try:
        return House(value)
    except ValueError:
        raise EventValidationError(
            "category", f"unknown house {value!r}; must be one of {_house_names()}"
        ) from None


def parse_points(value: Any) -> int:
    # bool is an int subclass; True is not a point value.
    if isinstance(value, bool):
        raise EventValidationError("points", "must be an integer")
    if isinstance(value, float):
        if not value.is_integer():
            raise EventValidationError("points", "must be an integer")
        value = int(value)
    if not isinstance(value, int):
        raise EventValidationError("points", "must be an integer")
    if value < 1:
        raise EventValidationError("points", "must be at least 1")
    if value > MAX_POINTS:
        raise EventValidationError("points", f"must be at most {MAX_POINTS}")
    return value


def parse_timestamp(value: Any, now: datetime) -> datetime:
    """None → now; ISO-8601 string; number → epoch milliseconds; datetime."""
    if value is None:
        return now
    if isinstance(value, bool):
        raise EventValidationError("timestamp", "must be an ISO-8601 string or epoch milliseconds")
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        try:
            parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            raise EventValidationError("timestamp", f"out of range: {value!r}") from None
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise EventValidationError("timestamp", f"not a valid ISO-8601 time: {value!r}") from None
    else:
        raise EventValidationError("timestamp", "must be an ISO-8601 string or epoch milliseconds")

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def parse_event_id(value: Any) -> str:
    if not isinstance(value, str) or not value.strip():
        raise EventValidationError("id", "must be a non-empty string")
    if len(value) > MAX_ID_LENGTH:
        raise EventValidationError("id", f"must be at most {MAX_ID_LENGTH} characters")
    return value


def _house_names() -> str:
    return ", ".join(house.value for house in House)


def validate_event(raw: Any, now: datetime) -> tuple[str, House, int, datetime]:
    """Validate a raw event mapping. Returns (id, house, points, timestamp)."""
    if not isinstance(raw, Mapping):
        raise EventValidationError("event", "must be a JSON object")
    house = parse_category(raw.get("category"))
    points = parse_points(raw.get("points"))
    timestamp = parse_timestamp(raw.get("timestamp"), now)
    event_id = parse_event_id(raw.get("id"))
    return event_id, house, points, timestamp


# ═══════════════════════════════════════════════════════════
# Pipeline
# ═══════════════════════════════════════════════════════════


class IngestionPipeline:
    """Validates and persists events, then notifies subscribers."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        notifier: Notifier,
    ):
        self.session_factory = session_factory
        self.notifier = notifier

    async def ingest(self, raw: Any, source: str = "api") -> HousePoint:
        """Ingest one raw event. Raises EventValidationError,
        DuplicateEventError or StoreError; broadcasts only on success."""
        now = datetime.now(timezone.utc)
        try:
            event_id, house, points, timestamp = validate_event(raw, now)
        except EventValidationError as e:
            logger.info("ingest.rejected", source=source, field=e.field, reason=e.message)
            raise

        try:
            async with self.session_factory() as db:
                store = EventStore(db)
                event = await store.append(event_id, house, points, timestamp)
                await db.commit()
        except DuplicateEventError:
            logger.info("ingest.duplicate", source=source, event_id=event_id)
            raise
        except StoreError:
            logger.error("ingest.store_failed", source=source, event_id=event_id)
            raise
        except (SQLAlchemyError, OSError) as e:
            # Commit-time failures land here; append() translates its own.
            logger.error("ingest.store_failed", source=source, event_id=event_id, error=str(e))
            raise StoreError(f"Could not persist event '{event_id}': {e}") from e

        logger.info(
            "ingest.accepted",
            source=source,
            event_id=event.event_id,
            house=event.category,
            points=event.points,
        )

        delivered = self.notifier.broadcast({"type": NEW_POINTS, "data": event.to_payload()})
        logger.debug("ingest.broadcast", event_id=event.event_id, delivered=delivered)
        return event
