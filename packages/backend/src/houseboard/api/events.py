"""Event submission endpoint.

Learn: The body is taken as a raw JSON object rather than a Pydantic
model. The ingestion pipeline owns validation for both sources (HTTP and
the generator), so both report failures the same way — with the name of
the field that failed.

Status codes: 201 stored, 400 invalid, 409 duplicate id, 503 store down.
"""

from typing import Any

from fastapi import APIRouter, Body, Depends, HTTPException

from houseboard.api.deps import get_pipeline
from houseboard.errors import DuplicateEventError, EventValidationError, StoreError
from houseboard.schemas.leaderboard import EventCreated, EventRead
from houseboard.services.ingestion import IngestionPipeline

router = APIRouter()


@router.post("/events", response_model=EventCreated, status_code=201)
async def submit_event(
    body: dict[str, Any] = Body(...),
    pipeline: IngestionPipeline = Depends(get_pipeline),
):
    """Validate, store and broadcast a single event."""
    try:
        event = await pipeline.ingest(body, source="api")
    except EventValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except DuplicateEventError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except StoreError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return EventCreated(event=EventRead.model_validate(event.to_payload()))
