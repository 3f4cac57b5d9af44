# backend/routes/events.py
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from deps import get_event_service
from services.auth import require_owner
from services.errors import StorageError, ValidationError
from services.event_service import EventService

router = APIRouter(prefix="/events", tags=["events"])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_event(
    payload: dict,
    owner: str = Depends(require_owner),
    events: EventService = Depends(get_event_service),
):
    try:
        event = events.create(
            owner,
            name=payload.get("name"),
            description=payload.get("description"),
            date=payload.get("date"),
            category=payload.get("category"),
            reminder_time=payload.get("reminderTime"),
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StorageError:
        raise HTTPException(status_code=500, detail="storage error")

    return event.to_record()


@router.get("")
def list_events(
    sort_by: Optional[str] = Query(default=None, alias="sortBy"),
    owner: str = Depends(require_owner),
    events: EventService = Depends(get_event_service),
):
    return [e.to_record() for e in events.list(owner, sort_by)]
