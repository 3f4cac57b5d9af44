from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Optional

from models.event import Event, Reminder
from services.errors import ValidationError
from services.event_repository import EventRepository
from util.jsonlog import get_logger, log_event
from util.time import TimePolicyError, parse_utc_timestamp


logger = get_logger("events")

SORT_DATE = "date"
SORT_CATEGORY = "category"
SORT_REMINDER = "reminder"

_SORT_KEYS: dict[str, Callable[[Event], Any]] = {
    SORT_DATE: lambda e: e.date,
    SORT_CATEGORY: lambda e: e.category,
    # False (no reminder) sorts before True
    SORT_REMINDER: lambda e: e.reminder.is_set,
}


def _present(value: Any) -> bool:
    if isinstance(value, datetime):
        return True
    return isinstance(value, str) and value.strip() != ""


def _parse_instant(value: Any, field_name: str) -> datetime:
    try:
        return parse_utc_timestamp(value, field_name)
    except TimePolicyError as e:
        raise ValidationError("invalid date") from e


def sort_events(events: list[Event], sort_by: Optional[str] = None) -> list[Event]:
    """
    Stable sort; ties keep their stored order.
    Unknown or missing sort_by falls back to date.
    """
    key = _SORT_KEYS.get(sort_by or SORT_DATE, _SORT_KEYS[SORT_DATE])
    return sorted(events, key=key)


class EventService:
    def __init__(self, repository: EventRepository) -> None:
        self.repository = repository

    def create(
        self,
        owner: str,
        *,
        name: Any,
        date: Any,
        category: Any,
        description: Any = None,
        reminder_time: Any = None,
    ) -> Event:
        if not owner or not _present(name) or not _present(date) or not _present(category):
            raise ValidationError("missing required fields")

        if description is not None and not isinstance(description, str):
            raise ValidationError("invalid description")

        event_date = _parse_instant(date, "date")

        # An empty reminderTime means "no reminder", same as leaving it out.
        wants_reminder = _present(reminder_time)
        if reminder_time is not None and not wants_reminder and reminder_time != "":
            raise ValidationError("invalid date")
        due_at = _parse_instant(reminder_time, "reminderTime") if wants_reminder else None

        event = Event(
            owner=owner,
            name=name,
            description=description or "",
            date=event_date,
            category=category,
            reminder=Reminder(is_set=wants_reminder, due_at=due_at, notified=False),
        )

        stored = self.repository.append(event)

        log_event(
            logger,
            level="INFO",
            event="event_created",
            msg="event created",
            event_id=str(stored.id),
            user=owner,
            reminder_set=stored.reminder.is_set,
        )
        return stored

    def list(self, owner: str, sort_by: Optional[str] = None) -> list[Event]:
        return sort_events(self.repository.list_by_owner(owner), sort_by)
