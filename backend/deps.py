# backend/deps.py
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from config.app_config import load_app_config
from db import get_db
from services.event_repository import EventRepository
from services.event_service import EventService
from services.event_store import JsonFileStore
from services.reminder_scheduler import ReminderScheduler
from services.user_directory import UserDirectory


@lru_cache(maxsize=1)
def get_event_repository() -> EventRepository:
    # One repository (and lock) per process: API and scheduler must share it.
    return EventRepository(JsonFileStore(load_app_config().events_file()))


def get_event_service(
    repository: EventRepository = Depends(get_event_repository),
) -> EventService:
    return EventService(repository)


def get_reminder_scheduler() -> ReminderScheduler:
    return ReminderScheduler(get_event_repository())


def get_user_directory(db: Session = Depends(get_db)) -> UserDirectory:
    return UserDirectory(db)
