# models/event.py
from datetime import datetime
from typing import Optional, Union
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from util.time import require_utc_aware


class Reminder(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_set: bool = Field(default=False, alias="set")
    due_at: Optional[datetime] = Field(default=None, alias="reminderTime")
    notified: bool = False

    @field_validator("due_at")
    @classmethod
    def _due_at_must_be_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        if v is None:
            return v
        return require_utc_aware(v, field_name="reminderTime")

    @model_validator(mode="after")
    def _consistent_state(self) -> "Reminder":
        if self.is_set != (self.due_at is not None):
            raise ValueError("reminderTime must be present iff reminder is set")
        if self.notified and not self.is_set:
            raise ValueError("an unset reminder cannot be notified")
        return self

    def is_due(self, now: datetime) -> bool:
        """Pending reminder whose due time has passed."""
        return (
            self.is_set
            and not self.notified
            and self.due_at is not None
            and self.due_at <= now
        )


class Event(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # New events get a UUID; integer ids (epoch millis) from older stores still load.
    id: Union[UUID, int] = Field(default_factory=uuid4)
    owner: str = Field(alias="user", min_length=1)
    name: str = Field(min_length=1)
    description: str = ""
    date: datetime
    category: str
    reminder: Reminder = Field(default_factory=Reminder)

    @field_validator("date")
    @classmethod
    def _date_must_be_utc(cls, v: datetime) -> datetime:
        return require_utc_aware(v, field_name="date")

    def to_record(self) -> dict:
        """JSON-ready dict in the persisted/wire layout."""
        return self.model_dump(mode="json", by_alias=True)
