from __future__ import annotations

import json
import threading
from typing import Callable, TypeVar

from pydantic import ValidationError as ModelValidationError

from models.event import Event
from services.errors import StorageError
from services.event_store import DurableStore
from util.jsonlog import get_logger, log_event


logger = get_logger("store")

T = TypeVar("T")


class EventRepository:
    """
    Typed access to the full event collection held by a DurableStore.

    Every load-modify-save cycle runs under one lock per repository, so request
    writes and scheduler writes against the same store never overwrite each
    other. Share a single instance per store.
    """

    def __init__(self, store: DurableStore) -> None:
        self.store = store
        self._lock = threading.RLock()

    def _read_events(self) -> list[Event]:
        """
        Policy:
          - missing or empty store -> []
          - corrupt store (undecodable, bad JSON, not a list, invalid record) -> quarantine, log, []
          - store that cannot be read at all -> StorageError
        """
        with self._lock:
            try:
                blob = self.store.read()
                if blob is None or not blob.strip():
                    return []
                data = json.loads(blob)
                if not isinstance(data, list):
                    raise ValueError(f"expected a JSON array, got {type(data).__name__}")
                return [Event.model_validate(rec) for rec in data]
            except (
                UnicodeDecodeError,
                RecursionError,
                ValueError,
                TypeError,
                ModelValidationError,
            ) as e:
                log_event(
                    logger,
                    level="WARNING",
                    event="store_corrupt",
                    msg="event store is corrupt, treating as empty",
                    error={"type": type(e).__name__, "message": str(e)[:200]},
                )
                self.store.quarantine()
                return []

    def load_all(self) -> list[Event]:
        """Lenient read: an unreadable store is reported as empty, never raised."""
        try:
            return self._read_events()
        except StorageError as e:
            log_event(
                logger,
                level="WARNING",
                event="store_read_failed",
                msg="event store unreadable, treating as empty",
                error={"type": type(e).__name__, "message": str(e)},
            )
            return []

    def save_all(self, events: list[Event]) -> None:
        blob = json.dumps([e.to_record() for e in events], indent=2, ensure_ascii=False)
        with self._lock:
            self.store.write(blob)

    def append(self, event: Event) -> Event:
        with self._lock:
            events = self._read_events()
            events.append(event)
            self.save_all(events)
        return event

    def list_by_owner(self, owner: str) -> list[Event]:
        return [e for e in self.load_all() if e.owner == owner]

    def update_all(self, mutator: Callable[[list[Event]], tuple[bool, T]]) -> T:
        """
        Run mutator(events) under the lock. mutator returns (changed, result);
        the collection is saved only when changed is True.
        """
        with self._lock:
            events = self._read_events()
            changed, result = mutator(events)
            if changed:
                self.save_all(events)
        return result
