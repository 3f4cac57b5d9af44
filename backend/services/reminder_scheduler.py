from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

import time
import traceback
import uuid

from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from models.event import Event
from services.event_repository import EventRepository
from util.jsonlog import get_logger, log_event
from util.time import utc_iso, utcnow


scheduler = BackgroundScheduler()

logger = get_logger("scheduler")

JOB_ID = "reminder_sweep_job"

Notifier = Callable[[Event], None]


def log_reminder_fired(event: Event) -> None:
    """Default notifier: one structured log line per fired reminder."""
    log_event(
        logger,
        level="INFO",
        event="reminder_fired",
        msg=f'Reminder: Event "{event.name}" (User: {event.owner}) is coming up at {utc_iso(event.date)}',
        event_id=str(event.id),
        user=event.owner,
    )


@dataclass
class SweepResult:
    scanned: int = 0
    fired: int = 0
    saved: bool = False


class ReminderScheduler:
    def __init__(
        self,
        repository: EventRepository,
        notifier: Notifier = log_reminder_fired,
    ) -> None:
        self.repository = repository
        self.notifier = notifier

    def _notify(self, event: Event, run_id: str) -> None:
        try:
            self.notifier(event)
        except Exception as e:
            # Delivery failure never undoes the state change.
            log_event(
                logger,
                level="ERROR",
                event="reminder_notify_error",
                msg="reminder notifier failed",
                run_id=run_id,
                event_id=str(event.id),
                error={"type": type(e).__name__, "message": str(e)},
            )

    def sweep(self, now: Optional[datetime] = None, *, run_id: str = "manual") -> SweepResult:
        """
        State machine per reminder: pending -> fired, once due_at <= now.
        fired is terminal. The store is written only if something fired.
        """
        now = now or utcnow()

        def _fire_due(events: list[Event]) -> tuple[bool, SweepResult]:
            result = SweepResult(scanned=len(events))
            for ev in events:
                if not ev.reminder.is_due(now):
                    continue
                ev.reminder.notified = True
                result.fired += 1
                self._notify(ev, run_id)
            result.saved = result.fired > 0
            return result.saved, result

        return self.repository.update_all(_fire_due)

    def run_job(self) -> None:
        run_id = str(uuid.uuid4())
        t0 = time.monotonic()

        log_event(
            logger,
            level="INFO",
            event="scheduler_run_start",
            msg="reminder sweep started",
            run_id=run_id,
        )

        try:
            result = self.sweep(run_id=run_id)
        except Exception as e:
            duration_ms = int((time.monotonic() - t0) * 1000)
            log_event(
                logger,
                level="ERROR",
                event="scheduler_run_end",
                msg="reminder sweep failed",
                run_id=run_id,
                duration_ms=duration_ms,
                error={
                    "type": type(e).__name__,
                    "message": str(e),
                    "stacktrace": traceback.format_exc(),
                },
            )
            return

        duration_ms = int((time.monotonic() - t0) * 1000)
        log_event(
            logger,
            level="INFO",
            event="scheduler_run_end",
            msg="reminder sweep finished",
            run_id=run_id,
            duration_ms=duration_ms,
            counts={
                "scanned": result.scanned,
                "fired": result.fired,
                "saved": result.saved,
            },
        )


def setup_scheduler(reminders: ReminderScheduler, interval_seconds: int) -> None:
    log_event(
        logger,
        level="INFO",
        event="scheduler_configured",
        msg="scheduler configured",
        run_id="startup",
        interval_seconds=interval_seconds,
    )

    scheduler.add_job(
        reminders.run_job,
        trigger=IntervalTrigger(seconds=interval_seconds),
        id=JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
    )
