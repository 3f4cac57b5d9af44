"""
Reminder lifecycle: pending -> fired (terminal).

Given/When/Then is spelled out so the sweep rules stay verifiable without
waiting on the real clock: every sweep gets an explicit "now".
"""

from datetime import timedelta

import pytest

from conftest import BASE_NOW
from services.reminder_scheduler import (
    JOB_ID,
    ReminderScheduler,
    scheduler,
    setup_scheduler,
)


def _iso(dt) -> str:
    return dt.isoformat().replace("+00:00", "Z")


@pytest.fixture
def fired():
    return []


@pytest.fixture
def reminders(repository, fired):
    return ReminderScheduler(repository, notifier=fired.append)


def _get(repository, event_id):
    return next(e for e in repository.load_all() if e.id == event_id)


def test_reminder_fires_once_due_time_has_passed(service, repository, reminders, fired):
    # Given: an event in one hour with a reminder in five minutes
    ev = service.create(
        "alice",
        name="Team Meeting",
        date=_iso(BASE_NOW + timedelta(hours=1)),
        category="Meetings",
        reminder_time=_iso(BASE_NOW + timedelta(minutes=5)),
    )
    assert _get(repository, ev.id).reminder.notified is False

    # When: a sweep runs before the reminder is due
    early = reminders.sweep(BASE_NOW)

    # Then: nothing fires
    assert early.fired == 0
    assert _get(repository, ev.id).reminder.notified is False

    # When: a sweep runs after the reminder time
    late = reminders.sweep(BASE_NOW + timedelta(minutes=6))

    # Then: the stored event is marked fired and the notifier saw it
    assert late.fired == 1
    assert late.saved is True
    stored = _get(repository, ev.id)
    assert stored.reminder.notified is True
    assert stored.reminder.is_set is True
    assert [e.id for e in fired] == [ev.id]


def test_reminder_due_exactly_now_fires(service, repository, reminders):
    ev = service.create(
        "alice",
        name="Call",
        date=_iso(BASE_NOW),
        category="Calls",
        reminder_time=_iso(BASE_NOW),
    )

    assert reminders.sweep(BASE_NOW).fired == 1
    assert _get(repository, ev.id).reminder.notified is True


def test_event_without_reminder_never_fires(service, repository, reminders, fired):
    ev = service.create("alice", name="Plain", date=_iso(BASE_NOW), category="Misc")

    for days in (0, 1, 365):
        result = reminders.sweep(BASE_NOW + timedelta(days=days))
        assert result.fired == 0

    stored = _get(repository, ev.id)
    assert stored.reminder.is_set is False
    assert stored.reminder.notified is False
    assert fired == []


def test_second_sweep_at_same_time_changes_nothing_and_skips_write(
    service, store, reminders, fired
):
    service.create(
        "alice",
        name="Dentist",
        date=_iso(BASE_NOW + timedelta(days=1)),
        category="Health",
        reminder_time=_iso(BASE_NOW - timedelta(minutes=1)),
    )

    first = reminders.sweep(BASE_NOW)
    writes_after_first = store.writes
    blob_after_first = store.blob

    second = reminders.sweep(BASE_NOW)

    assert first.fired == 1
    assert second.fired == 0
    assert second.saved is False
    assert store.writes == writes_after_first
    assert store.blob == blob_after_first
    assert len(fired) == 1


def test_no_due_reminders_means_no_write(service, store, reminders):
    service.create(
        "alice",
        name="Future",
        date=_iso(BASE_NOW + timedelta(days=3)),
        category="Misc",
        reminder_time=_iso(BASE_NOW + timedelta(days=2)),
    )
    writes = store.writes

    result = reminders.sweep(BASE_NOW)

    assert result.scanned == 1
    assert result.fired == 0
    assert store.writes == writes


def test_fired_is_terminal(service, repository, reminders):
    ev = service.create(
        "alice",
        name="Gym",
        date=_iso(BASE_NOW),
        category="Health",
        reminder_time=_iso(BASE_NOW - timedelta(hours=1)),
    )
    reminders.sweep(BASE_NOW)

    # Later sweeps, including one with a clock that went backwards, never revert it.
    for now in (BASE_NOW - timedelta(days=1), BASE_NOW, BASE_NOW + timedelta(days=1)):
        assert reminders.sweep(now).fired == 0
        assert _get(repository, ev.id).reminder.notified is True


def test_sweep_covers_all_owners_and_only_due_reminders(service, repository, reminders):
    due_a = service.create(
        "alice", name="a", date=_iso(BASE_NOW), category="x",
        reminder_time=_iso(BASE_NOW - timedelta(minutes=2)),
    )
    due_b = service.create(
        "bob", name="b", date=_iso(BASE_NOW), category="x",
        reminder_time=_iso(BASE_NOW - timedelta(minutes=1)),
    )
    not_due = service.create(
        "bob", name="c", date=_iso(BASE_NOW), category="x",
        reminder_time=_iso(BASE_NOW + timedelta(minutes=1)),
    )

    result = reminders.sweep(BASE_NOW)

    assert result.scanned == 3
    assert result.fired == 2
    assert _get(repository, due_a.id).reminder.notified is True
    assert _get(repository, due_b.id).reminder.notified is True
    assert _get(repository, not_due.id).reminder.notified is False


def test_failing_notifier_does_not_stop_the_sweep(service, repository):
    def _boom(event):
        raise RuntimeError("delivery down")

    reminders = ReminderScheduler(repository, notifier=_boom)
    for name in ("one", "two"):
        service.create(
            "alice", name=name, date=_iso(BASE_NOW), category="x",
            reminder_time=_iso(BASE_NOW - timedelta(minutes=1)),
        )

    result = reminders.sweep(BASE_NOW)

    assert result.fired == 2
    assert all(e.reminder.notified for e in repository.load_all())


def test_run_job_logs_instead_of_raising():
    class _BrokenRepository:
        def update_all(self, mutator):
            raise OSError("disk gone")

    ReminderScheduler(_BrokenRepository()).run_job()


def test_run_job_fires_due_reminders(service, repository):
    ev = service.create(
        "alice", name="past", date=_iso(BASE_NOW), category="x",
        reminder_time=_iso(BASE_NOW),
    )

    # BASE_NOW is in the past relative to the wall clock.
    ReminderScheduler(repository).run_job()

    assert _get(repository, ev.id).reminder.notified is True


def test_setup_scheduler_registers_interval_job(repository):
    try:
        setup_scheduler(ReminderScheduler(repository), interval_seconds=30)

        job = scheduler.get_job(JOB_ID)
        assert job is not None
        assert job.trigger.interval == timedelta(seconds=30)
    finally:
        scheduler.remove_all_jobs()
