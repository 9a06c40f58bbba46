# tests/test_task_scheduler.py

from __future__ import annotations

import asyncio
import json
import time
from datetime import datetime, timedelta, timezone

import pytest

from taskbell.storage import MemoryKeyValueStore
from taskbell.tasks.task_models import TaskDraft, TaskPatch
from taskbell.tasks.task_scheduler import DUE_SOON_TITLE, ReminderScheduler, reminder_window
from taskbell.tasks.task_store import TaskStore

from .fakes import FakeClock, FakeNotifier, FakeTimers


def _due_soon(notifier: FakeNotifier) -> list[tuple[str, str]]:
    return notifier.titled(DUE_SOON_TITLE)


def test_reminder_window_is_24h_before_local_midnight(store: TaskStore) -> None:
    t = store.add(TaskDraft(text="x", due_date="2026-03-12"))
    window = reminder_window(t)
    assert window.due_midnight == datetime(2026, 3, 12, 0, 0).astimezone()
    assert window.due_midnight - window.reminder_at == timedelta(hours=24)
    assert window.contains(datetime(2026, 3, 11, 0, 0))
    assert not window.contains(datetime(2026, 3, 10, 23, 59))
    assert not window.contains(datetime(2026, 3, 12, 0, 0))


def test_inside_window_delivers_immediately_once(
    store: TaskStore,
    scheduler: ReminderScheduler,
    notifier: FakeNotifier,
    kv: MemoryKeyValueStore,
    timers: FakeTimers,
) -> None:
    # now = 10 March 09:00, due 11 March -> window [10 Mar 00:00, 11 Mar 00:00)
    t = store.add(TaskDraft(text="Submit form", priority="high", due_date="2026-03-11"))

    scheduler.schedule(t)
    scheduler.schedule(store.get(t.id))

    sent = _due_soon(notifier)
    assert len(sent) == 1
    assert sent[0][1] == 'The task: "Submit form" is due tomorrow! Priority: HIGH'
    assert store.get(t.id).due_reminder_sent is True
    assert json.loads(kv.data["tasks"])[0]["dueReminderSent"] is True
    assert timers.live_for_task(t.id) == []


def test_future_reminder_is_armed_and_fires_at_reminder_time(
    store: TaskStore,
    scheduler: ReminderScheduler,
    notifier: FakeNotifier,
    timers: FakeTimers,
    clock: FakeClock,
) -> None:
    t = store.add(TaskDraft(text="Dentist", due_date="2026-03-13"))
    scheduler.schedule(t)

    assert scheduler.has_timer(t.id)
    assert len(timers.live_for_task(t.id)) == 1

    # 11 March 23:00, still an hour before the reminder moment.
    timers.advance(datetime(2026, 3, 11, 23, 0) - clock.now)
    assert _due_soon(notifier) == []

    timers.advance(timedelta(hours=2))
    assert len(_due_soon(notifier)) == 1
    assert store.get(t.id).due_reminder_sent is True
    assert not scheduler.has_timer(t.id)

    timers.advance(timedelta(days=3))
    assert len(_due_soon(notifier)) == 1


def test_schedule_twice_keeps_one_live_timer(
    store: TaskStore,
    scheduler: ReminderScheduler,
    notifier: FakeNotifier,
    timers: FakeTimers,
) -> None:
    t = store.add(TaskDraft(text="x", due_date="2026-03-15"))
    scheduler.schedule(t)
    scheduler.schedule(t)

    assert len(timers.live_for_task(t.id)) == 1
    assert scheduler.armed_task_ids() == {t.id}

    timers.advance(timedelta(days=6))
    assert len(_due_soon(notifier)) == 1


@pytest.mark.parametrize("due", ["2026-03-10", "2026-03-01"])
def test_due_today_or_overdue_gets_no_reminder(
    due: str,
    store: TaskStore,
    scheduler: ReminderScheduler,
    notifier: FakeNotifier,
    timers: FakeTimers,
) -> None:
    t = store.add(TaskDraft(text="late", due_date=due))
    scheduler.schedule(t)

    assert notifier.sent == []
    assert timers.live_for_task(t.id) == []
    assert store.get(t.id).due_reminder_sent is False


def test_guards_skip_undated_completed_and_already_reminded(
    store: TaskStore,
    scheduler: ReminderScheduler,
    notifier: FakeNotifier,
) -> None:
    undated = store.add(TaskDraft(text="someday"))
    done = store.add(TaskDraft(text="done", due_date="2026-03-11"))
    store.toggle_complete(done.id)
    reminded = store.add(TaskDraft(text="reminded", due_date="2026-03-11"))
    store.mark_reminder_sent(reminded.id)

    for t in (undated, done, reminded):
        scheduler.schedule(store.get(t.id))

    assert notifier.sent == []
    assert scheduler.armed_task_ids() == set()


def test_unschedule_is_idempotent(store: TaskStore, scheduler: ReminderScheduler, timers: FakeTimers) -> None:
    t = store.add(TaskDraft(text="x", due_date="2026-03-15"))
    scheduler.schedule(t)

    scheduler.unschedule(t.id)
    scheduler.unschedule(t.id)
    scheduler.unschedule(12345)

    assert timers.live_for_task(t.id) == []


def test_delay_beyond_timer_ceiling_is_left_to_the_sweep(
    store: TaskStore,
    notifier: FakeNotifier,
    timers: FakeTimers,
    clock: FakeClock,
) -> None:
    scheduler = ReminderScheduler(
        store,
        notifier,
        timers,
        clock=clock,
        sweep_interval_seconds=3600.0,
        max_timer_delay_seconds=6 * 3600.0,
    )
    t = store.add(TaskDraft(text="far away", due_date="2026-03-20"))
    scheduler.start()

    assert not scheduler.has_timer(t.id)
    assert scheduler.sweep_armed

    # 18 March 12:00: reminder (19 Mar 00:00) is 12h away, still above the ceiling.
    timers.advance(datetime(2026, 3, 18, 12, 0) - clock.now)
    assert not scheduler.has_timer(t.id)
    assert _due_soon(notifier) == []

    # Within 6h the sweep arms a direct timer.
    timers.advance(timedelta(hours=7))
    assert scheduler.has_timer(t.id)

    timers.advance(timedelta(hours=6))
    assert len(_due_soon(notifier)) == 1

    # Nothing left to remind about: the sweep goes idle.
    timers.advance(timedelta(hours=2))
    assert not scheduler.sweep_armed


def test_sweep_is_idle_without_candidates(scheduler: ReminderScheduler, timers: FakeTimers) -> None:
    scheduler.start()
    assert not scheduler.sweep_armed
    assert timers.live() == []


def test_stale_timer_is_ignored_when_task_changed_behind_its_back(
    store: TaskStore,
    scheduler: ReminderScheduler,
    notifier: FakeNotifier,
    timers: FakeTimers,
) -> None:
    moved = store.add(TaskDraft(text="moved", due_date="2026-03-13"))
    gone = store.add(TaskDraft(text="gone", due_date="2026-03-13"))
    scheduler.schedule(moved)
    scheduler.schedule(gone)

    # Mutate the store directly, bypassing the scheduler.
    store.update(moved.id, TaskPatch(due_date="2026-04-30"))
    store.remove(gone.id)

    timers.advance(timedelta(days=2, hours=12))
    assert _due_soon(notifier) == []


def test_stop_cancels_every_timer(
    store: TaskStore,
    scheduler: ReminderScheduler,
    timers: FakeTimers,
    notifier: FakeNotifier,
) -> None:
    for due in ("2026-03-13", "2026-03-14", "2026-03-15"):
        store.add(TaskDraft(text=due, due_date=due))
    scheduler.start()
    assert len(scheduler.armed_task_ids()) == 3
    assert scheduler.sweep_armed

    scheduler.stop()
    assert scheduler.armed_task_ids() == set()
    assert not scheduler.sweep_armed
    assert timers.live() == []

    timers.advance(timedelta(days=10))
    assert notifier.sent == []


@pytest.mark.parametrize("permission,fail", [("denied", False), ("default", False), ("granted", True)])
def test_reminder_that_was_not_shown_stays_pending(
    permission: str,
    fail: bool,
    store: TaskStore,
    kv: MemoryKeyValueStore,
    timers: FakeTimers,
    clock: FakeClock,
) -> None:
    notifier = FakeNotifier(permission=permission, fail=fail)
    scheduler = ReminderScheduler(store, notifier, timers, clock=clock, sweep_interval_seconds=60.0)
    t = store.add(TaskDraft(text="x", due_date="2026-03-11"))
    scheduler.start()

    assert notifier.sent == []
    assert store.get(t.id).due_reminder_sent is False
    assert json.loads(kv.data["tasks"])[0]["dueReminderSent"] is False
    assert scheduler.sweep_armed

    # Once notifications work again the next sweep delivers it.
    notifier.permission = "granted"
    notifier.fail = False
    timers.advance(timedelta(seconds=61))

    assert len(_due_soon(notifier)) == 1
    assert store.get(t.id).due_reminder_sent is True

    timers.advance(timedelta(minutes=10))
    assert len(_due_soon(notifier)) == 1


def test_undelivered_reminder_is_not_retried_after_due_date(
    store: TaskStore,
    timers: FakeTimers,
    clock: FakeClock,
) -> None:
    notifier = FakeNotifier(permission="denied")
    scheduler = ReminderScheduler(store, notifier, timers, clock=clock, sweep_interval_seconds=60.0)
    t = store.add(TaskDraft(text="x", due_date="2026-03-11"))
    scheduler.start()

    # Past midnight of the due date the sweep has nothing left to do.
    timers.advance(datetime(2026, 3, 11, 0, 1) - clock.now)
    assert not scheduler.sweep_armed

    notifier.permission = "granted"
    scheduler.sweep_all()
    assert notifier.sent == []
    assert store.get(t.id).due_reminder_sent is False


@pytest.fixture()
def berlin_time(monkeypatch: pytest.MonkeyPatch):
    # POSIX rule for Central European Time; DST starts 29 March 2026 at 02:00.
    monkeypatch.setenv("TZ", "CET-1CEST,M3.5.0,M10.5.0/3")
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()


@pytest.mark.skipif(not hasattr(time, "tzset"), reason="needs time.tzset")
def test_reminder_is_24_real_hours_before_midnight_across_dst(
    berlin_time,
    store: TaskStore,
    notifier: FakeNotifier,
    timers: FakeTimers,
    clock: FakeClock,
) -> None:
    scheduler = ReminderScheduler(store, notifier, timers, clock=clock)
    t = store.add(TaskDraft(text="after the clock change", due_date="2026-03-30"))

    window = reminder_window(t)
    # Midnight 30 March is CEST (UTC+2); 24 h earlier is 23:00 CET on 28 March.
    assert window.due_midnight == datetime(2026, 3, 29, 22, 0, tzinfo=timezone.utc)
    assert window.reminder_at == datetime(2026, 3, 28, 22, 0, tzinfo=timezone.utc)

    clock.now = datetime(2026, 3, 28, 12, 0)
    scheduler.schedule(t)

    [handle] = timers.live_for_task(t.id)
    assert handle.when == datetime(2026, 3, 28, 23, 0)


@pytest.mark.asyncio
async def test_real_event_loop_fires_armed_reminder() -> None:
    store = TaskStore(MemoryKeyValueStore())
    notifier = FakeNotifier()
    t = store.add(TaskDraft(text="soon", due_date="2026-03-13"))

    # Reminder moment (12 March 00:00) is 50 ms away.
    frozen = datetime(2026, 3, 12, 0, 0) - timedelta(milliseconds=50)
    scheduler = ReminderScheduler(store, notifier, asyncio.get_running_loop(), clock=lambda: frozen)

    scheduler.schedule(t)
    assert scheduler.has_timer(t.id)

    await asyncio.sleep(0.3)

    assert len(_due_soon(notifier)) == 1
    assert store.get(t.id).due_reminder_sent is True
    scheduler.stop()
