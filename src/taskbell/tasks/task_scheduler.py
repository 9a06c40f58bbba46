# src/taskbell/tasks/task_scheduler.py

from __future__ import annotations

"""
Due-soon reminder scheduler.

Each task with a due date gets one "due tomorrow" notification, fired 24 hours
before local midnight of its due date:
- a one-shot timer per task id (at most one live timer per id),
- immediate delivery when the reminder moment has already passed but the due
  date has not (the app was not running through the reminder window),
- a periodic sweep that re-runs schedule() for every task. Delays longer than
  the timer ceiling are never armed directly; the sweep picks them up once the
  remaining delay fits.

The window is computed on timezone-aware local datetimes, so "24 hours
before" stays 24 real hours across a DST change.

The due_reminder_sent flag is persisted only once a reminder has actually been
handed to the notifier, so a restart never repeats it. A reminder that could
not be shown (no permission, backend error) is retried by the sweep while the
window lasts.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, time, timedelta

from ..config import DEFAULT_MAX_TIMER_DELAY_SECONDS
from ..core.ports import Notifier, TimerHandle, Timers
from ..notifications import deliver_notification
from .dates import parse_canonical
from .task_models import Task
from .task_store import TaskStore

logger = logging.getLogger(__name__)

REMINDER_LEAD = timedelta(hours=24)
DUE_SOON_TITLE = "⏳ Task Due SOON!"


def due_soon_message(task: Task) -> str:
    return f'The task: "{task.text}" is due tomorrow! Priority: {task.priority.value.upper()}'


def _local_aware(dt: datetime) -> datetime:
    # Naive datetimes are local wall-clock time.
    return dt.astimezone() if dt.tzinfo is None else dt


@dataclass(slots=True, frozen=True)
class ReminderWindow:
    """[reminder_at, due_midnight) as aware local datetimes."""

    reminder_at: datetime
    due_midnight: datetime

    def contains(self, now: datetime) -> bool:
        return self.reminder_at <= _local_aware(now) < self.due_midnight

    def seconds_until_reminder(self, now: datetime) -> float:
        return (self.reminder_at - _local_aware(now)).total_seconds()


def reminder_window(task: Task) -> ReminderWindow | None:
    due = parse_canonical(task.due_date)
    if due is None:
        return None
    due_midnight = datetime.combine(due, time.min).astimezone()
    return ReminderWindow(reminder_at=due_midnight - REMINDER_LEAD, due_midnight=due_midnight)


class ReminderScheduler:
    def __init__(
        self,
        store: TaskStore,
        notifier: Notifier,
        timers: Timers,
        *,
        clock: Callable[[], datetime] | None = None,
        sweep_interval_seconds: float = 60.0,
        max_timer_delay_seconds: float = DEFAULT_MAX_TIMER_DELAY_SECONDS,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._timers = timers
        self._clock = clock or datetime.now
        self._sweep_interval = max(0.001, float(sweep_interval_seconds))
        self._max_delay = float(max_timer_delay_seconds)

        self._handles: dict[int, TimerHandle] = {}
        self._sweep_handle: TimerHandle | None = None
        self._undelivered: set[int] = set()
        self._running = False

    # ---- introspection ----

    @property
    def running(self) -> bool:
        return self._running

    @property
    def sweep_armed(self) -> bool:
        return self._sweep_handle is not None

    def armed_task_ids(self) -> set[int]:
        return set(self._handles)

    def has_timer(self, task_id: int) -> bool:
        return task_id in self._handles

    # ---- lifecycle ----

    def start(self) -> None:
        """Arm reminders for every stored task and start the sweep."""
        if self._running:
            return
        self._running = True
        self.sweep_all()
        logger.info(
            "Reminder scheduler started armed=%d sweep=%s",
            len(self._handles),
            self.sweep_armed,
        )

    def stop(self) -> None:
        """Cancel every outstanding timer and the sweep."""
        for handle in self._handles.values():
            handle.cancel()
        n = len(self._handles)
        self._handles.clear()
        if self._sweep_handle is not None:
            self._sweep_handle.cancel()
            self._sweep_handle = None
        self._running = False
        logger.info("Reminder scheduler stopped (cancelled %d timers)", n)

    # ---- scheduling ----

    def schedule(self, task: Task) -> None:
        # Cancel first: never two live timers for one id.
        self.unschedule(task.id)

        if not task.due_date or task.completed or task.due_reminder_sent:
            return

        window = reminder_window(task)
        if window is None:
            logger.warning("Task %s has a non-canonical due date %r; no reminder", task.id, task.due_date)
            return

        now = self._clock()
        if window.contains(now):
            if not self._deliver(task):
                # Not shown; the sweep retries while the window lasts.
                self._ensure_sweep()
            return

        delay = window.seconds_until_reminder(now)
        if delay < 0:
            # Due date already reached.
            return
        if delay > self._max_delay:
            logger.debug("Task %s reminder in %.0fs exceeds timer ceiling; left to sweep", task.id, delay)
        else:
            self._handles[task.id] = self._timers.call_later(delay, self._on_timer, task.id, task.due_date)
            logger.debug("Task %s reminder armed in %.0fs", task.id, delay)

        self._ensure_sweep()

    def unschedule(self, task_id: int) -> None:
        handle = self._handles.pop(task_id, None)
        if handle is not None:
            handle.cancel()
            logger.debug("Task %s reminder cancelled", task_id)

    def sweep_all(self) -> None:
        for task in self._store.list():
            try:
                self.schedule(task)
            except Exception:
                logger.exception("schedule failed during sweep task_id=%s", task.id)

    # ---- timer callbacks ----

    def _ensure_sweep(self) -> None:
        if not self._running or self._sweep_handle is not None:
            return
        self._sweep_handle = self._timers.call_later(self._sweep_interval, self._on_sweep)

    def _on_sweep(self) -> None:
        # schedule() re-arms the sweep while any task still needs a reminder.
        self._sweep_handle = None
        try:
            self.sweep_all()
        except Exception:
            logger.exception("Reminder sweep failed")

    def _on_timer(self, task_id: int, due_date: str) -> None:
        self._handles.pop(task_id, None)
        try:
            # Re-read: the task may have been edited, completed or removed since arming.
            task = self._store.get(task_id)
            if task is None or task.completed or task.due_reminder_sent or task.due_date != due_date:
                logger.debug("Stale reminder for task %s ignored", task_id)
                return
            if not self._deliver(task):
                self._ensure_sweep()
        except Exception:
            logger.exception("Reminder callback failed task_id=%s", task_id)

    def _deliver(self, task: Task) -> bool:
        if not deliver_notification(self._notifier, DUE_SOON_TITLE, due_soon_message(task)):
            if task.id not in self._undelivered:
                self._undelivered.add(task.id)
                logger.warning("Task %s due-soon reminder not shown; will retry", task.id)
            return False
        self._undelivered.discard(task.id)
        self._store.mark_reminder_sent(task.id)
        logger.info("Task %s due-soon reminder sent (due=%s)", task.id, task.due_date)
        return True
