# src/taskbell/core/app.py

"""
Application controller.

TaskApp owns the task store and the reminder scheduler and is the only place
that mutates them in response to user actions:

  user action -> date normalization -> store mutation (+ save)
              -> reminder (re)scheduling -> view re-render + progress

Lifecycle is explicit: initialize() loads tasks, asks for notification
permission and arms reminders; teardown() cancels every timer.

Operations never raise on bad input: they return ValidationFailure, and
operations on an unknown id are no-ops (None / False).
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from ..config import DEFAULT_MAX_TIMER_DELAY_SECONDS
from ..notifications import PERMISSION_DEFAULT, deliver_notification
from ..tasks.dates import normalize_due_date
from ..tasks.task_models import (
    Progress,
    Task,
    TaskDraft,
    TaskFilter,
    TaskPatch,
    ValidationFailure,
)
from ..tasks.task_scheduler import ReminderScheduler
from ..tasks.task_store import TaskStore
from .ports import Notifier, TaskView, Timers

logger = logging.getLogger(__name__)

COMPLETED_TITLE = "🎉 TASK COMPLETED!"


class TaskApp:
    def __init__(
        self,
        store: TaskStore,
        notifier: Notifier,
        timers: Timers,
        *,
        view: TaskView | None = None,
        clock: Callable[[], datetime] | None = None,
        sweep_interval_seconds: float = 60.0,
        max_timer_delay_seconds: float = DEFAULT_MAX_TIMER_DELAY_SECONDS,
    ) -> None:
        self.store = store
        self.notifier = notifier
        self.view = view
        self._clock = clock or datetime.now

        self.scheduler = ReminderScheduler(
            store,
            notifier,
            timers,
            clock=self._clock,
            sweep_interval_seconds=sweep_interval_seconds,
            max_timer_delay_seconds=max_timer_delay_seconds,
        )

        self.current_filter = TaskFilter.ALL
        self._initialized = False

    # ---- lifecycle ----

    def initialize(self) -> None:
        if self._initialized:
            return
        self.store.load()

        if self.notifier.permission == PERMISSION_DEFAULT:
            try:
                self.notifier.request_permission()
            except Exception:
                logger.exception("Notification permission request failed")

        self.scheduler.start()
        self._initialized = True
        self.refresh()
        logger.info("TaskApp initialized tasks=%d", len(self.store))

    def teardown(self) -> None:
        """Best-effort cleanup: no exceptions should escape."""
        try:
            self.scheduler.stop()
        except Exception:
            logger.exception("Scheduler stop failed")
        self._initialized = False

    # ---- view ----

    def visible_tasks(self) -> list[Task]:
        return self.store.list(self.current_filter)

    def progress(self) -> Progress:
        return self.store.progress()

    def refresh(self) -> None:
        if self.view is None:
            return
        try:
            self.view.render(self.visible_tasks(), self.current_filter)
            self.view.show_progress(self.progress())
        except Exception:
            logger.exception("View refresh failed")

    def set_filter(self, task_filter: TaskFilter | str) -> TaskFilter | ValidationFailure:
        try:
            flt = TaskFilter(str(task_filter).strip().lower())
        except ValueError:
            return ValidationFailure(f"Unknown filter: {task_filter!r} (use all, active or completed).")
        self.current_filter = flt
        self.refresh()
        return flt

    # ---- operations ----

    def _normalize_input_date(self, raw: str | None) -> str | None | ValidationFailure:
        """'' / None -> no due date; unparseable text -> ValidationFailure."""
        if raw is None or not raw.strip():
            return None
        canonical = normalize_due_date(raw, today=self._clock().date())
        if canonical is None:
            return ValidationFailure(f"Not a valid date: {raw.strip()!r}.")
        return canonical

    def add_task(
        self,
        text: str,
        *,
        priority: str = "medium",
        due: str | None = None,
        notes: str = "",
    ) -> Task | ValidationFailure:
        if not (text or "").strip():
            return ValidationFailure("Please enter a task!")

        due_date = self._normalize_input_date(due)
        if isinstance(due_date, ValidationFailure):
            return due_date

        try:
            task = self.store.add(TaskDraft(text=text, priority=priority, due_date=due_date, notes=notes))
        except ValueError as e:
            return ValidationFailure(str(e))

        self.scheduler.schedule(task)
        self.refresh()
        return task

    def edit_task(
        self,
        task_id: int,
        *,
        text: str | None = None,
        priority: str | None = None,
        due: str | None = None,
        notes: str | None = None,
    ) -> Task | ValidationFailure | None:
        """
        Edit fields of a task. Arguments left as None are unchanged;
        due="" clears the due date.
        """
        if self.store.get(task_id) is None:
            return None

        if text is not None and not text.strip():
            return ValidationFailure("Task text cannot be empty.")

        patch_due: str | None = None
        if due is not None:
            normalized = self._normalize_input_date(due)
            if isinstance(normalized, ValidationFailure):
                return normalized
            patch_due = normalized or ""

        try:
            task = self.store.update(
                task_id,
                TaskPatch(text=text, priority=priority, due_date=patch_due, notes=notes),
            )
        except ValueError as e:
            return ValidationFailure(str(e))
        if task is None:
            return None

        # A moved due date already reset due_reminder_sent in the store.
        self.scheduler.schedule(task)
        self.refresh()
        return task

    def toggle_complete(self, task_id: int) -> Task | None:
        current = self.store.get(task_id)
        if current is None:
            return None

        becoming_done = not current.completed
        if becoming_done:
            self.scheduler.unschedule(task_id)

        task = self.store.toggle_complete(task_id)
        if task is None:
            return None

        if becoming_done:
            deliver_notification(self.notifier, COMPLETED_TITLE, f'Well done! You finished: "{task.text}"')
        else:
            self.scheduler.schedule(task)

        self.refresh()
        return task

    def delete_task(self, task_id: int) -> bool:
        if self.store.get(task_id) is None:
            return False
        self.scheduler.unschedule(task_id)
        self.store.remove(task_id)
        self.refresh()
        return True

    def clear_completed(self) -> int:
        for task in self.store.list(TaskFilter.COMPLETED):
            self.scheduler.unschedule(task.id)
        removed = self.store.clear_completed()
        self.refresh()
        return len(removed)
