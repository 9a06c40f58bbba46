# src/taskbell/tasks/task_store.py

from __future__ import annotations

import json
import logging
import time
from collections.abc import Callable
from typing import Any

from ..core.ports import KeyValueStore
from .dates import is_canonical, normalize_due_date
from .task_models import Priority, Progress, Task, TaskDraft, TaskFilter, TaskPatch

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def _flag(value: Any) -> bool:
    # Only real JSON booleans count; "false" or 1 from a hand-edited file do not.
    return value if isinstance(value, bool) else False


class TaskStore:
    """
    In-memory task list persisted as one JSON blob under a fixed key.

    The payload is a list of objects with camelCase keys
    (id, text, completed, priority, dueDate, notes, dueReminderSent).

    Every mutation rewrites the whole payload. Loading is tolerant:
    - missing key -> empty list
    - malformed payload -> empty list (logged)
    - malformed records are skipped, missing fields get their defaults
    """

    def __init__(
        self,
        kv: KeyValueStore,
        *,
        storage_key: str = "tasks",
        id_source: Callable[[], int] | None = None,
    ) -> None:
        self._kv = kv
        self._key = storage_key
        self._id_source = id_source or _now_ms
        self._tasks: list[Task] = []

    def __len__(self) -> int:
        return len(self._tasks)

    # ---- serialization ----

    @staticmethod
    def _task_to_record(task: Task) -> dict[str, Any]:
        return {
            "id": task.id,
            "text": task.text,
            "completed": task.completed,
            "priority": task.priority.value,
            "dueDate": task.due_date or "",
            "notes": task.notes,
            "dueReminderSent": task.due_reminder_sent,
        }

    @staticmethod
    def _record_to_task(rec: dict[str, Any]) -> Task | None:
        raw_id = rec.get("id")
        if isinstance(raw_id, bool) or not isinstance(raw_id, (int, float, str)):
            return None
        try:
            task_id = int(raw_id)
        except (ValueError, OverflowError):
            return None

        text = str(rec.get("text") or "").strip()
        if not text:
            return None

        raw_due = rec.get("dueDate")
        due_date: str | None = None
        if isinstance(raw_due, str) and raw_due.strip():
            # Older payloads stored whatever the date field contained.
            due_date = raw_due if is_canonical(raw_due) else normalize_due_date(raw_due)

        return Task(
            id=task_id,
            text=text,
            completed=_flag(rec.get("completed")),
            priority=Priority.from_raw(rec.get("priority")),
            due_date=due_date,
            notes=str(rec.get("notes") or ""),
            due_reminder_sent=_flag(rec.get("dueReminderSent")),
        )

    # ---- persistence ----

    def load(self) -> list[Task]:
        try:
            raw = self._kv.get(self._key)
        except Exception:
            logger.exception("Failed to read stored tasks key=%s; starting empty", self._key)
            raw = None

        if not raw:
            self._tasks = []
            logger.info("TaskStore loaded key=%s total=0", self._key)
            return self.list()

        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Stored tasks payload is not valid JSON; discarding it")
            data = []

        if not isinstance(data, list):
            logger.warning("Stored tasks payload is not a list (%s); discarding it", type(data).__name__)
            data = []

        tasks: list[Task] = []
        seen: set[int] = set()
        for rec in data:
            task = self._record_to_task(rec) if isinstance(rec, dict) else None
            if task is None:
                logger.warning("Skipping malformed task record: %r", rec)
                continue
            if task.id in seen:
                logger.warning("Skipping task with duplicate id=%s", task.id)
                continue
            seen.add(task.id)
            tasks.append(task)

        self._tasks = tasks
        logger.info("TaskStore loaded key=%s total=%s", self._key, len(tasks))
        return self.list()

    def save(self) -> None:
        """Write the whole list. Failures are logged and not retried."""
        payload = json.dumps([self._task_to_record(t) for t in self._tasks], ensure_ascii=False)
        try:
            self._kv.put(self._key, payload)
        except Exception:
            logger.exception("Failed to save tasks key=%s", self._key)

    # ---- queries ----

    def get(self, task_id: int) -> Task | None:
        for t in self._tasks:
            if t.id == task_id:
                return t
        return None

    def list(self, task_filter: TaskFilter | str = TaskFilter.ALL) -> list[Task]:
        flt = TaskFilter(task_filter)
        return [t for t in self._tasks if flt.accepts(t)]

    def progress(self) -> Progress:
        done = sum(1 for t in self._tasks if t.completed)
        return Progress(completed=done, total=len(self._tasks))

    # ---- mutations ----

    def _next_id(self) -> int:
        candidate = int(self._id_source())
        highest = max((t.id for t in self._tasks), default=None)
        if highest is not None and candidate <= highest:
            candidate = highest + 1
        return candidate

    def add(self, draft: TaskDraft) -> Task:
        text = (draft.text or "").strip()
        if not text:
            raise ValueError("task text is required")

        task = Task(
            id=self._next_id(),
            text=text,
            completed=False,
            priority=Priority.parse(draft.priority),
            due_date=draft.due_date or None,
            notes=(draft.notes or "").strip(),
            due_reminder_sent=False,
        )
        self._tasks.append(task)
        self.save()
        logger.debug("Task added id=%s priority=%s due=%s", task.id, task.priority.value, task.due_date)
        return task

    def update(self, task_id: int, patch: TaskPatch) -> Task | None:
        task = self.get(task_id)
        if task is None:
            return None

        text = task.text
        if patch.text is not None:
            text = patch.text.strip()
            if not text:
                raise ValueError("task text is required")
        priority = task.priority if patch.priority is None else Priority.parse(patch.priority)

        task.text = text
        task.priority = priority
        if patch.notes is not None:
            task.notes = patch.notes.strip()
        if patch.due_date is not None:
            new_due = patch.due_date or None
            if new_due != task.due_date:
                task.due_date = new_due
                task.due_reminder_sent = False

        self.save()
        logger.debug("Task updated id=%s due=%s", task.id, task.due_date)
        return task

    def toggle_complete(self, task_id: int) -> Task | None:
        task = self.get(task_id)
        if task is None:
            return None

        task.completed = not task.completed
        if not task.completed:
            task.due_reminder_sent = False

        self.save()
        logger.debug("Task id=%s completed=%s", task.id, task.completed)
        return task

    def remove(self, task_id: int) -> Task | None:
        task = self.get(task_id)
        if task is None:
            return None
        self._tasks = [t for t in self._tasks if t.id != task_id]
        self.save()
        logger.debug("Task removed id=%s", task_id)
        return task

    def clear_completed(self) -> list[Task]:
        removed = [t for t in self._tasks if t.completed]
        if not removed:
            return []
        self._tasks = [t for t in self._tasks if not t.completed]
        self.save()
        logger.debug("Cleared %d completed tasks", len(removed))
        return removed

    def mark_reminder_sent(self, task_id: int) -> Task | None:
        """Record the due-soon reminder and persist immediately so a restart does not repeat it."""
        task = self.get(task_id)
        if task is None:
            return None
        task.due_reminder_sent = True
        self.save()
        return task
