# src/taskbell/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum


class Priority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def parse(cls, raw: str) -> Priority:
        """Strict, case-insensitive parse of user input. Raises ValueError."""
        return cls(str(raw).strip().lower())

    @classmethod
    def from_raw(cls, raw: str | None) -> Priority:
        """Lenient parse used when loading persisted data."""
        if not raw:
            return cls.MEDIUM
        try:
            return cls.parse(raw)
        except ValueError:
            return cls.MEDIUM


class TaskFilter(StrEnum):
    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"

    def accepts(self, task: Task) -> bool:
        if self is TaskFilter.ACTIVE:
            return not task.completed
        if self is TaskFilter.COMPLETED:
            return task.completed
        return True


@dataclass(slots=True)
class Task:
    id: int
    text: str
    completed: bool = False
    priority: Priority = Priority.MEDIUM
    # Canonical YYYY-MM-DD, or None for "no due date".
    due_date: str | None = None
    notes: str = ""
    due_reminder_sent: bool = False


@dataclass(slots=True, frozen=True)
class TaskDraft:
    """Fields for a new task. due_date must already be canonical."""

    text: str
    priority: Priority | str = Priority.MEDIUM
    due_date: str | None = None
    notes: str = ""


@dataclass(slots=True, frozen=True)
class TaskPatch:
    """
    Partial edit. None means "leave unchanged".

    For due_date an empty string clears the due date.
    """

    text: str | None = None
    priority: Priority | str | None = None
    due_date: str | None = None
    notes: str | None = None


@dataclass(slots=True, frozen=True)
class Progress:
    completed: int
    total: int

    @property
    def percentage(self) -> float:
        if self.total <= 0:
            return 0.0
        return self.completed / self.total * 100.0

    def describe(self) -> str:
        return (
            f"Progress: {self.completed} of {self.total} tasks completed "
            f"({round(self.percentage)}%)"
        )


@dataclass(slots=True, frozen=True)
class ValidationFailure:
    """Returned (not raised) by controller operations that reject user input."""

    reason: str
