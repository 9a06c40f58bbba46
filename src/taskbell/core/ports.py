# src/taskbell/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The core depends on Protocols instead of concrete implementations.
This keeps storage/notifications/UI swappable and makes testing easier.
"""

from typing import Any, Callable, Protocol

from ..tasks.task_models import Progress, Task, TaskFilter


class KeyValueStore(Protocol):
    """Put/get a string blob by key (local persistent storage)."""

    def get(self, key: str) -> str | None: ...
    def put(self, key: str, value: str) -> None: ...


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Timers(Protocol):
    """
    One-shot timer service.

    asyncio.AbstractEventLoop satisfies this directly (loop.call_later).
    """

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle: ...


class Notifier(Protocol):
    """
    Notification delivery.

    permission is one of "default" (not decided yet), "granted", "denied".
    """

    @property
    def permission(self) -> str: ...

    def request_permission(self) -> str: ...
    def notify(self, title: str, body: str) -> None: ...


class TaskView(Protocol):
    """UI side: receives re-render requests after every mutation."""

    def render(self, tasks: list[Task], task_filter: TaskFilter) -> None: ...
    def show_progress(self, progress: Progress) -> None: ...
