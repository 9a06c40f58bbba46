# src/taskbell/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures the local (gitignored) data directory exists,
- wires concrete implementations into TaskApp (storage/notifier/timers/view).
"""

from __future__ import annotations

import logging

from ..config import Settings, get_settings
from ..core.app import TaskApp
from ..core.ports import KeyValueStore, TaskView, Timers
from ..notifications import DesktopNotifier
from ..storage import FileKeyValueStore, MemoryKeyValueStore
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def create_app(
    timers: Timers,
    *,
    settings: Settings | None = None,
    view: TaskView | None = None,
    ephemeral: bool = False,
) -> TaskApp:
    """
    Create TaskApp from the provided settings.

    timers is usually the running asyncio loop.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    kv: KeyValueStore
    if ephemeral:
        kv = MemoryKeyValueStore()
        logger.info("Ephemeral mode: tasks will not be persisted")
    else:
        settings.data_dir.mkdir(parents=True, exist_ok=True)
        kv = FileKeyValueStore(settings.data_dir)

    notifier = DesktopNotifier(
        enabled=settings.notifications_enabled,
        app_name=settings.app_name,
        timeout=settings.notification_timeout,
    )

    return TaskApp(
        TaskStore(kv, storage_key=settings.storage_key),
        notifier,
        timers,
        view=view,
        sweep_interval_seconds=settings.sweep_interval_seconds,
        max_timer_delay_seconds=settings.max_timer_delay_seconds,
    )
