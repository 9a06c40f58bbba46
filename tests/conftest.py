# tests/conftest.py

from __future__ import annotations

import itertools
from datetime import datetime
from pathlib import Path
from types import SimpleNamespace

import pytest

from taskbell.core.app import TaskApp
from taskbell.storage import MemoryKeyValueStore
from taskbell.tasks.task_scheduler import ReminderScheduler
from taskbell.tasks.task_store import TaskStore

from .fakes import FakeClock, FakeNotifier, FakeTimers, RecordingView

# Tuesday 10 March 2026, 09:00 local. March has 31 days.
NOW = datetime(2026, 3, 10, 9, 0, 0)


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with bootstrap.create_app.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskbell-test",
        log_level="DEBUG",
        log_file="taskbell.log",
        data_dir=tmp_path / "data",
        storage_key="tasks",
        sweep_interval_seconds=60.0,
        max_timer_delay_seconds=(2**31 - 1) / 1000.0,
        notifications_enabled=False,
        notification_timeout=5,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(NOW)


@pytest.fixture()
def timers(clock: FakeClock) -> FakeTimers:
    return FakeTimers(clock)


@pytest.fixture()
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture()
def kv() -> MemoryKeyValueStore:
    return MemoryKeyValueStore()


@pytest.fixture()
def store(kv: MemoryKeyValueStore) -> TaskStore:
    ids = itertools.count(1000)
    return TaskStore(kv, id_source=lambda: next(ids))


@pytest.fixture()
def scheduler(store: TaskStore, notifier: FakeNotifier, timers: FakeTimers, clock: FakeClock) -> ReminderScheduler:
    return ReminderScheduler(store, notifier, timers, clock=clock, sweep_interval_seconds=60.0)


@pytest.fixture()
def view() -> RecordingView:
    return RecordingView()


@pytest.fixture()
def app(
    store: TaskStore,
    notifier: FakeNotifier,
    timers: FakeTimers,
    clock: FakeClock,
    view: RecordingView,
) -> TaskApp:
    """
    TaskApp wired with deterministic fakes, already initialized.

    NOTE: the store is real (in-memory key-value backend) because its
    persistence behaviour is part of what we want to test.
    """
    a = TaskApp(store, notifier, timers, view=view, clock=clock, sweep_interval_seconds=60.0)
    a.initialize()
    return a
