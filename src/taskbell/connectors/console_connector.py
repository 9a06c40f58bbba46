# src/taskbell/connectors/console_connector.py

from __future__ import annotations

import asyncio
import contextlib
import logging
import threading
from datetime import datetime

from ..cli.commands import format_task_list
from ..cli.commands import registry as command_registry
from ..core.app import TaskApp
from ..tasks.task_models import Progress, Task, TaskFilter, ValidationFailure

logger = logging.getLogger(__name__)

PROMPT = ">>> "


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}", flush=True)


class ConsoleView:
    """TaskView that prints the filtered list and the progress line to stdout."""

    def render(self, tasks: list[Task], task_filter: TaskFilter) -> None:
        print(format_task_list(tasks, task_filter), flush=True)

    def show_progress(self, progress: Progress) -> None:
        print(progress.describe(), flush=True)


def _start_stdin_reader(loop: asyncio.AbstractEventLoop, queue: asyncio.Queue[str | None]) -> threading.Thread:
    """
    Read stdin lines in a daemon thread and hand them to the event loop.

    Commands themselves run on the loop thread, so they never interleave with
    reminder callbacks. None signals end of input.
    """

    def _push(item: str | None) -> None:
        # The loop may already be closed during shutdown.
        with contextlib.suppress(RuntimeError):
            loop.call_soon_threadsafe(queue.put_nowait, item)

    def _reader() -> None:
        while True:
            try:
                line = input()
            except (EOFError, KeyboardInterrupt):
                _push(None)
                return
            _push(line)

    t = threading.Thread(target=_reader, name="taskbell-stdin", daemon=True)
    t.start()
    return t


def handle_line(app: TaskApp, line: str) -> str | None:
    """One console line: a /command, or plain text which adds a task."""
    try:
        reply = command_registry.handle(app, line)
    except Exception:
        logger.exception("Command handler crashed.")
        return "Internal error while handling a command."

    if reply is not None:
        return reply

    result = app.add_task(line)
    if isinstance(result, ValidationFailure):
        return result.reason
    return f"Added task #{result.id}."


async def run_console_loop(app: TaskApp, *, stop: asyncio.Event | None = None) -> None:
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Type a task to add it. Use /help for commands. Use /exit to quit.\n")

    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[str | None] = asyncio.Queue()
    _start_stdin_reader(loop, queue)
    stop = stop or asyncio.Event()

    while not stop.is_set():
        print(PROMPT, end="", flush=True)

        get_line = asyncio.ensure_future(queue.get())
        wait_stop = asyncio.ensure_future(stop.wait())
        done, pending = await asyncio.wait({get_line, wait_stop}, return_when=asyncio.FIRST_COMPLETED)
        for fut in pending:
            fut.cancel()

        if get_line not in done:
            print()
            break

        line = get_line.result()
        if line is None:
            logger.info("Console EOF received, exiting.")
            print()
            break

        line = line.strip()
        if not line:
            continue

        if line.lower() in ("/exit", "/quit"):
            logger.info("Console exit command received.")
            break

        reply = handle_line(app, line)
        if reply:
            _print_ts(reply)

    logger.info("Console connector finished.")
