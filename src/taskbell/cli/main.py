# src/taskbell/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds TaskApp on the asyncio loop (the loop doubles as
the reminder timer service), then runs the console connector until /exit,
EOF, Ctrl+C or SIGTERM.
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal

from ..config import Settings, get_settings
from ..connectors.console_connector import ConsoleView, run_console_loop
from ..logging_setup import setup_logging
from .bootstrap import create_app

logger = logging.getLogger(__name__)


async def _run(settings: Settings, *, ephemeral: bool) -> None:
    loop = asyncio.get_running_loop()
    app = create_app(loop, settings=settings, view=ConsoleView(), ephemeral=ephemeral)

    stop = asyncio.Event()
    for sig in (signal.SIGINT, signal.SIGTERM):
        # Some platforms (Windows) have no loop signal handlers.
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(sig, stop.set)

    app.initialize()
    try:
        await run_console_loop(app, stop=stop)
    finally:
        app.teardown()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="taskbell", description="Task list with due-date reminders.")
    parser.add_argument(
        "--ephemeral",
        action="store_true",
        help="keep tasks in memory only (nothing is written to the data dir)",
    )
    args = parser.parse_args(argv)

    settings = get_settings()
    log_file = setup_logging(settings)

    logger.info("Starting %s (log file %s)...", settings.app_name, log_file)

    try:
        asyncio.run(_run(settings, ephemeral=args.ephemeral))
    except KeyboardInterrupt:
        logger.info("Interrupted, exiting.")


if __name__ == "__main__":
    main()
