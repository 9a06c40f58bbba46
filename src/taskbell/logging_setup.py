# src/taskbell/logging_setup.py

"""
Logging for the console app.

The terminal is shared with the task list and the prompt, so the console
handler shows taskbell's own records at the configured level and only real
problems from everything else. The log file in the data dir gets it all.

Known noise kept off the console (it still lands in the file):
- plyer's platform backends report a missing notifier ("notify-send not
  found", unsupported platform) through warnings.warn,
- dateutil warns about timezone names it does not recognise
  (UnknownTimezoneWarning) while reading free-form due dates.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path

from .config import Settings

APP_LOGGER = "taskbell"

# Substrings of a captured 'py.warnings' message (file path or category).
_QUIET_WARNING_MARKERS = (
    f"{os.sep}plyer{os.sep}",
    f"{os.sep}dateutil{os.sep}",
    "UnknownTimezoneWarning",
)


def _is_app_record(name: str) -> bool:
    return name == APP_LOGGER or name.startswith(APP_LOGGER + ".")


class _ConsoleNoiseFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        if _is_app_record(record.name):
            return True

        if record.name == "py.warnings":
            message = record.getMessage()
            return not any(marker in message for marker in _QUIET_WARNING_MARKERS)

        return record.levelno >= logging.ERROR


def level_from_name(name: str | None, default: int = logging.INFO) -> int:
    level = logging.getLevelName(str(name or "").strip().upper())
    return level if isinstance(level, int) else default


def setup_logging(settings: Settings, *, file_level: int = logging.DEBUG) -> Path:
    """
    Install the console and file handlers on the root logger and route
    warnings.warn() into logging. Returns the log file path.

    Call once at startup; calling again replaces the handlers.
    """
    log_dir = Path(settings.data_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / settings.log_file

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)
    for h in list(root.handlers):
        root.removeHandler(h)

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level_from_name(settings.log_level))
    console.setFormatter(fmt)
    console.addFilter(_ConsoleNoiseFilter())
    root.addHandler(console)

    file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
    file_handler.setLevel(file_level)
    file_handler.setFormatter(fmt)
    root.addHandler(file_handler)

    logging.captureWarnings(True)
    return log_file
