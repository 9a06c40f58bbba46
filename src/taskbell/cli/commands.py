# src/taskbell/cli/commands.py

from __future__ import annotations

import logging
import shlex
from collections.abc import Callable

from ..core.app import TaskApp
from ..tasks.dates import format_display
from ..tasks.task_models import Priority, Task, TaskFilter, ValidationFailure

CommandHandler = Callable[[TaskApp, list[str]], str]

logger = logging.getLogger(__name__)

PRIORITY_ICONS = {
    Priority.HIGH: "🔥",
    Priority.MEDIUM: "⚠️",
    Priority.LOW: "🔵",
}

_OPTION_KEYS = ("text", "priority", "due", "notes")


class CommandRegistry:
    """Simple slash-command registry used by the console connector (/help, /add, ...)."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    def handle(self, app: TaskApp, line: str) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.
        """
        if not line.startswith("/"):
            return None

        try:
            parts = shlex.split(line[1:])
        except ValueError as e:
            return f"Could not parse command: {e}."
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        logger.debug("Command /%s args=%r", name, parts[1:])
        return handler(app, parts[1:])

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


# ---- formatting ----


def format_task_line(task: Task) -> str:
    box = "[x]" if task.completed else "[ ]"
    icon = PRIORITY_ICONS.get(task.priority, "")
    line = f"{box} #{task.id} {icon} {task.text}"
    display_date = format_display(task.due_date)
    if display_date:
        line += f" (Due: {display_date})"
    if task.notes:
        line += " [notes]"
    return line


def format_task_list(tasks: list[Task], task_filter: TaskFilter) -> str:
    if not tasks:
        return f"No tasks ({task_filter.value})."
    lines = [f"Tasks ({task_filter.value}):"]
    lines.extend(f"  {format_task_line(t)}" for t in tasks)
    return "\n".join(lines)


# ---- argument helpers ----


def _split_options(args: list[str]) -> tuple[list[str], dict[str, str]]:
    """Separate key=value options (priority=, due=, notes=, text=) from free words."""
    words: list[str] = []
    opts: dict[str, str] = {}
    for arg in args:
        key, sep, value = arg.partition("=")
        if sep and key.lower() in _OPTION_KEYS:
            opts[key.lower()] = value
        else:
            words.append(arg)
    return words, opts


def _parse_id(raw: str) -> int | None:
    try:
        return int(raw.lstrip("#"))
    except ValueError:
        return None


# ---- handlers ----


def cmd_help(app: TaskApp, args: list[str]) -> str:
    return registry.build_help()


def cmd_add(app: TaskApp, args: list[str]) -> str:
    """
    /add Buy milk priority=high due=25/12/2026 notes="2 litres"
    """
    words, opts = _split_options(args)
    text = opts.get("text") or " ".join(words)

    result = app.add_task(
        text,
        priority=opts.get("priority", "medium").lower(),
        due=opts.get("due"),
        notes=opts.get("notes", ""),
    )
    if isinstance(result, ValidationFailure):
        return result.reason
    return f"Added: {format_task_line(result)}"


def cmd_edit(app: TaskApp, args: list[str]) -> str:
    """
    /edit <id> [text=...] [priority=...] [due=<date>|due=] [notes=...]
    """
    if not args:
        return "Usage: /edit <id> [text=...] [priority=...] [due=<date>] [notes=...]"
    task_id = _parse_id(args[0])
    if task_id is None:
        return f"Not a task id: {args[0]}"

    words, opts = _split_options(args[1:])
    text = opts.get("text")
    if text is None and words:
        text = " ".join(words)
    priority = opts.get("priority")

    result = app.edit_task(
        task_id,
        text=text,
        priority=priority.lower() if priority is not None else None,
        due=opts.get("due"),
        notes=opts.get("notes"),
    )
    if result is None:
        return f"No task #{task_id}."
    if isinstance(result, ValidationFailure):
        return result.reason
    return f"Updated: {format_task_line(result)}"


def cmd_done(app: TaskApp, args: list[str]) -> str:
    task_id = _parse_id(args[0]) if args else None
    if task_id is None:
        return "Usage: /done <id>"
    task = app.toggle_complete(task_id)
    if task is None:
        return f"No task #{task_id}."
    return f"{'Completed' if task.completed else 'Reopened'}: {format_task_line(task)}"


def cmd_rm(app: TaskApp, args: list[str]) -> str:
    task_id = _parse_id(args[0]) if args else None
    if task_id is None:
        return "Usage: /rm <id>"
    if not app.delete_task(task_id):
        return f"No task #{task_id}."
    return f"Deleted task #{task_id}."


def cmd_clear(app: TaskApp, args: list[str]) -> str:
    n = app.clear_completed()
    return f"Cleared {n} completed task(s)."


def cmd_filter(app: TaskApp, args: list[str]) -> str:
    if not args:
        return f"Current filter: {app.current_filter.value}. Use /filter all | active | completed."
    result = app.set_filter(args[0])
    if isinstance(result, ValidationFailure):
        return result.reason
    return f"Filter: {result.value}"


def cmd_list(app: TaskApp, args: list[str]) -> str:
    return format_task_list(app.visible_tasks(), app.current_filter) + "\n" + app.progress().describe()


def cmd_notes(app: TaskApp, args: list[str]) -> str:
    task_id = _parse_id(args[0]) if args else None
    if task_id is None:
        return "Usage: /notes <id>"
    task = app.store.get(task_id)
    if task is None:
        return f"No task #{task_id}."
    return task.notes or f"Task #{task_id} has no notes."


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register(
    "add",
    cmd_add,
    help_text="Add a task: /add <text> [priority=low|medium|high] [due=<date>] [notes=...].",
    aliases=["a"],
)
registry.register(
    "edit",
    cmd_edit,
    help_text="Edit a task: /edit <id> [text=...] [priority=...] [due=<date>|due=] [notes=...].",
    aliases=["e"],
)
registry.register("done", cmd_done, help_text="Toggle completion: /done <id>.", aliases=["toggle"])
registry.register("rm", cmd_rm, help_text="Delete a task: /rm <id>.", aliases=["del", "delete"])
registry.register("clear", cmd_clear, help_text="Remove all completed tasks.")
registry.register("filter", cmd_filter, help_text="Filter the list: /filter all | active | completed.")
registry.register("list", cmd_list, help_text="Show the (filtered) task list.", aliases=["ls"])
registry.register("notes", cmd_notes, help_text="Show a task's notes: /notes <id>.")
