# src/taskdeck/cli/commands.py

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from ..core.state import AppState
from ..tasks import task_api
from ..tasks.errors import NotFoundError, ValidationError

CommandEmitter = Callable[[str], None]
CommandHandler = Callable[[AppState, list[str], CommandEmitter | None], str]

logger = logging.getLogger(__name__)

_DONE_MARK = {True: "[x]", False: "[ ]"}
_PRIORITY_LABEL = {0: "low", 1: "medium", 2: "high"}


class CommandRegistry:
    """Simple slash-command registry used by connectors (/help, /add, ...)."""

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

    def handle(
        self,
        state: AppState,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string or None if not a command.

        Task errors (bad input, unknown id) become a reply line; anything else propagates.
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        try:
            return handler(state, args, emit)
        except ValidationError as e:
            logger.info("Command /%s rejected: %s", name, e)
            return f"Error: {e}"
        except NotFoundError as e:
            logger.info("Command /%s: %s", name, e)
            return f"Error: {e}. Use /list to see current tasks."

    def build_help(self) -> str:
        lines = ["Available commands:"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        return "\n".join(lines)


registry = CommandRegistry()


def format_task(rec: dict[str, Any]) -> str:
    due = f" (due {rec['due_date']})" if rec.get("due_date") else ""
    prio = _PRIORITY_LABEL.get(int(rec["priority"]), str(rec["priority"]))
    return f"{_DONE_MARK[bool(rec['done'])]} #{rec['id']} {rec['title']} [{prio}]{due}"


def _parse_id(args: list[str], usage: str) -> int:
    if len(args) != 1:
        raise ValidationError(f"usage: {usage}")
    try:
        return int(args[0].lstrip("#"))
    except ValueError:
        raise ValidationError(f"invalid task id: {args[0]!r}") from None


def add_from_text(state: AppState, text: str) -> dict[str, Any]:
    """
    Create a task from free text.

    Tokens "p:<0|1|2|low|medium|high>" and "due:YYYY-MM-DD" set options;
    every other word is part of the title.
    """
    priority: str | int = 0
    due: str | None = None
    words: list[str] = []
    for tok in text.split():
        low = tok.lower()
        if low.startswith("p:"):
            priority = tok[2:]
        elif low.startswith("due:"):
            due = tok[4:]
        else:
            words.append(tok)
    return task_api.add_task(state.task_store, " ".join(words), priority, due)


def cmd_help(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    return registry.build_help()


def cmd_status(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    backend = getattr(state.settings, "storage_backend", "?")
    stats = task_api.get_task_stats(state.task_store)
    return (
        "Status:\n"
        f"  Storage: {backend}\n"
        f"  Tasks: {stats['total']} ({stats['active']} active, {stats['completed']} completed)"
    )


def cmd_add(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /add Buy milk
    /add Pay rent p:high due:2024-01-01
    """
    rec = add_from_text(state, " ".join(args))
    return f"Added {format_task(rec)}"


def cmd_done(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    task_id = _parse_id(args, "/done <id>")
    rec = task_api.toggle_task(state.task_store, task_id)
    return f"{'Completed' if rec['done'] else 'Reopened'} {format_task(rec)}"


def cmd_rm(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    task_id = _parse_id(args, "/rm <id>")
    task_api.delete_task(state.task_store, task_id)
    return f"Deleted task #{task_id}."


def cmd_list(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    """
    /list                      -> all, newest first
    /list active priority      -> open tasks, High first
    /list completed due_date   -> finished tasks, earliest deadline first
    """
    if len(args) > 2:
        raise ValidationError("usage: /list [all|active|completed] [created_at|priority|due_date]")
    flt = args[0] if len(args) >= 1 else "all"
    sort_by = args[1] if len(args) == 2 else "created_at"

    recs = task_api.get_tasks(state.task_store, flt, sort_by)
    if not recs:
        return "No tasks."
    return "\n".join(format_task(r) for r in recs)


def cmd_stats(state: AppState, args: list[str], emit: CommandEmitter | None = None) -> str:
    s = task_api.get_task_stats(state.task_store)
    return f"Total: {s['total']}  Active: {s['active']}  Completed: {s['completed']}"


registry.register("help", cmd_help, help_text="Show available commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show storage backend and task totals.")
registry.register(
    "add", cmd_add, help_text="Add a task: /add <title> [p:low|medium|high] [due:YYYY-MM-DD]."
)
registry.register("done", cmd_done, help_text="Toggle completion: /done <id>.", aliases=["toggle"])
registry.register("rm", cmd_rm, help_text="Delete a task: /rm <id>.", aliases=["del", "delete"])
registry.register(
    "list",
    cmd_list,
    help_text="List tasks: /list [all|active|completed] [created_at|priority|due_date].",
    aliases=["ls"],
)
registry.register("stats", cmd_stats, help_text="Show task counts.")
