# src/taskdeck/connectors/console_connector.py

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from datetime import datetime

from ..cli.commands import add_from_text, format_task
from ..cli.commands import registry as command_registry
from ..core.state import AppState
from ..tasks.errors import TaskError

logger = logging.getLogger(__name__)

EXIT_COMMANDS = ("/exit", "/quit")


def _ts_local() -> str:
    return datetime.now().astimezone().strftime("%Y-%m-%d %H:%M:%S")


def _rewrite_prev_line(line: str) -> None:
    """
    Replace the last terminal line with `line`.
    Best-effort: if not a TTY, just print a new line.
    """
    if sys.stdout.isatty():
        sys.stdout.write("\033[1A\033[2K\r")
        sys.stdout.write(line + "\n")
        sys.stdout.flush()
    else:
        print(line)


def _print_ts(text: str) -> None:
    print(f"[{_ts_local()}] {text}")


def handle_line(state: AppState, line: str, emit: Callable[[str], None] | None = None) -> str | None:
    """
    One REPL step: slash commands go to the registry, anything else is a quick add.
    Returns the reply to print (None for a blank line).
    """
    line = line.strip()
    if not line:
        return None

    try:
        reply = command_registry.handle(state, line, emit=emit)
        if reply is not None:
            return reply
        rec = add_from_text(state, line)
        return f"Added {format_task(rec)}"
    except TaskError as e:
        logger.warning("Task operation failed: %s", e)
        return f"Error: {e}"


def run_console_loop(
    state: AppState,
    *,
    read_line: Callable[[str], str] = input,
) -> None:
    logger.info("Console connector started.")
    _print_ts("[CONSOLE] Type a task to add it. Use /help for commands. Use /exit to quit.\n")

    def emit(text: str) -> None:
        print(f"[{_ts_local()}] {text}", flush=True)

    while True:
        try:
            user_input = read_line(">>> ").strip()
            if read_line is input:
                _rewrite_prev_line(f"[{_ts_local()}] >>> {user_input}")
        except EOFError:
            logger.info("Console EOF received, exiting.")
            break
        except KeyboardInterrupt:
            logger.info("Console KeyboardInterrupt, exiting.")
            print()
            break

        if user_input.lower() in EXIT_COMMANDS:
            logger.info("Console exit command received.")
            break

        try:
            reply = handle_line(state, user_input, emit=emit)
        except Exception:
            logger.exception("Command handler crashed.")
            reply = "Internal error while handling a command."

        if reply is not None:
            _print_ts(reply)

    logger.info("Console connector finished.")
