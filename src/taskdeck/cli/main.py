# src/taskdeck/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, then runs the console REPL
(or just opens the store and exits when the console is disabled).
"""

from __future__ import annotations

import logging

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..core.state import AppState
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def _shutdown(state: AppState) -> None:
    """Best-effort shutdown (no exceptions should escape)."""
    try:
        state.task_store.close()
    except Exception:
        logger.exception("Task store close failed.")


def main() -> None:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.data_dir, console_level=console_level)

    logger.info("Starting %s (storage=%s)...", settings.app_name, settings.storage_backend)

    state = create_initial_state(settings=settings)

    try:
        if settings.console_enabled:
            run_console_loop(state)
        else:
            stats = state.task_store.stats()
            logger.info(
                "Console disabled. total=%s active=%s completed=%s",
                stats.total,
                stats.active,
                stats.completed,
            )
    finally:
        _shutdown(state)
        logger.info("Bye.")


if __name__ == "__main__":
    main()
