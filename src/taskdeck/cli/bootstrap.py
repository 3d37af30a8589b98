# src/taskdeck/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- picks a persistence backend and wires the TaskStore into AppState.
"""

from __future__ import annotations

import logging

from ..config import get_settings
from ..core.ports import TaskRepo
from ..core.state import AppState
from ..tasks.repositories import JsonTaskRepository, NullTaskRepository, SqliteTaskRepository
from ..tasks.task_store import TaskStore

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.tasks_json_path.parent.mkdir(parents=True, exist_ok=True)
    settings.tasks_db_path.parent.mkdir(parents=True, exist_ok=True)


def build_task_repo(settings) -> TaskRepo:
    backend = str(getattr(settings, "storage_backend", "json")).lower()
    if backend == "memory":
        return NullTaskRepository()
    if backend == "sqlite":
        return SqliteTaskRepository(settings.tasks_db_path)
    if backend != "json":
        logger.warning("Unknown storage backend %r, using json.", backend)
    return JsonTaskRepository(settings.tasks_json_path)


def create_initial_state(*, settings=None) -> AppState:
    """
    Create AppState from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    repo = build_task_repo(settings)
    logger.debug("Using task repository %s", type(repo).__name__)

    return AppState(settings=settings, task_store=TaskStore(repo))
