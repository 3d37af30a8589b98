# src/taskdeck/tasks/task_api.py

"""
Wire-level task operations.

These are the five calls a presentation layer makes (directly, over RPC, or via
the console connector). Inputs are raw: ints for priority, ISO strings for dates.
Outputs are plain dicts shaped by Task.to_dict().
"""

from __future__ import annotations

import logging
from typing import Any

from .task_store import TaskStore

logger = logging.getLogger(__name__)


def add_task(
    store: TaskStore,
    title: str,
    priority: int | str = 0,
    due_date: str | None = None,
) -> dict[str, Any]:
    task = store.create(title, priority, due_date)
    logger.info("Task created id=%s", task.id)
    return task.to_dict()


def delete_task(store: TaskStore, task_id: int) -> None:
    store.delete(task_id)
    logger.info("Task deleted id=%s", task_id)


def toggle_task(store: TaskStore, task_id: int) -> dict[str, Any]:
    task = store.toggle(task_id)
    logger.info("Task toggled id=%s done=%s", task.id, task.done)
    return task.to_dict()


def get_tasks(
    store: TaskStore,
    filter: str | None = "all",
    sort_by: str | None = "created_at",
) -> list[dict[str, Any]]:
    return [t.to_dict() for t in store.list(filter, sort_by)]


def get_task_stats(store: TaskStore) -> dict[str, int]:
    return store.stats().to_dict()
