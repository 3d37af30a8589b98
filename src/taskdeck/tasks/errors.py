# src/taskdeck/tasks/errors.py

from __future__ import annotations


class TaskError(Exception):
    """Base class for every failure surfaced by the task subsystem."""


class ValidationError(TaskError, ValueError):
    """Malformed input: empty title, bad date, unknown filter/sort, bad priority."""


class NotFoundError(TaskError, LookupError):
    """An operation referenced a task id that does not exist."""

    def __init__(self, task_id: int) -> None:
        super().__init__(f"task with id {task_id} not found")
        self.task_id = task_id


class StorageError(TaskError):
    """The persistence backend failed; in-memory state was left untouched."""
