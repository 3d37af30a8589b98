# src/taskdeck/tasks/task_store.py

from __future__ import annotations

import dataclasses
import logging
import threading
from collections.abc import Callable
from datetime import date, datetime, timedelta, timezone
from typing import Any

from ..core.ports import TaskRepo
from .errors import NotFoundError, StorageError, TaskError, ValidationError
from .repositories import NullTaskRepository
from .task_models import (
    Priority,
    SortKey,
    Task,
    TaskFilter,
    TaskStats,
    parse_due_date,
)

logger = logging.getLogger(__name__)

_ONE_TICK = timedelta(microseconds=1)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TaskStore:
    """
    Authoritative in-memory task collection.

    Persistence is delegated to a TaskRepo: every mutation is written through the
    repository first and committed to memory only if that write succeeds, so a
    failing backend never leaves the store half-updated.

    Thread-safety:
    - one lock serializes all operations, reads included
    - records are frozen dataclasses; callers can't mutate what the store holds
    """

    def __init__(
        self,
        repo: TaskRepo | None = None,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repo: TaskRepo = repo if repo is not None else NullTaskRepository()
        self._clock = clock
        self._lock = threading.Lock()

        # Insertion-ordered; dict order doubles as the created_at tie-breaker.
        self._tasks: dict[int, Task] = {}
        self._last_id = 0
        self._last_created_at: datetime | None = None

        self._load()
        logger.info(
            "TaskStore ready repo=%s total=%s last_id=%s",
            type(self._repo).__name__,
            len(self._tasks),
            self._last_id,
        )

    def close(self) -> None:
        self._repo.close()

    # ---- low-level helpers ----

    def _load(self) -> None:
        snap = self._repo.load()
        tasks = sorted(snap.tasks, key=lambda t: (t.created_at, t.id))
        for task in tasks:
            if task.id in self._tasks:
                raise StorageError(f"duplicate task id {task.id} in stored data")
            self._tasks[task.id] = task

        max_id = max(self._tasks, default=0)
        self._last_id = max(int(snap.last_id), max_id)
        if tasks:
            self._last_created_at = tasks[-1].created_at

    def _next_created_at(self) -> datetime:
        now = self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        last = self._last_created_at
        if last is not None and now <= last:
            now = last + _ONE_TICK
        return now

    def _require(self, task_id: int) -> Task:
        task = self._tasks.get(task_id)
        if task is None:
            raise NotFoundError(task_id)
        return task

    def _persist(self, op: str, fn: Callable[..., None], arg: Any) -> None:
        try:
            fn(arg)
        except TaskError:
            raise
        except Exception as e:
            logger.exception("Repository %s failed arg=%s", op, arg)
            raise StorageError(f"failed to {op} task: {e}") from e

    # ---- public API ----

    def create(
        self,
        title: str,
        priority: Priority | int | str | None = Priority.LOW,
        due_date: date | str | None = None,
    ) -> Task:
        if not isinstance(title, str):
            raise ValidationError("task title must be a string")
        clean_title = title.strip()
        if not clean_title:
            raise ValidationError("task title cannot be empty")
        prio = Priority.parse(priority)
        due = parse_due_date(due_date)

        with self._lock:
            created_at = self._next_created_at()
            task = Task(
                id=self._last_id + 1,
                title=clean_title,
                priority=prio,
                due_date=due,
                done=False,
                created_at=created_at,
            )
            self._persist("insert", self._repo.insert, task)

            self._tasks[task.id] = task
            self._last_id = task.id
            self._last_created_at = created_at

        logger.debug(
            "Task added id=%s priority=%s due_date=%s", task.id, prio.name, due
        )
        return task

    def delete(self, task_id: int) -> None:
        with self._lock:
            self._require(task_id)
            self._persist("delete", self._repo.delete, task_id)
            del self._tasks[task_id]
        logger.debug("Task deleted id=%s", task_id)

    def toggle(self, task_id: int) -> Task:
        with self._lock:
            current = self._require(task_id)
            updated = dataclasses.replace(current, done=not current.done)
            self._persist("update", self._repo.update, updated)
            self._tasks[task_id] = updated
        logger.debug("Task toggled id=%s done=%s", task_id, updated.done)
        return updated

    def get(self, task_id: int) -> Task:
        with self._lock:
            return self._require(task_id)

    def list(
        self,
        filter: TaskFilter | str | None = TaskFilter.ALL,
        sort_by: SortKey | str | None = SortKey.CREATED_AT,
    ) -> list[Task]:
        """
        Return a newly built, ordered list of tasks.

        Ordering:
        - created_at: newest first (later insertion wins ties)
        - priority:   High first, then created_at descending
        - due_date:   earliest first, undated last, then created_at descending
        """
        flt = TaskFilter.parse(filter)
        key = SortKey.parse(sort_by)

        with self._lock:
            # Reverse insertion order == created_at descending with insertion tie-break.
            items = list(reversed(self._tasks.values()))

        if flt is TaskFilter.ACTIVE:
            items = [t for t in items if not t.done]
        elif flt is TaskFilter.COMPLETED:
            items = [t for t in items if t.done]

        # sorted() is stable, so the newest-first base order survives as the tie-breaker.
        if key is SortKey.PRIORITY:
            items = sorted(items, key=lambda t: -int(t.priority))
        elif key is SortKey.DUE_DATE:
            items = sorted(
                items,
                key=lambda t: (t.due_date is None, t.due_date or date.min),
            )
        return items

    def stats(self) -> TaskStats:
        with self._lock:
            total = len(self._tasks)
            completed = sum(1 for t in self._tasks.values() if t.done)
        return TaskStats(total=total, active=total - completed, completed=completed)
