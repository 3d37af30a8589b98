# src/taskdeck/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

TaskStore depends on a Protocol instead of a concrete persistence backend.
This keeps storage swappable (memory/json/sqlite) and makes testing easier.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..tasks.task_models import Task


@dataclass(slots=True)
class RepoSnapshot:
    """Everything a store needs to resume: the live tasks and the highest id ever issued."""

    tasks: list[Task] = field(default_factory=list)
    last_id: int = 0


class TaskRepo(Protocol):
    def load(self) -> RepoSnapshot: ...

    # Called by TaskStore while holding its lock, before the in-memory commit.
    def insert(self, task: Task) -> None: ...
    def update(self, task: Task) -> None: ...
    def delete(self, task_id: int) -> None: ...

    def close(self) -> None: ...
