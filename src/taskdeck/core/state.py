# src/taskdeck/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..tasks.task_store import TaskStore


@dataclass
class AppState:
    # Settings object (real Settings or a test SimpleNamespace).
    settings: Any

    task_store: TaskStore
