# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskdeck.core.state import AppState
from taskdeck.tasks.task_store import TaskStore

from fakes import FakeClock


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and bootstrap.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated from the environment and any local .env.
    """
    return SimpleNamespace(
        app_name="taskdeck-test",
        log_level="DEBUG",
        console_enabled=True,
        storage_backend="memory",
        data_dir=tmp_path / "data",
        tasks_json_path=tmp_path / "data" / "tasks.json",
        tasks_db_path=tmp_path / "data" / "tasks.sqlite3",
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def store(clock: FakeClock) -> TaskStore:
    """Memory-only store with a deterministic clock."""
    return TaskStore(clock=clock)


@pytest.fixture()
def state(settings: SimpleNamespace, store: TaskStore) -> AppState:
    return AppState(settings=settings, task_store=store)
