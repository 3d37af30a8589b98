# src/taskdeck/tasks/repositories.py

"""
Persistence backends for TaskStore.

- NullTaskRepository: memory-only (nothing survives a restart)
- JsonTaskRepository: a single JSON document, rewritten atomically on each change
- SqliteTaskRepository: one row per task; each call opens its own connection
"""

from __future__ import annotations

import contextlib
import json
import logging
import os
import sqlite3
from pathlib import Path
from typing import Any

from ..core.ports import RepoSnapshot
from .errors import NotFoundError, StorageError, ValidationError
from .task_models import Task

logger = logging.getLogger(__name__)


class NullTaskRepository:
    """In-memory only; every write is a no-op."""

    def load(self) -> RepoSnapshot:
        return RepoSnapshot()

    def insert(self, task: Task) -> None:
        return

    def update(self, task: Task) -> None:
        return

    def delete(self, task_id: int) -> None:
        return

    def close(self) -> None:
        return


class JsonTaskRepository:
    """
    JSON file store.

    Layout: {"last_id": <int>, "tasks": [<wire record>, ...]}
    A bare list (older files) is accepted on read; last_id then falls back to max(id).
    """

    def __init__(self, path: str | Path = "tasks.json") -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def _read_raw(self) -> dict[str, Any]:
        if not self._path.exists():
            return {"last_id": 0, "tasks": []}
        try:
            data = json.loads(self._path.read_text("utf-8") or "[]")
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"failed to read {self._path}: {e}") from e

        try:
            if isinstance(data, list):
                ids = [int(r.get("id", 0)) for r in data if isinstance(r, dict)]
                return {"last_id": max(ids, default=0), "tasks": data}
            if isinstance(data, dict) and isinstance(data.get("tasks", []), list):
                return {"last_id": int(data.get("last_id") or 0), "tasks": data.get("tasks", [])}
        except (TypeError, ValueError) as e:
            raise StorageError(f"corrupt id data in {self._path}: {e}") from e
        raise StorageError(f"unexpected JSON layout in {self._path}")

    def _write_raw(self, data: dict[str, Any]) -> None:
        tmp = self._path.with_suffix(".tmp")
        try:
            tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), "utf-8")
            os.replace(tmp, self._path)
        except OSError as e:
            with contextlib.suppress(OSError):
                tmp.unlink()
            raise StorageError(f"failed to write {self._path}: {e}") from e

    def load(self) -> RepoSnapshot:
        raw = self._read_raw()
        try:
            tasks = [Task.from_dict(r) for r in raw["tasks"]]
        except ValidationError as e:
            raise StorageError(f"corrupt task record in {self._path}: {e}") from e
        logger.info("Loaded %d tasks from %s", len(tasks), self._path)
        return RepoSnapshot(tasks=tasks, last_id=raw["last_id"])

    def insert(self, task: Task) -> None:
        raw = self._read_raw()
        raw["tasks"].append(task.to_dict())
        raw["last_id"] = max(raw["last_id"], task.id)
        self._write_raw(raw)

    def update(self, task: Task) -> None:
        raw = self._read_raw()
        for i, rec in enumerate(raw["tasks"]):
            if isinstance(rec, dict) and rec.get("id") == task.id:
                raw["tasks"][i] = task.to_dict()
                break
        else:
            raise NotFoundError(task.id)
        self._write_raw(raw)

    def delete(self, task_id: int) -> None:
        raw = self._read_raw()
        kept = [r for r in raw["tasks"] if not (isinstance(r, dict) and r.get("id") == task_id)]
        if len(kept) == len(raw["tasks"]):
            raise NotFoundError(task_id)
        raw["tasks"] = kept
        self._write_raw(raw)

    def close(self) -> None:
        """Compatibility hook for shutdown (no open handles between calls)."""
        return


class SqliteTaskRepository:
    """
    SQLite task store.

    The schema is migration-safe:
    - create table if missing
    - use PRAGMA table_info to detect missing columns
    - add columns with ALTER TABLE only when needed

    AUTOINCREMENT keeps sqlite_sequence at the highest id ever inserted, which is
    what makes ids non-reusable across restarts.
    """

    def __init__(self, db_path: str | Path = "tasks.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    @property
    def path(self) -> Path:
        return self._db_path

    # ---- low-level helpers ----

    def _get_conn(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path), timeout=30.0)
        conn.row_factory = sqlite3.Row
        with contextlib.suppress(sqlite3.Error):
            conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _ensure_schema(self) -> None:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute(
                """
                CREATE TABLE IF NOT EXISTS tasks (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    title TEXT NOT NULL,
                    priority INTEGER NOT NULL DEFAULT 0,
                    due_date TEXT,
                    done INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL
                )
                """
            )

            cur.execute("PRAGMA table_info(tasks)")
            cols = {row["name"] for row in cur.fetchall()}

            def add_col(name: str, decl: str) -> None:
                if name in cols:
                    return
                cur.execute(f"ALTER TABLE tasks ADD COLUMN {name} {decl}")
                logger.info("Task schema migration: added column %s", name)

            add_col("priority", "INTEGER NOT NULL DEFAULT 0")
            add_col("due_date", "TEXT")
            add_col("done", "INTEGER NOT NULL DEFAULT 0")

            cur.execute("CREATE INDEX IF NOT EXISTS idx_tasks_done ON tasks(done)")
            conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"failed to initialise schema at {self._db_path}: {e}") from e
        finally:
            conn.close()

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task.from_dict(
            {
                "id": row["id"],
                "title": row["title"],
                "priority": int(row["priority"] or 0),
                "due_date": row["due_date"],
                "done": bool(row["done"]),
                "created_at": row["created_at"],
            }
        )

    # ---- TaskRepo ----

    def load(self) -> RepoSnapshot:
        conn = self._get_conn()
        try:
            cur = conn.cursor()
            cur.execute("SELECT * FROM tasks ORDER BY created_at ASC, id ASC")
            rows = cur.fetchall()
            cur.execute("SELECT seq FROM sqlite_sequence WHERE name = 'tasks'")
            seq_row = cur.fetchone()
        except sqlite3.Error as e:
            raise StorageError(f"failed to load tasks from {self._db_path}: {e}") from e
        finally:
            conn.close()

        try:
            tasks = [self._row_to_task(r) for r in rows]
        except ValidationError as e:
            raise StorageError(f"corrupt task row in {self._db_path}: {e}") from e
        last_id = int(seq_row["seq"]) if seq_row is not None else 0
        logger.info("Loaded %d tasks from %s", len(tasks), self._db_path)
        return RepoSnapshot(tasks=tasks, last_id=last_id)

    def insert(self, task: Task) -> None:
        rec = task.to_dict()
        conn = self._get_conn()
        try:
            conn.execute(
                """
                INSERT INTO tasks(id, title, priority, due_date, done, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    rec["id"],
                    rec["title"],
                    rec["priority"],
                    rec["due_date"],
                    1 if rec["done"] else 0,
                    rec["created_at"],
                ),
            )
            conn.commit()
        except sqlite3.Error as e:
            raise StorageError(f"failed to insert task id={task.id}: {e}") from e
        finally:
            conn.close()

    def update(self, task: Task) -> None:
        rec = task.to_dict()
        conn = self._get_conn()
        try:
            cur = conn.execute(
                "UPDATE tasks SET title = ?, priority = ?, due_date = ?, done = ? WHERE id = ?",
                (
                    rec["title"],
                    rec["priority"],
                    rec["due_date"],
                    1 if rec["done"] else 0,
                    rec["id"],
                ),
            )
            conn.commit()
            if cur.rowcount == 0:
                raise NotFoundError(task.id)
        except sqlite3.Error as e:
            raise StorageError(f"failed to update task id={task.id}: {e}") from e
        finally:
            conn.close()

    def delete(self, task_id: int) -> None:
        conn = self._get_conn()
        try:
            cur = conn.execute("DELETE FROM tasks WHERE id = ?", (int(task_id),))
            conn.commit()
            if cur.rowcount == 0:
                raise NotFoundError(task_id)
        except sqlite3.Error as e:
            raise StorageError(f"failed to delete task id={task_id}: {e}") from e
        finally:
            conn.close()

    def close(self) -> None:
        """Compatibility hook for shutdown (no persistent connections to close)."""
        return
