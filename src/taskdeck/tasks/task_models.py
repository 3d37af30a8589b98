# src/taskdeck/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import IntEnum, StrEnum
from typing import Any

from .errors import ValidationError


class Priority(IntEnum):
    LOW = 0
    MEDIUM = 1
    HIGH = 2

    @classmethod
    def parse(cls, raw: Any) -> Priority:
        """
        Accept a Priority, an int in {0, 1, 2} or a name ("low", "High", ...).
        None means "not given" and maps to LOW.

        Anything else is rejected; out-of-range values are never clamped.
        """
        if raw is None:
            return cls.LOW
        if isinstance(raw, cls):
            return raw
        if isinstance(raw, bool):
            raise ValidationError(f"invalid priority: {raw!r}")
        if isinstance(raw, int):
            try:
                return cls(raw)
            except ValueError:
                raise ValidationError(f"invalid priority: {raw!r}") from None
        if isinstance(raw, str):
            s = raw.strip()
            if s.lstrip("-").isdigit():
                try:
                    n = int(s)
                except ValueError:
                    raise ValidationError(f"invalid priority: {raw!r}") from None
                return cls.parse(n)
            try:
                return cls[s.upper()]
            except KeyError:
                raise ValidationError(f"invalid priority: {raw!r}") from None
        raise ValidationError(f"invalid priority: {raw!r}")


class TaskFilter(StrEnum):
    ALL = "all"
    ACTIVE = "active"
    COMPLETED = "completed"

    @classmethod
    def parse(cls, raw: str | None) -> TaskFilter:
        if raw is None or (isinstance(raw, str) and raw.strip() == ""):
            return cls.ALL
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            raise ValidationError(f"unknown filter: {raw!r}") from None


class SortKey(StrEnum):
    CREATED_AT = "created_at"
    PRIORITY = "priority"
    DUE_DATE = "due_date"

    @classmethod
    def parse(cls, raw: str | None) -> SortKey:
        if raw is None or (isinstance(raw, str) and raw.strip() == ""):
            return cls.CREATED_AT
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            raise ValidationError(f"unknown sort key: {raw!r}") from None


def parse_due_date(raw: Any) -> date | None:
    """None / "" -> no deadline; a date passes through; strings must be ISO calendar dates."""
    if raw is None:
        return None
    if isinstance(raw, datetime):
        raise ValidationError("due date must be a calendar date without a time component")
    if isinstance(raw, date):
        return raw
    if isinstance(raw, str):
        s = raw.strip()
        if not s:
            return None
        try:
            return date.fromisoformat(s)
        except ValueError:
            raise ValidationError(f"invalid due date: {raw!r} (expected YYYY-MM-DD)") from None
    raise ValidationError(f"invalid due date: {raw!r}")


def _parse_created_at(raw: Any) -> datetime:
    if isinstance(raw, datetime):
        dt = raw
    else:
        try:
            dt = datetime.fromisoformat(str(raw))
        except ValueError:
            raise ValidationError(f"invalid created_at: {raw!r}") from None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _parse_done(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, int) and raw in (0, 1):
        return bool(raw)
    raise ValidationError(f"invalid done flag: {raw!r}")


@dataclass(frozen=True, slots=True)
class Task:
    id: int
    title: str
    priority: Priority
    due_date: date | None
    done: bool
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        """Wire record: snake_case keys, ISO dates, explicit None for a missing due date."""
        return {
            "id": self.id,
            "title": self.title,
            "priority": int(self.priority),
            "due_date": self.due_date.isoformat() if self.due_date is not None else None,
            "done": self.done,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Task:
        try:
            task_id = int(data["id"])
            title = str(data["title"]).strip()
            created_raw = data["created_at"]
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"malformed task record: {data!r}") from e
        if not title:
            raise ValidationError(f"malformed task record (empty title): {data!r}")
        return cls(
            id=task_id,
            title=title,
            priority=Priority.parse(data.get("priority", 0)),
            due_date=parse_due_date(data.get("due_date")),
            done=_parse_done(data.get("done", False)),
            created_at=_parse_created_at(created_raw),
        )


@dataclass(frozen=True, slots=True)
class TaskStats:
    total: int
    active: int
    completed: int

    def to_dict(self) -> dict[str, int]:
        return {"total": self.total, "active": self.active, "completed": self.completed}
