# src/taskmate/tasks/task_models.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import StrEnum
from typing import Any


class TaskStatus(StrEnum):
    """Task status as the server spells it."""

    PENDING = "Pending"
    COMPLETED = "Completed"

    @classmethod
    def parse(cls, raw: Any) -> TaskStatus:
        """Accept any casing ("completed", "PENDING"); raise ValueError otherwise."""
        text = str(raw or "").strip().lower()
        for status in cls:
            if status.value.lower() == text:
                return status
        raise ValueError(f"Unknown task status: {raw!r}")


class SortDirection(StrEnum):
    ASC = "asc"
    DESC = "desc"

    def flipped(self) -> SortDirection:
        return SortDirection.DESC if self is SortDirection.ASC else SortDirection.ASC


def _str_or_none(value: Any) -> str | None:
    if value is None:
        return None
    s = str(value).strip()
    return s or None


def parse_day(value: Any) -> date | None:
    """
    Parse a server/user date into a calendar day.

    Accepts "YYYY-MM-DD", full ISO-8601 timestamps (with "Z" or an offset),
    date and datetime objects. Timestamps are reduced to their UTC day.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None
    if len(text) == 10:
        return date.fromisoformat(text)
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return parse_day(datetime.fromisoformat(text))


def to_utc_timestamp(value: date | datetime) -> str:
    """
    Normalize a due date to an ISO-8601 UTC string ("2024-01-01T00:00:00Z").

    Dates are day-granular and map to midnight UTC. Naive datetimes are taken as UTC.
    """
    if isinstance(value, datetime):
        dt = value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
        dt = dt.astimezone(timezone.utc).replace(microsecond=0)
    else:
        dt = datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")


@dataclass(frozen=True, slots=True)
class UserRef:
    """
    Reference to a user as it appears on a task.

    The server sends either an embedded summary ({"_id": ..., "username": ...})
    or a bare identifier; both collapse to `id`.
    """

    id: str
    name: str | None = None

    @classmethod
    def from_api(cls, raw: Any) -> UserRef | None:
        if raw is None:
            return None
        if isinstance(raw, dict):
            uid = _str_or_none(raw.get("_id") or raw.get("id") or raw.get("userId"))
            if uid is None:
                return None
            name = _str_or_none(raw.get("username") or raw.get("name"))
            return cls(id=uid, name=name)
        uid = _str_or_none(raw)
        return cls(id=uid) if uid else None


@dataclass(frozen=True, slots=True)
class UserProfile:
    id: str
    name: str
    email: str

    @classmethod
    def from_api(cls, raw: Any) -> UserProfile:
        if not isinstance(raw, dict):
            raise ValueError("Expected a user object")
        uid = _str_or_none(raw.get("_id") or raw.get("id") or raw.get("userId"))
        if uid is None:
            raise ValueError("User object has no id")
        return cls(
            id=uid,
            name=str(raw.get("name") or raw.get("username") or ""),
            email=str(raw.get("email") or ""),
        )


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    title: str
    description: str
    due_date: date | None
    status: TaskStatus
    created_by: UserRef | None
    assigned_user: UserRef | None = None

    @property
    def creator_id(self) -> str | None:
        return self.created_by.id if self.created_by else None

    @classmethod
    def from_api(cls, raw: Any) -> Task:
        """Build a Task from a server record. Raises ValueError on an unusable record."""
        if not isinstance(raw, dict):
            raise ValueError("Expected a task object")
        task_id = _str_or_none(raw.get("_id") or raw.get("id"))
        if task_id is None:
            raise ValueError("Task object has no id")
        return cls(
            id=task_id,
            title=str(raw.get("title") or ""),
            description=str(raw.get("description") or ""),
            due_date=parse_day(raw.get("dueDate")),
            status=TaskStatus.parse(raw.get("status")),
            created_by=UserRef.from_api(raw.get("createdBy")),
            assigned_user=UserRef.from_api(raw.get("assignedUser")),
        )


@dataclass(frozen=True, slots=True)
class TaskFilter:
    """Server-side filter. Empty status / missing due date mean "any"."""

    status: TaskStatus | None = None
    due_date: date | None = None

    def to_params(self) -> dict[str, str]:
        params: dict[str, str] = {}
        if self.status is not None:
            params["status"] = self.status.value
        if self.due_date is not None:
            params["dueDate"] = self.due_date.isoformat()
        return params


@dataclass(slots=True)
class TaskDraft:
    """User input for a new task (the creator is filled in from the session)."""

    title: str
    description: str
    due_date: date | datetime
    status: TaskStatus = TaskStatus.PENDING
    assigned_user_id: str | None = None
