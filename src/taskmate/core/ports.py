# src/taskmate/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the synchronization layer.

The core depends on Protocols instead of concrete implementations.
This keeps the HTTP transport and the front end swappable and makes testing easier.
"""

from typing import Any, Awaitable, Mapping, Protocol, Sequence

from ..tasks.task_models import SortDirection, Task, TaskFilter, UserProfile


class Notifier(Protocol):
    """Transient user-facing messages (the front end decides how to show them)."""

    def success(self, text: str) -> None: ...
    def error(self, text: str) -> None: ...
    def info(self, text: str) -> None: ...


class CredentialRepo(Protocol):
    def get(self) -> str | None: ...
    def set(self, token: str) -> None: ...
    def clear(self) -> None: ...


class TaskApi(Protocol):
    """Stateless request layer over the task resource and the user directory."""

    def list_tasks(self, task_filter: TaskFilter, sort: SortDirection) -> Awaitable[list[Task]]: ...
    def create_task(self, payload: Mapping[str, Any]) -> Awaitable[Task]: ...
    def update_task(self, task_id: str, payload: Mapping[str, Any]) -> Awaitable[Task]: ...
    def delete_task(self, task_id: str) -> Awaitable[None]: ...
    def list_users(self) -> Awaitable[Sequence[UserProfile]]: ...
    def fetch_profile(self, subject_id: str) -> Awaitable[UserProfile]: ...
