# tests/test_permissions.py

from __future__ import annotations

from datetime import date

from taskmate.auth.identity import Identity
from taskmate.auth.permissions import can_mutate
from taskmate.tasks.task_models import Task, TaskStatus

from .fakes import make_task


def test_only_creator_can_mutate() -> None:
    task = make_task("t1", title="Buy milk", created_by="u1", due="2024-01-01")

    assert can_mutate(task, Identity("u1")) is True
    assert can_mutate(task, Identity("u2")) is False
    assert can_mutate(task, None) is False


def test_embedded_and_bare_creator_resolve_to_same_id() -> None:
    embedded = Task.from_api(
        {
            "_id": "t1",
            "title": "Buy milk",
            "status": "Pending",
            "dueDate": "2024-01-01T00:00:00.000Z",
            "createdBy": {"_id": "u1", "username": "ann"},
        }
    )
    bare = Task.from_api(
        {"_id": "t1", "title": "Buy milk", "status": "Pending", "createdBy": "u1"}
    )

    assert can_mutate(embedded, Identity("u1"))
    assert can_mutate(bare, Identity("u1"))
    assert not can_mutate(embedded, Identity("u2"))


def test_task_without_creator_is_not_mutable() -> None:
    orphan = Task(
        id="t9",
        title="?",
        description="",
        due_date=date(2024, 1, 1),
        status=TaskStatus.PENDING,
        created_by=None,
    )
    assert can_mutate(orphan, Identity("u1")) is False
    assert can_mutate(None, Identity("u1")) is False
