# src/taskmate/auth/permissions.py

from __future__ import annotations

from ..tasks.task_models import Task
from .identity import Identity


def can_mutate(task: Task | None, identity: Identity | None) -> bool:
    """Only the creator of a task may change or delete it (advisory; the server decides)."""
    if task is None or identity is None:
        return False
    creator = task.creator_id
    return creator is not None and creator == identity.subject_id
