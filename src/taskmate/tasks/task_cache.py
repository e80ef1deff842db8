# src/taskmate/tasks/task_cache.py

from __future__ import annotations

import logging
from collections.abc import Iterable

from .task_models import Task, TaskStatus

logger = logging.getLogger(__name__)


class TaskCache:
    """
    In-memory mirror of the server's task collection.

    - Order is the server's response order; nothing is re-sorted locally.
    - Ids are unique: the last write for an id wins.
    - Every write swaps in a fully built list, so readers never see a half-applied update.

    Only the synchronization layer writes; presentation reads via snapshot()/partition()/get().
    """

    def __init__(self) -> None:
        self._tasks: tuple[Task, ...] = ()
        self._applied_seq = 0

    @property
    def applied_seq(self) -> int:
        """Sequence number of the fetch currently reflected by the cache (0 = none yet)."""
        return self._applied_seq

    def replace_all(self, tasks: Iterable[Task], *, seq: int | None = None) -> bool:
        """
        Replace the whole collection with the result of a fetch.

        With `seq`, a result older than the one already applied is discarded and
        False is returned. Duplicate ids within `tasks` keep their first position
        and their last value.
        """
        if seq is not None:
            if seq < self._applied_seq:
                logger.debug("Discarding stale fetch seq=%s (applied=%s)", seq, self._applied_seq)
                return False
            self._applied_seq = seq

        ordered: dict[str, Task] = {}
        for task in tasks:
            ordered[task.id] = task
        self._tasks = tuple(ordered.values())
        return True

    def upsert(self, task: Task) -> None:
        """Replace the task with the same id in place, or append it."""
        items = list(self._tasks)
        for i, existing in enumerate(items):
            if existing.id == task.id:
                items[i] = task
                break
        else:
            items.append(task)
        self._tasks = tuple(items)

    def remove(self, task_id: str) -> bool:
        items = tuple(t for t in self._tasks if t.id != task_id)
        removed = len(items) != len(self._tasks)
        self._tasks = items
        return removed

    def get(self, task_id: str) -> Task | None:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def find_by_prefix(self, prefix: str) -> list[Task]:
        prefix = (prefix or "").strip()
        if not prefix:
            return []
        exact = self.get(prefix)
        if exact is not None:
            return [exact]
        return [t for t in self._tasks if t.id.startswith(prefix)]

    def snapshot(self) -> list[Task]:
        return list(self._tasks)

    def partition(self) -> tuple[list[Task], list[Task]]:
        """(pending, completed), each in cache order."""
        pending = [t for t in self._tasks if t.status is TaskStatus.PENDING]
        completed = [t for t in self._tasks if t.status is TaskStatus.COMPLETED]
        return pending, completed

    def __len__(self) -> int:
        return len(self._tasks)
