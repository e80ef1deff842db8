# src/taskmate/tasks/task_sync.py

"""
Task synchronizer.

Glues the request layer to the cache:
- listens to the filter controller and runs one fetch per RefetchRequested,
- applies create/update/delete results to the cache only after the server confirms,
- converts every failure into a notification (and a session teardown on 401).

Fetch ordering: every fetch gets a monotonic sequence number. Only the result of
the most recently *requested* fetch is applied, so a slow response for an older
filter can never overwrite the result for the filter the user picked last.
A fetch result is also dropped when the session changed while it was in flight,
and refetched when a mutation was confirmed while it was in flight.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine, Mapping
from typing import Any

from ..auth.identity import Identity
from ..auth.permissions import can_mutate
from ..auth.session import SessionManager
from ..core.ports import Notifier, TaskApi
from ..errors import AuthError, GatewayError
from .filter_controller import FilterController, RefetchRequested
from .task_cache import TaskCache
from .task_models import Task, TaskDraft, TaskStatus, UserProfile, parse_day

logger = logging.getLogger(__name__)

# Front-end field names -> wire names accepted in an update.
_UPDATE_FIELDS = {
    "title": "title",
    "description": "description",
    "due_date": "dueDate",
    "dueDate": "dueDate",
    "status": "status",
    "assigned_user": "assignedUser",
    "assignedUser": "assignedUser",
}

NOT_LOGGED_IN = "You must be logged in."
NOT_OWNER = "Only the creator of a task can change it."


def build_update_payload(task: Task, changes: Mapping[str, Any]) -> dict[str, Any]:
    """
    Wire payload for an update: only the changed fields, plus the task's creator.

    The creator is always the task's existing creator, never whoever is editing.
    Raises ValueError for unknown fields, an attempt to change the creator,
    an unknown status or an unparsable due date.
    """
    payload: dict[str, Any] = {}
    for key, value in changes.items():
        if key in ("createdBy", "created_by"):
            raise ValueError("The creator of a task cannot be changed.")
        wire = _UPDATE_FIELDS.get(key)
        if wire is None:
            raise ValueError(f"Unknown task field: {key}")
        if wire == "status":
            value = TaskStatus.parse(value).value
        elif wire == "dueDate":
            value = parse_day(value)
            if value is None:
                raise ValueError("A due date is required.")
        elif wire == "assignedUser":
            value = (str(value).strip() or None) if value is not None else None
        payload[wire] = value

    if task.creator_id is not None:
        payload["createdBy"] = task.creator_id
    return payload


class TaskSynchronizer:
    def __init__(
        self,
        gateway: TaskApi,
        cache: TaskCache,
        session: SessionManager,
        filters: FilterController,
        notifier: Notifier,
    ) -> None:
        self._gateway = gateway
        self._cache = cache
        self._session = session
        self._filters = filters
        self._notifier = notifier

        self._latest_seq = 0
        # Bumped on every confirmed create/update/delete.
        self._mutations = 0
        self._background: set[asyncio.Task[Any]] = set()
        self.users: list[UserProfile] = []

        filters.refetch_requested.subscribe(self._on_refetch_requested)

    # ---- background work ----

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any] | None:
        """Run `coro` on the current loop and keep a reference until it finishes."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.warning("No running event loop; dropping background work %r", coro)
            coro.close()
            return None
        task = loop.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def wait_idle(self) -> None:
        """Wait until every fetch/load started in the background has finished."""
        while self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

    async def aclose(self) -> None:
        for task in list(self._background):
            task.cancel()
        await asyncio.gather(*list(self._background), return_exceptions=True)

    def _on_refetch_requested(self, event: RefetchRequested) -> None:
        self.spawn(self.refresh(event))

    # ---- failure policy ----

    def _fail(self, err: Exception, text: str) -> None:
        if isinstance(err, AuthError):
            logger.info("Request unauthorized (%s); tearing down session", err.message)
            self._session.teardown(err.message)
            return
        if isinstance(err, GatewayError):
            logger.info("%s %s", text, err.message)
            self._notifier.error(f"{text} {err.message}")
            return
        logger.error("%s Unexpected failure.", text, exc_info=err)
        self._notifier.error(text)

    # ---- fetch ----

    async def refresh(self, request: RefetchRequested | None = None) -> bool:
        """
        Fetch tasks for `request` (default: the current filter) into the cache.

        Returns True if the result was applied, False if it failed or was superseded.
        """
        if request is None:
            request = self._filters.current()
        identity = self._session.current_identity()
        if identity is None:
            logger.debug("Skipping fetch: no session")
            return False

        while True:
            self._latest_seq += 1
            seq = self._latest_seq
            mutations = self._mutations

            try:
                tasks = await self._gateway.list_tasks(request.task_filter, request.sort)
            except Exception as e:
                if self._session.current_identity() is not identity:
                    logger.debug("Fetch seq=%s failed after the session changed: %r", seq, e)
                    return False
                if seq != self._latest_seq and not isinstance(e, AuthError):
                    logger.debug("Superseded fetch seq=%s failed: %r", seq, e)
                    return False
                self._fail(e, "Failed to fetch tasks!")
                return False

            if self._session.current_identity() is not identity:
                logger.debug("Discarding fetch seq=%s: session changed while in flight", seq)
                return False
            if seq != self._latest_seq:
                logger.debug("Discarding superseded fetch seq=%s (latest=%s)", seq, self._latest_seq)
                return False
            if mutations != self._mutations:
                logger.debug("Tasks changed while fetch seq=%s was in flight; fetching again", seq)
                continue

            applied = self._cache.replace_all(tasks, seq=seq)
            if applied:
                logger.debug("Applied fetch seq=%s (%d tasks)", seq, len(tasks))
            return applied

    async def load_users(self) -> list[UserProfile]:
        """Fetch the user directory (for assignment pickers)."""
        if not self._session.is_authenticated:
            return self.users
        try:
            self.users = list(await self._gateway.list_users())
        except Exception as e:
            self._fail(e, "Failed to fetch users!")
        return self.users

    # ---- mutations ----

    def _still_signed_in(self, identity: Identity | None) -> bool:
        if self._session.current_identity() is identity:
            return True
        logger.info("Session changed while a change was in flight; cache left as is")
        return False

    def _mutable_task(self, task_id: str) -> Task | None:
        identity = self._session.current_identity()
        if identity is None:
            self._notifier.error(NOT_LOGGED_IN)
            return None
        task = self._cache.get(task_id)
        if task is None:
            self._notifier.error(f"No such task: {task_id}")
            return None
        if not can_mutate(task, identity):
            logger.info("Refusing to change task %s: not created by %s", task_id, identity.subject_id)
            self._notifier.error(NOT_OWNER)
            return None
        return task

    async def create_task(self, draft: TaskDraft) -> Task | None:
        identity = self._session.current_identity()
        if identity is None:
            self._notifier.error(NOT_LOGGED_IN)
            return None
        try:
            status = TaskStatus.parse(draft.status)
        except ValueError as e:
            self._notifier.error(f"Failed to add task! {e}")
            return None

        payload: dict[str, Any] = {
            "title": draft.title,
            "description": draft.description,
            "dueDate": draft.due_date,
            "status": status.value,
            # Tasks are only ever created on behalf of the current user.
            "createdBy": identity.subject_id,
        }
        if draft.assigned_user_id:
            payload["assignedUser"] = draft.assigned_user_id

        try:
            task = await self._gateway.create_task(payload)
        except Exception as e:
            self._fail(e, "Failed to add task!")
            return None

        self._mutations += 1
        if self._still_signed_in(identity):
            self._cache.upsert(task)
        logger.info("Task %s created", task.id)
        self._notifier.success("Task added successfully!")
        return task

    async def update_task(self, task_id: str, changes: Mapping[str, Any]) -> Task | None:
        task = self._mutable_task(task_id)
        if task is None:
            return None
        identity = self._session.current_identity()

        try:
            payload = build_update_payload(task, changes)
        except ValueError as e:
            self._notifier.error(f"Failed to update task! {e}")
            return None

        try:
            updated = await self._gateway.update_task(task.id, payload)
        except Exception as e:
            self._fail(e, "Failed to update task!")
            return None

        self._mutations += 1
        if self._still_signed_in(identity):
            self._cache.upsert(updated)
        logger.info("Task %s updated (%s)", updated.id, ", ".join(sorted(payload)))
        self._notifier.success("Task updated successfully!")
        return updated

    async def set_status(self, task_id: str, status: TaskStatus | str) -> Task | None:
        """Mark as Completed / Pending."""
        return await self.update_task(task_id, {"status": status})

    async def delete_task(self, task_id: str) -> bool:
        task = self._mutable_task(task_id)
        if task is None:
            return False
        identity = self._session.current_identity()

        try:
            await self._gateway.delete_task(task.id)
        except Exception as e:
            self._fail(e, "Failed to delete task!")
            return False

        self._mutations += 1
        if self._still_signed_in(identity):
            self._cache.remove(task.id)
        logger.info("Task %s deleted", task.id)
        self._notifier.success("Task deleted successfully!")
        return True
