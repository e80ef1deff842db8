# tests/test_task_sync.py

from __future__ import annotations

import asyncio
from datetime import date

import pytest

from taskmate.auth.identity import Identity
from taskmate.auth.permissions import can_mutate
from taskmate.auth.session import SessionEventKind
from taskmate.errors import AuthError, NetworkError, ValidationError
from taskmate.tasks.task_models import SortDirection, TaskDraft, TaskFilter, TaskStatus
from taskmate.tasks.task_sync import build_update_payload

from .fakes import make_task, make_token


@pytest.mark.asyncio
async def test_refresh_fills_cache_in_server_order(sync, session, cache, api) -> None:
    session.establish(make_token("u1"))

    assert await sync.refresh() is True

    assert [t.id for t in cache.snapshot()] == ["t2", "t3", "t1"]


@pytest.mark.asyncio
async def test_filter_change_refetches_only_matching_tasks(sync, session, cache, filters, api) -> None:
    session.establish(make_token("u1"))
    await sync.refresh()
    assert len(cache) == 3

    filters.set_filter("status", "Completed")
    filters.toggle_sort()
    await sync.wait_idle()

    assert [t.id for t in cache.snapshot()] == ["t3"]
    last_filter, last_sort = api.calls[-1][1]
    assert last_filter == TaskFilter(status=TaskStatus.COMPLETED)
    assert last_sort is SortDirection.DESC


@pytest.mark.asyncio
async def test_slow_older_fetch_does_not_overwrite_newer_one(sync, session, cache, filters, api) -> None:
    session.establish(make_token("u1"))
    first, second = asyncio.Event(), asyncio.Event()
    api.list_gates = [first, second]

    filters.set_filter("status", "Pending")  # F1, filter A
    filters.set_filter("status", "Completed")  # F2, filter B
    await asyncio.sleep(0)

    second.set()  # F2 answers first...
    await asyncio.sleep(0.01)
    assert [t.id for t in cache.snapshot()] == ["t3"]

    first.set()  # ...then the stale F1 arrives.
    await sync.wait_idle()

    assert [t.id for t in cache.snapshot()] == ["t3"]


@pytest.mark.asyncio
async def test_task_created_during_fetch_is_kept(sync, session, cache, filters, api, notifier) -> None:
    session.establish(make_token("u1"))
    gate = asyncio.Event()
    api.list_gates = [gate]

    filters.set_filter("status", "")
    await asyncio.sleep(0)  # fetch answered from the old server state, held at the gate

    created = await sync.create_task(
        TaskDraft(title="Buy milk", description="", due_date=date(2024, 1, 5))
    )
    assert created is not None
    assert cache.get(created.id) == created

    gate.set()
    await sync.wait_idle()

    assert [t.id for t in cache.snapshot()] == ["t2", "t3", "t1", created.id]
    assert [op for op, _ in api.calls].count("list") == 2
    assert notifier.texts("success") == ["Task added successfully!"]


@pytest.mark.asyncio
async def test_fetch_finishing_after_teardown_is_dropped(sync, session, cache, filters, api, notifier) -> None:
    session.establish(make_token("u1"))
    gate = asyncio.Event()
    api.list_gates = [gate]

    filters.set_filter("status", "")
    await asyncio.sleep(0)
    session.teardown()

    gate.set()
    await sync.wait_idle()

    assert not session.is_authenticated
    assert len(cache) == 0
    assert notifier.texts("error") == []


@pytest.mark.asyncio
async def test_401_from_previous_session_fetch_keeps_new_session(sync, session, cache, filters, api) -> None:
    session.establish(make_token("u1"))
    gate = asyncio.Event()
    api.list_gates = [gate]
    api.fail["list"] = AuthError("Token expired")

    filters.set_filter("status", "")
    await asyncio.sleep(0)
    session.teardown()
    session.establish(make_token("u2"))

    gate.set()
    await sync.wait_idle()

    assert session.current_identity().subject_id == "u2"
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_refresh_without_session_does_nothing(sync, cache, api) -> None:
    assert await sync.refresh() is False
    assert api.calls == []
    assert len(cache) == 0


@pytest.mark.asyncio
async def test_fetch_failure_keeps_cache_and_notifies(sync, session, cache, api, notifier) -> None:
    session.establish(make_token("u1"))
    await sync.refresh()
    before = cache.snapshot()

    api.fail["list"] = NetworkError("Could not reach the server.")
    assert await sync.refresh() is False

    assert cache.snapshot() == before
    assert notifier.texts("error") == ["Failed to fetch tasks! Could not reach the server."]
    assert session.is_authenticated


@pytest.mark.asyncio
async def test_create_task_as_current_user(sync, session, cache, api, notifier) -> None:
    identity = session.establish(make_token("u1"))

    task = await sync.create_task(
        TaskDraft(title="Buy milk", description="", due_date=date(2024, 1, 1))
    )

    assert task is not None
    assert cache.get(task.id) == task
    op, payload = api.calls[-1]
    assert op == "create"
    assert payload["createdBy"] == "u1"
    assert payload["status"] == "Pending"
    assert payload["dueDate"] == date(2024, 1, 1)
    assert notifier.texts("success") == ["Task added successfully!"]

    assert can_mutate(task, identity) is True
    assert can_mutate(task, Identity("u2")) is False


@pytest.mark.asyncio
async def test_create_requires_session(sync, api, notifier) -> None:
    draft = TaskDraft(title="x", description="", due_date=date(2024, 1, 1))
    assert await sync.create_task(draft) is None
    assert api.calls == []
    assert notifier.texts("error")


@pytest.mark.asyncio
async def test_rejected_create_leaves_cache_and_session(sync, session, cache, api, notifier) -> None:
    session.establish(make_token("u1"))
    api.fail["create"] = ValidationError("Title is required", status_code=400)

    draft = TaskDraft(title="", description="", due_date=date(2024, 1, 1))
    assert await sync.create_task(draft) is None

    assert len(cache) == 0
    assert session.is_authenticated
    assert notifier.texts("error") == ["Failed to add task! Title is required"]


@pytest.mark.asyncio
async def test_update_keeps_original_creator(sync, session, cache, api, notifier) -> None:
    session.establish(make_token("u1"))
    await sync.refresh()

    updated = await sync.update_task("t1", {"title": "Write final report", "due_date": "2024-02-01"})

    assert updated is not None
    assert cache.get("t1") == updated
    assert updated.title == "Write final report"
    _, (task_id, payload) = api.calls[-1]
    assert task_id == "t1"
    assert payload == {"title": "Write final report", "dueDate": date(2024, 2, 1), "createdBy": "u1"}
    assert notifier.texts("success") == ["Task updated successfully!"]


@pytest.mark.asyncio
async def test_update_of_someone_elses_task_is_refused_locally(sync, session, cache, api, notifier) -> None:
    session.establish(make_token("u1"))
    await sync.refresh()
    calls_before = len(api.calls)

    assert await sync.update_task("t2", {"title": "mine now"}) is None
    assert await sync.delete_task("t2") is False

    assert len(api.calls) == calls_before
    assert cache.get("t2") is not None and cache.get("t2").title == "Call plumber"
    assert len(notifier.texts("error")) == 2


@pytest.mark.asyncio
async def test_401_on_update_tears_down_and_leaves_cache(sync, session, cache, api, credentials, session_events) -> None:
    session.establish(make_token("u1"))
    await sync.refresh()
    before = cache.snapshot()

    api.fail["update"] = AuthError("Token expired")
    assert await sync.update_task("t1", {"status": "Completed"}) is None

    assert cache.snapshot() == before
    assert cache.get("t1").status is TaskStatus.PENDING
    assert session.current_identity() is None
    assert credentials.get() is None
    torn = [e for e in session_events if e.kind is SessionEventKind.TORN_DOWN]
    assert len(torn) == 1 and torn[0].reason == "Token expired"


@pytest.mark.asyncio
async def test_set_status_and_delete(sync, session, cache, api, notifier) -> None:
    session.establish(make_token("u1"))
    await sync.refresh()

    done = await sync.set_status("t1", TaskStatus.COMPLETED)
    assert done is not None and done.status is TaskStatus.COMPLETED
    pending, completed = cache.partition()
    assert [t.id for t in completed] == ["t3", "t1"]
    assert "t1" not in {t.id for t in pending}

    assert await sync.delete_task("t1") is True
    assert cache.get("t1") is None
    assert notifier.texts("success")[-1] == "Task deleted successfully!"


@pytest.mark.asyncio
async def test_failed_delete_keeps_task(sync, session, cache, api, notifier) -> None:
    session.establish(make_token("u1"))
    await sync.refresh()
    api.fail["delete"] = NetworkError("Server error (500).", status_code=500)

    assert await sync.delete_task("t1") is False

    assert cache.get("t1") is not None
    assert notifier.texts("error") == ["Failed to delete task! Server error (500)."]


@pytest.mark.asyncio
async def test_load_users_and_401_teardown(sync, session, api) -> None:
    session.establish(make_token("u1"))

    users = await sync.load_users()
    assert [u.id for u in users] == ["u1", "u2"]

    api.fail["users"] = AuthError(None)
    await sync.load_users()
    assert not session.is_authenticated


def test_build_update_payload_rules() -> None:
    task = make_task("t1", created_by="u1")

    assert build_update_payload(task, {"status": "completed"}) == {
        "status": "Completed",
        "createdBy": "u1",
    }
    assert build_update_payload(task, {"assigned_user": "u2"}) == {
        "assignedUser": "u2",
        "createdBy": "u1",
    }
    with pytest.raises(ValueError):
        build_update_payload(task, {"createdBy": "u2"})
    with pytest.raises(ValueError):
        build_update_payload(task, {"priority": "high"})
    with pytest.raises(ValueError):
        build_update_payload(task, {"due_date": ""})
