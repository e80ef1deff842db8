# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskmate.auth.credential_store import CredentialStore
from taskmate.auth.session import SessionEvent, SessionManager
from taskmate.tasks.filter_controller import FilterController
from taskmate.tasks.task_cache import TaskCache
from taskmate.tasks.task_models import TaskStatus
from taskmate.tasks.task_sync import TaskSynchronizer

from .fakes import FakeTaskApi, RecordingNotifier, make_task


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with the components.

    We intentionally use a SimpleNamespace rather than importing real config,
    to keep unit tests isolated and deterministic.
    """
    return SimpleNamespace(
        app_name="taskmate-test",
        api_url="http://tasks.test",
        http_timeout_seconds=1.0,
        http_connect_timeout_seconds=1.0,
        data_dir=tmp_path,
        credential_path=tmp_path / "credential.json",
        credential_key="token",
        bootstrap_credential=None,
    )


@pytest.fixture()
def credentials(settings: SimpleNamespace) -> CredentialStore:
    return CredentialStore(settings.credential_path, key=settings.credential_key)


@pytest.fixture()
def session(credentials: CredentialStore) -> SessionManager:
    return SessionManager(credentials)


@pytest.fixture()
def session_events(session: SessionManager) -> list[SessionEvent]:
    events: list[SessionEvent] = []
    session.events.subscribe(events.append)
    return events


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def api() -> FakeTaskApi:
    """Server with 2 pending tasks and 1 completed task; u1 owns t1 and t3."""
    return FakeTaskApi(
        [
            make_task("t1", title="Write report", created_by="u1", due="2024-01-03"),
            make_task("t2", title="Call plumber", created_by="u2", due="2024-01-01"),
            make_task(
                "t3",
                title="Pay rent",
                status=TaskStatus.COMPLETED,
                created_by="u1",
                due="2024-01-02",
            ),
        ]
    )


@pytest.fixture()
def cache() -> TaskCache:
    return TaskCache()


@pytest.fixture()
def filters() -> FilterController:
    return FilterController()


@pytest.fixture()
def sync(
    api: FakeTaskApi,
    cache: TaskCache,
    session: SessionManager,
    filters: FilterController,
    notifier: RecordingNotifier,
) -> TaskSynchronizer:
    """
    Synchronizer wired to the in-memory server.

    NOTE: the session is real (file-backed credential in tmp_path) because
    teardown-on-401 is part of what we want to test.
    """
    return TaskSynchronizer(api, cache, session, filters, notifier)
