# tests/test_bootstrap.py

from __future__ import annotations

import httpx
import pytest
import pytest_asyncio

from taskmate.auth.credential_store import CredentialStore
from taskmate.cli.bootstrap import create_app_context, start_session

from .fakes import FakeServer, RecordingNotifier, make_token


@pytest.fixture()
def server() -> FakeServer:
    return FakeServer()


@pytest_asyncio.fixture
async def ctx(settings, server):
    notifier = RecordingNotifier()
    context = create_app_context(notifier, settings=settings, transport=httpx.MockTransport(server))
    yield context
    await context.aclose()


@pytest.mark.asyncio
async def test_establish_loads_profile_users_and_first_page(ctx, server) -> None:
    ctx.session.establish(make_token("u1"))
    await ctx.sync.wait_idle()

    assert ctx.profile.profile is not None and ctx.profile.profile.email == "ann@example.com"
    assert [u.id for u in ctx.sync.users] == ["u1"]
    assert [t.id for t in ctx.cache.snapshot()] == ["t1", "t2"]
    assert ("GET", "/api/tasks") in server.seen


@pytest.mark.asyncio
async def test_401_tears_down_and_surfaces_reason(ctx, server) -> None:
    ctx.session.establish(make_token("u1"))
    await ctx.sync.wait_idle()

    server.expired = True
    assert await ctx.sync.delete_task("t1") is False
    await ctx.sync.wait_idle()

    assert not ctx.session.is_authenticated
    assert ctx.credentials.get() is None
    assert ctx.profile.profile is None
    assert ctx.notifier.texts("info") == ["Session expired, please log in again"]
    # The failed task is still there.
    assert ctx.cache.get("t1") is not None


@pytest.mark.asyncio
async def test_start_session_restores_stored_credential(settings, server) -> None:
    CredentialStore(settings.credential_path).set(make_token("u1"))
    ctx = create_app_context(RecordingNotifier(), settings=settings, transport=httpx.MockTransport(server))
    try:
        start_session(ctx)
        await ctx.sync.wait_idle()
        assert ctx.session.current_identity().subject_id == "u1"
        assert len(ctx.cache) == 2
    finally:
        await ctx.aclose()


@pytest.mark.asyncio
async def test_start_session_with_bad_configured_credential(settings, server) -> None:
    settings.bootstrap_credential = "not-a-token"
    ctx = create_app_context(RecordingNotifier(), settings=settings, transport=httpx.MockTransport(server))
    try:
        start_session(ctx)
        await ctx.sync.wait_idle()
        assert not ctx.session.is_authenticated
        assert server.seen == []
    finally:
        await ctx.aclose()
