# src/taskmate/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root":
- loads settings once,
- ensures local (gitignored) directories exist,
- wires concrete implementations into AppContext,
- connects session events to the profile loader and the first fetch.
"""

from __future__ import annotations

import logging

import httpx

from ..auth.credential_store import CredentialStore
from ..auth.session import SessionEvent, SessionEventKind, SessionManager
from ..config import get_settings
from ..core.ports import Notifier
from ..core.state import AppContext
from ..profile.profile_loader import ProfileLoader
from ..tasks.filter_controller import FilterController
from ..tasks.task_cache import TaskCache
from ..tasks.task_gateway import TaskGateway
from ..tasks.task_sync import TaskSynchronizer

logger = logging.getLogger(__name__)


def _ensure_local_dirs(settings) -> None:
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    settings.credential_path.parent.mkdir(parents=True, exist_ok=True)


def _wire_session_events(ctx: AppContext) -> None:
    """
    identity established -> load profile + user directory, reset filters (first fetch)
    session torn down    -> forget the profile, surface the reason
    """

    def on_session_event(event: SessionEvent) -> None:
        if event.kind is SessionEventKind.ESTABLISHED and event.identity is not None:
            ctx.sync.spawn(ctx.profile.load(event.identity))
            ctx.sync.spawn(ctx.sync.load_users())
            ctx.filters.reset()
            return

        if event.kind is SessionEventKind.TORN_DOWN:
            ctx.profile.clear()
            ctx.sync.users = []
            ctx.notifier.info(event.reason or "Logged out.")

    ctx.session.events.subscribe(on_session_event)


def create_app_context(
    notifier: Notifier,
    *,
    settings=None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> AppContext:
    """
    Create AppContext from the provided settings.

    Keeping settings injectable makes the app easier to test and avoids hidden global config reads.
    If settings is None, falls back to get_settings().
    """
    if settings is None:
        settings = get_settings()

    _ensure_local_dirs(settings)

    credentials = CredentialStore(
        settings.credential_path,
        key=getattr(settings, "credential_key", "token"),
    )
    session = SessionManager(credentials)
    gateway = TaskGateway(settings, session.credential, transport=transport)
    cache = TaskCache()
    filters = FilterController()
    sync = TaskSynchronizer(gateway, cache, session, filters, notifier)

    ctx = AppContext(
        settings=settings,
        notifier=notifier,
        credentials=credentials,
        session=session,
        gateway=gateway,
        cache=cache,
        filters=filters,
        sync=sync,
        profile=ProfileLoader(gateway),
    )
    _wire_session_events(ctx)
    return ctx


def start_session(ctx: AppContext) -> None:
    """Restore the stored session, or bootstrap one from TASKMATE_CREDENTIAL."""
    identity = ctx.session.restore()
    if identity is not None:
        return

    token = getattr(ctx.settings, "bootstrap_credential", None)
    if token:
        logger.info("Establishing session from configured credential")
        if ctx.session.establish(token) is None:
            logger.error("Configured credential was rejected (malformed or expired)")
