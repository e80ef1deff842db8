# src/taskmate/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..auth.credential_store import CredentialStore
from ..auth.session import SessionManager
from ..profile.profile_loader import ProfileLoader
from ..tasks.filter_controller import FilterController
from ..tasks.task_cache import TaskCache
from ..tasks.task_gateway import TaskGateway
from ..tasks.task_sync import TaskSynchronizer
from .ports import Notifier


@dataclass
class AppContext:
    """
    Everything one client session needs, built once by the composition root.

    Components receive their collaborators explicitly; nothing reads globals.
    """

    # Store Settings on the context for easy access in other modules.
    settings: Any

    notifier: Notifier
    credentials: CredentialStore
    session: SessionManager
    gateway: TaskGateway
    cache: TaskCache
    filters: FilterController
    sync: TaskSynchronizer
    profile: ProfileLoader

    async def aclose(self) -> None:
        await self.sync.aclose()
        await self.gateway.aclose()
