# src/taskmate/profile/profile_loader.py

from __future__ import annotations

import logging

from ..auth.identity import Identity
from ..core.ports import TaskApi
from ..tasks.task_models import UserProfile

logger = logging.getLogger(__name__)


class ProfileLoader:
    """
    Fetches the signed-in user's profile (name, email) for display.

    Best-effort: failures are logged and leave `profile` empty. The profile is
    not a trust input, so a failure here never ends the session.
    """

    def __init__(self, gateway: TaskApi) -> None:
        self._gateway = gateway
        self._subject_id: str | None = None
        self.profile: UserProfile | None = None

    async def load(self, identity: Identity) -> UserProfile | None:
        subject_id = identity.subject_id
        self._subject_id = subject_id
        self.profile = None

        try:
            profile = await self._gateway.fetch_profile(subject_id)
        except Exception as e:
            logger.warning("Error fetching profile for %s: %r", subject_id, e)
            return None

        # The session may have changed hands while we were waiting.
        if self._subject_id != subject_id:
            logger.debug("Dropping profile for %s: identity changed", subject_id)
            return None

        self.profile = profile
        logger.info("Profile loaded for %s (%s)", subject_id, profile.name or "no name")
        return profile

    def clear(self) -> None:
        self._subject_id = None
        self.profile = None
