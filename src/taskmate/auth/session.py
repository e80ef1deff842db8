# src/taskmate/auth/session.py

"""
Session manager.

Two states only:
- unauthenticated: no identity, no stored credential
- authenticated:   identity decoded from the stored credential

establish() moves to authenticated (or fails closed), teardown() is the single
path back. Observers learn about both transitions through `events`.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum

from ..core.events import Signal
from ..core.ports import CredentialRepo
from .identity import DecodeFailure, Identity, decode_credential

logger = logging.getLogger(__name__)


class SessionEventKind(StrEnum):
    ESTABLISHED = "established"
    TORN_DOWN = "torn_down"


@dataclass(frozen=True, slots=True)
class SessionEvent:
    kind: SessionEventKind
    identity: Identity | None
    reason: str | None = None


class SessionManager:
    def __init__(
        self,
        credentials: CredentialRepo,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._credentials = credentials
        self._clock = clock
        self._identity: Identity | None = None
        self.events: Signal[SessionEvent] = Signal("session")

    @property
    def is_authenticated(self) -> bool:
        return self._identity is not None

    def current_identity(self) -> Identity | None:
        return self._identity

    def credential(self) -> str | None:
        """Token to attach to outbound requests (None when unauthenticated)."""
        if self._identity is None:
            return None
        return self._credentials.get()

    def establish(self, token: str) -> Identity | None:
        """
        Store `token` and derive the identity from it.

        A token that does not decode (malformed, no subject, expired) is not kept:
        the session stays (or becomes) unauthenticated and None is returned.
        """
        result = decode_credential(token, now=self._clock())
        if isinstance(result, DecodeFailure):
            logger.warning("Rejected credential: %s", result.reason)
            if self._identity is not None:
                self.teardown()
            else:
                self._credentials.clear()
            return None

        self._credentials.set(token)
        self._identity = result
        logger.info("Session established for subject=%s", result.subject_id)
        self.events.emit(SessionEvent(SessionEventKind.ESTABLISHED, result))
        return result

    def restore(self) -> Identity | None:
        """Re-establish from a credential persisted by a previous run."""
        token = self._credentials.get()
        if token is None:
            return None
        logger.debug("Restoring session from stored credential")
        return self.establish(token)

    def teardown(self, reason: str | None = None) -> bool:
        """
        End the session: clear the credential, drop the identity, notify observers.

        Idempotent: returns False (and notifies nobody) when already unauthenticated.
        """
        if self._identity is None:
            self._credentials.clear()
            return False

        identity = self._identity
        self._credentials.clear()
        self._identity = None
        logger.info("Session torn down for subject=%s reason=%r", identity.subject_id, reason)
        self.events.emit(SessionEvent(SessionEventKind.TORN_DOWN, identity, reason))
        return True
