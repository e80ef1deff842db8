# src/taskmate/errors.py

"""
Error taxonomy for the request layer.

- AuthError: the server answered 401; the session must be torn down.
- ValidationError: any other 4xx (e.g. a missing required field on create/update).
- NetworkError: transport failure, timeout, 5xx or an undecodable body.

Every GatewayError carries a user-facing `message`; technical details stay in the logs.
"""

from __future__ import annotations

DEFAULT_AUTH_REASON = "Authentication Error"


class TaskmateError(Exception):
    """Base exception for all taskmate failures."""


class GatewayError(TaskmateError):
    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthError(GatewayError):
    """401 from any endpoint. `message` is the server reason (or a generic one)."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__((message or "").strip() or DEFAULT_AUTH_REASON, status_code=401)


class ValidationError(GatewayError):
    """The server rejected the request (4xx other than 401)."""


class NetworkError(GatewayError):
    """The request did not produce a usable response."""
