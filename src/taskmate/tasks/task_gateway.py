# src/taskmate/tasks/task_gateway.py

"""
Remote task gateway.

Thin, stateless request layer over the REST API:

    GET    /api/tasks?status=&dueDate=&sortOrder=asc|desc
    POST   /api/tasks
    PUT    /api/tasks/updateTask/{id}
    DELETE /api/tasks/deleteTask/{id}
    GET    /api/users/all
    GET    /api/users/fetchUser/{id}

Every request carries `Authorization: Bearer <credential>` when a credential is
available. Failures are mapped onto the errors in `taskmate.errors`; nothing here
touches local state.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import date, datetime
from typing import Any

import httpx

from ..errors import AuthError, NetworkError, ValidationError
from .task_models import SortDirection, Task, TaskFilter, UserProfile, to_utc_timestamp

logger = logging.getLogger(__name__)

CredentialProvider = Callable[[], str | None]


def _make_timeout(settings: Any) -> httpx.Timeout:
    read_s = float(getattr(settings, "http_timeout_seconds", 15.0))
    connect_s = float(getattr(settings, "http_connect_timeout_seconds", 5.0))
    return httpx.Timeout(read_s, connect=connect_s)


def _reason_from(resp: httpx.Response) -> str | None:
    """Pull the human-readable `msg` (or `message`) out of an error body, if any."""
    try:
        body = resp.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        for key in ("msg", "message", "error"):
            val = body.get(key)
            if isinstance(val, str) and val.strip():
                return val.strip()
    return None


def normalize_payload(payload: Mapping[str, Any]) -> dict[str, Any]:
    """Copy `payload`, turning a date/datetime `dueDate` into an ISO-8601 UTC string."""
    out = dict(payload)
    due = out.get("dueDate")
    if isinstance(due, (date, datetime)):
        out["dueDate"] = to_utc_timestamp(due)
    return out


class TaskGateway:
    def __init__(
        self,
        settings: Any,
        credential_provider: CredentialProvider,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        base_url = str(getattr(settings, "api_url", "") or "").strip()
        if not base_url:
            raise RuntimeError("API URL is not set. Set TASKMATE_API_URL in your .env.")
        self._credential_provider = credential_provider
        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=_make_timeout(settings),
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    # ---- low-level helpers ----

    def _headers(self) -> dict[str, str]:
        token = self._credential_provider()
        if not token:
            return {}
        return {"Authorization": f"Bearer {token}"}

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            resp = await self._client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.TimeoutException as e:
            logger.info("%s %s timed out: %r", method, url, e)
            raise NetworkError("The server did not respond in time.") from e
        except httpx.HTTPError as e:
            logger.info("%s %s failed: %r", method, url, e)
            raise NetworkError("Could not reach the server.") from e

        if resp.status_code == 401:
            raise AuthError(_reason_from(resp))
        if 400 <= resp.status_code < 500:
            reason = _reason_from(resp) or f"Request rejected ({resp.status_code})."
            raise ValidationError(reason, status_code=resp.status_code)
        if resp.status_code >= 500:
            raise NetworkError(f"Server error ({resp.status_code}).", status_code=resp.status_code)
        return resp

    @staticmethod
    def _json(resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError as e:
            raise NetworkError("The server sent an unreadable response.") from e

    @classmethod
    def _task(cls, resp: httpx.Response) -> Task:
        try:
            return Task.from_api(cls._json(resp))
        except ValueError as e:
            raise NetworkError("The server sent an invalid task.") from e

    # ---- public API ----

    async def list_tasks(self, task_filter: TaskFilter, sort: SortDirection) -> list[Task]:
        params = task_filter.to_params()
        params["sortOrder"] = SortDirection(sort).value
        resp = await self._request("GET", "/api/tasks", params=params)
        data = self._json(resp)
        if not isinstance(data, list):
            raise NetworkError("The server sent an invalid task list.")
        try:
            return [Task.from_api(item) for item in data]
        except ValueError as e:
            raise NetworkError("The server sent an invalid task.") from e

    async def create_task(self, payload: Mapping[str, Any]) -> Task:
        resp = await self._request("POST", "/api/tasks", json=normalize_payload(payload))
        return self._task(resp)

    async def update_task(self, task_id: str, payload: Mapping[str, Any]) -> Task:
        resp = await self._request(
            "PUT", f"/api/tasks/updateTask/{task_id}", json=normalize_payload(payload)
        )
        return self._task(resp)

    async def delete_task(self, task_id: str) -> None:
        await self._request("DELETE", f"/api/tasks/deleteTask/{task_id}")

    async def list_users(self) -> list[UserProfile]:
        resp = await self._request("GET", "/api/users/all")
        data = self._json(resp)
        if not isinstance(data, list):
            raise NetworkError("The server sent an invalid user list.")
        users: list[UserProfile] = []
        for item in data:
            try:
                users.append(UserProfile.from_api(item))
            except ValueError:
                logger.debug("Skipping malformed user record: %r", item)
        return users

    async def fetch_profile(self, subject_id: str) -> UserProfile:
        resp = await self._request("GET", f"/api/users/fetchUser/{subject_id}")
        try:
            return UserProfile.from_api(self._json(resp))
        except ValueError as e:
            raise NetworkError("The server sent an invalid profile.") from e
