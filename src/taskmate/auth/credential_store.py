# src/taskmate/auth/credential_store.py

from __future__ import annotations

import contextlib
import json
import logging
import os
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def _load_json(path: Path) -> dict[str, Any]:
    raw = path.read_text("utf-8")
    val = json.loads(raw)
    if isinstance(val, dict):
        return val
    raise ValueError("Expected JSON object")


def _atomic_write_json(path: Path, data: dict[str, Any]) -> None:
    tmp = path.with_suffix(".tmp")
    tmp.write_text(json.dumps(data, ensure_ascii=False), "utf-8")
    os.replace(tmp, path)
    with contextlib.suppress(OSError):
        # Best-effort: not critical on Windows or restricted FS.
        os.chmod(path, 0o600)


class CredentialStore:
    """
    Persists the bearer credential across restarts.

    The credential lives under a single well-known key in a small JSON file
    under a gitignored local dir. The file contains a secret and is written
    atomically with 0600 permissions. A corrupt file reads as "no credential".
    """

    def __init__(self, path: str | Path, *, key: str = "token") -> None:
        self._path = Path(path)
        self._key = key

    @property
    def path(self) -> Path:
        return self._path

    def get(self) -> str | None:
        if not self._path.exists():
            return None
        try:
            data = _load_json(self._path)
        except (OSError, ValueError):
            logger.warning("Credential file %s is unreadable; ignoring it", self._path)
            return None
        token = data.get(self._key)
        if not isinstance(token, str) or not token.strip():
            return None
        return token.strip()

    def set(self, token: str) -> None:
        token = (token or "").strip()
        if not token:
            raise ValueError("token is required")
        self._path.parent.mkdir(parents=True, exist_ok=True)
        data: dict[str, Any] = {}
        if self._path.exists():
            with contextlib.suppress(OSError, ValueError):
                data = _load_json(self._path)
        data[self._key] = token
        _atomic_write_json(self._path, data)
        logger.debug("Credential saved to %s", self._path)

    def clear(self) -> None:
        if not self._path.exists():
            return
        try:
            data = _load_json(self._path)
        except (OSError, ValueError):
            data = {}
        data.pop(self._key, None)
        if data:
            _atomic_write_json(self._path, data)
        else:
            self._path.unlink(missing_ok=True)
        logger.debug("Credential cleared from %s", self._path)

