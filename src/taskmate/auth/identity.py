# src/taskmate/auth/identity.py

"""
Identity derived from the bearer credential.

The credential is a JWT-shaped token (header.payload.signature). The client never
verifies the signature (the server is the authority); it only reads the claims to
learn who the user is. Decoding returns a tagged result and never raises.
"""

from __future__ import annotations

import base64
import binascii
import json
import time
from dataclasses import dataclass, field
from typing import Any

# Claim names the server has used for the subject, in priority order.
SUBJECT_CLAIMS = ("id", "userId", "sub", "_id")


@dataclass(frozen=True, slots=True)
class Identity:
    subject_id: str
    claims: dict[str, Any] = field(default_factory=dict)

    @property
    def issued_at(self) -> float | None:
        return _num_claim(self.claims, "iat")

    @property
    def expires_at(self) -> float | None:
        return _num_claim(self.claims, "exp")


@dataclass(frozen=True, slots=True)
class DecodeFailure:
    reason: str


def _num_claim(claims: dict[str, Any], name: str) -> float | None:
    val = claims.get(name)
    if isinstance(val, bool) or not isinstance(val, (int, float)):
        return None
    return float(val)


def _b64url_decode(segment: str) -> bytes:
    padded = segment + "=" * (-len(segment) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def decode_credential(token: str | None, *, now: float | None = None) -> Identity | DecodeFailure:
    """Decode claims from `token`. Malformed, subject-less or expired tokens fail closed."""
    if not token or not token.strip():
        return DecodeFailure("empty credential")

    parts = token.strip().split(".")
    if len(parts) != 3:
        return DecodeFailure("credential is not a three-part token")

    try:
        claims = json.loads(_b64url_decode(parts[1]).decode("utf-8"))
    except (binascii.Error, UnicodeError, ValueError):
        return DecodeFailure("credential payload is not valid base64url JSON")

    if not isinstance(claims, dict):
        return DecodeFailure("credential payload is not an object")

    subject = None
    for name in SUBJECT_CLAIMS:
        val = claims.get(name)
        if isinstance(val, (str, int)) and not isinstance(val, bool) and str(val).strip():
            subject = str(val).strip()
            break
    if subject is None:
        return DecodeFailure("credential has no subject claim")

    exp = _num_claim(claims, "exp")
    now_ts = time.time() if now is None else now
    if exp is not None and exp <= now_ts:
        return DecodeFailure("credential has expired")

    return Identity(subject_id=subject, claims=claims)
