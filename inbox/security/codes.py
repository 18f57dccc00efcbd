"""Email verification code issuance."""

from __future__ import annotations

import secrets
from datetime import datetime, timedelta

from ..config import get_settings

CODE_MIN = 100000
CODE_MAX = 999999


def generate_verification_code() -> str:
    """Return a 6-digit numeric code drawn uniformly from [100000, 999999]."""
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


def issue_code(now: datetime) -> tuple[str, datetime]:
    """Return a fresh code and its expiry relative to ``now``.

    The caller is responsible for attaching both to the account and persisting them.
    """
    ttl = timedelta(seconds=get_settings().verify_code_ttl_seconds)
    return generate_verification_code(), now + ttl
