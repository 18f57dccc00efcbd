"""Utilities for issuing and validating session JWTs."""

from __future__ import annotations

import time
from typing import Any

import jwt

from ..config import get_settings
from ..domain.account import SessionPrincipal


def issue_session_token(principal: SessionPrincipal) -> tuple[str, int]:
    """Create a signed JWT carrying the session principal.

    Parameters
    ----------
    principal:
        Identity snapshot produced by a successful sign-in.

    Returns
    -------
    tuple[str, int]
        A tuple containing the encoded JWT string and its TTL (in seconds).
    """

    settings = get_settings()
    now = int(time.time())
    expires_in = settings.jwt_ttl_seconds
    payload: dict[str, Any] = {
        "iss": settings.jwt_issuer,
        "sub": principal.account_id,
        "username": principal.username,
        "verified": principal.is_verified,
        "accepting": principal.is_accepting_messages,
        "iat": now,
        "exp": now + expires_in,
    }

    token = jwt.encode(payload, settings.jwt_secret, algorithm="HS256")
    return token, expires_in


def decode_session_token(token: str) -> SessionPrincipal:
    """Decode and verify a session JWT returning its principal.

    Raises
    ------
    jwt.PyJWTError
        Propagated when the token is invalid, expired, signed by another issuer
        or missing required claims.
    """

    settings = get_settings()
    claims = jwt.decode(
        token,
        settings.jwt_secret,
        algorithms=["HS256"],
        issuer=settings.jwt_issuer,
        options={"require": ["sub", "exp", "iss"]},
    )
    return SessionPrincipal(
        account_id=claims["sub"],
        username=claims.get("username", ""),
        is_verified=bool(claims.get("verified", False)),
        is_accepting_messages=bool(claims.get("accepting", False)),
    )
