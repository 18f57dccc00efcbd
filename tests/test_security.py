from __future__ import annotations

import time
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from inbox.config import get_settings
from inbox.domain.account import SessionPrincipal
from inbox.security.codes import generate_verification_code, issue_code
from inbox.security.passwords import hash_password, verify_password
from inbox.security.tokens import decode_session_token, issue_session_token


def test_verification_codes_are_six_digits_in_range():
    for _ in range(200):
        code = generate_verification_code()
        assert len(code) == 6
        assert 100000 <= int(code) <= 999999


def test_issue_code_expires_after_configured_ttl():
    now = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)
    code, expiry = issue_code(now)
    assert code.isdigit()
    assert expiry == now + timedelta(seconds=get_settings().verify_code_ttl_seconds)
    assert expiry == now + timedelta(hours=1)


def test_password_hash_round_trip():
    hashed = hash_password("secret123")
    assert hashed != "secret123"
    assert verify_password("secret123", hashed)
    assert not verify_password("secret124", hashed)
    assert not verify_password("secret123", "not-a-bcrypt-hash")


def test_password_hashes_are_salted():
    assert hash_password("secret123") != hash_password("secret123")


def test_session_token_carries_principal_snapshot():
    principal = SessionPrincipal(
        account_id="acc-1", username="alice", is_verified=True, is_accepting_messages=False
    )
    token, expires_in = issue_session_token(principal)

    assert expires_in == get_settings().jwt_ttl_seconds
    assert decode_session_token(token) == principal


def test_session_token_rejects_foreign_signature():
    settings = get_settings()
    forged = jwt.encode(
        {"iss": settings.jwt_issuer, "sub": "acc-1", "exp": int(time.time()) + 60},
        "another-secret",
        algorithm="HS256",
    )
    with pytest.raises(jwt.InvalidSignatureError):
        decode_session_token(forged)


def test_session_token_rejects_expired():
    settings = get_settings()
    expired = jwt.encode(
        {"iss": settings.jwt_issuer, "sub": "acc-1", "exp": int(time.time()) - 60},
        settings.jwt_secret,
        algorithm="HS256",
    )
    with pytest.raises(jwt.ExpiredSignatureError):
        decode_session_token(expired)
