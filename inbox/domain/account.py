from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(slots=True)
class Message:
    """Anonymous message embedded in an account's inbox."""

    message_id: str
    content: str
    created_at: datetime


@dataclass(slots=True)
class Account:
    """Aggregate root for a registered identity and its inbox."""

    account_id: str
    username: str
    email: str
    password_hash: str
    verify_code: str
    verify_code_expiry: datetime
    is_verified: bool = False
    is_accepting_messages: bool = True
    messages: list[Message] = field(default_factory=list)
    created_at: datetime | None = None


@dataclass(slots=True, frozen=True)
class SessionPrincipal:
    """Identity snapshot issued at sign-in and carried in the session token.

    ``is_accepting_messages`` reflects the flag at sign-in time only; read the
    store when the current value matters.
    """

    account_id: str
    username: str
    is_verified: bool
    is_accepting_messages: bool
