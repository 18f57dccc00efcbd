"""Domain-level request contracts shared by multiple layers."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class SignUpInput:
    """Validated inputs required to register (or re-register) an account."""

    username: str
    email: str
    password: str


@dataclass(slots=True)
class SendMessageInput:
    """Validated inputs for delivering an anonymous message."""

    username: str
    content: str
