"""Password hashing helpers backed by bcrypt."""

from __future__ import annotations

import bcrypt


def hash_password(password: str) -> str:
    """Return a salted bcrypt hash for ``password``."""
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())
    return hashed.decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    """Check ``password`` against a stored bcrypt hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # malformed hash
        return False
