"""Database repository for accounts and their embedded message inboxes."""

from __future__ import annotations

import logging

from psycopg import errors
from psycopg.rows import tuple_row
from psycopg.types.json import Jsonb

from .db import Database
from .domain.account import Account, Message
from .domain.errors import DuplicateAccountError

logger = logging.getLogger(__name__)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS accounts (
    account_id TEXT PRIMARY KEY,
    username TEXT NOT NULL UNIQUE,
    email TEXT NOT NULL UNIQUE,
    password_hash TEXT NOT NULL,
    verify_code TEXT NOT NULL,
    verify_code_expiry TIMESTAMPTZ NOT NULL,
    is_verified BOOLEAN NOT NULL DEFAULT FALSE,
    is_accepting_messages BOOLEAN NOT NULL DEFAULT TRUE,
    messages JSONB NOT NULL DEFAULT '[]'::jsonb,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
)
"""

_ACCOUNT_COLUMNS = """
    account_id, username, email, password_hash, verify_code, verify_code_expiry,
    is_verified, is_accepting_messages, created_at
"""


class AccountRepository:
    """Postgres-backed account persistence; messages live in a JSONB array per account."""

    def __init__(self, database: Database) -> None:
        """Store the shared database handle used for all interactions."""
        self._db = database

    def ensure_schema(self) -> None:
        """Create the accounts table when it does not exist yet."""
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(SCHEMA_SQL)
                conn.commit()

    def find_by_identifier(self, identifier: str) -> Account | None:
        """Return the account whose username or email equals ``identifier``."""
        return self._fetch_one(
            f"SELECT {_ACCOUNT_COLUMNS} FROM accounts WHERE username = %s OR email = %s LIMIT 1",
            (identifier, identifier),
        )

    def find_by_username(self, username: str) -> Account | None:
        return self._fetch_one(
            f"SELECT {_ACCOUNT_COLUMNS} FROM accounts WHERE username = %s",
            (username,),
        )

    def find_verified_by_username(self, username: str) -> Account | None:
        return self._fetch_one(
            f"SELECT {_ACCOUNT_COLUMNS} FROM accounts WHERE username = %s AND is_verified",
            (username,),
        )

    def find_by_email(self, email: str) -> Account | None:
        return self._fetch_one(
            f"SELECT {_ACCOUNT_COLUMNS} FROM accounts WHERE email = %s",
            (email,),
        )

    def get_account(self, account_id: str) -> Account | None:
        return self._fetch_one(
            f"SELECT {_ACCOUNT_COLUMNS} FROM accounts WHERE account_id = %s",
            (account_id,),
        )

    def create_account(self, account: Account) -> Account:
        """Insert a new, unverified account record, taking its username from any unverified holder."""
        try:
            with self._db.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    self._release_unverified_username(cur, account)
                    cur.execute(
                        f"""
                        INSERT INTO accounts (
                            account_id, username, email, password_hash, verify_code,
                            verify_code_expiry, is_verified, is_accepting_messages
                        )
                        VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                        RETURNING {_ACCOUNT_COLUMNS}
                        """,
                        (
                            account.account_id,
                            account.username,
                            account.email,
                            account.password_hash,
                            account.verify_code,
                            account.verify_code_expiry,
                            account.is_verified,
                            account.is_accepting_messages,
                        ),
                    )
                    row = cur.fetchone()
                    conn.commit()
        except errors.UniqueViolation as exc:
            logger.info("unique constraint rejected account username=%s", account.username)
            raise DuplicateAccountError() from exc
        return self._map_record(row)

    def update_account(self, account: Account) -> Account:
        """Rewrite identity, secret and verification fields of an existing record."""
        try:
            with self._db.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    self._release_unverified_username(cur, account)
                    cur.execute(
                        f"""
                        UPDATE accounts
                        SET username = %s,
                            password_hash = %s,
                            verify_code = %s,
                            verify_code_expiry = %s,
                            updated_at = NOW()
                        WHERE account_id = %s
                        RETURNING {_ACCOUNT_COLUMNS}
                        """,
                        (
                            account.username,
                            account.password_hash,
                            account.verify_code,
                            account.verify_code_expiry,
                            account.account_id,
                        ),
                    )
                    row = cur.fetchone()
                    conn.commit()
        except errors.UniqueViolation as exc:
            logger.info("unique constraint rejected account username=%s", account.username)
            raise DuplicateAccountError() from exc
        return self._map_record(row)

    def mark_verified(self, account_id: str) -> None:
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    "UPDATE accounts SET is_verified = TRUE, updated_at = NOW() WHERE account_id = %s",
                    (account_id,),
                )
                conn.commit()

    def set_accepting(self, account_id: str, accepting: bool) -> Account | None:
        """Set the acceptance flag and return the updated record, or ``None`` if absent."""
        with self._db.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(
                    f"""
                    UPDATE accounts
                    SET is_accepting_messages = %s, updated_at = NOW()
                    WHERE account_id = %s
                    RETURNING {_ACCOUNT_COLUMNS}
                    """,
                    (accepting, account_id),
                )
                row = cur.fetchone()
                conn.commit()
        if not row:
            return None
        return self._map_record(row)

    def get_accepting(self, account_id: str) -> bool | None:
        with self._db.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(
                    "SELECT is_accepting_messages FROM accounts WHERE account_id = %s",
                    (account_id,),
                )
                row = cur.fetchone()
        if not row:
            return None
        return bool(row[0])

    def append_message(self, account_id: str, message: Message) -> bool:
        """Atomically push ``message`` onto the inbox if the account still accepts messages.

        Returns ``True`` when the message was stored.
        """
        document = {
            "id": message.message_id,
            "content": message.content,
            "created_at": message.created_at.isoformat(),
        }
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE accounts
                    SET messages = messages || %s, updated_at = NOW()
                    WHERE account_id = %s AND is_accepting_messages
                    """,
                    (Jsonb([document]), account_id),
                )
                appended = cur.rowcount == 1
                conn.commit()
        return appended

    def remove_message(self, account_id: str, message_id: str) -> int:
        """Pull one message by id from the owner's inbox; returns the number removed."""
        with self._db.connection() as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE accounts
                    SET messages = COALESCE(
                            (
                                SELECT jsonb_agg(m.value ORDER BY m.ord)
                                FROM jsonb_array_elements(accounts.messages)
                                    WITH ORDINALITY AS m(value, ord)
                                WHERE m.value->>'id' <> %s
                            ),
                            '[]'::jsonb
                        ),
                        updated_at = NOW()
                    WHERE account_id = %s AND messages @> %s
                    """,
                    (message_id, account_id, Jsonb([{"id": message_id}])),
                )
                removed = cur.rowcount
                conn.commit()
        return removed

    def list_messages(self, account_id: str) -> list[Message] | None:
        """Return the inbox newest first, or ``None`` when the account does not exist."""
        with self._db.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute("SELECT 1 FROM accounts WHERE account_id = %s", (account_id,))
                if cur.fetchone() is None:
                    return None
                cur.execute(
                    """
                    SELECT m.value->>'id',
                           m.value->>'content',
                           (m.value->>'created_at')::timestamptz
                    FROM accounts a
                    CROSS JOIN LATERAL jsonb_array_elements(a.messages)
                        WITH ORDINALITY AS m(value, ord)
                    WHERE a.account_id = %s
                    ORDER BY (m.value->>'created_at')::timestamptz DESC, m.ord ASC
                    """,
                    (account_id,),
                )
                rows = cur.fetchall()
        return [Message(message_id=row[0], content=row[1], created_at=row[2]) for row in rows]

    def _release_unverified_username(self, cur, account: Account) -> None:
        """Drop any other unverified record holding ``account.username``.

        Runs on the caller's cursor so the removal commits together with the
        insert or update that claims the name.
        """
        cur.execute(
            "DELETE FROM accounts WHERE username = %s AND account_id <> %s AND NOT is_verified",
            (account.username, account.account_id),
        )
        if cur.rowcount:
            logger.info("released unverified username=%s", account.username)

    def _fetch_one(self, query: str, params: tuple) -> Account | None:
        with self._db.connection() as conn:
            with conn.cursor(row_factory=tuple_row) as cur:
                cur.execute(query, params)
                row = cur.fetchone()
        if not row:
            return None
        return self._map_record(row)

    def _map_record(self, row: tuple) -> Account:
        """Convert a raw database tuple into the domain ``Account`` dataclass."""
        return Account(
            account_id=row[0],
            username=row[1],
            email=row[2],
            password_hash=row[3],
            verify_code=row[4],
            verify_code_expiry=row[5],
            is_verified=row[6],
            is_accepting_messages=row[7],
            created_at=row[8],
        )
