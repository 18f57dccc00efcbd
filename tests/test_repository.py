"""Statement-level checks of the SQL issued by ``AccountRepository``."""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timedelta, timezone

import pytest
from psycopg import errors

from inbox.db import Database
from inbox.domain.account import Account, Message
from inbox.domain.errors import DuplicateAccountError
from inbox.repository import AccountRepository

NOW = datetime(2024, 1, 1, tzinfo=timezone.utc)


class RecordingCursor:
    def __init__(self, connection: "RecordingConnection") -> None:
        self._connection = connection
        self.rowcount = -1
        self._rows: list[tuple] = []

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        return None

    def execute(self, query: str, params: tuple = ()) -> None:
        self._connection.statements.append((" ".join(query.split()), params))
        outcome = self._connection.outcomes.pop(0) if self._connection.outcomes else {}
        if "raises" in outcome:
            raise outcome["raises"]
        self._rows = list(outcome.get("rows", []))
        self.rowcount = outcome.get("rowcount", len(self._rows))

    def fetchone(self):
        return self._rows.pop(0) if self._rows else None

    def fetchall(self):
        rows, self._rows = self._rows, []
        return rows


class RecordingConnection:
    """Hands out cursors that log every statement and replay scripted results."""

    def __init__(self, *outcomes: dict) -> None:
        self.outcomes = list(outcomes)
        self.statements: list[tuple[str, tuple]] = []
        self.commits = 0

    def cursor(self, row_factory=None) -> RecordingCursor:
        return RecordingCursor(self)

    def commit(self) -> None:
        self.commits += 1


class SingleConnectionPool:
    def __init__(self, connection: RecordingConnection) -> None:
        self._connection = connection

    def open(self) -> None:
        pass

    def close(self) -> None:
        pass

    @contextmanager
    def connection(self):
        yield self._connection


def _repository(*outcomes: dict) -> tuple[AccountRepository, RecordingConnection]:
    connection = RecordingConnection(*outcomes)
    return AccountRepository(Database(SingleConnectionPool(connection))), connection


def _account(**overrides) -> Account:
    fields = dict(
        account_id="acc-1",
        username="alice",
        email="a@x.com",
        password_hash="hash",
        verify_code="123456",
        verify_code_expiry=NOW + timedelta(hours=1),
        is_verified=False,
        is_accepting_messages=True,
        created_at=NOW,
    )
    fields.update(overrides)
    return Account(**fields)


def _row(account: Account) -> tuple:
    return (
        account.account_id,
        account.username,
        account.email,
        account.password_hash,
        account.verify_code,
        account.verify_code_expiry,
        account.is_verified,
        account.is_accepting_messages,
        account.created_at,
    )


@pytest.mark.parametrize("rowcount, expected", [(1, True), (0, False)])
def test_append_is_one_conditional_update(rowcount, expected):
    repository, connection = _repository({"rowcount": rowcount})
    message = Message(message_id="m1", content="hi", created_at=NOW)

    assert repository.append_message("acc-1", message) is expected

    [(sql, params)] = connection.statements
    assert sql.startswith("UPDATE accounts SET messages = messages || %s")
    assert sql.endswith("WHERE account_id = %s AND is_accepting_messages")
    assert params[0].obj == [{"id": "m1", "content": "hi", "created_at": NOW.isoformat()}]
    assert params[1] == "acc-1"
    assert connection.commits == 1


@pytest.mark.parametrize("rowcount", [0, 1])
def test_remove_is_scoped_to_owner_and_containing_row(rowcount):
    repository, connection = _repository({"rowcount": rowcount})

    assert repository.remove_message("acc-1", "m1") == rowcount

    [(sql, params)] = connection.statements
    assert "WHERE m.value->>'id' <> %s" in sql
    assert sql.endswith("WHERE account_id = %s AND messages @> %s")
    assert params[:2] == ("m1", "acc-1")
    assert params[2].obj == [{"id": "m1"}]


def test_list_orders_newest_first_then_by_position():
    later = NOW + timedelta(seconds=5)
    repository, connection = _repository(
        {"rows": [(1,)]},
        {"rows": [("m3", "c", later), ("m1", "a", NOW), ("m2", "b", NOW)]},
    )

    listed = repository.list_messages("acc-1")

    assert [m.message_id for m in listed] == ["m3", "m1", "m2"]
    assert listed[0].created_at == later
    sql, params = connection.statements[1]
    assert "jsonb_array_elements(a.messages) WITH ORDINALITY AS m(value, ord)" in sql
    assert sql.endswith("ORDER BY (m.value->>'created_at')::timestamptz DESC, m.ord ASC")
    assert params == ("acc-1",)


def test_list_for_missing_account_returns_none():
    repository, connection = _repository({"rows": []})

    assert repository.list_messages("missing") is None
    assert len(connection.statements) == 1


def test_create_releases_unverified_holder_in_same_transaction():
    account = _account()
    repository, connection = _repository({"rowcount": 1}, {"rows": [_row(account)]})

    created = repository.create_account(account)

    assert created.account_id == "acc-1"
    (release_sql, release_params), (insert_sql, _) = connection.statements
    assert release_sql == (
        "DELETE FROM accounts WHERE username = %s AND account_id <> %s AND NOT is_verified"
    )
    assert release_params == ("alice", "acc-1")
    assert insert_sql.startswith("INSERT INTO accounts")
    assert connection.commits == 1


def test_update_releases_unverified_holder_before_renaming():
    account = _account(username="alicia")
    repository, connection = _repository({"rowcount": 0}, {"rows": [_row(account)]})

    updated = repository.update_account(account)

    assert updated.username == "alicia"
    assert connection.statements[0][1] == ("alicia", "acc-1")
    assert connection.statements[1][0].startswith("UPDATE accounts SET username = %s")
    assert connection.commits == 1


def test_unique_violation_becomes_duplicate_error():
    repository, connection = _repository(
        {"rowcount": 0}, {"raises": errors.UniqueViolation("duplicate key")}
    )

    with pytest.raises(DuplicateAccountError):
        repository.create_account(_account())
    assert connection.commits == 0
