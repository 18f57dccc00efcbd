from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager

from inbox.db import Database


class FakePool:
    def __init__(self) -> None:
        self.open_calls = 0
        self.close_calls = 0

    def open(self) -> None:
        self.open_calls += 1

    def close(self) -> None:
        self.close_calls += 1

    @contextmanager
    def connection(self):
        yield object()


def test_pool_is_opened_lazily_and_once():
    pool = FakePool()
    database = Database(pool)
    assert pool.open_calls == 0
    assert database.connected is False

    database.ensure_connected()
    database.ensure_connected()
    assert pool.open_calls == 1
    assert database.connected is True


def test_connection_opens_pool_on_first_use():
    pool = FakePool()
    database = Database(pool)

    with ThreadPoolExecutor(max_workers=8) as executor:
        list(executor.map(lambda _: database.ensure_connected(), range(32)))
    with database.connection() as conn:
        assert conn is not None

    assert pool.open_calls == 1


def test_close_is_idempotent():
    pool = FakePool()
    database = Database(pool)
    database.close()
    assert pool.close_calls == 0

    database.ensure_connected()
    database.close()
    database.close()
    assert pool.close_calls == 1
    assert database.connected is False
