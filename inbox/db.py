"""Process-wide Postgres connection handle owned by the application lifespan."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from threading import Lock
from typing import Iterator

from psycopg import Connection
from psycopg_pool import ConnectionPool

logger = logging.getLogger(__name__)


class Database:
    """Lazily opened connection pool shared by every request.

    The pool is created closed and opened on first use; ``ensure_connected``
    is safe to call repeatedly and from concurrent request threads.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool
        self._connected = False
        self._lock = Lock()

    @classmethod
    def from_url(cls, database_url: str) -> "Database":
        """Build a handle around a not-yet-opened pool for ``database_url``."""
        return cls(ConnectionPool(database_url, open=False))

    @property
    def connected(self) -> bool:
        return self._connected

    def ensure_connected(self) -> None:
        """Open the pool once; later calls are no-ops."""
        if self._connected:
            return
        with self._lock:
            if self._connected:
                return
            self._pool.open()
            self._connected = True
            logger.info("database pool opened")

    @contextmanager
    def connection(self) -> Iterator[Connection]:
        """Yield a pooled connection, opening the pool on first use."""
        self.ensure_connected()
        with self._pool.connection() as conn:
            yield conn

    def close(self) -> None:
        with self._lock:
            if not self._connected:
                return
            self._pool.close()
            self._connected = False
            logger.info("database pool closed")
