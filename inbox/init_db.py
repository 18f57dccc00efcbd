"""Create the accounts table; run once per database with ``python -m inbox.init_db``."""

from __future__ import annotations

import logging

from .config import get_settings
from .db import Database
from .repository import AccountRepository

logger = logging.getLogger(__name__)


def init_db() -> None:
    settings = get_settings()
    database = Database.from_url(settings.database_url)
    try:
        AccountRepository(database).ensure_schema()
        logger.info("accounts schema ready")
    finally:
        database.close()


if __name__ == "__main__":
    logging.basicConfig(level=get_settings().log_level)
    init_db()
