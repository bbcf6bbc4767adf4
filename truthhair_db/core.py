"""
Connection pool and transaction handling for the storefront database.
"""
from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator

from psycopg.rows import dict_row
from psycopg_pool import ConnectionPool

logger = logging.getLogger(__name__)

DATABASE_URL = os.environ.get("DATABASE_URL", "")


@dataclass(frozen=True)
class PoolSettings:
    min_size: int = 1
    max_size: int = 5
    max_waiting: int = 50
    timeout: float = 60.0

    @classmethod
    def from_env(cls) -> PoolSettings:
        return cls(
            min_size=int(os.environ.get("DB_MIN_CONN", "1")),
            max_size=int(os.environ.get("DB_MAX_CONN", "5")),
            max_waiting=int(os.environ.get("DB_MAX_WAITING", "50")),
            timeout=float(os.environ.get("DB_POOL_WAIT_TIMEOUT", "60")),
        )


def safe_database_host(url: str) -> str:
    """Strip credentials from a DSN for logging."""
    return url.split("@", 1)[1] if "@" in url else url


class DatabaseCore:
    """Pooled psycopg connections; every ``get_connection`` block is one transaction."""

    def __init__(
        self,
        database_url: str | None = None,
        open_pool: bool = True,
        pool_settings: PoolSettings | None = None,
    ):
        self.database_url = database_url or DATABASE_URL
        if not self.database_url:
            raise ValueError("DATABASE_URL is required for the storefront database")

        settings = pool_settings or PoolSettings.from_env()
        host = safe_database_host(self.database_url)
        self.pool = ConnectionPool(
            conninfo=self.database_url,
            min_size=settings.min_size,
            max_size=settings.max_size,
            max_waiting=settings.max_waiting,
            timeout=settings.timeout,
            kwargs={"row_factory": dict_row},
            open=open_pool,
        )
        logger.info(
            "Connection pool for ...@%s ready (min=%s, max=%s)",
            host,
            settings.min_size,
            settings.max_size,
        )

    @contextmanager
    def get_connection(self) -> Iterator[Any]:
        """Yield a pooled connection as one transaction.

        Everything executed inside the block commits together on exit and is
        rolled back together if the block raises.
        """
        with self.pool.connection() as conn:
            try:
                yield conn
            except Exception:
                conn.rollback()
                logger.warning("Transaction rolled back", exc_info=True)
                raise
            conn.commit()

    def ping(self) -> bool:
        with self.get_connection() as conn:
            conn.execute("SELECT 1")
        return True

    def close(self) -> None:
        self.pool.close()
        logger.info("Connection pool closed")
