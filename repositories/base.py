#!/usr/bin/env python3
"""
Base Repository - psycopg2 access to the alert/notification store

Every call opens a short-lived connection. An unreachable database raises
StoreUnavailableError (503), never a "not found"; station and reservoir
routes do not touch the store and keep working without it.
"""
import asyncio
import logging
from contextlib import contextmanager
from functools import partial
from typing import Any, Callable, Optional

import psycopg2
from psycopg2.extras import RealDictCursor

from config import DB_CONFIG
from exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)

CONNECT_TIMEOUT_SECONDS = 5


class BaseRepository:
    """Shared connection handling for the alert store repositories"""

    # CREATE TABLE IF NOT EXISTS statement for the repository's table
    SCHEMA: Optional[str] = None

    def __init__(self, db_config: Optional[dict] = None):
        self.db_config = db_config or DB_CONFIG

    def get_connection(self):
        """Open a connection, or None if the store is unreachable"""
        try:
            return psycopg2.connect(connect_timeout=CONNECT_TIMEOUT_SECONDS, **self.db_config)
        except psycopg2.Error as e:
            logger.warning(f"[{type(self).__name__}] Database connection error: {e}")
            return None

    @contextmanager
    def get_cursor(self):
        """
        Dict cursor committed on success, rolled back on error.

        Raises:
            StoreUnavailableError: if no connection can be opened
        """
        conn = self.get_connection()
        if conn is None:
            raise StoreUnavailableError()

        try:
            with conn.cursor(cursor_factory=RealDictCursor) as cur:
                yield cur
            conn.commit()
        except psycopg2.Error as e:
            conn.rollback()
            logger.error(f"[{type(self).__name__}] Database error: {e}")
            raise
        finally:
            conn.close()

    def execute_query(self, query: str, params: tuple = None, fetch_one: bool = False) -> Optional[Any]:
        """Run a statement that returns rows (SELECT or ... RETURNING)"""
        with self.get_cursor() as cur:
            cur.execute(query, params)
            return cur.fetchone() if fetch_one else cur.fetchall()

    def execute_statement(self, statement: str, params: tuple = None) -> None:
        """Run a statement without a result set"""
        with self.get_cursor() as cur:
            cur.execute(statement, params)

    def ensure_schema(self) -> None:
        """Create the repository's table if it does not exist"""
        if self.SCHEMA:
            self.execute_statement(self.SCHEMA)

    async def run(self, fn: Callable, *args, **kwargs) -> Any:
        """Run a blocking repository call off the event loop"""
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(fn, *args, **kwargs))

    @classmethod
    def check_db_available(cls) -> bool:
        """True if a connection can be opened"""
        conn = cls().get_connection()
        if conn is None:
            return False
        conn.close()
        return True
