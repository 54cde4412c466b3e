"""
PostgreSQL connection helper.
Provides get_db() for use by the stores.
"""

import logging
import os
from contextlib import contextmanager
from typing import Iterator, Optional

import psycopg2
from psycopg2.extensions import connection as PgConnection
from psycopg2.extras import DictCursor


@contextmanager
def get_db(database_url: Optional[str] = None) -> Iterator[PgConnection]:
    """
    Yield a new psycopg2 connection with dictionary-based row access.

    The transaction is committed when the block exits normally, rolled back
    if it raises, and the connection is always closed.

    Usage:
        with get_db(url) as conn:
            with conn.cursor() as cur:
                cur.execute(...)

    Args:
        database_url (str, optional): DSN to connect to. Falls back to the
            DATABASE_URL environment variable.

    Raises:
        RuntimeError: If no database URL is configured.
        psycopg2.Error: If the connection fails.
    """
    dsn = database_url or os.getenv("DATABASE_URL")
    if not dsn:
        raise RuntimeError("DATABASE_URL is not set. Please set the environment variable.")

    try:
        conn = psycopg2.connect(dsn)
    except psycopg2.Error as e:
        logging.error(f"Error connecting to database: {e}")
        raise

    # Rows come back as dictionaries (e.g., {"user_id": 1, "email": "..."})
    conn.cursor_factory = DictCursor
    try:
        with conn:
            yield conn
    finally:
        conn.close()
