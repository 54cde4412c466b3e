"""
Apply schema.sql to the database named by DATABASE_URL.

Usage:
    python -m eventsync.database.init_db
"""

import logging
import sys
from pathlib import Path

import psycopg2

from eventsync.config import Config
from eventsync.database.db_connection import get_db

SCHEMA_PATH = Path(__file__).with_name("schema.sql")


def init_db(database_url: str = None) -> None:
    """
    Create the users and events tables if they do not exist yet.

    Args:
        database_url (str, optional): Overrides Config.DATABASE_URL.
    """
    sql = SCHEMA_PATH.read_text()
    with get_db(database_url or Config.DATABASE_URL) as conn:
        with conn.cursor() as cur:
            cur.execute(sql)
        conn.commit()
    logging.info("Schema applied.")


def main() -> int:
    logging.basicConfig(level=logging.INFO, format="[%(levelname)s] %(asctime)s - %(message)s")
    try:
        init_db()
    except (psycopg2.Error, RuntimeError) as e:
        logging.error(f"Database initialisation FAILED: {e}")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
