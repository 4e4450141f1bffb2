import logging
import os
import re
import sqlite3
from typing import Optional

import psycopg2

from utils.constants import DATABASE_URL, MIGRATIONS_DIR

logger = logging.getLogger(__name__)

_NAMED_PARAM = re.compile(r"%\((\w+)\)s")


def resolve_database_url(database_url: Optional[str] = None) -> str:
    url = database_url or os.getenv("DATABASE_URL") or DATABASE_URL
    if not url:
        raise RuntimeError("DATABASE_URL environment variable not set")
    return url


def is_sqlite(database_url: str) -> bool:
    return database_url.startswith("sqlite://")


def get_connection(database_url: Optional[str] = None):
    """Get database connection - supports both PostgreSQL and SQLite for testing."""
    url = resolve_database_url(database_url)

    if is_sqlite(url):
        # SQLite connection for testing
        db_path = url.replace("sqlite://", "")
        return sqlite3.connect(db_path)
    else:
        # PostgreSQL connection for production
        return psycopg2.connect(url)


def adapt_sql(sql: str, database_url: str) -> str:
    """Rewrite psycopg2 named placeholders into the SQLite form."""
    if is_sqlite(database_url):
        return _NAMED_PARAM.sub(r":\1", sql)
    return sql


def begin_exclusive(conn, database_url: str) -> None:
    """Open a transaction that serializes concurrent read-check-write sequences."""
    if is_sqlite(database_url):
        conn.execute("BEGIN IMMEDIATE")
    else:
        conn.set_session(isolation_level="SERIALIZABLE")


def run_migrations(database_url: Optional[str] = None) -> None:
    url = resolve_database_url(database_url)
    logger.info("Starting database migrations...")
    conn = get_connection(url)
    cur = conn.cursor()

    migration_files = sorted(
        [f for f in os.listdir(MIGRATIONS_DIR) if f.endswith(".sql")]
    )

    if not migration_files:
        logger.info("No migration files found.")
        cur.close()
        conn.close()
        return

    try:
        for filename in migration_files:
            logger.info(f"Executing migration: {filename}")
            with open(os.path.join(MIGRATIONS_DIR, filename), "r") as f:
                sql_code = f.read()

            try:
                if is_sqlite(url):
                    # SQLite doesn't support executing multiple statements at once
                    statements = [stmt.strip() for stmt in sql_code.split(";") if stmt.strip()]
                    for statement in statements:
                        cur.execute(statement)
                else:
                    cur.execute(sql_code)
                conn.commit()
                logger.info(f"Successfully executed migration: {filename}")
            except Exception as e:
                conn.rollback()
                logger.error(f"Migration {filename} failed: {e}")
                raise
    finally:
        cur.close()
        conn.close()
    logger.info("Finished executing migrations.")
