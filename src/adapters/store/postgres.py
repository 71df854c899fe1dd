"""
PostgreSQL key-value store adapter - Implements KeyValueStore and BlobStores.

This module provides a PostgreSQL-backed blob store using psycopg3 with raw
SQL. All logical stores share one table, keyed by (store, key).

The adapter deliberately offers only get/set/delete/list: the domain is written
against a store without transactions or compare-and-swap, and this adapter
does not add them. Every psycopg error surfaces as StoreUnavailable; the pool
timeout bounds how long a request can wait for a connection.
"""

import logging
from pathlib import Path

import psycopg
from psycopg_pool import ConnectionPool, PoolTimeout

from src.domain.exceptions import StoreUnavailable

logger = logging.getLogger(__name__)


class PostgresKeyValueStore:
    """
    Implements KeyValueStore protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool, name: str) -> None:
        """
        Initialize store with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
            name: Logical store name (the "store" column)
        """
        self._pool = pool
        self._name = name

    def get(self, key: str) -> bytes | None:
        sql = "SELECT value FROM blobs WHERE store = %s AND key = %s"
        row = self._fetchone(sql, (self._name, key))
        return bytes(row[0]) if row is not None else None

    def set(self, key: str, value: bytes) -> None:
        sql = """
            INSERT INTO blobs (store, key, value, updated_at)
            VALUES (%s, %s, %s, NOW())
            ON CONFLICT (store, key) DO UPDATE
            SET value = EXCLUDED.value,
                updated_at = NOW()
        """
        self._execute(sql, (self._name, key, value))

    def delete(self, key: str) -> None:
        self._execute("DELETE FROM blobs WHERE store = %s AND key = %s", (self._name, key))

    def list(self) -> list[str]:
        sql = "SELECT key FROM blobs WHERE store = %s ORDER BY key"
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, (self._name,))
                return [row[0] for row in cursor.fetchall()]
        except (psycopg.Error, PoolTimeout) as e:
            logger.error(f"Store list failed: {self._name} - {e}")
            raise StoreUnavailable(self._name) from e

    def _fetchone(self, sql: str, params: tuple) -> tuple | None:
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, params)
                return cursor.fetchone()
        except (psycopg.Error, PoolTimeout) as e:
            logger.error(f"Store read failed: {self._name} - {e}")
            raise StoreUnavailable(self._name) from e

    def _execute(self, sql: str, params: tuple) -> None:
        try:
            with self._pool.connection() as conn, conn.cursor() as cursor:
                cursor.execute(sql, params)
                conn.commit()
        except (psycopg.Error, PoolTimeout) as e:
            logger.error(f"Store write failed: {self._name} - {e}")
            raise StoreUnavailable(self._name) from e


class PostgresBlobStores:
    """Implements BlobStores protocol over a shared connection pool."""

    def __init__(self, pool: ConnectionPool) -> None:
        self._pool = pool

    def store(self, name: str) -> PostgresKeyValueStore:
        return PostgresKeyValueStore(self._pool, name)

    def ping(self) -> None:
        """
        Health probe.

        Raises:
            StoreUnavailable: If the database is unreachable
        """
        try:
            with self._pool.connection() as conn:
                conn.execute("SELECT 1")
        except (psycopg.Error, PoolTimeout) as e:
            raise StoreUnavailable("database") from e


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/store/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning(f"Migrations directory not found: {migrations_dir}")
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info(f"Running {len(sql_files)} migration(s)")

    for sql_file in sql_files:
        logger.info(f"Executing migration: {sql_file.name}")
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info(f"Migration complete: {sql_file.name}")
        except Exception as e:
            logger.error(f"Migration failed: {sql_file.name} - {e}")
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
