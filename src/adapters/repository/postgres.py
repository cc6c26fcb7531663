"""
PostgreSQL repository adapter - Implements AccountRepository protocol.

This module provides the PostgreSQL implementation of the domain's
repository port using psycopg3 with raw SQL.

Every operation runs inside its own transaction with a
``statement_timeout`` derived from the storage timeout and capped by the
time left on the request context. The ``users.email`` UNIQUE constraint
is the real guard against concurrent registrations for the same email;
``email_exists`` is only a pre-check.

Cancelling the request context cancels the statement running on the
connection, so the server stops work as soon as the request is gone.
"""

import logging
from pathlib import Path

import psycopg
from psycopg.types.json import Jsonb
from psycopg_pool import ConnectionPool, PoolTimeout

from src.domain.context import RequestContext
from src.domain.exceptions import DeadlineExceeded, StorageError
from src.domain.models import AccountRecord

logger = logging.getLogger(__name__)

DEFAULT_STORAGE_TIMEOUT = 3.0


class PostgresAccountRepository:
    """
    Implements AccountRepository protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries.
    """

    def __init__(self, pool: ConnectionPool, timeout: float = DEFAULT_STORAGE_TIMEOUT) -> None:
        """
        Initialize repository with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
            timeout: Per-operation timeout in seconds
        """
        self._pool = pool
        self._timeout = timeout

    def email_exists(self, ctx: RequestContext, email: str) -> bool:
        sql = "SELECT 1 FROM users WHERE email = %s LIMIT 1"

        timeout = ctx.timeout_for(self._timeout)
        try:
            with (
                self._pool.connection(timeout=timeout) as conn,
                ctx.on_cancel(conn.cancel),
                conn.cursor() as cursor,
            ):
                self._set_statement_timeout(cursor, timeout)
                cursor.execute(sql, (email,))
                return cursor.fetchone() is not None
        except (psycopg.Error, PoolTimeout) as exc:
            self._raise_if_cancelled(ctx, "email_exists", exc)
            logger.error("Error checking email existence for %s: %s", email, exc)
            raise StorageError(f"failed to check email existence: {exc}") from exc

    def store_account(self, ctx: RequestContext, record: AccountRecord) -> None:
        """
        Insert the account record.

        A duplicate email or identity violates a UNIQUE constraint and
        surfaces as StorageError like any other failure.
        """
        sql = """
            INSERT INTO users
            (did, email, handle, created_at, modified_at, status, verified, role,
             display_name, profile_picture, profile_banner, theme,
             primary_color, secondary_color)
            VALUES
            (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
        """
        params = (
            record.identity,
            record.email,
            record.handle,
            record.created_at,
            record.modified_at,
            record.status,
            record.verified,
            record.role,
            record.display_name,
            record.profile_picture,
            record.profile_banner,
            Jsonb(record.theme),
            record.primary_color,
            record.secondary_color,
        )

        timeout = ctx.timeout_for(self._timeout)
        try:
            with (
                self._pool.connection(timeout=timeout) as conn,
                ctx.on_cancel(conn.cancel),
                conn.cursor() as cursor,
            ):
                self._set_statement_timeout(cursor, timeout)
                cursor.execute(sql, params)
                conn.commit()
        except (psycopg.Error, PoolTimeout) as exc:
            self._raise_if_cancelled(ctx, "store_account", exc)
            logger.error(
                "Failed to store user email=%s handle=%s: %s", record.email, record.handle, exc
            )
            raise StorageError(f"failed to store user in PostgreSQL: {exc}") from exc

        logger.info("User %s successfully stored in PostgreSQL", record.handle)

    @staticmethod
    def _raise_if_cancelled(ctx: RequestContext, step: str, exc: Exception) -> None:
        if ctx.cancelled.is_set():
            logger.warning("%s cancelled with the request: %s", step, exc)
            raise DeadlineExceeded(f"request cancelled during {step}") from exc

    @staticmethod
    def _set_statement_timeout(cursor: psycopg.Cursor, timeout: float) -> None:
        # SET LOCAL does not accept bind parameters; set_config does
        cursor.execute(
            "SELECT set_config('statement_timeout', %s, true)",
            (str(max(1, int(timeout * 1000))),),
        )


def run_migrations(pool: ConnectionPool) -> None:
    """
    Execute all SQL migration files from the migrations directory.

    Migrations are executed in sorted order (alphabetically by filename).
    Each migration should be idempotent (use IF NOT EXISTS, etc.).

    Args:
        pool: psycopg3 ConnectionPool instance
    """
    # Structure: src/adapters/repository/postgres.py -> migrations/
    migrations_dir = Path(__file__).parent.parent.parent.parent / "migrations"

    if not migrations_dir.exists():
        logger.warning("Migrations directory not found: %s", migrations_dir)
        return

    sql_files = sorted(migrations_dir.glob("*.sql"))

    if not sql_files:
        logger.info("No migration files found")
        return

    logger.info("Running %d migration(s)", len(sql_files))

    for sql_file in sql_files:
        logger.info("Executing migration: %s", sql_file.name)
        try:
            sql_content = sql_file.read_text()

            with pool.connection() as conn:
                conn.execute(sql_content)

            logger.info("Migration complete: %s", sql_file.name)
        except Exception as e:
            logger.error("Migration failed: %s - %s", sql_file.name, e)
            raise RuntimeError(f"Database migration failed: {sql_file.name}") from e
