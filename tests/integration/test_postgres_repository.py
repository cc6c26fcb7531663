"""
Integration tests for PostgresAccountRepository.

Tests repository operations against a real PostgreSQL database.
Requires PostgreSQL to be running (via docker-compose); skipped otherwise.
"""

from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone

import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

from src.adapters.repository.postgres import PostgresAccountRepository, run_migrations
from src.config.settings import get_settings
from src.domain.context import RequestContext
from src.domain.exceptions import StorageError
from src.domain.models import AccountRecord

pytestmark = pytest.mark.integration

NOW = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(scope="module")
def pool() -> ConnectionPool:
    """Create connection pool for integration tests."""
    settings = get_settings()
    pool = ConnectionPool(conninfo=settings.database_url, min_size=1, max_size=10, open=True)
    try:
        pool.wait(timeout=2.0)
    except PoolTimeout:
        pool.close()
        pytest.skip("PostgreSQL is not reachable")
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def repository(pool: ConnectionPool) -> PostgresAccountRepository:
    """Create repository instance for each test."""
    return PostgresAccountRepository(pool)


@pytest.fixture(autouse=True)
def clean_database(pool: ConnectionPool) -> None:
    """Clean users table before each test."""
    with pool.connection() as conn:
        conn.execute("DELETE FROM users")
        conn.commit()
    yield


def make_record(n: int = 1, email: str | None = None) -> AccountRecord:
    handle = f"user{n}.shareframe.social"
    return AccountRecord(
        identity=f"did:plc:user{n}",
        handle=handle,
        email=email or f"user{n}@example.com",
        created_at=NOW,
        modified_at=NOW,
        display_name=handle,
    )


class TestEmailExists:
    """Tests for email_exists method."""

    def test_unknown_email(self, ctx: RequestContext, repository: PostgresAccountRepository) -> None:
        assert repository.email_exists(ctx, "nobody@example.com") is False

    def test_stored_email(self, ctx: RequestContext, repository: PostgresAccountRepository) -> None:
        repository.store_account(ctx, make_record())
        assert repository.email_exists(ctx, "user1@example.com") is True


class TestStoreAccount:
    """Tests for store_account method."""

    def test_row_has_all_fields(
        self, ctx: RequestContext, repository: PostgresAccountRepository, pool: ConnectionPool
    ) -> None:
        repository.store_account(ctx, make_record())

        with pool.connection() as conn:
            row = conn.execute(
                "SELECT did, handle, status, verified, role, display_name, theme, "
                "primary_color, secondary_color, created_at FROM users WHERE email = %s",
                ("user1@example.com",),
            ).fetchone()

        assert row == (
            "did:plc:user1",
            "user1.shareframe.social",
            "active",
            False,
            "user",
            "user1.shareframe.social",
            {},
            "#FFFFFF",
            "#000000",
            NOW,
        )

    def test_duplicate_email_is_storage_error(
        self, ctx: RequestContext, repository: PostgresAccountRepository
    ) -> None:
        repository.store_account(ctx, make_record(1))

        with pytest.raises(StorageError):
            repository.store_account(ctx, make_record(2, email="user1@example.com"))

    def test_concurrent_same_email_only_one_wins(
        self, repository: PostgresAccountRepository, pool: ConnectionPool
    ) -> None:
        """The UNIQUE constraint rejects all but one concurrent insert."""

        def attempt(n: int) -> bool:
            try:
                repository.store_account(
                    RequestContext.with_timeout(10), make_record(n, email="race@example.com")
                )
                return True
            except StorageError:
                return False

        with ThreadPoolExecutor(max_workers=5) as executor:
            results = list(executor.map(attempt, range(5)))

        assert results.count(True) == 1
        with pool.connection() as conn:
            count = conn.execute(
                "SELECT COUNT(*) FROM users WHERE email = %s", ("race@example.com",)
            ).fetchone()[0]
        assert count == 1
