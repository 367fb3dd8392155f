"""
Shared fixtures for PostgreSQL integration tests.

Tests in this directory are skipped when the configured database
cannot be reached.
"""

from collections.abc import Generator

import psycopg
import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import PostgresMemberStore, create_pool, run_migrations
from src.config.settings import get_settings

pytestmark = pytest.mark.integration


@pytest.fixture(scope="module")
def pool() -> Generator[ConnectionPool, None, None]:
    """Create connection pool and schema for integration tests."""
    settings = get_settings()
    try:
        with psycopg.connect(settings.database_url, connect_timeout=2):
            pass
    except psycopg.OperationalError as e:
        pytest.skip(f"PostgreSQL not available: {e}")

    pool = create_pool(settings.database_url, min_size=1, max_size=10, timeout_seconds=5.0)
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def repository(pool: ConnectionPool) -> PostgresMemberStore:
    """Create repository instance for each test."""
    return PostgresMemberStore(pool)


@pytest.fixture(autouse=True)
def clean_database(pool: ConnectionPool) -> Generator[None, None, None]:
    """Clean member tables before each test."""
    with pool.connection() as conn:
        conn.execute("DELETE FROM notification_outbox")
        conn.execute("DELETE FROM members")
        conn.execute("DELETE FROM issued_member_ids")
        conn.commit()
    yield
