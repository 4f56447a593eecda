"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- A controllable clock
- In-memory store and mock notifier
- A registry wired with deterministic collaborators
- A PostgreSQL pool for integration tests (skipped without a database)
"""

from collections.abc import Generator
from unittest.mock import Mock

import pytest
from psycopg_pool import ConnectionPool, PoolTimeout

from src.adapters.repository.memory import InMemoryVerificationStore
from src.adapters.repository.postgres import run_migrations
from src.adapters.templates.renderer import JinjaMessageRenderer
from src.config.settings import get_settings
from src.domain.verification import VerificationCodeRegistry
from tests.helpers import FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryVerificationStore:
    return InMemoryVerificationStore()


@pytest.fixture
def notifier() -> Mock:
    """Notifier mock recording send(to_address, subject, html_body) calls."""
    return Mock()


@pytest.fixture
def registry(
    store: InMemoryVerificationStore, notifier: Mock, clock: FakeClock
) -> VerificationCodeRegistry:
    """Registry over an in-memory store with a fake clock."""
    return VerificationCodeRegistry(
        store=store,
        notifier=notifier,
        renderer=JinjaMessageRenderer("TestApp"),
        clock=clock,
    )


@pytest.fixture(scope="session")
def postgres_pool() -> Generator[ConnectionPool, None, None]:
    """
    Connection pool against settings.database_url with migrations applied.

    Skips the requesting test when no database answers.
    """
    settings = get_settings()
    pool = ConnectionPool(conninfo=settings.database_url, min_size=1, max_size=10, open=False)
    try:
        pool.open(wait=True, timeout=3)
    except PoolTimeout:
        pool.close()
        pytest.skip(f"PostgreSQL not reachable at {settings.database_url}")
    run_migrations(pool)
    yield pool
    pool.close()


@pytest.fixture
def clean_postgres(postgres_pool: ConnectionPool) -> ConnectionPool:
    """Empty the verification_codes table before the test."""
    with postgres_pool.connection() as conn:
        conn.execute("DELETE FROM verification_codes")
        conn.commit()
    return postgres_pool
