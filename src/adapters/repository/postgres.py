"""
PostgreSQL repository adapter - Implements VerificationStore protocol.

This module provides the PostgreSQL implementation of the domain's
store port using psycopg3 with raw SQL.

Concurrency Design - Per-Email Serialization:
--------------------------------------------
Each locked() block runs in a single transaction that first takes a
transaction-scoped advisory lock keyed on the email:

1. **pg_advisory_xact_lock(hashtext(email))**: Serializes every block for
   the same email, including the first issue() when no row exists yet
   (SELECT FOR UPDATE alone cannot lock a missing row).

2. **SELECT ... FOR UPDATE**: Also locks the row itself, so the sweep's
   DELETE waits for an in-flight validate rather than removing the row
   underneath it.

3. **INSERT ... ON CONFLICT DO UPDATE**: Replaces the whole row at once;
   readers see either the old record or the new one.

The advisory lock is released automatically at COMMIT or ROLLBACK.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from psycopg import Cursor
from psycopg_pool import ConnectionPool

from src.domain.verification import VerificationRecord

logger = logging.getLogger(__name__)


class _PostgresSlot:
    """RecordSlot bound to an open cursor inside the locked transaction."""

    def __init__(self, cursor: Cursor, email: str) -> None:
        self._cursor = cursor
        self._email = email

    def get(self) -> VerificationRecord | None:
        self._cursor.execute(
            """
            SELECT code, issued_at, expires_at, attempts
            FROM verification_codes
            WHERE email = %s
            FOR UPDATE
            """,
            (self._email,),
        )
        row = self._cursor.fetchone()
        if row is None:
            return None
        return VerificationRecord(
            email=self._email,
            code=row[0],
            issued_at=row[1],
            expires_at=row[2],
            attempts=row[3],
        )

    def put(self, record: VerificationRecord) -> None:
        self._cursor.execute(
            """
            INSERT INTO verification_codes (email, code, issued_at, expires_at, attempts)
            VALUES (%s, %s, %s, %s, %s)
            ON CONFLICT (email) DO UPDATE
            SET code = EXCLUDED.code,
                issued_at = EXCLUDED.issued_at,
                expires_at = EXCLUDED.expires_at,
                attempts = EXCLUDED.attempts
            """,
            (record.email, record.code, record.issued_at, record.expires_at, record.attempts),
        )

    def delete(self) -> None:
        self._cursor.execute(
            "DELETE FROM verification_codes WHERE email = %s",
            (self._email,),
        )


class PostgresVerificationStore:
    """
    Implements VerificationStore protocol via psycopg3.

    Uses structural subtyping - no explicit inheritance from Protocol.
    All SQL uses parameterized queries for security.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """
        Initialize store with connection pool.

        Args:
            pool: psycopg3 ConnectionPool for database connections
        """
        self._pool = pool

    @contextmanager
    def locked(self, email: str) -> Iterator[_PostgresSlot]:
        """
        Run the block in one transaction holding the email's advisory lock.

        Commits on normal exit. If the block raises, the pooled connection
        context rolls the transaction back.
        """
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute("SELECT pg_advisory_xact_lock(hashtext(%s))", (email,))
            yield _PostgresSlot(cursor, email)
            conn.commit()

    def remove_expired(self, now: datetime) -> int:
        with self._pool.connection() as conn, conn.cursor() as cursor:
            cursor.execute(
                "DELETE FROM verification_codes WHERE expires_at < %s",
                (now,),
            )
            conn.commit()
            return cursor.rowcount


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
