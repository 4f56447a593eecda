"""
Integration tests for PostgresVerificationStore.

Tests store operations and the registry against a real PostgreSQL
database. Skipped when settings.database_url does not answer.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta
from unittest.mock import Mock

import pytest
from psycopg_pool import ConnectionPool

from src.adapters.repository.postgres import PostgresVerificationStore
from src.adapters.templates.renderer import JinjaMessageRenderer
from src.domain.exceptions import (
    AttemptsExceededError,
    ExpiredError,
    MismatchError,
    NotFoundError,
)
from src.domain.verification import VerificationCodeRegistry, VerificationRecord
from tests.helpers import START, FakeClock, SequenceRandom

pytestmark = pytest.mark.integration


@pytest.fixture
def store(clean_postgres: ConnectionPool) -> PostgresVerificationStore:
    return PostgresVerificationStore(clean_postgres)


def make_record(email: str = "user@example.com", code: str = "123456", minutes: int = 10) -> VerificationRecord:
    return VerificationRecord(
        email=email,
        code=code,
        issued_at=START,
        expires_at=START + timedelta(minutes=minutes),
    )


def make_registry(store: PostgresVerificationStore, clock: FakeClock, *codes: int) -> VerificationCodeRegistry:
    return VerificationCodeRegistry(
        store=store,
        notifier=Mock(),
        renderer=JinjaMessageRenderer("TestApp"),
        clock=clock,
        rng=SequenceRandom(*codes),
    )


class TestSlot:
    """Tests for get/put/delete inside a locked transaction."""

    def test_put_then_get_roundtrip(self, store: PostgresVerificationStore) -> None:
        record = make_record()
        with store.locked("user@example.com") as slot:
            slot.put(record)

        with store.locked("user@example.com") as slot:
            assert slot.get() == record

    def test_put_replaces_row(self, store: PostgresVerificationStore) -> None:
        with store.locked("user@example.com") as slot:
            slot.put(make_record(code="111111"))
        with store.locked("user@example.com") as slot:
            slot.put(make_record(code="222222").with_failed_attempt())

        with store.locked("user@example.com") as slot:
            record = slot.get()
        assert (record.code, record.attempts) == ("222222", 1)

    def test_delete(self, store: PostgresVerificationStore) -> None:
        with store.locked("user@example.com") as slot:
            slot.put(make_record())
        with store.locked("user@example.com") as slot:
            slot.delete()
        with store.locked("user@example.com") as slot:
            assert slot.get() is None

    def test_rolled_back_when_block_raises(self, store: PostgresVerificationStore) -> None:
        with pytest.raises(RuntimeError), store.locked("user@example.com") as slot:
            slot.put(make_record())
            raise RuntimeError("abort")

        with store.locked("user@example.com") as slot:
            assert slot.get() is None

    def test_email_is_case_sensitive(self, store: PostgresVerificationStore) -> None:
        with store.locked("User@example.com") as slot:
            slot.put(make_record("User@example.com"))
        with store.locked("user@example.com") as slot:
            assert slot.get() is None


class TestRemoveExpired:
    def test_removes_expired_only(self, store: PostgresVerificationStore) -> None:
        with store.locked("old@example.com") as slot:
            slot.put(make_record("old@example.com", minutes=1))
        with store.locked("new@example.com") as slot:
            slot.put(make_record("new@example.com", minutes=10))

        assert store.remove_expired(START + timedelta(minutes=5)) == 1

        with store.locked("new@example.com") as slot:
            assert slot.get() is not None


class TestRegistryOnPostgres:
    """The registry behaves the same over the database store."""

    def test_issue_validate_consume(self, store: PostgresVerificationStore) -> None:
        registry = make_registry(store, FakeClock(), 482913)
        registry.issue("a@b.com")

        with pytest.raises(MismatchError) as exc_info:
            registry.validate("a@b.com", "000000")
        assert exc_info.value.remaining_attempts == 4

        registry.validate("a@b.com", "482913")
        with pytest.raises(NotFoundError):
            registry.validate("a@b.com", "482913")

    def test_exhaustion_sequence(self, store: PostgresVerificationStore) -> None:
        registry = make_registry(store, FakeClock(), 482913)
        registry.issue("user@example.com")

        for expected in (4, 3, 2, 1, 0):
            with pytest.raises(MismatchError) as exc_info:
                registry.validate("user@example.com", "000000")
            assert exc_info.value.remaining_attempts == expected

        with pytest.raises(AttemptsExceededError):
            registry.validate("user@example.com", "482913")
        with pytest.raises(NotFoundError):
            registry.validate("user@example.com", "482913")

    def test_expired(self, store: PostgresVerificationStore) -> None:
        clock = FakeClock()
        registry = make_registry(store, clock, 482913)
        registry.issue("user@example.com")
        clock.advance(minutes=10, seconds=1)

        with pytest.raises(ExpiredError):
            registry.validate("user@example.com", "482913")

    def test_concurrent_correct_validates_consume_once(self, store: PostgresVerificationStore) -> None:
        registry = make_registry(store, FakeClock(), 482913)
        registry.issue("user@example.com")

        outcomes: list[str] = []
        outcomes_lock = threading.Lock()
        barrier = threading.Barrier(8)

        def attempt() -> None:
            barrier.wait()
            try:
                registry.validate("user@example.com", "482913")
                result = "success"
            except NotFoundError:
                result = "not_found"
            with outcomes_lock:
                outcomes.append(result)

        with ThreadPoolExecutor(max_workers=8) as executor:
            futures = [executor.submit(attempt) for _ in range(8)]
            for f in futures:
                f.result()

        assert outcomes.count("success") == 1
        assert outcomes.count("not_found") == 7
