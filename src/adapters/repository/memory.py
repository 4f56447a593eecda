"""
In-memory repository adapter - Implements VerificationStore protocol.

Records live in a dict guarded by a single lock. Coarse locking is
acceptable here: verification is human-paced, not a hot path.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime

from src.domain.verification import VerificationRecord


class _MemorySlot:
    """RecordSlot buffering one email's changes until the block commits."""

    def __init__(self, record: VerificationRecord | None) -> None:
        self._record = record
        self.dirty = False

    def get(self) -> VerificationRecord | None:
        return self._record

    def put(self, record: VerificationRecord) -> None:
        self._record = record
        self.dirty = True

    def delete(self) -> None:
        self._record = None
        self.dirty = True


class InMemoryVerificationStore:
    """
    Implements VerificationStore protocol with a locked dict.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Records are immutable, so a reader never sees a half-updated record.
    """

    def __init__(self) -> None:
        self._records: dict[str, VerificationRecord] = {}
        self._lock = threading.Lock()

    @contextmanager
    def locked(self, email: str) -> Iterator[_MemorySlot]:
        """Hold the store lock for the block, applying slot changes on normal exit."""
        with self._lock:
            slot = _MemorySlot(self._records.get(email))
            yield slot
            if slot.dirty:
                record = slot.get()
                if record is None:
                    self._records.pop(email, None)
                else:
                    self._records[email] = record

    def remove_expired(self, now: datetime) -> int:
        with self._lock:
            expired = [email for email, record in self._records.items() if record.is_expired(now)]
            for email in expired:
                del self._records[email]
        return len(expired)

    def get(self, email: str) -> VerificationRecord | None:
        """Snapshot of the stored record, for inspection outside a critical section."""
        with self._lock:
            return self._records.get(email)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
