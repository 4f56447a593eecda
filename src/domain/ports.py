"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure. Adapters implement these protocols.
"""

from collections.abc import Callable
from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from .verification import VerificationRecord

# Returns the current time as a timezone-aware UTC datetime.
Clock = Callable[[], datetime]


@dataclass(frozen=True)
class VerificationMessage:
    """Rendered email carrying a verification code."""

    subject: str
    html_body: str


class RecordSlot(Protocol):
    """
    Handle on the stored record for one email, valid inside VerificationStore.locked().

    All reads and writes made through a slot are atomic with respect to
    every other locked() block for the same email.
    """

    def get(self) -> "VerificationRecord | None":
        """Return the stored record, or None if the email has no record."""
        ...

    def put(self, record: "VerificationRecord") -> None:
        """Store the record, replacing any previous one for this email."""
        ...

    def delete(self) -> None:
        """Remove the stored record if present."""
        ...


class VerificationStore(Protocol):
    """Port interface for verification record persistence."""

    def locked(self, email: str) -> AbstractContextManager[RecordSlot]:
        """
        Open a critical section for one email.

        Changes made through the yielded slot are committed when the
        block exits normally and discarded if it raises.

        Args:
            email: Email address exactly as received

        Returns:
            Context manager yielding a RecordSlot
        """
        ...

    def remove_expired(self, now: datetime) -> int:
        """
        Delete every record whose expires_at is before now.

        Returns:
            Number of records removed
        """
        ...


class Notifier(Protocol):
    """Port interface for message delivery."""

    def send(self, to_address: str, subject: str, html_body: str) -> None:
        """
        Deliver a formatted message to an address.

        Raises:
            NotifierError: If the message could not be delivered
        """
        ...


class MessageRenderer(Protocol):
    """Port interface for composing the verification email."""

    def render(self, code: str, expires_in_minutes: int) -> VerificationMessage:
        ...
