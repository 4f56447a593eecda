"""
Verification code registry - One-time code state machine.

This module contains the core business logic for email verification:
generating, rate-limiting, expiring and validating one-time codes
bound to an email address.

Record Lifecycle
================

States:
- ACTIVE: Record stored, fewer than max_attempts failures, not expired
- EXHAUSTED: Record stored but attempts reached max_attempts (pending removal)
- CONSUMED: Terminal, code matched and record removed
- EXPIRED: Terminal, validity window passed and record removed

Transitions:
    ACTIVE -> ACTIVE      (wrong code, attempts + 1 still below the ceiling)
    ACTIVE -> EXHAUSTED   (wrong code, attempts + 1 reaches the ceiling)
    ACTIVE -> CONSUMED    (correct code)
    ACTIVE -> EXPIRED     (validate or sweep after expires_at)
    EXHAUSTED -> removed  (next validate, whatever code is submitted)

A re-issue replaces the record outright; nothing is ever resurrected.

The failing call that pushes attempts to the ceiling still reports a
mismatch (with 0 remaining). Only the following call reports exhaustion.

Note: Atomicity of each read-modify-write is provided by the store's
per-email critical section (VerificationStore.locked).
"""

import logging
import math
import random
import secrets
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone

from .exceptions import (
    AttemptsExceededError,
    CodeRejected,
    CooldownError,
    ExpiredError,
    InvalidEmail,
    MismatchError,
    NotFoundError,
    NotifierError,
)
from .ports import Clock, MessageRenderer, Notifier, RecordSlot, VerificationStore
from .validation import is_valid_email

logger = logging.getLogger(__name__)

CODE_MIN = 100000
CODE_MAX = 999999


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class VerificationRecord:
    """One code under verification for one email address."""

    email: str
    code: str
    issued_at: datetime
    expires_at: datetime
    attempts: int = 0

    def is_expired(self, now: datetime) -> bool:
        return now > self.expires_at

    def with_failed_attempt(self) -> "VerificationRecord":
        return replace(self, attempts=self.attempts + 1)


@dataclass(frozen=True)
class IssuedCode:
    """Result of a successful issue()."""

    code: str
    expires_at: datetime


@dataclass
class VerificationCodeRegistry:
    """
    Authoritative registry mapping email -> VerificationRecord.

    Collaborators are injected so tests can pin time and randomness:
    - store: synchronized record persistence
    - notifier: outbound delivery of the rendered message
    - renderer: builds subject and HTML body around the code
    - clock: returns aware UTC now
    - rng: random.Random-compatible source for code generation
    """

    store: VerificationStore
    notifier: Notifier
    renderer: MessageRenderer
    clock: Clock = utc_now
    rng: random.Random = field(default_factory=random.SystemRandom)
    code_ttl: timedelta = timedelta(minutes=10)
    resend_cooldown: timedelta = timedelta(seconds=60)
    max_attempts: int = 5

    def issue(self, email: str) -> IssuedCode:
        """
        Generate and deliver a fresh code for email.

        Any prior record for the address is replaced, which resets the
        attempt count and invalidates the old code. Delivery happens after
        the record is committed and outside the store's critical section;
        a delivery failure does not roll the record back.

        Args:
            email: Address exactly as received (case-sensitive key)

        Returns:
            IssuedCode with the code and its expiry

        Raises:
            InvalidEmail: If email is not local@domain.tld
            CooldownError: If the previous code is younger than resend_cooldown
            NotifierError: If the message could not be delivered
        """
        if not is_valid_email(email):
            raise InvalidEmail(email)

        now = self.clock()
        with self.store.locked(email) as slot:
            current = slot.get()
            if current is not None and not current.is_expired(now):
                retry_after = self._cooldown_remaining(current, now)
                if retry_after > 0:
                    raise CooldownError(retry_after)

            record = VerificationRecord(
                email=email,
                code=self._generate_code(),
                issued_at=now,
                expires_at=now + self.code_ttl,
            )
            slot.put(record)

        try:
            self.sweep()
        except Exception:
            # Expired records are still rejected by validate() until the next sweep
            logger.exception("Inline sweep of verification codes failed")

        message = self.renderer.render(record.code, self._ttl_minutes())
        try:
            self.notifier.send(email, message.subject, message.html_body)
        except NotifierError:
            logger.error("Verification code for %s stored but delivery failed", email)
            raise

        logger.info("Verification code issued for %s", email)
        return IssuedCode(code=record.code, expires_at=record.expires_at)

    def validate(self, email: str, submitted_code: str) -> None:
        """
        Check a submitted code, consuming the record on success.

        Returns normally when the code matches.

        Raises:
            NotFoundError: No record for email
            ExpiredError: Record past expires_at (record removed)
            AttemptsExceededError: Record exhausted (record removed)
            MismatchError: Wrong code, carries remaining attempts
        """
        now = self.clock()
        with self.store.locked(email) as slot:
            rejection = self._check(slot, submitted_code, now)

        # Raised outside the block so the slot's changes are committed.
        if rejection is not None:
            raise rejection
        logger.info("Verification code accepted for %s", email)

    def sweep(self) -> int:
        """Remove expired records. Returns the number removed."""
        removed = self.store.remove_expired(self.clock())
        if removed:
            logger.debug("Swept %d expired verification code(s)", removed)
        return removed

    def _check(self, slot: RecordSlot, submitted_code: str, now: datetime) -> CodeRejected | None:
        record = slot.get()
        if record is None:
            return NotFoundError()

        if record.is_expired(now):
            slot.delete()
            return ExpiredError()

        if record.attempts >= self.max_attempts:
            slot.delete()
            return AttemptsExceededError()

        if not secrets.compare_digest(record.code.encode(), submitted_code.encode()):
            failed = record.with_failed_attempt()
            slot.put(failed)
            return MismatchError(self.max_attempts - failed.attempts)

        slot.delete()
        return None

    def _cooldown_remaining(self, record: VerificationRecord, now: datetime) -> int:
        """Whole seconds until a new code may be issued, rounded up."""
        remaining = (record.issued_at + self.resend_cooldown - now).total_seconds()
        return max(0, math.ceil(remaining))

    def _generate_code(self) -> str:
        """
        Draw a 6-digit code uniformly from [100000, 999999].

        Returns string to keep the code opaque to callers.
        """
        return f"{self.rng.randint(CODE_MIN, CODE_MAX):06d}"

    def _ttl_minutes(self) -> int:
        return math.ceil(self.code_ttl.total_seconds() / 60)
