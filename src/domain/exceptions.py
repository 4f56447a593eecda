"""
Domain exceptions - Semantic error types for code verification.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
Each exception's str() is a message safe to show to the end user.
"""


class VerificationError(Exception):
    """Base class for verification domain errors."""

    pass


class ValidationError(VerificationError):
    """Malformed input that the client can fix."""

    pass


class InvalidEmail(ValidationError):
    """Email address does not look like local@domain.tld."""

    def __init__(self, email: str) -> None:
        super().__init__("Invalid email address")
        self.email = email


class CooldownError(VerificationError):
    """A code was issued too recently for this address."""

    def __init__(self, retry_after: int) -> None:
        super().__init__(
            f"Please wait {retry_after} seconds before requesting another code"
        )
        self.retry_after = retry_after


class CodeRejected(VerificationError):
    """Submitted code was not accepted."""

    pass


class NotFoundError(CodeRejected):
    """No active code exists for the address."""

    def __init__(self) -> None:
        super().__init__("No active verification code, please request a new one")


class ExpiredError(CodeRejected):
    """The code's validity window has passed."""

    def __init__(self) -> None:
        super().__init__("Verification code has expired, please request a new one")


class AttemptsExceededError(CodeRejected):
    """Too many wrong submissions against one code."""

    def __init__(self) -> None:
        super().__init__("Too many incorrect attempts, please request a new code")


class MismatchError(CodeRejected):
    """Submitted code does not match the stored one."""

    def __init__(self, remaining_attempts: int) -> None:
        super().__init__(
            f"Incorrect verification code, {remaining_attempts} attempt(s) remaining"
        )
        self.remaining_attempts = remaining_attempts


class NotifierError(VerificationError):
    """Outbound delivery of the code failed."""

    def __init__(self, detail: str = "") -> None:
        super().__init__(detail or "Failed to deliver verification code")
        self.detail = detail
