"""
Domain layer - Pure business logic with zero framework imports.

This package contains the verification code registry and defines its own
port interfaces for infrastructure abstraction, ensuring true hexagonal
architecture decoupling.
"""

from .exceptions import (
    AttemptsExceededError,
    CodeRejected,
    CooldownError,
    ExpiredError,
    InvalidEmail,
    MismatchError,
    NotFoundError,
    NotifierError,
    ValidationError,
    VerificationError,
)
from .ports import MessageRenderer, Notifier, RecordSlot, VerificationMessage, VerificationStore
from .verification import IssuedCode, VerificationCodeRegistry, VerificationRecord

__all__ = [
    "AttemptsExceededError",
    "CodeRejected",
    "CooldownError",
    "ExpiredError",
    "InvalidEmail",
    "IssuedCode",
    "MessageRenderer",
    "MismatchError",
    "NotFoundError",
    "Notifier",
    "NotifierError",
    "RecordSlot",
    "ValidationError",
    "VerificationCodeRegistry",
    "VerificationError",
    "VerificationMessage",
    "VerificationRecord",
    "VerificationStore",
]
