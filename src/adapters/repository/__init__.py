"""Repository adapters - Verification record stores."""

from .memory import InMemoryVerificationStore
from .postgres import PostgresVerificationStore, run_migrations

__all__ = ["InMemoryVerificationStore", "PostgresVerificationStore", "run_migrations"]
