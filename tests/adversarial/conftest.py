"""
Shared fixtures for adversarial tests.

Provides a registry over a real in-memory store with a pinned code and
a fake clock, so attacks can be replayed deterministically.
"""

from unittest.mock import Mock

import pytest

from src.adapters.repository.memory import InMemoryVerificationStore
from src.adapters.templates.renderer import JinjaMessageRenderer
from src.domain.verification import VerificationCodeRegistry
from tests.helpers import SECRET_CODE, VICTIM, FakeClock, SequenceRandom

# Module-level marker for all adversarial tests
pytestmark = pytest.mark.adversarial


@pytest.fixture
def attacked_registry(store: InMemoryVerificationStore, clock: FakeClock) -> VerificationCodeRegistry:
    """Registry with a code already issued to VICTIM."""
    registry = VerificationCodeRegistry(
        store=store,
        notifier=Mock(),
        renderer=JinjaMessageRenderer("TestApp"),
        clock=clock,
        rng=SequenceRandom(int(SECRET_CODE), 111111, 222222, 333333),
    )
    registry.issue(VICTIM)
    return registry
