"""Deterministic stand-ins for the registry's clock and random source."""

from datetime import datetime, timedelta, timezone

START = datetime(2026, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


class FakeClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now += timedelta(**kwargs)


class SequenceRandom:
    """random.Random stand-in returning preset values from randint()."""

    def __init__(self, *values: int) -> None:
        self._values = list(values)

    def randint(self, a: int, b: int) -> int:
        value = self._values.pop(0)
        assert a <= value <= b
        return value


# Target of the adversarial scenarios and the code pinned for it
VICTIM = "victim@example.com"
SECRET_CODE = "482913"
