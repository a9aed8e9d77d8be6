"""Single-value TTL cache in front of the service sweep and the GPU read."""

import time
from collections.abc import Callable
from typing import Generic, TypeVar

T = TypeVar("T")


class SingleSlotCache(Generic[T]):
    """One process-wide value with an age-based TTL.

    Not keyed and not locked: concurrent misses may each recompute and the
    last ``store`` wins.
    """

    def __init__(self, ttl_seconds: float, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl_seconds
        self.value: T | None = None
        self.computed_at: float | None = None
        self._clock = clock

    def age(self) -> float | None:
        if self.computed_at is None:
            return None
        return self._clock() - self.computed_at

    def get_fresh(self) -> T | None:
        """Return the cached value if younger than the TTL, else None."""
        age = self.age()
        if age is None or age >= self.ttl:
            return None
        return self.value

    def store(self, value: T) -> T:
        self.value = value
        self.computed_at = self._clock()
        return value
