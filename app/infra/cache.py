"""
Expiring Value Cache

Small owned cache holding one value plus its expiry. Used for the upstream
access token and the per-location employee roster. Instances are created by
the component that owns the data and passed along explicitly; there is no
process-wide cache.

Concurrent refreshes are not deduplicated. Two callers that both see an
expired entry will both refresh, and the last write wins.
"""

import time
from typing import Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class ExpiringValue(Generic[T]):
    """
    A single cached value with a time-based expiry.

    Features:
    - Fresh reads via get()
    - Stale reads via peek() for fallback after a failed refresh
    - Injectable clock for tests
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        """Initialize an empty cache.

        Args:
            clock: Returns the current time in seconds
        """
        self._clock = clock
        self._value: Optional[T] = None
        self._expires_at: Optional[float] = None

    def get(self) -> Optional[T]:
        """Return the value if present and not expired, else None."""
        if self._value is None or self._expires_at is None:
            return None
        if self._clock() >= self._expires_at:
            return None
        return self._value

    def peek(self) -> Optional[T]:
        """Return the last stored value, even if expired."""
        return self._value

    def set(self, value: T, ttl_seconds: float) -> None:
        """Store a value for ttl_seconds from now."""
        self._value = value
        self._expires_at = self._clock() + ttl_seconds

    def invalidate(self) -> None:
        """Mark the value expired. peek() still returns it."""
        self._expires_at = None

    def seconds_remaining(self) -> float:
        """Seconds until expiry (0 when empty or expired)."""
        if self._expires_at is None:
            return 0.0
        return max(0.0, self._expires_at - self._clock())
