"""In-memory token-bucket rate limiting for sensitive auth endpoints."""

import logging
import math
import threading
import time
from collections.abc import Callable

logger = logging.getLogger(__name__)

REFILL_WINDOW_SECONDS = 60.0


class TokenBucket:
    """Bucket with continuous (greedy) refill.

    Starts full. ``capacity`` units are returned evenly over ``window_seconds``
    until the bucket is full again.
    """

    def __init__(self, capacity: int, window_seconds: float, now: float):
        self.capacity = capacity
        self.window_seconds = window_seconds
        self._tokens = float(capacity)
        self._updated_at = now
        self._lock = threading.Lock()

    def _refill(self, now: float) -> None:
        elapsed = max(0.0, now - self._updated_at)
        self._tokens = min(float(self.capacity), self._tokens + elapsed * self.capacity / self.window_seconds)
        self._updated_at = now

    def try_consume(self, now: float, amount: int = 1) -> bool:
        with self._lock:
            self._refill(now)
            if self._tokens >= amount:
                self._tokens -= amount
                return True
            return False

    def seconds_until_available(self, now: float, amount: int = 1) -> float:
        with self._lock:
            self._refill(now)
            missing = amount - self._tokens
            if missing <= 0:
                return 0.0
            return missing * self.window_seconds / self.capacity

    def resize(self, capacity: int, now: float) -> None:
        """Switch to a new capacity, keeping the units already spent."""
        with self._lock:
            self._refill(now)
            self.capacity = capacity
            self._tokens = min(self._tokens, float(capacity))


class RateLimiter:
    """Per-key token buckets, created lazily on first use.

    Buckets are never evicted; they live as long as the limiter instance.
    Safe to share between concurrent requests: both the bucket table and each
    bucket are guarded by locks, so the last unit can only be spent once.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._buckets: dict[str, TokenBucket] = {}
        self._lock = threading.Lock()

    def _bucket(self, key: str, limit_per_minute: int) -> TokenBucket:
        with self._lock:
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = TokenBucket(capacity=limit_per_minute, window_seconds=REFILL_WINDOW_SECONDS, now=self._clock())
                self._buckets[key] = bucket
            elif bucket.capacity != limit_per_minute:
                logger.info(f"Rate limit for key {key} changed from {bucket.capacity} to {limit_per_minute}/min")
                bucket.resize(limit_per_minute, self._clock())
            return bucket

    def allow(self, key: str, limit_per_minute: int) -> bool:
        """Consume one unit from the bucket for ``key``.

        Args:
            key: Bucket identity, e.g. ``"login:203.0.113.7"``
            limit_per_minute: Bucket capacity and refill rate per minute.
                A value <= 0 disables limiting. A different value than the
                previous call for the same key resizes its bucket.

        Returns:
            True if the request may proceed, False if the bucket is empty

        """
        if limit_per_minute <= 0:
            return True

        allowed = self._bucket(key, limit_per_minute).try_consume(self._clock())
        if not allowed:
            logger.warning(f"Rate limit exceeded for key: {key}")
        return allowed

    def retry_after(self, key: str) -> int:
        """Whole seconds until ``key`` can be served again (0 if unknown)."""
        with self._lock:
            bucket = self._buckets.get(key)
        if bucket is None:
            return 0
        return max(1, math.ceil(bucket.seconds_until_available(self._clock())))

    def reset(self) -> None:
        """Drop every bucket."""
        with self._lock:
            self._buckets.clear()
