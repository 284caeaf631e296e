"""Taiga API Rate Limiting Utilities

Token bucket limiter that spaces out requests so a long pagination run or a
batch of creates does not trip Taiga's anonymous/user throttles.
"""

import time
import threading
from typing import Optional


class RateLimiter:
    """Thread-safe token bucket rate limiter.

    The bucket starts full so short bursts go out immediately; sustained
    traffic is held to ``requests_per_second``.
    """

    def __init__(self, requests_per_second: float = 5.0, burst: Optional[float] = None):
        """Initialize rate limiter.

        Args:
            requests_per_second: Sustained request rate (default: 5.0)
            burst: Bucket capacity (default: one second's worth of requests)
        """
        if requests_per_second <= 0:
            raise ValueError("requests_per_second must be positive")

        self.rate = requests_per_second
        self.capacity = burst if burst is not None else requests_per_second
        self.tokens = self.capacity
        self.last_update = time.monotonic()
        self.lock = threading.Lock()

    def _refill(self) -> None:
        now = time.monotonic()
        self.tokens = min(self.capacity, self.tokens + (now - self.last_update) * self.rate)
        self.last_update = now

    def _take(self, tokens: float) -> float:
        """Take tokens if available; otherwise return the seconds to wait."""
        with self.lock:
            self._refill()
            if self.tokens >= tokens:
                self.tokens -= tokens
                return 0.0
            return (tokens - self.tokens) / self.rate

    def acquire(self, tokens: float = 1) -> None:
        """Acquire tokens from the bucket, sleeping until they are available."""
        while True:
            wait_time = self._take(tokens)
            if wait_time <= 0:
                return
            time.sleep(wait_time)

    def try_acquire(self, tokens: float = 1) -> bool:
        """Try to acquire tokens without blocking.

        Returns:
            True if tokens were acquired, False otherwise
        """
        return self._take(tokens) == 0.0
