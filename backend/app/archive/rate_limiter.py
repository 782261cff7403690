"""Rate limiting for Internet Archive requests.

The archive is a shared, donation-funded service: every request made by this
process goes through one token bucket so that concurrent imports and jobs
cannot burst past the configured requests-per-minute.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any

from app.core.logging import get_logger

logger = get_logger(__name__)


class ArchiveRateLimiter:
    """Token bucket limiter shared by every archive request.

    Usage:
        limiter = ArchiveRateLimiter(rpm=60)
        await limiter.acquire()
        # make archive call
    """

    def __init__(self, rpm: int, burst: int | None = None):
        """Initialize the rate limiter.

        Args:
            rpm: Requests per minute limit.
            burst: Bucket size. Defaults to ``rpm`` (one minute of requests).
        """
        self.rpm = rpm
        self.max_tokens = float(burst if burst is not None else rpm)
        self.tokens = self.max_tokens
        self.last_refill = time.monotonic()
        self._lock = asyncio.Lock()

        # Metrics
        self._requests_total = 0
        self._throttled_count = 0

    async def acquire(self) -> None:
        """Wait until a request may be made."""
        async with self._lock:
            now = time.monotonic()
            elapsed = now - self.last_refill
            self.tokens = min(self.max_tokens, self.tokens + elapsed * (self.rpm / 60.0))
            self.last_refill = now

            if self.tokens < 1:
                wait_time = (1 - self.tokens) * (60.0 / self.rpm)
                self._throttled_count += 1
                logger.debug(
                    "archive_rate_limiter_throttling",
                    wait_time=wait_time,
                    tokens=self.tokens,
                )
                # Sleeping under the lock keeps waiters in FIFO order
                await asyncio.sleep(wait_time)
                self.tokens = 0
                self.last_refill = time.monotonic()
            else:
                self.tokens -= 1

            self._requests_total += 1

    def get_stats(self) -> dict[str, Any]:
        """Get rate limiter statistics."""
        return {
            "rpm_limit": self.rpm,
            "tokens_available": self.tokens,
            "requests_total": self._requests_total,
            "throttled_count": self._throttled_count,
        }
