"""
Rate Limits: per-client sliding windows.

Protects the expensive and abuse-prone routes (authentication, pack
purchases, marketplace actions) from excessive requests by one client.

INVARIANTS:
- Limits are HARD CAPS: a request over the limit is rejected with 429
  before the handler runs
- Rejected requests do not consume quota
- Buckets are independent; hitting one limit never affects another
- Client addresses are hashed before they reach the logs
"""

import hashlib
import logging
import time
from collections import deque
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from threading import Lock

from fastapi import Request

from jogata.config import settings
from jogata.models.failure import RateLimitExceededError

logger = logging.getLogger(__name__)

AUTH_BUCKET = "auth"
PACK_BUCKET = "pack"
MARKETPLACE_BUCKET = "marketplace"


@dataclass
class SlidingWindowTracker:
    """
    Thread-safe tracker of request timestamps per (bucket, client).

    `clock` is injectable so tests can move time forward.
    """

    clock: Callable[[], float] = time.monotonic
    _hits: dict[tuple[str, str], deque[float]] = field(default_factory=dict)
    _lock: Lock = field(default_factory=Lock)

    @staticmethod
    def hash_client(client: str) -> str:
        """Hash a client address for privacy-safe logging."""
        return hashlib.sha256(client.encode()).hexdigest()[:12]

    def check(self, bucket: str, client: str, limit: int, window_seconds: int) -> None:
        """
        Record a request, or reject it if the window is full.

        Raises:
            RateLimitExceededError: `limit` requests already landed in the
                last `window_seconds` for this client and bucket
        """
        with self._lock:
            now = self.clock()
            hits = self._hits.setdefault((bucket, client), deque())

            while hits and hits[0] <= now - window_seconds:
                hits.popleft()

            if len(hits) >= limit:
                logger.warning(
                    "RATE_LIMIT_EXCEEDED",
                    extra={
                        "bucket": bucket,
                        "client_hash": self.hash_client(client),
                        "limit": limit,
                        "window_seconds": window_seconds,
                    },
                )
                raise RateLimitExceededError(bucket, limit, window_seconds)

            hits.append(now)

    def remaining(self, bucket: str, client: str, limit: int, window_seconds: int) -> int:
        with self._lock:
            now = self.clock()
            hits = self._hits.get((bucket, client), deque())
            recent = sum(1 for hit in hits if hit > now - window_seconds)
            return max(0, limit - recent)


# =============================================================================
# GLOBAL TRACKER INSTANCE
# =============================================================================

_tracker: SlidingWindowTracker | None = None


def get_rate_limiter() -> SlidingWindowTracker:
    """Get the global rate limit tracker."""
    global _tracker
    if _tracker is None:
        _tracker = SlidingWindowTracker()
    return _tracker


def reset_rate_limiter() -> None:
    """Reset the global tracker (for testing)."""
    global _tracker
    _tracker = None


# =============================================================================
# FASTAPI DEPENDENCIES
# =============================================================================


def client_address(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def rate_limit(
    bucket: str, limits: Callable[[], tuple[int, int]]
) -> Callable[[Request], Awaitable[None]]:
    """
    Build a route dependency enforcing one bucket.

    `limits` is read per request so settings overrides take effect in tests.
    """

    async def dependency(request: Request) -> None:
        limit, window = limits()
        get_rate_limiter().check(bucket, client_address(request), limit, window)

    return dependency


auth_rate_limit = rate_limit(AUTH_BUCKET, lambda: settings.auth_rate_limit)
pack_rate_limit = rate_limit(PACK_BUCKET, lambda: settings.pack_rate_limit)
marketplace_rate_limit = rate_limit(MARKETPLACE_BUCKET, lambda: settings.marketplace_rate_limit)
