"""
In-memory per-client rate limiter: sliding 60 second window keyed by client IP.
"""

import logging
import threading
import time
from collections import deque

logger = logging.getLogger(__name__)

WINDOW_SECONDS = 60.0


class RateLimiter:
    def __init__(self, limit: int, window: float = WINDOW_SECONDS) -> None:
        self.limit = max(1, limit)
        self.window = window
        self._buckets: dict[str, deque[float]] = {}
        self._last_sweep = 0.0
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._buckets)

    def __contains__(self, key: str) -> bool:
        return key in self._buckets

    def allow(self, key: str, now: float | None = None) -> bool:
        """Record a hit for ``key``; False when the window is already full."""
        now = time.monotonic() if now is None else now
        with self._lock:
            if now - self._last_sweep >= self.window:
                self._sweep(now)
            bucket = self._buckets.setdefault(key, deque())
            while bucket and now - bucket[0] >= self.window:
                bucket.popleft()
            if len(bucket) >= self.limit:
                logger.info("[rate_limit] limited key=%s hits=%d", key, len(bucket))
                return False
            bucket.append(now)
            return True

    def _sweep(self, now: float) -> None:
        # Newest hit is last; a bucket whose newest hit left the window is empty.
        stale = [k for k, b in self._buckets.items() if not b or now - b[-1] >= self.window]
        for k in stale:
            del self._buckets[k]
        self._last_sweep = now
        if stale:
            logger.debug("[rate_limit] dropped %d idle keys", len(stale))

    def reset(self) -> None:
        with self._lock:
            self._buckets.clear()
            self._last_sweep = 0.0
