"""
functions/rate_limiter.py
-------------------------
Per-customer rate limiting for outgoing pre-order emails.
Allows at most one email per key within the configured window.

State is process-local: it resets on restart and is not shared between
concurrent function instances. Within one process the webhook runs in a
thread pool, so every access goes through a lock.
"""

import threading
import time
from typing import Callable, Dict

from app.logger import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """In-memory mapping {key: timestamp of the last send}."""

    def __init__(self, window_seconds: float, clock: Callable[[], float] = time.time):
        self.window_seconds = window_seconds
        self._clock = clock
        self._last_sent: Dict[str, float] = {}
        self._lock = threading.Lock()

    def _cleanup(self, now: float) -> None:
        """Drop every entry older than the window. Caller holds the lock."""
        window_start = now - self.window_seconds
        for key in [k for k, t in self._last_sent.items() if t < window_start]:
            self._last_sent.pop(key, None)

    def _limited(self, key: str, now: float) -> bool:
        last_sent = self._last_sent.get(key)
        return last_sent is not None and last_sent > now - self.window_seconds

    def is_limited(self, key: str) -> bool:
        with self._lock:
            now = self._clock()
            self._cleanup(now)
            limited = self._limited(key, now)
        if limited:
            logger.info(f"Rate limit active for {key}")
        return limited

    def try_acquire(self, key: str) -> bool:
        """
        Check and reserve in one step.
        Returns False when the key already sent (or is sending) within the
        window; otherwise records the key and returns True.
        """
        with self._lock:
            now = self._clock()
            self._cleanup(now)
            if self._limited(key, now):
                limited = True
            else:
                self._last_sent[key] = now
                limited = False
        if limited:
            logger.info(f"Rate limit active for {key}")
        return not limited

    def release(self, key: str) -> None:
        """Give back a reservation whose send did not happen."""
        with self._lock:
            self._last_sent.pop(key, None)

    def record(self, key: str) -> None:
        with self._lock:
            self._last_sent[key] = self._clock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._last_sent)
