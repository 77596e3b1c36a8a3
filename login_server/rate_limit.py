"""
Rate limiting for POST /token. In-memory sliding window per key (client IP) to slow down
secret and password guessing.
"""
import math
import threading
import time
from typing import Callable

_WINDOW_SECONDS = 60


class SlidingWindowLimiter:
    def __init__(self, window_seconds: int = _WINDOW_SECONDS, clock: Callable[[], float] = time.monotonic):
        self._window = window_seconds
        self._clock = clock
        self._store: dict[str, list[float]] = {}
        self._lock = threading.Lock()

    def check_and_consume(self, key: str, limit: int) -> tuple[bool, int | None]:
        """
        Check if the key is under the limit for the window; if so, record this request.
        Returns (allowed, retry_after_seconds); retry_after is >= 1 when not allowed.
        A limit <= 0 disables limiting.
        """
        if limit <= 0:
            return True, None
        now = self._clock()
        with self._lock:
            timestamps = self._store.setdefault(key, [])
            cutoff = now - self._window
            timestamps[:] = [t for t in timestamps if t > cutoff]
            if len(timestamps) >= limit:
                retry_after = max(1, math.ceil(self._window - (now - timestamps[0])))
                return False, retry_after
            timestamps.append(now)
            return True, None

    def reset(self) -> None:
        with self._lock:
            self._store.clear()
