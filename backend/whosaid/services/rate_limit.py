import threading
import time
from typing import Dict, NamedTuple


class RateLimitResult(NamedTuple):
    allowed: bool
    remaining: int
    reset_at: float  # epoch seconds


class RateLimiter:
    """Fixed-window request counter, one instance per application."""

    def __init__(self, clock=time.time, max_keys: int = 10000):
        self._clock = clock
        self._max_keys = max_keys
        self._lock = threading.Lock()
        self._windows: Dict[str, list] = {}  # key -> [count, reset_at]

    def _prune(self, now: float) -> int:
        expired = [k for k, (_, reset_at) in self._windows.items() if reset_at <= now]
        for k in expired:
            del self._windows[k]
        return len(expired)

    def check(self, identifier: str, max_requests: int, window_sec: float) -> RateLimitResult:
        now = self._clock()
        key = f"{identifier}:{window_sec}:{max_requests}"
        with self._lock:
            if len(self._windows) >= self._max_keys:
                self._prune(now)
            entry = self._windows.get(key)
            if entry is None or entry[1] <= now:
                entry = [0, now + window_sec]
                self._windows[key] = entry
            if entry[0] >= max_requests:
                return RateLimitResult(False, 0, entry[1])
            entry[0] += 1
            return RateLimitResult(True, max_requests - entry[0], entry[1])

    def cleanup(self) -> int:
        """Drop expired windows; returns how many were removed."""
        with self._lock:
            return self._prune(self._clock())
