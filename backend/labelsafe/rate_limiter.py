"""
Fixed-window rate limiter, one counter per client key. Injected into the app; holds no module state.
"""
import threading
import time
from typing import Callable, Dict, Optional, Tuple

from labelsafe.config import RATE_LIMIT_MAX_REQUESTS, RATE_LIMIT_WINDOW_SECONDS


class FixedWindowRateLimiter:

    def __init__(
        self,
        max_requests: Optional[int] = None,
        window_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_requests = max_requests if max_requests is not None else RATE_LIMIT_MAX_REQUESTS
        self.window_seconds = window_seconds if window_seconds is not None else RATE_LIMIT_WINDOW_SECONDS
        self._clock = clock
        self._lock = threading.Lock()
        # key -> (window start, count)
        self._windows: Dict[str, Tuple[float, int]] = {}
        self._last_sweep = clock()

    def active_windows(self) -> int:
        with self._lock:
            return len(self._windows)

    def _sweep(self, now: float) -> None:
        # Caller holds the lock; runs at most once per window
        if now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        expired = [k for k, (start, _) in self._windows.items() if now - start >= self.window_seconds]
        for k in expired:
            del self._windows[k]

    def allow(self, key: str) -> bool:
        """Count one request for key; False once the window's budget is spent."""
        now = self._clock()
        with self._lock:
            self._sweep(now)
            start, count = self._windows.get(key, (now, 0))
            if now - start >= self.window_seconds:
                start, count = now, 0
            if count >= self.max_requests:
                self._windows[key] = (start, count)
                return False
            self._windows[key] = (start, count + 1)
            return True

    def retry_after(self, key: str) -> float:
        """Seconds until key's current window resets (0 if it has no window)."""
        with self._lock:
            window = self._windows.get(key)
        if window is None:
            return 0.0
        return max(0.0, window[0] + self.window_seconds - self._clock())

    def reset(self, key: Optional[str] = None) -> None:
        with self._lock:
            if key is None:
                self._windows.clear()
            else:
                self._windows.pop(key, None)
