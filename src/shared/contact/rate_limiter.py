"""In-memory, per-client rate limiting for contact form submissions."""

import math
from dataclasses import dataclass
from threading import Lock
from typing import Dict, Optional

from src.shared.contact.config import DEFAULT_RATE_LIMIT_MAX, DEFAULT_RATE_LIMIT_WINDOW_MS

RATE_LIMIT_MESSAGE = "Too many contact form submissions. Please try again later."


@dataclass
class RateLimitWindow:
    """Requests seen from one client since window_start_ms."""
    count: int
    window_start_ms: int


@dataclass(frozen=True)
class RateLimitDecision:
    allowed: bool
    count: int
    limit: int
    reset_at_ms: int

    @property
    def remaining(self) -> int:
        return max(self.limit - self.count, 0)

    def retry_after_seconds(self, now_ms: int) -> int:
        """Whole seconds until the client's window resets, at least 1."""
        return max(int(math.ceil((self.reset_at_ms - now_ms) / 1000.0)), 1)


class RateLimitStore:
    """
    Fixed-window request counter keyed by client identifier.

    The first request from a client opens a window; every request inside
    the window increments its count, and requests past max_requests are
    denied until the window elapses. Denied requests never extend the
    window. Expired windows are dropped when their client returns and by a
    sweep that runs at most once per window.

    One instance is owned by the application; tests build their own.
    """

    def __init__(
        self,
        max_requests: int = DEFAULT_RATE_LIMIT_MAX,
        window_ms: int = DEFAULT_RATE_LIMIT_WINDOW_MS
    ):
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        if window_ms < 1:
            raise ValueError("window_ms must be at least 1")
        self.max_requests = max_requests
        self.window_ms = window_ms
        self._windows: Dict[str, RateLimitWindow] = {}
        self._lock = Lock()
        self._last_sweep_ms: Optional[int] = None

    def _is_expired(self, window: RateLimitWindow, now_ms: int) -> bool:
        return now_ms - window.window_start_ms >= self.window_ms

    def hit(self, identifier: str, now_ms: int) -> RateLimitDecision:
        """
        Record one request from identifier and decide whether to allow it.

        Args:
            identifier: Client identifier (usually the IP address)
            now_ms: Current time in milliseconds since epoch

        Returns:
            RateLimitDecision for this request
        """
        with self._lock:
            self._maybe_sweep(now_ms)

            window = self._windows.get(identifier)
            if window is None or self._is_expired(window, now_ms):
                window = RateLimitWindow(count=1, window_start_ms=now_ms)
                self._windows[identifier] = window
            else:
                window.count += 1

            return RateLimitDecision(
                allowed=window.count <= self.max_requests,
                count=window.count,
                limit=self.max_requests,
                reset_at_ms=window.window_start_ms + self.window_ms,
            )

    def get_window(self, identifier: str, now_ms: int) -> Optional[RateLimitWindow]:
        """Current (unexpired) window for identifier, or None. Does not count as a request."""
        with self._lock:
            window = self._windows.get(identifier)
            if window is None or self._is_expired(window, now_ms):
                return None
            return RateLimitWindow(count=window.count, window_start_ms=window.window_start_ms)

    def reset(self, identifier: Optional[str] = None) -> None:
        """Forget one client's window, or every window if identifier is None."""
        with self._lock:
            if identifier is None:
                self._windows.clear()
            else:
                self._windows.pop(identifier, None)

    def sweep(self, now_ms: int) -> int:
        """Drop every expired window. Returns the number removed."""
        with self._lock:
            return self._sweep(now_ms)

    def _maybe_sweep(self, now_ms: int) -> None:
        if self._last_sweep_ms is None or now_ms - self._last_sweep_ms >= self.window_ms:
            self._sweep(now_ms)

    def _sweep(self, now_ms: int) -> int:
        expired = [key for key, window in self._windows.items() if self._is_expired(window, now_ms)]
        for key in expired:
            del self._windows[key]
        self._last_sweep_ms = now_ms
        return len(expired)

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)
