"""Fixed-window, per-identity request rate limiter."""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict

from config import (
    RATE_LIMIT_MAX_REQUESTS,
    RATE_LIMIT_WINDOW_SECONDS,
    RATE_LIMIT_CLEANUP_SECONDS,
)

logger = logging.getLogger(__name__)


@dataclass
class RateLimitResult:
    """Outcome of one rate-limit check."""
    allowed: bool
    remaining: int
    reset_at: float  # epoch seconds


@dataclass
class _Window:
    count: int
    reset_at: float


class RateLimiter:
    """
    In-memory fixed window counter keyed by client identity (usually the IP).

    State lives for the life of the process and starts empty. A single lock
    makes each read-check-increment atomic, so concurrent requests from the
    same identity cannot both slip past the limit. Expired windows are purged
    at most once per cleanup interval during a check; an expired entry that
    has not been purged yet simply starts a new window on its next access.
    """

    def __init__(
        self,
        max_requests: int = RATE_LIMIT_MAX_REQUESTS,
        window_seconds: float = RATE_LIMIT_WINDOW_SECONDS,
        cleanup_interval: float = RATE_LIMIT_CLEANUP_SECONDS,
        clock: Callable[[], float] = time.time
    ):
        if max_requests <= 0:
            raise ValueError("max_requests must be positive")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")

        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.cleanup_interval = cleanup_interval
        self.clock = clock

        self._windows: Dict[str, _Window] = {}
        self._lock = threading.Lock()
        self._last_cleanup = clock()

    def check(self, identity: str) -> RateLimitResult:
        """
        Count one request for `identity` and say whether it is allowed.

        Args:
            identity: Client key, e.g. the caller's IP address

        Returns:
            RateLimitResult; when not allowed, remaining is 0 and reset_at is
            the unchanged end of the current window
        """
        with self._lock:
            now = self.clock()
            if now - self._last_cleanup >= self.cleanup_interval:
                self._purge_expired(now)

            window = self._windows.get(identity)

            if window is None or now > window.reset_at:
                reset_at = now + self.window_seconds
                self._windows[identity] = _Window(count=1, reset_at=reset_at)
                return RateLimitResult(True, self.max_requests - 1, reset_at)

            if window.count >= self.max_requests:
                logger.warning(f"Rate limit exceeded for {identity}")
                return RateLimitResult(False, 0, window.reset_at)

            window.count += 1
            return RateLimitResult(True, self.max_requests - window.count, window.reset_at)

    def _purge_expired(self, now: float) -> None:
        # Caller holds the lock
        expired = [key for key, window in self._windows.items() if now > window.reset_at]
        for key in expired:
            del self._windows[key]
        self._last_cleanup = now
        if expired:
            logger.debug(f"Purged {len(expired)} expired rate-limit windows")
