"""
Per-client throttling of the public subscribe/unsubscribe forms.

Each key keeps the timestamps of its accepted submissions inside the
current window; a submission is refused once the window is full.
"""

from collections import deque
from datetime import UTC, datetime, timedelta
from threading import Lock
from typing import Protocol

from cmsmail.rules.models import RateLimitRules, RateLimitWindow


class TimePort(Protocol):
    def now(self) -> datetime:
        """Current UTC time."""
        ...


class SystemTimeAdapter:
    def now(self) -> datetime:
        return datetime.now(UTC)


class RateLimiter:
    """Sliding-window limiter keyed by caller (IP address)."""

    def __init__(
        self,
        rules: RateLimitRules,
        time_port: TimePort | None = None,
    ):
        self.rules = rules
        self._time = time_port if time_port is not None else SystemTimeAdapter()
        self._accepted: dict[str, deque[datetime]] = {}
        self._lock = Lock()

    def _window(self, key: str, seconds: int, now: datetime) -> deque[datetime]:
        stamps = self._accepted.get(key, deque())
        cutoff = now - timedelta(seconds=seconds)
        while stamps and stamps[0] <= cutoff:
            stamps.popleft()
        # Keys whose window has drained are dropped
        if not stamps:
            self._accepted.pop(key, None)
        return stamps

    def allow_request(self, key: str, window: int, limit: int) -> bool:
        """Record and accept the submission, or refuse it when the window is full."""
        if limit <= 0:
            return False

        with self._lock:
            now = self._time.now()
            stamps = self._window(key, window, now)
            if len(stamps) >= limit:
                return False
            stamps.append(now)
            self._accepted[key] = stamps
            return True

    def retry_after(self, key: str, window: int, limit: int) -> int:
        """Seconds until the key may submit again; 0 when it may submit now."""
        if limit <= 0:
            return window

        with self._lock:
            now = self._time.now()
            stamps = self._window(key, window, now)
            if len(stamps) < limit:
                return 0
            reopens = stamps[len(stamps) - limit] + timedelta(seconds=window)
            return max(1, int((reopens - now).total_seconds()))

    def _subscription(self) -> RateLimitWindow:
        return self.rules.subscription

    def check_subscription(self, ip: str) -> bool:
        cfg = self._subscription()
        return self.allow_request(f"subscription:{ip}", cfg.window_seconds, cfg.max_requests)

    def subscription_retry_after(self, ip: str) -> int:
        cfg = self._subscription()
        return self.retry_after(f"subscription:{ip}", cfg.window_seconds, cfg.max_requests)

    def tracked_keys(self) -> int:
        """Number of callers with submissions inside their window."""
        with self._lock:
            return len(self._accepted)

    def reset(self) -> None:
        with self._lock:
            self._accepted.clear()
