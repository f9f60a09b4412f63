import math
import threading
import time
from dataclasses import dataclass

from flask import current_app, request

from services.errors import RateLimited
from utils.audit import log_event


def client_identifier() -> str:
    # remote_addr is the real client only behind ProxyFix (TRUSTED_PROXY_COUNT), never a raw header
    return request.remote_addr or "anonymous"


@dataclass
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_at: float  # epoch seconds

    def retry_after(self, now: float = None) -> int:
        now = time.time() if now is None else now
        return max(int(math.ceil(self.reset_at - now)), 1)


class RateLimiter:
    """
    Fixed-window counter kept in process memory.

    Counters are keyed on identifier + window index, so a new window starts a
    fresh count without touching old entries; those are purged lazily. State
    is lost on restart and is not shared between processes, so limits only
    hold for a single-instance deployment. Clients are told apart by
    client_identifier(), which ignores X-Forwarded-For unless
    TRUSTED_PROXY_COUNT puts ProxyFix in front of the app.
    """

    def __init__(self, window_seconds: int = 60, cleanup_interval: int = 300, clock=time.time):
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.window_seconds = window_seconds
        self.cleanup_interval = cleanup_interval
        self.clock = clock
        self._counters = {}
        self._lock = threading.Lock()
        self._last_cleanup = clock()

    def _window(self, now: float) -> int:
        return int(now // self.window_seconds)

    def check(self, identifier: str, limit: int) -> RateLimitResult:
        now = self.clock()
        window = self._window(now)
        reset_at = (window + 1) * self.window_seconds

        with self._lock:
            if now - self._last_cleanup >= self.cleanup_interval:
                self._purge(now)

            key = f"{identifier}:{window}"
            count = self._counters.get(key, 0)
            if count >= limit:
                return RateLimitResult(allowed=False, limit=limit, remaining=0, reset_at=reset_at)

            count += 1
            self._counters[key] = count
            return RateLimitResult(allowed=True, limit=limit, remaining=limit - count, reset_at=reset_at)

    def _purge(self, now: float) -> int:
        current = self._window(now)
        expired = [k for k in self._counters if int(k.rsplit(":", 1)[1]) < current]
        for key in expired:
            del self._counters[key]
        self._last_cleanup = now
        return len(expired)

    def cleanup(self) -> int:
        """Drop counters from finished windows. Returns how many were removed."""
        with self._lock:
            return self._purge(self.clock())

    def reset(self):
        with self._lock:
            self._counters.clear()

    def __len__(self):
        return len(self._counters)


def enforce_rate_limit(name: str, limit: int) -> RateLimitResult:
    """Check the named app-level limiter for the calling client, raising RateLimited when exhausted."""
    limiter = current_app.extensions["rate_limiters"][name]
    identifier = client_identifier()
    result = limiter.check(identifier, limit)
    if not result.allowed:
        log_event("RATE_LIMIT_EXCEEDED", metadata={"limiter": name, "identifier": identifier})
        raise RateLimited(result.retry_after(limiter.clock()))
    return result
