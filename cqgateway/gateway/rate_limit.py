"""In-memory per-client request rate limiter (fixed counting window per client)."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Mapping

from loguru import logger

RATE_LIMIT_SCOPE_DEFAULT = "default"
RATE_LIMIT_SCOPE_MCP = "mcp"
UNKNOWN_CLIENT = "unknown"


@dataclass
class RateLimitEntry:
    count: int
    reset_time_ms: int


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    limit: int
    remaining: int
    reset_ms: int

    @property
    def reset_iso(self) -> str:
        """Reset instant as an ISO-8601 UTC timestamp with millisecond precision."""
        dt = datetime.fromtimestamp(self.reset_ms / 1000.0, tz=timezone.utc)
        return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")

    def headers(self) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": self.reset_iso,
        }


def _now_ms() -> int:
    return int(time.time() * 1000)


def resolve_client_ip(headers: Mapping[str, str], remote_addr: str | None = None) -> str:
    """Client identity: first X-Forwarded-For hop, then X-Real-IP, then the peer address."""
    forwarded = (headers.get("x-forwarded-for") or "").strip()
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    real_ip = (headers.get("x-real-ip") or "").strip()
    if real_ip:
        return real_ip
    return (remote_addr or "").strip() or UNKNOWN_CLIENT


class RequestRateLimiter:
    """Counts requests per (scope, client) inside a window that restarts once it expires."""

    def __init__(
        self,
        *,
        window_ms: int = 60_000,
        max_requests: int = 100,
        clock: Callable[[], int] | None = None,
    ):
        self._window_ms = window_ms
        self._max_requests = max_requests
        self._clock = clock or _now_ms
        self._entries: dict[str, RateLimitEntry] = {}
        # One lock for the whole store: check-expired, create-or-increment and compare happen as one step.
        self._lock = threading.Lock()

    def _key(self, client_id: str | None, scope: str) -> str:
        client_id = (client_id or "").strip() or UNKNOWN_CLIENT
        scope = (scope or RATE_LIMIT_SCOPE_DEFAULT).strip() or RATE_LIMIT_SCOPE_DEFAULT
        return f"{scope}:{client_id}"

    def check(
        self,
        client_id: str | None,
        *,
        scope: str = RATE_LIMIT_SCOPE_DEFAULT,
        window_ms: int | None = None,
        max_requests: int | None = None,
    ) -> RateLimitResult:
        """Record one request and decide whether it is admitted."""
        window_ms = window_ms or self._window_ms
        max_requests = max_requests or self._max_requests
        key = self._key(client_id, scope)
        with self._lock:
            now = self._clock()
            entry = self._entries.get(key)
            if entry is None or entry.reset_time_ms < now:
                entry = RateLimitEntry(count=1, reset_time_ms=now + window_ms)
                self._entries[key] = entry
                return RateLimitResult(
                    allowed=True,
                    limit=max_requests,
                    remaining=max_requests - 1,
                    reset_ms=entry.reset_time_ms,
                )
            entry.count += 1
            count = entry.count
            reset_ms = entry.reset_time_ms

        if count > max_requests:
            logger.warning("Rate limit exceeded key={} count={} limit={}", key, count, max_requests)
            return RateLimitResult(allowed=False, limit=max_requests, remaining=0, reset_ms=reset_ms)
        return RateLimitResult(
            allowed=True,
            limit=max_requests,
            remaining=max_requests - count,
            reset_ms=reset_ms,
        )

    def sweep(self) -> int:
        """Drop entries whose window has already ended. Returns how many were removed."""
        with self._lock:
            now = self._clock()
            expired = [key for key, entry in self._entries.items() if entry.reset_time_ms < now]
            for key in expired:
                del self._entries[key]
        if expired:
            logger.debug("Rate limit sweep removed {} entries", len(expired))
        return len(expired)

    def reset(self, client_id: str | None, scope: str = RATE_LIMIT_SCOPE_DEFAULT) -> None:
        with self._lock:
            self._entries.pop(self._key(client_id, scope), None)

    def size(self) -> int:
        with self._lock:
            return len(self._entries)


class RateLimitSweeper:
    """Background thread that periodically sweeps a limiter; explicit start()/stop()."""

    def __init__(self, limiter: RequestRateLimiter, *, interval_seconds: float = 60.0):
        self._limiter = limiter
        self._interval_seconds = interval_seconds
        self._thread: threading.Thread | None = None
        self._stop = threading.Event()

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _worker(self) -> None:
        while not self._stop.wait(self._interval_seconds):
            try:
                self._limiter.sweep()
            except Exception as e:
                logger.warning("Rate limit sweep failed: {}", e)

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._worker, name="rate-limit-sweeper", daemon=True)
        self._thread.start()
        logger.debug("Rate limit sweeper started (every {}s)", self._interval_seconds)

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=5.0)
            self._thread = None
