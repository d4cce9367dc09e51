from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

from .config import CATEGORIES_CACHE_TTL_SECONDS, TOTALS_CACHE_TTL_SECONDS


class SystemClock:
    def now(self) -> float:
        return time.monotonic()


class TTLCache:
    """Single-slot cache for one expensive read.

    The slot holds the last computed value and the clock reading at which it
    was stored. Nothing invalidates it on write; staleness is bounded by the
    TTL only, and the slot is local to this process.
    """

    def __init__(self, ttl_seconds: float, clock: Optional[SystemClock] = None) -> None:
        self.ttl_seconds = float(ttl_seconds)
        self.clock = clock or SystemClock()
        self._lock = threading.Lock()
        self._value: Any = None
        self._stored_at: Optional[float] = None
        self.hits = 0
        self.misses = 0

    def _is_fresh(self) -> bool:
        if self._stored_at is None:
            return False
        return (self.clock.now() - self._stored_at) < self.ttl_seconds

    def get_or_compute(self, compute: Callable[[], Any]) -> Any:
        with self._lock:
            if self._is_fresh():
                self.hits += 1
                return self._value
        value = compute()
        with self._lock:
            self._value = value
            self._stored_at = self.clock.now()
            self.misses += 1
        return value

    def invalidate(self) -> None:
        with self._lock:
            self._value = None
            self._stored_at = None


@dataclass(frozen=True)
class LimitProfile:
    name: str
    limit: int
    window_seconds: float
    message: str = "You are sending too many requests."


class RateLimiter:
    """Fixed-window request counters keyed by profile and client IP."""

    def __init__(self, clock: Optional[SystemClock] = None) -> None:
        self.clock = clock or SystemClock()
        self._lock = threading.Lock()
        self._windows: dict[tuple[str, str], tuple[float, int]] = {}

    def hit(self, profile: LimitProfile, key: str) -> tuple[bool, float]:
        """Count one request; return (allowed, seconds until the window resets)."""
        now = self.clock.now()
        slot = (profile.name, key)
        with self._lock:
            started, count = self._windows.get(slot, (now, 0))
            if now - started >= profile.window_seconds:
                started, count = now, 0
            count += 1
            self._windows[slot] = (started, count)
            retry_after = max(0.0, profile.window_seconds - (now - started))
        return count <= profile.limit, retry_after

    def reset(self) -> None:
        with self._lock:
            self._windows.clear()

    def prune(self) -> int:
        now = self.clock.now()
        with self._lock:
            stale = [
                slot
                for slot, (started, _count) in self._windows.items()
                if now - started >= _PROFILE_WINDOWS.get(slot[0], 0)
            ]
            for slot in stale:
                del self._windows[slot]
        return len(stale)


LOGIN = LimitProfile(
    "login", 5, 60, "Too many login attempts from this IP, please try again later."
)
REGISTER = LimitProfile(
    "register",
    5,
    30 * 60,
    "Too many accounts created from this IP, please try again after 30 minutes.",
)
STANDARD = LimitProfile("standard", 10, 1)
HEAVY = LimitProfile("heavy", 1, 1)
OPEN = LimitProfile("open", 3, 10)
SUPER_HEAVY = LimitProfile("super_heavy", 2, 30 * 60)

PROFILES = {profile.name: profile for profile in (LOGIN, REGISTER, STANDARD, HEAVY, OPEN, SUPER_HEAVY)}
_PROFILE_WINDOWS = {profile.name: profile.window_seconds for profile in PROFILES.values()}


class CacheRegistry:
    """Process-wide cache and limiter instances, replaceable in tests."""

    def __init__(self, clock: Optional[SystemClock] = None) -> None:
        self.configure(clock or SystemClock())

    def configure(self, clock: SystemClock) -> None:
        self.clock = clock
        self.categories = TTLCache(CATEGORIES_CACHE_TTL_SECONDS, clock)
        self.platform_totals = TTLCache(TOTALS_CACHE_TTL_SECONDS, clock)
        self.rate_limiter = RateLimiter(clock)


cache_registry = CacheRegistry()
