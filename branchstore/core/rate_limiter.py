"""
In-process throttling for the public endpoints that write to the store.

Every tracked event costs GitHub API calls, so anonymous callers get a
sliding-window budget per client IP. Windows are per process.
"""
from __future__ import annotations

import math
import threading
import time
from collections import deque
from typing import Callable, Deque, Dict, Tuple

from fastapi import HTTPException, Request


class SlidingWindowLimiter:
    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        # key -> (window, event times); a key is dropped once its window is empty
        self._events: Dict[str, Tuple[float, Deque[float]]] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self._last_sweep = clock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._events)

    def hit(self, key: str, limit: int, window_seconds: float) -> float:
        """Record one event for ``key``; 0 when allowed, else seconds until a slot frees."""
        now = self._clock()
        with self._lock:
            self._sweep(now, window_seconds)
            _, events = self._events.get(key, (window_seconds, deque()))
            while events and now - events[0] >= window_seconds:
                events.popleft()
            if len(events) >= limit:
                return window_seconds - (now - events[0])
            events.append(now)
            self._events[key] = (window_seconds, events)
            return 0.0

    def _sweep(self, now: float, interval: float) -> None:
        """Forget keys whose newest event has left its window, at most once per ``interval``."""
        if now - self._last_sweep < interval:
            return
        self._last_sweep = now
        stale = [k for k, (window, events) in self._events.items() if not events or now - events[-1] >= window]
        for key in stale:
            del self._events[key]

    def reset(self) -> None:
        with self._lock:
            self._events.clear()


_limiter = SlidingWindowLimiter()


def client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client and request.client.host:
        return request.client.host
    return "unknown"


def rate_limit_ip(request: Request, scope: str, *, limit: int, window_seconds: int) -> None:
    wait = _limiter.hit(f"{scope}:{client_ip(request)}", limit, window_seconds)
    if wait > 0:
        raise HTTPException(
            429,
            "Too many requests. Try again shortly.",
            headers={"Retry-After": str(max(1, math.ceil(wait)))},
        )


def reset_rate_limits() -> None:
    _limiter.reset()
