from __future__ import annotations

import threading
import time
from typing import Any, Dict, Hashable, Optional, Tuple


class ReadCache:
    """Time-boxed cache for hot, rarely changing remote reads."""

    def __init__(self) -> None:
        self._entries: Dict[Hashable, Tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: Hashable, max_age: float) -> Optional[Any]:
        if max_age <= 0:
            return None
        now = time.monotonic()
        with self._lock:
            entry = self._entries.get(key)
            if not entry:
                return None
            stored_at, value = entry
            if now - stored_at > max_age:
                self._entries.pop(key, None)
                return None
            return value

    def put(self, key: Hashable, value: Any) -> None:
        with self._lock:
            self._entries[key] = (time.monotonic(), value)

    def invalidate(self, *keys: Hashable) -> None:
        with self._lock:
            for key in keys:
                self._entries.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
