from __future__ import annotations
from collections import OrderedDict
import threading, time
from typing import Any, Callable, Optional, Tuple

class TTLCache:
    """
    Bounded in-process memo with per-entry expiry.

    Owned by the calling layer (HTTP routes); the engine never sees it.
    Oldest entries are evicted first once ``capacity`` is exceeded.
    """
    def __init__(self, ttl_seconds: float, capacity: int = 512,
                 clock: Callable[[], float] = time.monotonic):
        self.ttl = float(ttl_seconds)
        self.capacity = int(capacity)
        self.clock = clock
        self.store: "OrderedDict[str, Tuple[float, Any]]" = OrderedDict()
        self.lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self.lock:
            hit = self.store.get(key)
            if hit is None:
                return None
            expires_at, value = hit
            if self.clock() >= expires_at:
                del self.store[key]
                return None
            self.store.move_to_end(key)
            return value

    def set(self, key: str, value: Any):
        with self.lock:
            self.store[key] = (self.clock() + self.ttl, value)
            self.store.move_to_end(key)
            while len(self.store) > self.capacity:
                self.store.popitem(last=False)

    def purge_expired(self) -> int:
        now = self.clock()
        with self.lock:
            dead = [k for k, (exp, _) in self.store.items() if now >= exp]
            for k in dead:
                del self.store[k]
        return len(dead)

    def __len__(self) -> int:
        with self.lock:
            return len(self.store)
