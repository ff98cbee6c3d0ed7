"""Optional bounded result cache, owned and injected by the caller."""

from __future__ import annotations

import hashlib
import json
import threading
from collections import OrderedDict
from typing import TYPE_CHECKING

from lineweaver.config import ProcessingConfig

if TYPE_CHECKING:
    from lineweaver.engine import ProcessingResult


def cache_key(text: str, mode: str, config: ProcessingConfig) -> str:
    """Stable key over the full text, mode and configuration."""
    payload = json.dumps({"mode": mode, "config": config.fingerprint()}, sort_keys=True)
    digest = hashlib.sha256()
    digest.update(payload.encode())
    digest.update(b"\0")
    digest.update(text.encode("utf-8", "surrogatepass"))
    return f"{mode}:{digest.hexdigest()[:32]}"


class ResultCache:
    """Fixed-capacity mapping of cache keys to results.

    When full, the least recently used entry is evicted. Safe to share
    between threads.
    """

    def __init__(self, capacity: int = 128) -> None:
        if capacity < 1:
            raise ValueError(f"Cache capacity must be at least 1, got {capacity}")
        self.capacity = capacity
        self._entries: OrderedDict[str, ProcessingResult] = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> ProcessingResult | None:
        with self._lock:
            result = self._entries.get(key)
            if result is None:
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
            return result

    def put(self, key: str, result: ProcessingResult) -> None:
        with self._lock:
            self._entries[key] = result
            self._entries.move_to_end(key)
            while len(self._entries) > self.capacity:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries
