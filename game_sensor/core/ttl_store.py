# Time-indexed store for cooldowns, debounce windows and notification dedup
from collections import OrderedDict
from typing import Callable, Dict, Optional

from .models import now_ms


class ExpiringStore:  # Keys remember when they were last touched and expire after ttl_ms.
    # Entries are kept in touch order, so purging stops at the first fresh entry.

    def __init__(self, ttl_ms: int, clock: Optional[Callable[[], int]] = None):
        if ttl_ms <= 0:
            raise ValueError(f"ttl_ms must be positive, got {ttl_ms}")
        self.ttl_ms = ttl_ms
        self._clock = clock or now_ms
        self._entries: "OrderedDict[str, int]" = OrderedDict()

    def now(self) -> int:
        return self._clock()

    def touch(self, key: str) -> None:  # Record key as triggered now
        self._entries[key] = self.now()
        self._entries.move_to_end(key)

    def is_fresh(self, key: str) -> bool:  # True while key is inside its ttl window
        touched = self._entries.get(key)
        if touched is None:
            return False
        return self.now() - touched < self.ttl_ms

    def last_touched(self, key: str) -> Optional[int]:
        return self._entries.get(key)

    def discard(self, key: str) -> None:
        self._entries.pop(key, None)

    def purge(self) -> int:  # Drop expired entries, return how many were removed
        cutoff = self.now() - self.ttl_ms
        removed = 0
        while self._entries:
            key, touched = next(iter(self._entries.items()))
            if touched > cutoff:
                break
            del self._entries[key]
            removed += 1
        return removed

    def snapshot(self) -> Dict[str, int]:
        return dict(self._entries)

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries
