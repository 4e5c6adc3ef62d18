"""In-process TTL cache for threshold lookups.

One instance is created by the application and handed to whatever needs
it; there is no module-level cache. Entries are (value, expires_at) pairs
keyed by string. When full, expired entries are purged first, then the
entry closest to expiry is evicted.

Keys are namespaced so related entries can be dropped together, e.g.
``project:<id>:measure:<id>:thresholds`` is invalidated by the prefix
``project:<id>:``.
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger("driftwatch.cache")

DEFAULT_TTL_SEC = 60.0
DEFAULT_MAX_ENTRIES = 1000


class TTLCache:
    """String-keyed cache with per-entry expiry and a size bound."""

    def __init__(
        self,
        *,
        ttl_sec: float = DEFAULT_TTL_SEC,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl_sec <= 0:
            msg = f"ttl_sec must be positive, got {ttl_sec}"
            raise ValueError(msg)
        if max_entries < 1:
            msg = f"max_entries must be at least 1, got {max_entries}"
            raise ValueError(msg)
        self._ttl = ttl_sec
        self._max_entries = max_entries
        self._clock = clock
        self._entries: dict[str, tuple[Any, float]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, key: str, value: Any, ttl_sec: float | None = None) -> None:
        ttl = self._ttl if ttl_sec is None else ttl_sec
        if key not in self._entries and len(self._entries) >= self._max_entries:
            self._make_room()
        self._entries[key] = (value, self._clock() + ttl)

    def invalidate(self, key: str) -> None:
        self._entries.pop(key, None)

    def invalidate_prefix(self, prefix: str) -> int:
        """Drop every key starting with prefix. Returns the number removed."""
        stale = [k for k in self._entries if k.startswith(prefix)]
        for k in stale:
            del self._entries[k]
        if stale:
            logger.debug("Invalidated %d cache entries under %r", len(stale), prefix)
        return len(stale)

    def clear(self) -> None:
        self._entries.clear()

    def _make_room(self) -> None:
        now = self._clock()
        expired = [k for k, (_, exp) in self._entries.items() if now >= exp]
        for k in expired:
            del self._entries[k]
        if len(self._entries) >= self._max_entries:
            victim = min(self._entries, key=lambda k: self._entries[k][1])
            del self._entries[victim]
