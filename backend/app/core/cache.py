"""Short-lived in-process read cache.

Keys are namespaced by entity family (``"blog_posts:..."``) so a write to one
family only drops that family's entries. Every cached value must be
reproducible from the database; the cache is never a source of truth.
"""

import hashlib
import json
import logging
import threading
import time
from typing import Any, Callable, Dict, Tuple

logger = logging.getLogger(__name__)


class ReadCache:
    def __init__(self, clock: Callable[[], float] = time.monotonic, max_entries: int = 1024):
        self._entries: Dict[str, Tuple[float, Any]] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self._max_entries = max_entries

    def remember(self, key: str, ttl_seconds: int, compute: Callable[[], Any]) -> Any:
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry[0] > now:
                return entry[1]
        value = compute()
        with self._lock:
            self._prune(now)
            self._entries[key] = (now + ttl_seconds, value)
        return value

    def _prune(self, now: float) -> None:
        # caller holds the lock
        for key in [key for key, (expires_at, _) in self._entries.items() if expires_at <= now]:
            del self._entries[key]
        overflow = len(self._entries) - self._max_entries + 1
        if overflow > 0:
            soonest = sorted(self._entries, key=lambda key: self._entries[key][0])[:overflow]
            for key in soonest:
                del self._entries[key]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def forget(self, key: str) -> None:
        with self._lock:
            self._entries.pop(key, None)

    def forget_family(self, family: str) -> int:
        prefix = f"{family}:"
        with self._lock:
            doomed = [key for key in self._entries if key.startswith(prefix)]
            for key in doomed:
                del self._entries[key]
        if doomed:
            logger.debug("Dropped %d cached entries for %s", len(doomed), family)
        return len(doomed)

    def flush(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, key: str) -> bool:
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and entry[0] > self._clock()


def cache_key(family: str, name: str, params: Dict[str, Any] | None = None) -> str:
    """Build ``family:name[:digest]`` where the digest covers the request parameters."""
    if not params:
        return f"{family}:{name}"
    digest = hashlib.md5(json.dumps(params, sort_keys=True, default=str).encode("utf-8")).hexdigest()
    return f"{family}:{name}:{digest}"


read_cache = ReadCache()
