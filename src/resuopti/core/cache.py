"""Bounded in-process LRU cache with per-entry expiry."""

from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from collections.abc import Callable
from typing import Any, TypeVar

from resuopti.types import CacheStats

logger = logging.getLogger(__name__)

T = TypeVar("T")

USER_NAMESPACE = "user"
METADATA_NAMESPACE = "metadata"
STATS_NAMESPACE = "stats"

NAMESPACES = frozenset({USER_NAMESPACE, METADATA_NAMESPACE, STATS_NAMESPACE})

_MISSING = object()


def cache_key(namespace: str, *parts: object) -> str:
    """Build the one and only key shape used with :class:`LRUCache`.

    ``cache_key("stats", "applications", user_id)`` gives
    ``"stats:applications:<user_id>"``. Parts may not contain the separator,
    so a key from one namespace can never equal a key from another.
    """
    if namespace not in NAMESPACES:
        raise ValueError(f"unknown cache namespace '{namespace}'")
    if not parts:
        raise ValueError("cache key needs at least one part")

    rendered = []
    for part in parts:
        text = str(part)
        if not text or ":" in text:
            raise ValueError(f"invalid cache key part {part!r}")
        rendered.append(text)
    return ":".join([namespace, *rendered])


def user_key(user_id: str) -> str:
    return cache_key(USER_NAMESPACE, "id", user_id)


def metadata_key(resume_id: str) -> str:
    return cache_key(METADATA_NAMESPACE, resume_id)


def stats_key(user_id: str) -> str:
    return cache_key(STATS_NAMESPACE, "applications", user_id)


class LRUCache:
    def __init__(
        self,
        max_entries: int = 100,
        default_ttl: float = 300.0,
        *,
        timer: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self.default_ttl = default_ttl
        self._timer = timer
        self._entries: OrderedDict[str, tuple[Any, float]] = OrderedDict()
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default

            value, expires_at = entry
            if self._timer() >= expires_at:
                del self._entries[key]
                return default

            self._entries.move_to_end(key)
            return value

    def set(self, key: str, value: Any, ttl: float | None = None) -> None:
        lifetime = self.default_ttl if ttl is None else ttl
        with self._lock:
            if key in self._entries:
                del self._entries[key]
            elif len(self._entries) >= self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("cache full, evicted key=%s", evicted)
            self._entries[key] = (value, self._timer() + lifetime)

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._entries.pop(key, None) is not None

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def clear_prefix(self, prefix: str) -> int:
        with self._lock:
            doomed = [key for key in self._entries if key.startswith(prefix)]
            for key in doomed:
                del self._entries[key]
        return len(doomed)

    def wrap(self, key: str, producer: Callable[[], T], ttl: float | None = None) -> T:
        cached = self.get(key, _MISSING)
        if cached is not _MISSING:
            return cached

        # The producer runs unlocked; concurrent misses may both produce and
        # the last set wins.
        value = producer()
        self.set(key, value, ttl)
        return value

    def stats(self) -> CacheStats:
        with self._lock:
            now = self._timer()
            expired = [key for key, (_, expires_at) in self._entries.items() if now >= expires_at]
            for key in expired:
                del self._entries[key]
            size = len(self._entries)
        return CacheStats(
            size=size,
            max_entries=self.max_entries,
            utilization=round(size / self.max_entries, 4),
        )
