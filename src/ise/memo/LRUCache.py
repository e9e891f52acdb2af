"""LRU cache with optional TTL, keyed by derived composite keys.

Entries live in a doubly linked recency list (head = most recently used) and a
hash index from derived key string to list entry. Both are only mutated under
the cache's lock. The identity token table used for key derivation guards
itself with its own lock.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from ise.memo.keys import IdentityTokens, derive_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheOptions:
    """Configuration for an `LRUCache`.

    Attributes:
        max_size: Maximum number of entries. Must be at least 1.
        ttl: Seconds an entry stays valid, or None for no expiry.
        clock: Monotonic time source in seconds. Override in tests.
    """

    max_size: int = 1000
    ttl: float | None = None
    clock: Callable[[], float] = field(default=time.monotonic)

    def validate(self) -> None:
        if self.max_size < 1:
            raise ValueError(f"max_size must be at least 1, got {self.max_size}")
        if self.ttl is not None and self.ttl <= 0:
            raise ValueError(f"ttl must be positive or None, got {self.ttl}")


@dataclass(frozen=True)
class CacheStats:
    size: int
    capacity: int
    hit_rate: float


@dataclass(eq=False)
class _Entry:
    key: str
    value: Any
    stored_at: float
    prev: _Entry | None = None
    next: _Entry | None = None


class LRUCache[K, V]:
    """Strict least-recently-used cache.

    Lookups and inserts take composite keys of any shape; `derive_key` turns
    them into strings with this cache's own identity token table.
    """

    _options: CacheOptions
    _index: dict[str, _Entry]
    _head: _Entry | None
    _tail: _Entry | None

    def __init__(self, options: CacheOptions | None = None):
        self._options = options if options is not None else CacheOptions()
        self._options.validate()
        self._index = {}
        self._head = None
        self._tail = None
        self._tokens = IdentityTokens()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    @property
    def capacity(self) -> int:
        return self._options.max_size

    def derive_key(self, key: K) -> str:
        with self._lock:
            return derive_key(key, self._tokens)

    def get(self, key: K, default: Any = None) -> V | Any:
        """Return the cached value for `key`, or `default` if absent or expired.

        A hit moves the entry to the most-recently-used end.
        """
        with self._lock:
            string_key = derive_key(key, self._tokens)
            entry = self._index.get(string_key)
            if entry is None:
                self._misses += 1
                logger.debug("memo miss %.80s", string_key)
                return default

            if self._is_expired(entry):
                self._remove(entry)
                self._misses += 1
                logger.debug("memo expired %.80s", string_key)
                return default

            self._hits += 1
            self._move_to_front(entry)
            logger.debug("memo hit %.80s", string_key)
            return entry.value

    def set(self, key: K, value: V) -> None:
        """Store `value` under `key`, evicting the LRU entry when full."""
        with self._lock:
            string_key = derive_key(key, self._tokens)
            now = self._options.clock()

            entry = self._index.get(string_key)
            if entry is not None:
                entry.value = value
                entry.stored_at = now
                self._move_to_front(entry)
                return

            if len(self._index) >= self._options.max_size:
                self._evict_lru()

            entry = _Entry(string_key, value, now)
            self._index[string_key] = entry
            self._push_front(entry)

    def clear(self) -> None:
        """Drop every entry and reset the hit/miss counters."""
        with self._lock:
            self._index.clear()
            self._head = None
            self._tail = None
            self._hits = 0
            self._misses = 0

    def stats(self) -> CacheStats:
        with self._lock:
            lookups = self._hits + self._misses
            hit_rate = self._hits / lookups if lookups else 0.0
            return CacheStats(
                size=len(self._index),
                capacity=self._options.max_size,
                hit_rate=hit_rate,
            )

    def keys(self) -> list[str]:
        """Derived keys from most to least recently used."""
        with self._lock:
            keys: list[str] = []
            entry = self._head
            while entry is not None:
                keys.append(entry.key)
                entry = entry.next
            return keys

    def __len__(self) -> int:
        return len(self._index)

    def __contains__(self, key: object) -> bool:
        """Membership without touching recency or hit statistics."""
        with self._lock:
            entry = self._index.get(derive_key(key, self._tokens))
            return entry is not None and not self._is_expired(entry)

    def _is_expired(self, entry: _Entry) -> bool:
        ttl = self._options.ttl
        return ttl is not None and self._options.clock() - entry.stored_at >= ttl

    def _push_front(self, entry: _Entry) -> None:
        entry.prev = None
        entry.next = self._head
        if self._head is not None:
            self._head.prev = entry
        self._head = entry
        if self._tail is None:
            self._tail = entry

    def _unlink(self, entry: _Entry) -> None:
        if entry.prev is not None:
            entry.prev.next = entry.next
        else:
            self._head = entry.next
        if entry.next is not None:
            entry.next.prev = entry.prev
        else:
            self._tail = entry.prev
        entry.prev = None
        entry.next = None

    def _move_to_front(self, entry: _Entry) -> None:
        if entry is self._head:
            return
        self._unlink(entry)
        self._push_front(entry)

    def _remove(self, entry: _Entry) -> None:
        self._unlink(entry)
        del self._index[entry.key]

    def _evict_lru(self) -> None:
        if self._tail is None:
            return
        logger.debug("memo evict %.80s", self._tail.key)
        self._remove(self._tail)
