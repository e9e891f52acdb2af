"""Memoized produce over an LRU cache.

A process-wide default cache backs the module-level functions. Pass `cache=`
to use an isolated `LRUCache` instead (tests, per-store caches).

Example:
    def increment(draft):
        draft["count"] += 1

    state = {"count": 0}
    first = produce_memoized(state, increment)
    second = produce_memoized(state, increment)  # served from the cache
"""

from __future__ import annotations

from typing import Any

from ise.memo.LRUCache import CacheOptions, CacheStats, LRUCache
from ise.produce import Recipe, produce

_default_cache: LRUCache[Any, Any] = LRUCache(CacheOptions(max_size=1000))

_MISSING = object()


def get_default_cache() -> LRUCache[Any, Any]:
    return _default_cache


def produce_memoized[S](
    state: S,
    recipe: Recipe[S],
    *,
    cache_key: Any = None,
    skip_cache: bool = False,
    cache: LRUCache[Any, Any] | None = None,
) -> S:
    """`produce`, reusing the result of an earlier call with the same inputs.

    Args:
        state: The snapshot to update.
        recipe: The mutation procedure. Keyed by identity, so pass the same
            function object to get hits.
        cache_key: Extra discriminator mixed into the derived key.
        skip_cache: Bypass the cache entirely for this call.
        cache: Cache to use instead of the default one.

    Raises:
        RecipeFailure: On a miss whose recipe raised. Nothing is cached.
    """
    if skip_cache:
        return produce(state, recipe)

    target = _default_cache if cache is None else cache
    key = (state, recipe, cache_key)

    cached = target.get(key, _MISSING)
    if cached is not _MISSING:
        return cached

    result = produce(state, recipe)
    target.set(key, result)
    return result


def clear_cache(cache: LRUCache[Any, Any] | None = None) -> None:
    (_default_cache if cache is None else cache).clear()


def cache_stats(cache: LRUCache[Any, Any] | None = None) -> CacheStats:
    return (_default_cache if cache is None else cache).stats()
