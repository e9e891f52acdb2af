"""Shard a state, produce each chunk independently, merge the results.

Chunks share no mutable data (every `produce` works on its own clone), so they
can run on an executor. The merged state is finalized into a snapshot.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Any

from glom import assign, glom

from ise.draft.finalize import finalize
from ise.errors import ShardMismatch
from ise.produce import Recipe, produce


@dataclass(frozen=True)
class ShardingStrategy[S]:
    """A pair of pure functions that split a state and put it back together.

    `merge(shard(state))` should equal `state`.
    """

    shard: Callable[[S], list[Any]]
    merge: Callable[[list[Any]], S]


def default_sharding_strategy[S]() -> ShardingStrategy[S]:
    """One `{key: value}` chunk per top-level key; non-mappings are one chunk."""

    def shard(state: S) -> list[Any]:
        if not isinstance(state, Mapping):
            return [state]
        return [{key: value} for key, value in state.items()]

    def merge(chunks: list[Any]) -> S:
        if len(chunks) == 1 and not isinstance(chunks[0], Mapping):
            return chunks[0]
        merged: dict[Any, Any] = {}
        for chunk in chunks:
            merged.update(chunk)
        return merged  # type: ignore[return-value]

    return ShardingStrategy(shard, merge)


def path_sharding_strategy[S](*paths: str) -> ShardingStrategy[S]:
    """One chunk per dotted glom path, e.g. ``"user.profile"``.

    Each chunk is a nested fragment holding only its path, so a recipe for
    ``"user.profile"`` sees ``{"user": {"profile": ...}}``. The paths must
    partition the state for `merge(shard(state))` to round-trip.
    """
    if not paths:
        raise ValueError("path_sharding_strategy needs at least one path")

    def shard(state: S) -> list[Any]:
        chunks: list[Any] = []
        for path in paths:
            chunk: dict[str, Any] = {}
            assign(chunk, path, glom(state, path), missing=dict)
            chunks.append(chunk)
        return chunks

    def merge(chunks: list[Any]) -> S:
        merged: dict[str, Any] = {}
        for path, chunk in zip(paths, chunks, strict=True):
            assign(merged, path, glom(chunk, path), missing=dict)
        return merged  # type: ignore[return-value]

    return ShardingStrategy(shard, merge)


def produce_parallel[S](
    state: S,
    recipes: Sequence[Recipe[Any]],
    strategy: ShardingStrategy[S] | None = None,
    executor: Executor | None = None,
) -> S:
    """Run `recipes[i]` against chunk `i` of `state` and merge the results.

    Args:
        state: The snapshot to update.
        recipes: One recipe per chunk, in chunk order.
        strategy: How to shard and merge. Defaults to top-level keys.
        executor: Optional executor to run the per-chunk produce calls on.

    Raises:
        ShardMismatch: Before any chunk is processed, if the chunk count and
            recipe count differ.
        RecipeFailure: If any chunk's recipe raised.
    """
    strategy = strategy if strategy is not None else default_sharding_strategy()
    chunks = strategy.shard(state)
    if len(chunks) != len(recipes):
        raise ShardMismatch(len(chunks), len(recipes))

    if executor is None:
        results = [produce(chunk, recipe) for chunk, recipe in zip(chunks, recipes)]
    else:
        results = list(executor.map(produce, chunks, recipes))

    return finalize(strategy.merge(results))
