"""Iterative graph rebuilding shared by the cloner and the finalizer.

The walk keeps its own work stack, so nesting depth is bounded by memory, not
by the interpreter's recursion limit. Mapping and list shells are registered in
the memo before their children are visited, so cycles close on the new shell.
A tuple cannot exist before its items, so it is assembled once its last item is
known; a slot that reaches it earlier through a cycle is filled in then.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

type Resolver = Callable[[Any], tuple[bool, Any]]
"""Maps a value to ``(True, node)`` when `node` must be rebuilt, else ``(False, result)``."""


@dataclass(eq=False)
class _PendingTuple:
    source: tuple[Any, ...]
    items: list[Any]
    remaining: int
    waiters: list[tuple[Any, Any]] = field(default_factory=list)


def new_tuple(source: tuple[Any, ...], items: list[Any]) -> tuple[Any, ...]:
    """Build a tuple of the same type as `source`, reusing `source` when nothing changed."""
    if all(new is old for new, old in zip(items, source)):
        return source
    if hasattr(source, "_fields"):
        return type(source)._make(items)  # type: ignore[attr-defined]
    if type(source) is tuple:
        return tuple(items)
    return type(source)(items)


class _Rebuilder:
    def __init__(
        self,
        resolve: Resolver,
        new_map: Callable[[], dict[Any, Any]],
        new_list: Callable[[], list[Any]],
        memo: dict[int, Any],
    ):
        self._resolve = resolve
        self._new_map = new_map
        self._new_list = new_list
        self._memo = memo
        self._pending: dict[int, _PendingTuple] = {}

    def run(self, root: Any) -> Any:
        result: list[Any] = [None]
        work: list[tuple[Any, Any, Any]] = [(root, result, 0)]
        while work:
            value, target, slot = work.pop()
            is_node, node = self._resolve(value)
            if not is_node:
                self._deliver(target, slot, node)
                continue

            node_id = id(node)
            if node_id in self._memo:
                self._deliver(target, slot, self._memo[node_id])
                continue
            if node_id in self._pending:
                self._pending[node_id].waiters.append((target, slot))
                continue

            if isinstance(node, Mapping):
                shell = self._new_map()
                self._memo[node_id] = shell
                self._deliver(target, slot, shell)
                for key, item in node.items():
                    # Placeholder keeps insertion order while children are pending.
                    dict.__setitem__(shell, key, None)
                    work.append((item, shell, key))
            elif isinstance(node, tuple):
                if not node:
                    self._deliver(target, slot, node)
                    continue
                waiting = _PendingTuple(node, [None] * len(node), len(node), [(target, slot)])
                self._pending[node_id] = waiting
                work.extend((item, waiting, index) for index, item in enumerate(node))
            else:
                items = self._new_list()
                self._memo[node_id] = items
                self._deliver(target, slot, items)
                list.extend(items, [None] * len(node))
                work.extend((item, items, index) for index, item in enumerate(node))
        return result[0]

    def _deliver(self, target: Any, slot: Any, value: Any) -> None:
        queue = [(target, slot, value)]
        while queue:
            target, slot, value = queue.pop()
            if isinstance(target, _PendingTuple):
                target.items[slot] = value
                target.remaining -= 1
                if target.remaining == 0:
                    built = new_tuple(target.source, target.items)
                    source_id = id(target.source)
                    del self._pending[source_id]
                    self._memo[source_id] = built
                    queue.extend((waiter, index, built) for waiter, index in target.waiters)
            elif isinstance(target, dict):
                dict.__setitem__(target, slot, value)
            else:
                list.__setitem__(target, slot, value)


def rebuild(
    root: Any,
    resolve: Resolver,
    new_map: Callable[[], dict[Any, Any]],
    new_list: Callable[[], list[Any]],
    memo: dict[int, Any] | None = None,
) -> Any:
    """Rebuild every mapping, list and tuple reachable from `root`.

    Args:
        root: Value to rebuild.
        resolve: Decides, per value, whether it is a node to rebuild or a
            finished result to store as-is.
        new_map: Factory for empty mapping shells (a `dict` subclass). Shells
            are filled through `dict.__setitem__`.
        new_list: Factory for empty list shells (a `list` subclass). Shells
            are filled through `list.extend` / `list.__setitem__`.
        memo: Source node id -> rebuilt node.

    Returns:
        The rebuilt root. Shared and cyclic references in the source are shared
        and cyclic in the result.
    """
    return _Rebuilder(resolve, new_map, new_list, {} if memo is None else memo).run(root)
