"""Describe what a produce call changed, as a deepdiff `Delta`.

Frozen snapshot containers are diffed as the plain containers they subclass,
so an unchanged subtree never shows up as a type change.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from deepdiff import DeepDiff, Delta, parse_path

from ise.draft.frozen import FrozenDict, FrozenList
from ise.produce import Recipe, produce

_TYPE_GROUPS = [(dict, FrozenDict), (list, FrozenList)]


def describe_changes(old: Any, new: Any) -> Delta:
    """Return the Delta that turns `old` into `new`. Empty when they are equal."""
    diff = DeepDiff(old, new, ignore_type_in_groups=_TYPE_GROUPS)
    if not diff:
        return Delta({})
    return Delta(diff)


def produce_with_delta[S](state: S, recipe: Recipe[S]) -> tuple[S, Delta]:
    """`produce`, also returning the Delta between `state` and the result."""
    new_state = produce(state, recipe)
    return new_state, describe_changes(state, new_state)


def _normalize_delta_path(delta_path: str) -> str:
    """Convert a deepdiff path like root['user']['name'] to 'user.name'."""
    parts = parse_path(delta_path)
    return ".".join(str(p) for p in parts)


def changed_paths(delta: Delta) -> set[str]:
    """Dotted paths of every change recorded in `delta`. '' means the root."""
    paths: set[str] = set()
    if delta.diff:
        for change_type in delta.diff.values():
            if isinstance(change_type, dict):
                for delta_path in change_type:
                    paths.add(_normalize_delta_path(delta_path))
    return paths


def make_affects(delta: Delta) -> Callable[[str], bool]:
    """Create an `affects(path)` predicate from a Delta.

    A watched path is affected when a change happened at it, inside it, or at
    one of its ancestors. Matching is per dotted segment, so 'user' does not
    match a change to 'username'.
    """
    normalized_paths = changed_paths(delta)

    def affects(path: str) -> bool:
        for changed in normalized_paths:
            if changed == "" or changed == path:
                return True
            if changed.startswith(path + ".") or path.startswith(changed + "."):
                return True
        return False

    return affects
