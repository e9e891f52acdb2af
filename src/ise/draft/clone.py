"""Cycle-safe deep copy used to build a produce call's working copy.

This is deliberately narrower than `copy.deepcopy`: only mappings, lists and
tuples are duplicated (into plain `dict` / `list` / a tuple of copies), other
leaves are shared by reference. A draft belonging to the caller's registry
contributes its working-copy node instead of a copy so that shared references
inside one produce call survive. Drafts from any other call are copied like
plain data.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ise.draft.node import Draft, is_draftable
from ise.draft.rebuild import rebuild

if TYPE_CHECKING:
    from ise.draft.Draft import DraftRegistry


def deep_clone[T](
    value: T,
    memo: dict[int, Any] | None = None,
    registry: DraftRegistry | None = None,
) -> T:
    """Duplicate every mapping, list and tuple reachable from `value`.

    Args:
        value: Any value. Non-container values are returned as-is.
        memo: Map from original node id to its clone. The clone shell is
            registered before its children are copied, so self references and
            mutual references resolve to the same clone.
        registry: The registry whose drafts may be shared by node. Without
            one, every draft met is copied.

    Returns:
        A graph that shares no mutable container with the input.
    """

    def resolve(item: Any) -> tuple[bool, Any]:
        if isinstance(item, Draft):
            if registry is not None and item._registry is registry:
                return False, item._node
            return True, item._node
        return is_draftable(item), item

    return rebuild(value, resolve, dict, list, memo)
