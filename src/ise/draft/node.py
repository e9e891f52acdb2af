"""Shared draft base class and value classification helpers.

Kept separate from `Draft.py` so the cloner and finalizer can recognise drafts
without importing the concrete draft types.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ise.draft.Draft import DraftRegistry


class Draft:
    """A mutable view over one node of a produce call's working copy.

    Drafts never own data: every read resolves against `_node` and every write
    lands on it immediately.
    """

    _node: Any
    _registry: DraftRegistry
    _touched: set[Any]

    def __init__(self, node: Any, registry: DraftRegistry):
        self._node = node
        self._registry = registry
        self._touched = set()

    def _mark(self, key: Any) -> None:
        self._touched.add(key)


def is_draft(value: Any) -> bool:
    return isinstance(value, Draft)


def unwrap(value: Any) -> Any:
    """Return the working-copy node behind a draft, or the value itself."""
    if isinstance(value, Draft):
        return value._node
    return value


def is_draftable(value: Any) -> bool:
    """True for the container types that get cloned, drafted and frozen.

    Mappings, lists and tuples are containers. Everything else is a leaf
    carried by reference.
    """
    return isinstance(value, (Mapping, list, tuple))


def touched_keys(draft: Draft) -> frozenset[Any]:
    """Keys (or list method names) written through this draft so far."""
    return frozenset(draft._touched)
