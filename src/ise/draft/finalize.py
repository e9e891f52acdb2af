"""Turn a (possibly mutated) draft graph into a deeply frozen snapshot."""

from __future__ import annotations

from typing import Any

from ise.draft.frozen import FrozenDict, FrozenList
from ise.draft.node import is_draftable, unwrap
from ise.draft.rebuild import rebuild


def finalize[T](value: T) -> T:
    """Build a brand-new frozen graph from `value`.

    Drafts are read through to their working-copy nodes. Shared and cyclic
    references in the source become shared and cyclic references in the result.
    Tuples are rebuilt around their finalized items. Other leaves pass through
    unchanged.
    """
    return rebuild(value, _resolve, FrozenDict, FrozenList)


def _resolve(value: Any) -> tuple[bool, Any]:
    node = unwrap(value)
    return is_draftable(node), node
