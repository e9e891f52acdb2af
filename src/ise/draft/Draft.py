"""Draft views over a produce call's working copy.

A recipe never touches the working copy directly. It receives a `DraftDict` or
`DraftList` for the root node, and nested containers are wrapped lazily the first
time they are read. The `DraftRegistry` hands out exactly one draft per working
copy node, so `draft["user"] is draft["user"]` holds for the whole call.

Example:
    registry = DraftRegistry()
    draft = registry.draft_for({"todos": []})
    draft["todos"].append({"text": "write docs"})
    draft["todos"][0]["done"] = True
"""

from __future__ import annotations

from collections.abc import (
    Callable,
    Iterable,
    Iterator,
    Mapping,
    MutableMapping,
    MutableSequence,
)
from typing import Any, SupportsIndex, overload

from ise.draft.clone import deep_clone
from ise.draft.node import Draft, unwrap
from ise.draft.rebuild import new_tuple


class DraftRegistry:
    """Per-call node registry: working copy node id -> its draft.

    Drafts hold their node, so a registered id cannot be reused by another
    object while the registry is alive.
    """

    _drafts: dict[int, Draft]

    def __init__(self) -> None:
        self._drafts = {}

    def draft_for(self, node: dict[Any, Any] | list[Any]) -> Draft:
        existing = self._drafts.get(id(node))
        if existing is not None:
            return existing
        draft: Draft
        if isinstance(node, dict):
            draft = DraftDict(node, self)
        else:
            draft = DraftList(node, self)
        self._drafts[id(node)] = draft
        return draft

    def wrap(self, value: Any) -> Any:
        """Return the draft for a container node, or the leaf value unchanged.

        Tuples cannot be drafted themselves, so reading one returns a tuple of
        the wrapped items.
        """
        if isinstance(value, (dict, list)):
            return self.draft_for(value)
        if isinstance(value, tuple):
            return new_tuple(value, [self.wrap(item) for item in value])
        return value

    def adopt(self, value: Any) -> Any:
        """Turn a value being written through a draft into working copy data.

        Drafts from this call contribute their node (preserving shared
        references). Anything else, drafts of other calls included, is
        deep-cloned so it can never be mutated through this draft afterwards.
        """
        return deep_clone(value, registry=self)

    def __len__(self) -> int:
        return len(self._drafts)


class DraftDict[K, V](Draft, MutableMapping[K, V]):
    """Draft over a dict node."""

    _node: dict[K, Any]

    def __getitem__(self, key: K) -> V:
        return self._registry.wrap(self._node[key])

    def __setitem__(self, key: K, value: V) -> None:
        self._mark(key)
        self._node[key] = self._registry.adopt(value)

    def __delitem__(self, key: K) -> None:
        self._mark(key)
        del self._node[key]

    def __iter__(self) -> Iterator[K]:
        return iter(self._node)

    def __len__(self) -> int:
        return len(self._node)

    def __contains__(self, key: object) -> bool:
        return key in self._node

    def setdefault(self, key: K, default: Any = None) -> V:
        # The stored value is a clone of `default`, so hand back the draft of it.
        if key not in self._node:
            self[key] = default
        return self[key]

    def clear(self) -> None:
        self._touched.update(self._node)
        self._node.clear()

    def copy(self) -> dict[K, Any]:
        """Return a plain dict detached from the working copy."""
        return deep_clone(self._node)

    def __or__(self, other: object) -> dict[K, Any]:
        if not isinstance(unwrap(other), Mapping):
            return NotImplemented
        merged = self.copy()
        merged.update(deep_clone(other))
        return merged

    def __ror__(self, other: object) -> dict[Any, Any]:
        if not isinstance(unwrap(other), Mapping):
            return NotImplemented
        merged: dict[Any, Any] = deep_clone(other)
        merged.update(self.copy())
        return merged

    def __ior__(self, other: Any) -> DraftDict[K, V]:
        self.update(other)
        return self

    def __eq__(self, other: object) -> bool:
        return self._node == unwrap(other)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"DraftDict({self._node!r})"


class DraftList[T](Draft, MutableSequence[T]):
    """Draft over a list node.

    The list mutation methods run directly against the underlying list and
    record their own name as touched, instead of going through per-element
    writes.
    """

    _node: list[Any]

    @overload
    def __getitem__(self, index: SupportsIndex) -> T: ...

    @overload
    def __getitem__(self, index: slice) -> list[T]: ...

    def __getitem__(self, index: SupportsIndex | slice) -> T | list[T]:
        if isinstance(index, slice):
            return [self._registry.wrap(item) for item in self._node[index]]
        return self._registry.wrap(self._node[index])

    def __setitem__(self, index: Any, value: Any) -> None:
        if isinstance(index, slice):
            self._mark("slice")
            self._node[index] = [self._registry.adopt(item) for item in value]
        else:
            self._mark(index)
            self._node[index] = self._registry.adopt(value)

    def __delitem__(self, index: SupportsIndex | slice) -> None:
        self._mark("slice" if isinstance(index, slice) else index)
        del self._node[index]

    def __len__(self) -> int:
        return len(self._node)

    def __iter__(self) -> Iterator[T]:
        for item in self._node:
            yield self._registry.wrap(item)

    def __contains__(self, value: object) -> bool:
        return unwrap(value) in self._node

    def insert(self, index: SupportsIndex, value: T) -> None:
        self._mark("insert")
        self._node.insert(index, self._registry.adopt(value))

    def append(self, value: T) -> None:
        self._mark("append")
        self._node.append(self._registry.adopt(value))

    def extend(self, values: Iterable[T]) -> None:
        self._mark("extend")
        # Materialise first: `values` may be this very draft.
        adopted = [self._registry.adopt(value) for value in values]
        self._node.extend(adopted)

    def pop(self, index: SupportsIndex = -1) -> T:
        self._mark("pop")
        return self._registry.wrap(self._node.pop(index))

    def remove(self, value: T) -> None:
        self._mark("remove")
        self._node.remove(unwrap(value))

    def clear(self) -> None:
        self._mark("clear")
        self._node.clear()

    def reverse(self) -> None:
        self._mark("reverse")
        self._node.reverse()

    def sort(self, *, key: Callable[[T], Any] | None = None, reverse: bool = False) -> None:
        self._mark("sort")
        if key is None:
            self._node.sort(reverse=reverse)
        else:
            wrap = self._registry.wrap
            self._node.sort(key=lambda item: key(wrap(item)), reverse=reverse)

    def __iadd__(self, values: Iterable[T]) -> DraftList[T]:  # type: ignore[override]
        self.extend(values)
        return self

    def __imul__(self, times: SupportsIndex) -> DraftList[T]:
        self._mark("imul")
        self._node *= times
        return self

    def copy(self) -> list[Any]:
        """Return a plain list detached from the working copy."""
        return deep_clone(self._node)

    def __add__(self, other: object) -> list[Any]:
        if not isinstance(unwrap(other), list):
            return NotImplemented
        return self.copy() + deep_clone(other)

    def __radd__(self, other: object) -> list[Any]:
        if not isinstance(unwrap(other), list):
            return NotImplemented
        return deep_clone(other) + self.copy()

    def __mul__(self, times: SupportsIndex) -> list[Any]:
        return self.copy() * times

    __rmul__ = __mul__

    def __lt__(self, other: object) -> bool:
        if not isinstance(unwrap(other), list):
            return NotImplemented
        return self._node < unwrap(other)

    def __le__(self, other: object) -> bool:
        if not isinstance(unwrap(other), list):
            return NotImplemented
        return self._node <= unwrap(other)

    def __gt__(self, other: object) -> bool:
        if not isinstance(unwrap(other), list):
            return NotImplemented
        return self._node > unwrap(other)

    def __ge__(self, other: object) -> bool:
        if not isinstance(unwrap(other), list):
            return NotImplemented
        return self._node >= unwrap(other)

    def __eq__(self, other: object) -> bool:
        return self._node == unwrap(other)

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"DraftList({self._node!r})"
