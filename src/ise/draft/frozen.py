"""Frozen container types used for finalized snapshots.

`FrozenDict` and `FrozenList` are real `dict` / `list` subclasses, so they compare
equal to plain containers and work anywhere a read-only dict or list is expected.
Every mutating method raises `TypeError`.

The finalizer populates them through the base class methods (`dict.__setitem__`,
`list.append`) while building the result graph, which is what lets a frozen node
be registered before its children exist and so close reference cycles.
"""

from __future__ import annotations

from typing import Any, NoReturn


def _frozen(self: object, *args: Any, **kwargs: Any) -> NoReturn:
    raise TypeError(f"{type(self).__name__} is frozen and cannot be modified")


class FrozenDict[K, V](dict[K, V]):
    """A dict that rejects mutation after construction."""

    __setitem__ = _frozen
    __delitem__ = _frozen
    __ior__ = _frozen
    clear = _frozen
    pop = _frozen
    popitem = _frozen
    setdefault = _frozen
    update = _frozen

    def __copy__(self) -> FrozenDict[K, V]:
        return self

    def __deepcopy__(self, memo: dict[int, Any]) -> FrozenDict[K, V]:
        return self

    def __reduce__(self) -> tuple[type[FrozenDict[K, V]], tuple[dict[K, V]]]:
        """Support pickling of acyclic snapshots."""
        return (FrozenDict, (dict(self),))

    def __repr__(self) -> str:
        return f"FrozenDict({dict.__repr__(self)})"


class FrozenList[T](list[T]):
    """A list that rejects mutation after construction."""

    __setitem__ = _frozen
    __delitem__ = _frozen
    __iadd__ = _frozen
    __imul__ = _frozen
    append = _frozen
    extend = _frozen
    insert = _frozen
    pop = _frozen
    remove = _frozen
    clear = _frozen
    sort = _frozen
    reverse = _frozen

    def __copy__(self) -> FrozenList[T]:
        return self

    def __deepcopy__(self, memo: dict[int, Any]) -> FrozenList[T]:
        return self

    def __reduce__(self) -> tuple[type[FrozenList[T]], tuple[list[T]]]:
        return (FrozenList, (list(self),))

    def __repr__(self) -> str:
        return f"FrozenList({list.__repr__(self)})"


def is_frozen(value: Any) -> bool:
    return isinstance(value, (FrozenDict, FrozenList))
