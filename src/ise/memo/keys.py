"""Deterministic string keys for memoized produce calls.

`derive_key` turns an arbitrary composite value, typically the
`(state, recipe, cache_key)` tuple, into a string. Values are keyed by content
where content is all there is (primitives, lists, tuples, mappings) and by
identity token where identity is what matters (functions, frozen snapshots,
other objects).

Tokens come from an `IdentityTokens` table that never keeps its objects alive:
a `weakref.finalize` callback queues the id of a dead object, and the table
drops queued ids under its own lock before every read. An object that has
neither a token nor an address-free repr gets a single-use key, so it always
misses rather than colliding with a recycled address.
"""

from __future__ import annotations

import itertools
import re
import threading
import types
import weakref
from collections import deque
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from ise.draft.frozen import is_frozen

_PRIMITIVES = (bool, int, float, complex, str, bytes)
_ADDRESS = re.compile(r"\bat 0x[0-9a-fA-F]+")
_DONE = object()


class IdentityTokens:
    """Non-owning object identity -> stable token table.

    Safe to share between threads. Death callbacks can fire on any thread at
    any allocation, so they only append to `_dead` and never take the lock.
    """

    _tokens: dict[int, str]
    _dead: deque[int]

    def __init__(self) -> None:
        self._tokens = {}
        self._dead = deque()
        self._lock = threading.Lock()
        self._counter = itertools.count(1)

    def token_for(self, obj: object) -> str | None:
        """Return the token for `obj`, issuing one on first sight.

        Returns None when `obj` does not support weak references.
        """
        obj_id = id(obj)
        with self._lock:
            self._drop_dead()
            token = self._tokens.get(obj_id)
            if token is not None:
                return token
            try:
                weakref.finalize(obj, self._dead.append, obj_id)
            except TypeError:
                return None
            token = str(next(self._counter))
            self._tokens[obj_id] = token
            return token

    def single_use(self) -> str:
        """Return a token no other call on this table will return."""
        with self._lock:
            return f"#{next(self._counter)}"

    def _drop_dead(self) -> None:
        while self._dead:
            self._tokens.pop(self._dead.popleft(), None)

    def __len__(self) -> int:
        with self._lock:
            self._drop_dead()
            return len(self._tokens)

    def __contains__(self, obj: object) -> bool:
        with self._lock:
            self._drop_dead()
            return id(obj) in self._tokens


@dataclass(eq=False)
class _Frame:
    value: Any
    children: Iterator[Any]
    parts: list[str] = field(default_factory=list)

    def close(self) -> str:
        if isinstance(self.value, Mapping):
            entries = sorted(zip(self.parts[0::2], self.parts[1::2]))
            return "obj{" + "|".join(f"{key}:{item}" for key, item in entries) + "}"
        tag = "tuple" if isinstance(self.value, tuple) else "seq"
        return f"{tag}[{','.join(self.parts)}]"


def derive_key(value: Any, tokens: IdentityTokens) -> str:
    """Derive the cache key string for `value`.

    Precedence: None, primitives, frozen snapshots, sequences, callables,
    mappings, then any other object. A container met again while it is still
    being derived yields ``cycle:<depth>`` so derivation always terminates.
    Nesting depth is not limited by the recursion limit.
    """
    key = _leaf_key(value, tokens)
    if key is not None:
        return key

    active = {id(value): 0}
    frames = [_open(value)]
    while True:
        frame = frames[-1]
        child = next(frame.children, _DONE)
        if child is _DONE:
            frames.pop()
            del active[id(frame.value)]
            key = frame.close()
            if not frames:
                return key
            frames[-1].parts.append(key)
            continue

        key = _leaf_key(child, tokens)
        if key is None:
            child_id = id(child)
            if child_id in active:
                key = f"cycle:{active[child_id]}"
            else:
                active[child_id] = len(active)
                frames.append(_open(child))
                continue
        frame.parts.append(key)


def _open(value: Any) -> _Frame:
    if isinstance(value, Mapping):
        return _Frame(value, itertools.chain.from_iterable(value.items()))
    return _Frame(value, iter(value))


def _leaf_key(value: Any, tokens: IdentityTokens) -> str | None:
    """Key for a value with no children to walk, or None for a container."""
    if value is None:
        return "None"
    if isinstance(value, _PRIMITIVES):
        return f"{type(value).__name__}:{value!r}"

    if is_frozen(value):
        # Snapshots never change, so identity stands in for content.
        token = tokens.token_for(value)
        if token is not None:
            return f"snap:{token}"

    if isinstance(value, (list, tuple, Mapping)):
        return None
    if callable(value):
        return f"fn:{_qualname(value)}:{_callable_token(value, tokens)}"
    token = tokens.token_for(value)
    if token is not None:
        return f"{type(value).__qualname__}:{token}"
    return f"{type(value).__qualname__}:{_content_or_single_use(value, tokens)}"


def _content_or_single_use(value: Any, tokens: IdentityTokens) -> str:
    text = repr(value)
    if _ADDRESS.search(text):
        return tokens.single_use()
    return text


def _qualname(fn: Any) -> str:
    return getattr(fn, "__qualname__", None) or getattr(fn, "__name__", None) or type(fn).__qualname__


def _callable_token(fn: Any, tokens: IdentityTokens) -> str:
    # Bound methods are rebuilt on every attribute access; key them by their parts.
    if isinstance(fn, types.MethodType):
        owner = tokens.token_for(fn.__self__) or tokens.single_use()
        func = tokens.token_for(fn.__func__) or tokens.single_use()
        return f"{owner}.{func}"
    token = tokens.token_for(fn)
    if token is not None:
        return token
    return _content_or_single_use(fn, tokens)
