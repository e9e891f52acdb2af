"""The produce engine: clone, draft, run recipes, finalize.

Example:
    state = {"count": 0, "user": {"name": "Alice"}}

    def rename(draft):
        draft["count"] += 1
        draft["user"]["name"] = "Bob"

    new_state = produce(state, rename)
    # new_state == {"count": 1, "user": {"name": "Bob"}}, state is unchanged
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

from ise.draft.Draft import DraftRegistry
from ise.draft.clone import deep_clone
from ise.draft.finalize import finalize
from ise.draft.node import is_draftable, unwrap
from ise.errors import RecipeFailure

type Recipe[S] = Callable[[S], Any]
"""A procedure that mutates the draft it receives. Its return value is ignored."""


def produce[S](state: S, recipe: Recipe[S]) -> S:
    """Apply `recipe` to a draft of `state` and return the frozen result.

    Raises:
        RecipeFailure: If the recipe raised. `state` is left untouched.
    """
    return _produce(state, (recipe,), "Recipe failed")


def batch_produce[S](state: S, recipes: Iterable[Recipe[S]]) -> S:
    """Apply several recipes, in order, to one shared draft.

    The state is cloned once and finalized once however many recipes there
    are, and each recipe sees the mutations of the ones before it.

    Raises:
        RecipeFailure: If any recipe raised. No partial result is returned.
    """
    return _produce(state, tuple(recipes), "Batch recipe failed")


def _produce[S](state: S, recipes: tuple[Recipe[S], ...], label: str) -> S:
    # A draft passed back in (e.g. a nested produce inside a recipe) is cloned
    # from its node, never mutated in place.
    source = unwrap(state)
    if not is_draftable(source):
        _run_recipes(recipes, state, label)
        return state

    working_copy = deep_clone(source)
    draft = DraftRegistry().wrap(working_copy)
    _run_recipes(recipes, draft, label)
    return finalize(draft)


def _run_recipes(recipes: tuple[Recipe[Any], ...], draft: Any, label: str) -> None:
    try:
        for recipe in recipes:
            recipe(draft)
    except Exception as e:
        raise RecipeFailure(f"{label}: {e}", e) from e
