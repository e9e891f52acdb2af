"""Error types raised by the produce engine and its collaborators."""

from __future__ import annotations


class ISEError(Exception):
    """Base class for every error raised by ise."""


class RecipeFailure(ISEError):
    """A recipe raised while running against a draft.

    The original exception is chained as ``__cause__``. The input state is
    untouched: recipes only ever see the private working copy.
    """

    original: Exception

    def __init__(self, message: str, original: Exception):
        super().__init__(message)
        self.original = original


class ShardMismatch(ISEError, ValueError):
    """A sharding strategy produced a different number of chunks than recipes."""

    def __init__(self, chunk_count: int, recipe_count: int):
        super().__init__(
            f"Mismatched chunks and recipes: {chunk_count} chunks, {recipe_count} recipes"
        )
        self.chunk_count = chunk_count
        self.recipe_count = recipe_count
