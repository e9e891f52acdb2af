"""Queue recipes against one state and apply them in a single produce pass."""

from __future__ import annotations

from ise.produce import Recipe, batch_produce


class BatchQueue[S]:
    """Collects recipes for high-frequency updates.

    `execute()` clones and finalizes once no matter how many recipes were
    queued. The queue is not drained by `execute()`, so it can be replayed.

    Example:
        queue = create_batch_queue({"count": 0})
        queue.enqueue(lambda d: d.__setitem__("count", d["count"] + 1))
        new_state = queue.execute()
    """

    _state: S
    _queue: list[Recipe[S]]

    def __init__(self, state: S):
        self._state = state
        self._queue = []

    def enqueue(self, recipe: Recipe[S]) -> BatchQueue[S]:
        self._queue.append(recipe)
        return self

    def execute(self) -> S:
        return batch_produce(self._state, self._queue)

    def clear(self) -> None:
        self._queue.clear()

    def __len__(self) -> int:
        return len(self._queue)


def create_batch_queue[S](state: S) -> BatchQueue[S]:
    return BatchQueue(state)
