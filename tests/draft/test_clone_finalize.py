"""Tests for deep_clone(), finalize() and the frozen container types."""

import copy
import pickle
from types import MappingProxyType
from typing import Any, NamedTuple

import pytest

from ise.draft.Draft import DraftRegistry
from ise.draft.clone import deep_clone
from ise.draft.finalize import finalize
from ise.draft.frozen import FrozenDict, FrozenList, is_frozen


class Pair(NamedTuple):
    left: Any
    right: Any


class TestDeepClone:
    """Tests for deep_clone()"""

    def test_clone_shares_no_containers(self) -> None:
        original = {"a": {"b": [1, {"c": 2}]}}

        cloned = deep_clone(original)
        cloned["a"]["b"][1]["c"] = 3
        cloned["a"]["b"].append(4)

        assert original == {"a": {"b": [1, {"c": 2}]}}
        assert cloned["a"] is not original["a"]

    def test_leaves_are_shared(self) -> None:
        leaf = (1, 2)
        marker = object()

        cloned = deep_clone({"t": leaf, "o": marker})

        assert cloned["t"] is leaf
        assert cloned["o"] is marker

    def test_self_reference(self) -> None:
        node: dict[str, Any] = {"name": "x"}
        node["self"] = node

        cloned = deep_clone(node)

        assert cloned is not node
        assert cloned["self"] is cloned

    def test_list_cycle(self) -> None:
        items: list[Any] = [1]
        items.append(items)

        cloned = deep_clone(items)

        assert cloned[1] is cloned
        assert cloned is not items

    def test_frozen_and_readonly_mappings_become_plain(self) -> None:
        frozen = finalize({"a": [1]})
        proxy = MappingProxyType({"k": "v"})

        cloned = deep_clone({"frozen": frozen, "proxy": proxy})

        assert type(cloned["frozen"]) is dict
        assert type(cloned["frozen"]["a"]) is list
        assert type(cloned["proxy"]) is dict

    def test_draft_of_own_registry_contributes_its_node(self) -> None:
        node = {"v": 1}
        registry = DraftRegistry()
        draft = registry.draft_for(node)

        assert deep_clone({"ref": draft}, registry=registry)["ref"] is node

    def test_draft_of_another_registry_is_copied(self) -> None:
        node = {"v": 1}
        draft = DraftRegistry().draft_for(node)

        cloned = deep_clone({"ref": draft}, registry=DraftRegistry())
        cloned["ref"]["v"] = 2

        assert cloned["ref"] is not node
        assert node == {"v": 1}
        assert deep_clone([draft])[0] is not node

    def test_tuples_are_rebuilt_around_copies(self) -> None:
        named = Pair(left={"a": 1}, right=2)
        source = {"plain": ({"b": [1]}, 3), "named": named}

        cloned = deep_clone(source)

        assert cloned == source
        assert cloned["plain"][0] is not source["plain"][0]
        assert cloned["plain"][0]["b"] is not source["plain"][0]["b"]
        assert type(cloned["named"]) is Pair
        assert cloned["named"].left is not named.left

    def test_deep_chain(self) -> None:
        root: list[Any] = []
        node = root
        for _ in range(5000):
            child: list[Any] = []
            node.append(child)
            node = child

        cloned = deep_clone(root)

        depth = 0
        walked = cloned
        while walked:
            assert walked is not root
            walked = walked[0]
            depth += 1
        assert depth == 5000


class TestFinalize:
    """Tests for finalize()"""

    def test_builds_frozen_copy(self) -> None:
        source = {"a": [1, {"b": 2}]}

        result = finalize(source)

        assert result == source
        assert isinstance(result, FrozenDict)
        assert isinstance(result["a"], FrozenList)
        assert result["a"] is not source["a"]

    def test_reads_through_drafts(self) -> None:
        node: dict[str, Any] = {"items": []}
        draft = DraftRegistry().draft_for(node)
        draft["items"].append({"id": 1})

        result = finalize(draft)

        assert result == {"items": [{"id": 1}]}
        assert isinstance(result["items"][0], FrozenDict)

    def test_cycle_closes_on_frozen_node(self) -> None:
        node: dict[str, Any] = {"name": "x"}
        node["self"] = node

        result = finalize({"data": node})

        assert result["data"]["self"] is result["data"]
        assert is_frozen(result["data"])

    def test_primitives_pass_through(self) -> None:
        assert finalize(3) == 3
        assert finalize(None) is None
        assert finalize("s") == "s"

    def test_tuples_hold_frozen_containers(self) -> None:
        result = finalize({"pair": ({"n": 1}, [2]), "empty": ()})

        assert isinstance(result["pair"], tuple)
        assert isinstance(result["pair"][0], FrozenDict)
        assert isinstance(result["pair"][1], FrozenList)
        assert result["empty"] == ()

    def test_cycle_through_tuple_closes(self) -> None:
        node: dict[str, Any] = {}
        node["link"] = (node, 1)

        result = finalize(node)

        assert result["link"][0] is result
        assert result["link"][1] == 1


class TestFrozenContainers:
    """Tests for FrozenDict and FrozenList"""

    @pytest.mark.parametrize(
        "mutate",
        [
            lambda d: d.__setitem__("a", 2),
            lambda d: d.__delitem__("a"),
            lambda d: d.update(b=1),
            lambda d: d.setdefault("b", 1),
            lambda d: d.pop("a"),
            lambda d: d.popitem(),
            lambda d: d.clear(),
        ],
    )
    def test_frozen_dict_rejects_mutation(self, mutate: Any) -> None:
        frozen = finalize({"a": 1})

        with pytest.raises(TypeError, match="FrozenDict is frozen"):
            mutate(frozen)
        assert frozen == {"a": 1}

    @pytest.mark.parametrize(
        "mutate",
        [
            lambda items: items.append(4),
            lambda items: items.extend([4]),
            lambda items: items.insert(0, 0),
            lambda items: items.pop(),
            lambda items: items.remove(1),
            lambda items: items.sort(),
            lambda items: items.reverse(),
            lambda items: items.clear(),
            lambda items: items.__setitem__(0, 9),
            lambda items: items.__delitem__(0),
            lambda items: items.__iadd__([4]),
        ],
    )
    def test_frozen_list_rejects_mutation(self, mutate: Any) -> None:
        frozen = finalize([1, 2, 3])

        with pytest.raises(TypeError, match="FrozenList is frozen"):
            mutate(frozen)
        assert frozen == [1, 2, 3]

    def test_copies_return_self(self) -> None:
        frozen = finalize({"a": [1]})

        assert copy.copy(frozen) is frozen
        assert copy.deepcopy(frozen) is frozen

    def test_pickle_round_trip(self) -> None:
        frozen = finalize({"a": [1, 2], "b": {"c": None}})

        restored = pickle.loads(pickle.dumps(frozen))

        assert restored == frozen
        assert isinstance(restored, FrozenDict)
        assert isinstance(restored["a"], FrozenList)

    def test_repr(self) -> None:
        assert repr(finalize({"a": [1]})) == "FrozenDict({'a': FrozenList([1])})"
