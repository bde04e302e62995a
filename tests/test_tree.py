from __future__ import annotations

import pytest

from mstore import (
    ConflictError,
    NodeKind,
    merge_trees,
    node_kind,
    same,
    subtract_trees
)


def r1(state, action):
    return state


def r2(state, action):
    return state


def r3(state, action):
    return state


def test_node_kind_classifies_leaves_and_branches() -> None:
    assert node_kind(r1) is NodeKind.LEAF
    assert node_kind({"a": r1}) is NodeKind.BRANCH
    assert node_kind(233) is None
    assert node_kind("233") is None
    assert node_kind([r1]) is None


def test_merge_grafts_new_subtrees_by_identity() -> None:
    x = {"a": {"b": r1}}
    y = {"c": {"d": r2}}

    merged = merge_trees(x, y)

    assert merged == {"a": {"b": r1}, "c": {"d": r2}}
    assert merged["a"] is x["a"]
    assert merged["c"] is y["c"]
    assert x == {"a": {"b": r1}}


def test_merge_recurses_into_shared_branches() -> None:
    merged = merge_trees({"a": {"b": r1}}, {"a": {"c": r2}})

    assert merged == {"a": {"b": r1, "c": r2}}


def test_merge_on_disjoint_paths_is_order_independent() -> None:
    x = {"a": {"b": r1}, "d": r3}
    y = {"a": {"c": r2}}

    assert merge_trees(merge_trees({}, x), y) == merge_trees(merge_trees({}, y), x)


def test_merge_conflicts_on_leaf_paths() -> None:
    with pytest.raises(ConflictError, match=r"Conflict.*a\.b") as info:
        merge_trees({"a": {"b": r1}}, {"a": {"b": r2}})

    assert info.value.path == "a.b"

    with pytest.raises(ConflictError, match=r"Conflict.*a"):
        merge_trees({"a": r1}, {"a": {"b": r2}})

    with pytest.raises(ConflictError, match=r"Conflict.*a"):
        merge_trees({"a": {"b": r1}}, {"a": r2})


def test_subtract_removes_exactly_the_fragment() -> None:
    first = {"a": {"b": r1}}
    second = {"a": {"c": r2}}

    tree = merge_trees(merge_trees({}, first), second)

    assert subtract_trees(tree, first) == {"a": {"c": r2}}
    assert subtract_trees(tree, second) == {"a": {"b": r1}}
    assert subtract_trees(subtract_trees(tree, first), second) == {}


def test_subtract_is_idempotent() -> None:
    first = {"a": {"b": r1}}
    tree = merge_trees({"a": {"c": r2}}, first)

    once = subtract_trees(tree, first)

    assert subtract_trees(once, first) == once


def test_subtract_drops_grafted_branches_whole() -> None:
    fragment = {"x": r1}
    tree = merge_trees({"b": {"c": r2}}, {"a": fragment})

    result = subtract_trees(tree, {"a": fragment})

    assert result == {"b": {"c": r2}}
    assert result["b"] is tree["b"]


def test_subtract_keeps_leaves_it_does_not_own() -> None:
    tree = {"a": r1, "b": {"c": r2}}

    assert subtract_trees(tree, {"a": r3}) == tree
    assert subtract_trees(tree, {"b": r3}) == tree


def test_same_compares_scalars_by_value() -> None:
    assert same("".join(["al", "ice"]), "".join(["al", "ice"]))
    assert same(int("100000"), int("100000"))
    assert same(float("1.5"), float("1.5"))
    assert same(b"ab" + b"c", b"a" + b"bc")
    assert same(None, None)


def test_same_compares_everything_else_by_identity() -> None:
    items = [1, 2]

    assert same(items, items)
    assert not same([1, 2], [1, 2])
    assert not same({"a": 1}, {"a": 1})
    assert not same(1, True)
    assert not same(1, 1.0)
    assert not same("1", 1)
