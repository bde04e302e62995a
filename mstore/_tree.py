from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any, Callable, Iterable, Optional, TypeAlias, Union

from ._errors import ConflictError


__all__ = (
    "NodeKind",
    "Tree",

    "dot_path",
    "is_mapping",
    "merge_trees",
    "node_kind",
    "same",
    "subtract_trees"
)


Tree: TypeAlias = Mapping[Any, Union[Callable[..., Any], "Tree"]]


class NodeKind(Enum):
    LEAF = "leaf"
    BRANCH = "branch"


def is_mapping(value: Any) -> bool:
    return isinstance(value, Mapping)


def node_kind(value: Any) -> Optional[NodeKind]:
    if isinstance(value, Mapping):
        return NodeKind.BRANCH

    if callable(value):
        return NodeKind.LEAF

    return None


def dot_path(path: Iterable[Any]) -> str:
    return ".".join(map(str, path))


# scalars compare by value, everything else by identity
_SCALAR_TYPES = (str, int, float, bool, bytes)


def same(a: Any, b: Any) -> bool:
    if a is b:
        return True

    return type(a) is type(b) and type(a) in _SCALAR_TYPES and a == b


def merge_trees(x: Tree, y: Tree, path: tuple = ()) -> dict:
    """Union of two trees.

    Subtrees that only ``y`` has are grafted as-is, so the merged tree keeps
    references to the objects of the fragment that contributed them. This is
    what lets :func:`subtract_trees` find them again by identity.
    """

    node = dict(x)

    for key, value in y.items():
        if key not in x:
            node[key] = value

            continue

        child_path = (*path, key)

        if node_kind(x[key]) is not NodeKind.BRANCH \
                or node_kind(value) is not NodeKind.BRANCH:
            raise ConflictError(dot_path(child_path))

        node[key] = merge_trees(x[key], value, child_path)

    return node


def subtract_trees(x: Tree, y: Tree) -> dict:
    """Remove the contribution of fragment ``y`` from tree ``x``.

    Only subtrees that are the very objects ``y`` supplied are removed, so a
    structurally equal fragment mounted separately is left alone.
    """

    node = {}

    for key, value in x.items():
        if key not in y:
            node[key] = value

            continue

        other = y[key]

        if value is other:
            continue

        if node_kind(value) is NodeKind.BRANCH \
                and node_kind(other) is NodeKind.BRANCH:
            value = subtract_trees(value, other)

            if not value:
                continue

        node[key] = value

    return node
