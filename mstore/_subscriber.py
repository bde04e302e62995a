from __future__ import annotations

from typing import Any, Callable

from ._aio import call, settle
from ._errors import ShapeError, ValidationError
from ._reducer import Combination
from ._tree import NodeKind, Tree, dot_path, is_mapping, node_kind, same


__all__ = (
    "combine_subscribers",
)


def combine_subscribers(subscribers: Tree, path: tuple = ()) -> Combination:
    if not is_mapping(subscribers):
        raise ValidationError(
            f"Invalid subscriber on {dot_path(path)}.",
            path=dot_path(path)
        )

    final_subscribers: dict[Any, Callable[..., Any]] = {}

    for key, value in subscribers.items():
        kind = node_kind(value)

        if kind is NodeKind.LEAF:
            final_subscribers[key] = value
        elif kind is NodeKind.BRANCH:
            final_subscribers[key] = combine_subscribers(value, (*path, key))

    if not final_subscribers:
        raise ValidationError(
            f"Invalid subscriber on {dot_path(path)}.",
            path=dot_path(path)
        )

    # last value each child was notified with
    previous_states: dict[Any, Any] = {}

    async def combination(state: Any = None) -> None:
        if state is None:
            state = {}

        if not is_mapping(state):
            raise ShapeError(dot_path(path), type(state).__name__)

        pending = []

        for key, subscriber in final_subscribers.items():
            value = state.get(key)

            if same(previous_states.get(key), value):
                continue

            if value is None:
                del previous_states[key]
            else:
                previous_states[key] = value

            pending.append(call(subscriber, value))

        await settle(pending)

    return combination
