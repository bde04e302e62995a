from __future__ import annotations

from typing import Any, Callable, Optional

from ._aio import resolve
from ._errors import ShapeError, ValidationError
from ._reducer import Combination
from ._tree import dot_path, is_mapping, same


__all__ = (
    "multiplex_subscriber",
)


Tags = dict[str, Any]
Tracer = Callable[[Tags, Any], Tags]


def _create_leaf_tracer(tag: str) -> Tracer:
    def trace(tags: Tags, value: Any) -> Tags:
        result = {**tags, tag: value}

        # keep the tag map minimal
        if value is None:
            del result[tag]

        return result

    return trace


def _create_tracer(node: Any, path: tuple, seen: dict[str, str]) -> Tracer:
    key_tracers: dict[Any, Tracer] = {}

    for key, value in node.items():
        child_path = (*path, key)

        if isinstance(value, str):
            if value in seen:
                raise ValidationError(
                    f"Duplicate tag \"{value}\" of target on "
                    f"{dot_path(child_path)}, already used on {seen[value]}.",
                    path=dot_path(child_path),
                    tag=value
                )

            seen[value] = dot_path(child_path)
            key_tracers[key] = _create_leaf_tracer(value)
        elif is_mapping(value):
            key_tracers[key] = _create_tracer(value, child_path, seen)
        else:
            raise ValidationError(
                "Expected target to be a mapping or a tag on "
                f"{dot_path(child_path)}.",
                path=dot_path(child_path)
            )

    previous_states: dict[Any, Any] = {}

    def trace(tags: Tags, state: Optional[Any] = None) -> Tags:
        if state is None:
            state = {}

        if not is_mapping(state):
            raise ShapeError(dot_path(path), type(state).__name__)

        result = tags

        for key, key_tracer in key_tracers.items():
            value = state.get(key)

            if same(previous_states.get(key), value):
                continue

            if value is None:
                del previous_states[key]
            else:
                previous_states[key] = value

            result = key_tracer(result, value)

        return result

    return trace


def multiplex_subscriber(
    target: Any,
    subscriber: Callable[[Tags], Any]
) -> Combination:
    """Flatten the tagged leaves of ``target`` into one tag map.

    ``subscriber`` is called with the whole map whenever at least one tagged
    value changed by reference. Tags whose value became None are removed.
    """

    if not is_mapping(target):
        raise ValidationError("Expected target to be a mapping.")

    if not callable(subscriber) or is_mapping(subscriber):
        raise ValidationError("Expected subscriber to be a function.")

    tracer = _create_tracer(target, (), {})
    tags: Tags = {}

    async def notify(state: Any = None) -> None:
        nonlocal tags

        result = tracer(tags, state)

        if result is tags:
            return

        tags = result

        await resolve(subscriber(tags))

    return notify
