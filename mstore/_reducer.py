from __future__ import annotations

import logging

from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar, Union

from ._aio import action_type, call, settle
from ._errors import ContractViolationError, ShapeError, ValidationError
from ._tree import NodeKind, Tree, dot_path, is_mapping, node_kind, same


__all__ = (
    "Combination",
    "Reducer",

    "combine_reducers"
)


A = TypeVar("A")
S = TypeVar("S")


logger = logging.getLogger(__name__)


Combination = Callable[..., Awaitable[Any]]


class Reducer(Generic[S, A]):
    """Class-based reducer.

    Instances are callable, so they can be mounted anywhere a reducer
    function is accepted.
    """

    def apply(self, state: Optional[S], action: A) -> Union[S, Awaitable[S]]:
        raise NotImplementedError

    def __call__(
        self,
        state: Optional[S],
        action: A
    ) -> Union[S, Awaitable[S]]:
        return self.apply(state, action)


def combine_reducers(reducers: Tree, path: tuple = ()) -> Combination:
    """Build one asynchronous reducer out of a nested tree of reducers.

    Leaves that are neither callables nor mappings are dropped. The returned
    ``combination(state, action)`` hands back the very ``state`` object it
    received when no leaf changed anything and the key sets agree.
    """

    if not is_mapping(reducers):
        raise ValidationError(
            f"Invalid reducer on {dot_path(path)}.",
            path=dot_path(path)
        )

    final_reducers: dict[Any, Callable[..., Any]] = {}

    for key, value in reducers.items():
        kind = node_kind(value)

        if kind is NodeKind.LEAF:
            final_reducers[key] = value
        elif kind is NodeKind.BRANCH:
            final_reducers[key] = combine_reducers(value, (*path, key))
        else:
            logger.debug(
                "Ignoring reducer on %s of type %s",
                dot_path((*path, key)),
                type(value).__name__
            )

    if not final_reducers:
        raise ValidationError(
            f"Invalid reducer on {dot_path(path)}.",
            path=dot_path(path)
        )

    final_keys = final_reducers.keys()

    async def combination(state: Any = None, action: Any = None) -> Any:
        if state is None:
            state = {}

        if not is_mapping(state):
            raise ShapeError(dot_path(path), type(state).__name__)

        async def reduce(key: Any, reducer: Callable[..., Any]) -> Any:
            next_state = await call(reducer, state.get(key), action)

            if next_state is None:
                raise ContractViolationError(
                    action_type(action),
                    dot_path((*path, key))
                )

            return next_state

        results = await settle(
            reduce(key, reducer) for key, reducer in final_reducers.items()
        )
        next_states = dict(zip(final_keys, results))

        has_changed = state.keys() != final_keys or any(
            not same(next_states[key], state.get(key)) for key in final_keys
        )

        return next_states if has_changed else state

    return combination
