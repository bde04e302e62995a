from __future__ import annotations

import asyncio
import inspect

from collections.abc import Mapping
from typing import Any, Awaitable, Callable, Iterable, TypeVar, Union


__all__ = (
    "action_type",
    "call",
    "resolve",
    "settle"
)


T = TypeVar("T")


async def resolve(value: Union[T, Awaitable[T]]) -> T:
    if inspect.isawaitable(value):
        return await value

    return value


async def call(function: Callable[..., Any], *args: Any) -> Any:
    return await resolve(function(*args))


async def settle(awaitables: Iterable[Awaitable[T]]) -> list[T]:
    # every child runs to completion before the first failure is raised
    results = await asyncio.gather(*awaitables, return_exceptions=True)

    for result in results:
        if isinstance(result, BaseException):
            raise result

    return results


def action_type(action: Any) -> Any:
    if isinstance(action, Mapping):
        return action.get("type")

    return getattr(action, "type", action)
