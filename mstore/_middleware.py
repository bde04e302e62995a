from __future__ import annotations

from typing import Any, Awaitable, Callable, Sequence

from ._aio import call


__all__ = (
    "Dispatch",
    "Middleware",

    "apply_middleware"
)


Dispatch = Callable[[Any], Awaitable[Any]]
Middleware = Callable[[Any, Dispatch], Any]


def _wrap(middleware: Middleware, next: Dispatch) -> Dispatch:
    async def dispatch(action: Any) -> Any:
        return await call(middleware, action, next)

    return dispatch


def apply_middleware(
    middleware: Sequence[Middleware],
    dispatch: Dispatch
) -> Dispatch:
    """Compose ``middleware`` around ``dispatch``, first handler outermost."""

    enhanced_dispatch = dispatch

    for handler in reversed(middleware):
        enhanced_dispatch = _wrap(handler, enhanced_dispatch)

    return enhanced_dispatch
