from __future__ import annotations

from typing import Any, Callable


def default(value: Any) -> Callable[[Any, Any], Any]:
    def reducer(state: Any, action: Any) -> Any:
        return value if state is None else state

    return reducer


class Spy:
    def __init__(self, side_effect: Callable[..., Any] | None = None) -> None:
        self.calls: list[tuple[Any, ...]] = []
        self._side_effect = side_effect

    def __call__(self, *args: Any) -> Any:
        self.calls.append(args)

        if self._side_effect is not None:
            return self._side_effect(*args)

        return None

    @property
    def call_count(self) -> int:
        return len(self.calls)

    @property
    def last(self) -> Any:
        return self.calls[-1][0] if self.calls else None
