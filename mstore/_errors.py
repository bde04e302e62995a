from __future__ import annotations

from typing import Any, Optional


__all__ = (
    "ConflictError",
    "ContractViolationError",
    "DispatchAbortedError",
    "InvalidStateError",
    "ShapeError",
    "StoreError",
    "ValidationError"
)


class StoreError(Exception):
    """Base exception for all mstore errors."""


class InvalidStateError(StoreError):
    """The store was used after it was closed."""


class ValidationError(StoreError):
    """Malformed fragment, action, subscribe arguments or multiplex target."""

    def __init__(
        self,
        message: str,
        *,
        path: str = "",
        tag: Optional[str] = None
    ) -> None:
        self.path = path
        self.tag = tag
        super().__init__(message)


class ShapeError(StoreError):
    """A state node is not mapping-shaped where the tree requires it."""

    def __init__(self, path: str, received_type: str) -> None:
        self.path = path
        self.received_type = received_type
        super().__init__(
            f"Expected a mapping on state {path} "
            f"but received type \"{received_type}\". "
            "This may happen because of a conflict between "
            "the reducer or subscriber shape and the state shape."
        )


class ConflictError(StoreError):
    """Two fragments define a leaf at the same path."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(
            "Conflict when mounting different reducers on the "
            f"same node {path}."
        )


class ContractViolationError(StoreError):
    """A reducer returned None for an action."""

    def __init__(self, action_type: Any, path: str) -> None:
        self.action_type = action_type
        self.path = path
        super().__init__(
            f"Given action \"{action_type}\", "
            f"reducer on {path} returned None."
        )


class DispatchAbortedError(StoreError):
    """A pending cycle was preempted by a later dispatch."""
