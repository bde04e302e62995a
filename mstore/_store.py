from __future__ import annotations

import asyncio
import logging

from asyncio import Future, Queue, Task
from contextvars import ContextVar
from typing import Any, Callable, Optional, Sequence

from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ._aio import call, resolve, settle
from ._errors import (
    DispatchAbortedError,
    InvalidStateError,
    ValidationError
)
from ._middleware import Dispatch, Middleware, apply_middleware
from ._multiplex import multiplex_subscriber
from ._reducer import Combination, combine_reducers
from ._subscriber import combine_subscribers
from ._tree import is_mapping, merge_trees, node_kind, subtract_trees


__all__ = (
    "INIT_ACTION_TYPE",
    "Store",
    "StoreConfig",
    "Unmount",
    "Unsubscribe",

    "create_store"
)


logger = logging.getLogger(__name__)


INIT_ACTION_TYPE = "@@mstore/INIT"

# every fragment is grafted under this key, so a single top-level reducer or
# subscriber is just another tree
_ROOT = "root"


Unmount = Callable[[], None]
Unsubscribe = Callable[[], None]


class StoreConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str = "mstore"
    init_action_type: str = INIT_ACTION_TYPE

    @field_validator("init_action_type")
    @classmethod
    def validate_init_action_type(cls, value: str) -> str:
        if not value.startswith("@@"):
            raise ValueError(
                "init_action_type must start with \"@@\" so it cannot "
                "collide with application action types"
            )

        return value


class _Cycle(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: UUID = Field(default_factory=uuid4)
    action: Any
    future: Future


class _Request(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: UUID = Field(default_factory=uuid4)
    cycle: Optional[_Cycle] = None
    aborted: bool = False


# the dispatch call a pipeline task belongs to, so the base dispatch can bind
# its cycle to it even after middleware has replaced the action
_current_request: ContextVar[Optional[_Request]] = ContextVar(
    "mstore_current_request",
    default=None
)


class Store:
    config: StoreConfig

    @property
    def closed(self) -> bool:
        raise NotImplementedError

    @property
    def version(self) -> Optional[UUID]:
        raise NotImplementedError

    @property
    def reducer_tree(self) -> Any:
        raise NotImplementedError

    def get_state(self) -> Any:
        raise NotImplementedError

    def init_state(self) -> Future:
        raise NotImplementedError

    def mount_reducer(self, reducer: Any) -> Unmount:
        raise NotImplementedError

    def subscribe(self, *listener: Any) -> Unsubscribe:
        raise NotImplementedError

    def dispatch(self, action: Any, *, preempt: bool = False) -> Future:
        raise NotImplementedError

    async def close(self) -> None:
        raise NotImplementedError

    async def __aenter__(self) -> Store:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


async def _empty_reducer(state: Any, action: Any) -> dict:
    return {}


def _validate_action(action: Any) -> None:
    if not is_mapping(action):
        raise ValidationError("Actions must be mappings.")

    if action.get("type") is None:
        raise ValidationError(
            "Actions may not have an undefined \"type\" property."
        )


class _DefaultStore(Store):
    _state: Any
    _version: Optional[UUID]

    _reducer: Combination
    _reducer_tree: dict

    _listeners: list[Combination]

    _pipeline: Dispatch
    _queue: Optional[Queue[_Cycle]]
    _worker: Optional[Task]
    _current: Optional[_Cycle]
    _last_request: Optional[_Request]

    _closed: bool

    def __init__(
        self,
        middleware: Sequence[Middleware],
        config: StoreConfig
    ) -> None:
        self.config = config

        self._state = {}
        self._version = None

        self._reducer = _empty_reducer
        self._reducer_tree = {}

        self._listeners = []

        self._pipeline = apply_middleware(middleware, self._enqueue)
        self._queue = None
        self._worker = None
        self._current = None
        self._last_request = None

        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def version(self) -> Optional[UUID]:
        return self._version

    @property
    def reducer_tree(self) -> Any:
        return self._reducer_tree.get(_ROOT)

    def _ensure_open(self) -> None:
        if self._closed:
            raise InvalidStateError(f"Store {self.config.name} is closed.")

    def get_state(self) -> Any:
        return self._state.get(_ROOT)

    def init_state(self) -> Future:
        return self.dispatch({"type": self.config.init_action_type})

    def mount_reducer(self, reducer: Any) -> Unmount:
        self._ensure_open()

        if node_kind(reducer) is None:
            raise ValidationError(
                "Expected reducer to be a function or a mapping."
            )

        fragment = {_ROOT: reducer}

        reducer_tree = merge_trees(self._reducer_tree, fragment)
        compiled_reducer = combine_reducers(reducer_tree)

        self._reducer_tree = reducer_tree
        self._reducer = compiled_reducer

        logger.debug("%s: mounted reducer %r", self.config.name, reducer)

        unmounted = False

        def unmount() -> None:
            nonlocal unmounted

            if unmounted or self._closed:
                return

            self._reducer_tree = subtract_trees(self._reducer_tree, fragment)

            if self._reducer_tree:
                self._reducer = combine_reducers(self._reducer_tree)
            else:
                self._reducer = _empty_reducer

            unmounted = True

            logger.debug(
                "%s: unmounted reducer %r",
                self.config.name,
                reducer
            )

        return unmount

    def subscribe(self, *listener: Any) -> Unsubscribe:
        self._ensure_open()

        notifier: Combination

        if len(listener) == 1:
            subscriber, = listener

            if node_kind(subscriber) is None:
                raise ValidationError(
                    "Expected listener to be a function or a mapping."
                )

            notifier = combine_subscribers({_ROOT: subscriber})
        elif len(listener) == 2:
            target, subscriber = listener

            if not isinstance(target, str) and not is_mapping(target):
                raise ValidationError(
                    "Expected target to be a tag or a mapping."
                )

            notifier = multiplex_subscriber({_ROOT: target}, subscriber)
        else:
            raise ValidationError(
                "Unexpected arguments, expected (subscriber) "
                f"or (target, subscriber) but received {len(listener)}."
            )

        self._listeners.append(notifier)

        logger.debug("%s: subscribed %r", self.config.name, listener)

        unsubscribed = False

        def unsubscribe() -> None:
            nonlocal unsubscribed

            if unsubscribed:
                return

            if notifier in self._listeners:
                self._listeners.remove(notifier)

            unsubscribed = True

        return unsubscribe

    def dispatch(self, action: Any, *, preempt: bool = False) -> Future:
        self._ensure_open()

        request = _Request()
        previous, self._last_request = self._last_request, request

        if preempt and previous is not None:
            self._preempt(previous)

        # the pipeline task copies the context, middleware included
        token = _current_request.set(request)

        try:
            return asyncio.ensure_future(self._pipeline(action))
        finally:
            _current_request.reset(token)

    def _preempt(self, request: _Request) -> None:
        if request.cycle is None:
            # still in middleware, its cycle is aborted once enqueued
            request.aborted = True

            return

        if not request.cycle.future.done():
            self._abort(request.cycle)

    def _abort(self, cycle: _Cycle) -> None:
        logger.warning(
            "%s: cycle %s for action %r was preempted",
            self.config.name,
            cycle.id,
            cycle.action
        )

        cycle.future.set_exception(
            DispatchAbortedError(
                f"Cycle {cycle.id} was preempted by a later dispatch."
            )
        )

        # callers that dropped the future must not get an unretrieved warning
        cycle.future.exception()

    def _enqueue(self, action: Any) -> Future:
        self._ensure_open()

        _validate_action(action)

        loop = asyncio.get_running_loop()
        cycle = _Cycle(action=action, future=loop.create_future())

        request = _current_request.get()

        if request is not None and request.cycle is None:
            request.cycle = cycle

            if request.aborted:
                self._abort(cycle)

                return cycle.future

        if self._queue is None:
            self._queue = Queue()

        if self._worker is None:
            self._worker = loop.create_task(self._work(self._queue))

        self._queue.put_nowait(cycle)

        logger.debug(
            "%s: enqueued cycle %s for action %r",
            self.config.name,
            cycle.id,
            action
        )

        return cycle.future

    async def _work(self, queue: Queue[_Cycle]) -> None:
        # the worker outlives the dispatch that started it
        _current_request.set(None)

        while True:
            cycle = await queue.get()

            try:
                await self._process(cycle)
            finally:
                queue.task_done()

    async def _process(self, cycle: _Cycle) -> None:
        if cycle.future.done():
            logger.debug(
                "%s: skipping aborted cycle %s",
                self.config.name,
                cycle.id
            )

            return

        self._current = cycle

        task = asyncio.ensure_future(self._run(cycle.action))

        def abort(future: Future) -> None:
            if not task.done():
                task.cancel()

        cycle.future.add_done_callback(abort)

        try:
            await asyncio.wait((task,))
        except asyncio.CancelledError:
            task.cancel()

            raise

        self._current = None

        if cycle.future.done():
            # aborted while running, the outcome belongs to nobody
            if not task.cancelled():
                task.exception()

            return

        if task.cancelled():
            cycle.future.cancel()

            return

        exception = task.exception()

        if exception is not None:
            logger.warning(
                "%s: cycle %s for action %r failed: %r",
                self.config.name,
                cycle.id,
                cycle.action,
                exception
            )

            cycle.future.set_exception(exception)

            return

        cycle.future.set_result(task.result())

    async def _run(self, action: Any) -> Any:
        state = await resolve(self._reducer(self._state, action))

        self._state = state
        self._version = uuid4()

        logger.debug(
            "%s: committed action %r (version %s)",
            self.config.name,
            action,
            self._version
        )

        # unsubscribing inside a listener only affects later rounds
        listeners = list(self._listeners)

        await settle(call(listener, state) for listener in listeners)

        return action

    async def close(self) -> None:
        if self._closed:
            return

        self._closed = True

        worker = self._worker
        self._worker = None

        if worker is not None:
            worker.cancel()

            await asyncio.gather(worker, return_exceptions=True)

        pending = []

        if self._current is not None:
            pending.append(self._current)
            self._current = None

        if self._queue is not None:
            while not self._queue.empty():
                pending.append(self._queue.get_nowait())

            self._queue = None

        for cycle in pending:
            if not cycle.future.done():
                cycle.future.set_exception(
                    InvalidStateError(f"Store {self.config.name} is closed.")
                )

        self._last_request = None
        self._listeners.clear()
        self._reducer_tree = {}
        self._reducer = _empty_reducer

        logger.debug(
            "%s: closed, %d pending cycles failed",
            self.config.name,
            len(pending)
        )


def create_store(
    middleware: Optional[Sequence[Middleware]] = None,
    config: Optional[StoreConfig] = None
) -> Store:
    middleware = list(middleware or ())

    for handler in middleware:
        if not callable(handler):
            raise ValidationError("Expected middleware to be callable.")

    return _DefaultStore(middleware, config or StoreConfig())
