from ._errors import (
    ConflictError,
    ContractViolationError,
    DispatchAbortedError,
    InvalidStateError,
    ShapeError,
    StoreError,
    ValidationError
)
from ._middleware import Dispatch, Middleware, apply_middleware
from ._multiplex import multiplex_subscriber
from ._reducer import Combination, Reducer, combine_reducers
from ._store import (
    INIT_ACTION_TYPE,
    Store,
    StoreConfig,
    Unmount,
    Unsubscribe,
    create_store
)
from ._subscriber import combine_subscribers
from ._tree import (
    NodeKind,
    Tree,
    dot_path,
    merge_trees,
    node_kind,
    same,
    subtract_trees
)


__all__ = (
    "INIT_ACTION_TYPE",
    "Combination",
    "ConflictError",
    "ContractViolationError",
    "Dispatch",
    "DispatchAbortedError",
    "InvalidStateError",
    "Middleware",
    "NodeKind",
    "Reducer",
    "ShapeError",
    "Store",
    "StoreConfig",
    "StoreError",
    "Tree",
    "Unmount",
    "Unsubscribe",
    "ValidationError",

    "apply_middleware",
    "combine_reducers",
    "combine_subscribers",
    "create_store",
    "dot_path",
    "merge_trees",
    "multiplex_subscriber",
    "node_kind",
    "same",
    "subtract_trees"
)
