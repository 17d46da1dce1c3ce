"""
tracked - Access-Tracked Selectors and Computed Fields
======================================================

Fine-grained dependency tracking for a shared state container. Selectors and
computed fields record which fields of the state they actually read, and are
re-run only when one of those fields changes.
"""

from .bindings import (
    BoundStore,
    TrackedSubscription,
    create_tracked,
    create_tracked_with_equality_fn,
    identity,
    watch_tracked,
    watch_tracked_with_equality_fn,
)
from .computer import TrackedComputer, create_tracked_computer
from .detector import is_changed
from .equality import deep_equal, same_value
from .errors import DerivedFieldError, ReadOnlyStateError, TrackedError
from .selector import TrackedSelector, tracked_selector
from .store import Store, create_store, derived_field, derived_fields, merge_state
from .tracker import (
    MISSING,
    UNSET,
    IdentityCache,
    MappingFacade,
    ObjectFacade,
    SequenceFacade,
    Trace,
    Usage,
    is_facade,
    is_trackable,
    unwrap,
    wrap,
)

__all__ = [
    # Core tracking
    "wrap",
    "unwrap",
    "is_facade",
    "is_trackable",
    "Trace",
    "Usage",
    "IdentityCache",
    "MappingFacade",
    "SequenceFacade",
    "ObjectFacade",
    "UNSET",
    "MISSING",
    # Change detection
    "is_changed",
    "same_value",
    "deep_equal",
    # Tracked units
    "TrackedSelector",
    "tracked_selector",
    "TrackedComputer",
    "create_tracked_computer",
    # Store and bindings
    "Store",
    "create_store",
    "merge_state",
    "derived_field",
    "derived_fields",
    "BoundStore",
    "TrackedSubscription",
    "create_tracked",
    "create_tracked_with_equality_fn",
    "watch_tracked",
    "watch_tracked_with_equality_fn",
    "identity",
    # Exceptions
    "TrackedError",
    "ReadOnlyStateError",
    "DerivedFieldError",
]
