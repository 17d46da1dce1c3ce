"""
Access Tracker - Read-Recording Facades
=======================================

Wraps a raw state value in a read-only facade that records every member read
into a ``Trace``. Reading a structured member returns another facade over that
member, so deeper reads are recorded as well, but only as deep as the code
actually reads.

Three facade types cover the shapes a state value can take:

- ``MappingFacade``: dicts and other mappings (``f[key]``, ``f.get(key)``,
  ``key in f``, iteration, ``len``)
- ``SequenceFacade``: lists and tuples (indexing, slicing, iteration)
- ``ObjectFacade``: dataclass instances and namespaces (attribute reads)

Example:
    ```python
    trace = Trace()
    state = {"user": {"name": "Ada", "age": 36}, "theme": "dark"}
    view = wrap(state, trace)

    view["user"]["name"]            # records state["user"] and user["name"]
    trace.nested(state)             # Usage(items=['user'])
    trace.nested(state["user"])     # Usage(items=['name'])
    ```

Facades never own their targets and never modify them. ``unwrap`` recovers
the raw value from a facade; anything handed back to callers goes through it.
"""

import dataclasses
import logging
from collections.abc import Mapping, Sequence
from types import SimpleNamespace
from typing import Any, Dict, Iterable, Iterator, Optional, Tuple

from .errors import ReadOnlyStateError

logger = logging.getLogger(__name__)


class _Sentinel:
    __slots__ = ("_name",)

    def __init__(self, name: str):
        self._name = name

    def __repr__(self) -> str:
        return self._name

    def __bool__(self) -> bool:
        return False


# No previous state has been seen yet
UNSET = _Sentinel("UNSET")

# Member absent on one side of a comparison
MISSING = _Sentinel("MISSING")


def is_trackable(value: Any) -> bool:
    """Whether reads through ``value`` can be traced (structured, not a string)."""
    if isinstance(value, (str, bytes, bytearray)):
        return False
    if isinstance(value, (Mapping, list, tuple, SimpleNamespace)):
        return True
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


# ============================================================================
# TRACE
# ============================================================================


class Usage:
    """Every kind of read performed on one object during one execution."""

    __slots__ = ("target", "items", "attrs", "membership", "keys", "whole")

    def __init__(self, target: Any):
        self.target = target
        # dicts used as insertion-ordered sets
        self.items: Dict[Any, None] = {}
        self.attrs: Dict[str, None] = {}
        self.membership: Dict[Any, None] = {}
        self.keys = False
        self.whole = False

    def __len__(self) -> int:
        return (
            len(self.items)
            + len(self.attrs)
            + len(self.membership)
            + int(self.keys)
            + int(self.whole)
        )

    def __repr__(self) -> str:
        parts = []
        if self.items:
            parts.append(f"items={list(self.items)!r}")
        if self.attrs:
            parts.append(f"attrs={list(self.attrs)!r}")
        if self.membership:
            parts.append(f"membership={list(self.membership)!r}")
        if self.keys:
            parts.append("keys=True")
        if self.whole:
            parts.append("whole=True")
        return f"Usage({', '.join(parts)})"


class Trace:
    """
    Record of which members of which objects were read in one execution.

    Objects are keyed by identity. Each entry keeps a strong reference to its
    object so the identity cannot be recycled while the trace is alive; a trace
    lives exactly as long as the snapshot it was produced against.

    The entry of a member value that was itself read through is that member's
    nested trace, reachable with ``nested(member_value)``.
    """

    def __init__(self):
        self._usage: Dict[int, Usage] = {}

    def usage(self, target: Any) -> Usage:
        """Get or create the usage entry for ``target``."""
        entry = self._usage.get(id(target))
        if entry is None or entry.target is not target:
            entry = Usage(target)
            self._usage[id(target)] = entry
        return entry

    def nested(self, target: Any) -> Optional[Usage]:
        """Usage recorded against ``target``, or None if it was never read through."""
        entry = self._usage.get(id(target))
        if entry is None or entry.target is not target:
            return None
        return entry

    def record_item(self, target: Any, key: Any) -> None:
        self.usage(target).items[key] = None

    def record_attr(self, target: Any, name: str) -> None:
        self.usage(target).attrs[name] = None

    def record_membership(self, target: Any, key: Any) -> None:
        self.usage(target).membership[key] = None

    def record_keys(self, target: Any) -> None:
        self.usage(target).keys = True

    def record_whole(self, target: Any) -> None:
        self.usage(target).whole = True

    def rebase(self, old: Any, new: Any) -> None:
        """Move the usage recorded against ``old`` onto ``new``."""
        entry = self.nested(old)
        if entry is None or old is new:
            return
        del self._usage[id(old)]
        entry.target = new
        self._usage[id(new)] = entry

    def __contains__(self, target: Any) -> bool:
        return self.nested(target) is not None

    def __iter__(self) -> Iterator[Usage]:
        return iter(list(self._usage.values()))

    def __len__(self) -> int:
        return len(self._usage)

    def __repr__(self) -> str:
        return f"Trace(objects={len(self._usage)})"


# ============================================================================
# IDENTITY CACHE
# ============================================================================


class IdentityCache:
    """
    Identity-keyed facade table owned by one selector or one computer.

    The table is scoped to state generations: ``begin_generation()`` is called
    at the start of every fresh tracked execution and ``end_generation()``
    when it finishes. Facades looked up during an execution are carried into
    the current generation; whatever the previous execution used but this one
    did not is dropped as soon as the execution ends, so the table never
    outlives the snapshot that replaced the one it was built for.

    The table also holds the suppression marks: values registered with
    ``mark_untracked`` are handed back verbatim by ``wrap``.
    """

    def __init__(self):
        self._current: Dict[int, Tuple[Any, "_Facade"]] = {}
        self._previous: Dict[int, Tuple[Any, "_Facade"]] = {}
        self._untracked: Dict[int, Any] = {}
        self._generation = 0

    @property
    def generation(self) -> int:
        return self._generation

    def begin_generation(self) -> None:
        """Start a new generation, dropping the one before the previous."""
        dropped = len(self._previous)
        self._previous = self._current
        self._current = {}
        self._generation += 1
        logger.debug(
            "identity cache generation %d (%d facades carried, %d dropped)",
            self._generation,
            len(self._previous),
            dropped,
        )

    def end_generation(self) -> None:
        """Release the facades the finished execution did not reuse."""
        self._previous = {}

    def handed_out(self, value: Any) -> bool:
        """Whether a facade over ``value`` was used in the current generation."""
        entry = self._current.get(id(value))
        return entry is not None and entry[0] is value

    def lookup(self, target: Any) -> Optional["_Facade"]:
        key = id(target)
        entry = self._current.get(key)
        if entry is None:
            entry = self._previous.get(key)
            if entry is None or entry[0] is not target:
                return None
            self._current[key] = entry
        elif entry[0] is not target:
            return None
        return entry[1]

    def remember(self, target: Any, facade: "_Facade") -> None:
        self._current[id(target)] = (target, facade)

    def mark_untracked(self, value: Any) -> None:
        """Make ``wrap`` hand ``value`` back as-is instead of wrapping it."""
        if is_trackable(value):
            self._untracked[id(value)] = value

    def replace_untracked(self, values: Iterable[Any]) -> None:
        """Replace every suppression mark with marks for ``values``."""
        self._untracked = {}
        for value in values:
            self.mark_untracked(value)

    def is_untracked(self, value: Any) -> bool:
        return self._untracked.get(id(value), MISSING) is value

    def clear(self) -> None:
        self._current.clear()
        self._previous.clear()
        self._untracked.clear()

    def __len__(self) -> int:
        return len(self._current) + len(self._previous)

    def __repr__(self) -> str:
        return (
            f"IdentityCache(generation={self._generation}, "
            f"facades={len(self)}, untracked={len(self._untracked)})"
        )


# ============================================================================
# FACADES
# ============================================================================

# Container mutators reported as read-only violations rather than missing attributes
_MUTATORS = frozenset(
    {
        "append",
        "extend",
        "insert",
        "pop",
        "remove",
        "clear",
        "sort",
        "reverse",
        "update",
        "setdefault",
        "popitem",
    }
)


class _Facade:
    """Shared plumbing for the three facade types."""

    __slots__ = ("_tracked_target", "_tracked_trace", "_tracked_cache")

    def __init__(self, target: Any, trace: Trace, cache: Optional[IdentityCache]):
        object.__setattr__(self, "_tracked_target", target)
        object.__setattr__(self, "_tracked_trace", trace)
        object.__setattr__(self, "_tracked_cache", cache)

    def _bind(self, trace: Trace) -> None:
        object.__setattr__(self, "_tracked_trace", trace)

    def _child(self, value: Any) -> Any:
        return wrap(value, self._tracked_trace, self._tracked_cache)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("__") or name.startswith("_tracked_"):
            raise AttributeError(name)
        target = self._tracked_target
        trace = self._tracked_trace
        try:
            value = getattr(target, name)
        except AttributeError:
            trace.record_attr(target, name)
            raise
        if callable(value) and getattr(value, "__self__", None) is target:
            # a bound method sees the whole target and is rebuilt on every read
            trace.record_whole(target)
            return value
        trace.record_attr(target, name)
        return self._child(value)

    def __setattr__(self, name: str, value: Any) -> None:
        raise ReadOnlyStateError(f"cannot set attribute {name!r} on tracked state")

    def __delattr__(self, name: str) -> None:
        raise ReadOnlyStateError(f"cannot delete attribute {name!r} on tracked state")

    def __eq__(self, other: Any) -> bool:
        target = self._tracked_target
        self._tracked_trace.record_whole(target)
        return target == unwrap(other)

    def __ne__(self, other: Any) -> bool:
        return not self == other

    def __hash__(self) -> int:
        target = self._tracked_target
        self._tracked_trace.record_whole(target)
        return hash(target)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._tracked_target!r})"


class _ContainerFacade(_Facade):
    __slots__ = ()

    def __getattr__(self, name: str) -> Any:
        if name in _MUTATORS:
            raise ReadOnlyStateError(f"cannot call {name}() on tracked state")
        return super().__getattr__(name)

    def __setitem__(self, key: Any, value: Any) -> None:
        raise ReadOnlyStateError(f"cannot set item {key!r} on tracked state")

    def __delitem__(self, key: Any) -> None:
        raise ReadOnlyStateError(f"cannot delete item {key!r} on tracked state")


class MappingFacade(_ContainerFacade, Mapping):
    """Facade over a mapping; ``keys()``, ``items()`` and ``values()`` come from ``Mapping``."""

    __slots__ = ()

    def __getitem__(self, key: Any) -> Any:
        target = self._tracked_target
        self._tracked_trace.record_item(target, key)
        return self._child(target[key])

    def get(self, key: Any, default: Any = None) -> Any:
        target = self._tracked_target
        self._tracked_trace.record_item(target, key)
        value = target.get(key, MISSING)
        if value is MISSING:
            return default
        return self._child(value)

    def __contains__(self, key: Any) -> bool:
        target = self._tracked_target
        self._tracked_trace.record_membership(target, key)
        return key in target

    def __iter__(self) -> Iterator[Any]:
        target = self._tracked_target
        self._tracked_trace.record_keys(target)
        return iter(target)

    def __len__(self) -> int:
        target = self._tracked_target
        self._tracked_trace.record_keys(target)
        return len(target)

    __eq__ = _Facade.__eq__
    __ne__ = _Facade.__ne__
    __hash__ = _Facade.__hash__


class SequenceFacade(_ContainerFacade, Sequence):
    """Facade over a list or tuple. Slices come back raw and count as a whole read."""

    __slots__ = ()

    def __getitem__(self, index: Any) -> Any:
        target = self._tracked_target
        if isinstance(index, slice):
            self._tracked_trace.record_whole(target)
            return target[index]
        self._tracked_trace.record_item(target, index)
        return self._child(target[index])

    def __len__(self) -> int:
        target = self._tracked_target
        self._tracked_trace.record_keys(target)
        return len(target)

    def __iter__(self) -> Iterator[Any]:
        target = self._tracked_target
        trace = self._tracked_trace
        trace.record_keys(target)
        for index, value in enumerate(target):
            trace.record_item(target, index)
            yield self._child(value)

    def __contains__(self, value: Any) -> bool:
        target = self._tracked_target
        self._tracked_trace.record_whole(target)
        return unwrap(value) in target

    def __add__(self, other: Any) -> Any:
        target = self._tracked_target
        self._tracked_trace.record_whole(target)
        return target + unwrap(other)

    def __radd__(self, other: Any) -> Any:
        target = self._tracked_target
        self._tracked_trace.record_whole(target)
        return unwrap(other) + target

    __eq__ = _Facade.__eq__
    __ne__ = _Facade.__ne__
    __hash__ = _Facade.__hash__


class ObjectFacade(_Facade):
    """Facade over a dataclass instance or namespace; every attribute read is recorded."""

    __slots__ = ()

    def __dir__(self) -> Iterable[str]:
        return dir(self._tracked_target)


def _facade_type(value: Any) -> type:
    if isinstance(value, Mapping):
        return MappingFacade
    if isinstance(value, (list, tuple)):
        return SequenceFacade
    return ObjectFacade


# ============================================================================
# WRAP / UNWRAP
# ============================================================================


def wrap(value: Any, trace: Trace, cache: Optional[IdentityCache] = None) -> Any:
    """
    Return a tracking facade over ``value`` that records reads into ``trace``.

    Primitives, ``None`` and values marked untracked in ``cache`` come back
    unchanged. With a cache, wrapping the same object again reuses its facade
    (rebound to ``trace``).
    """
    if isinstance(value, _Facade):
        value = value._tracked_target
    if not is_trackable(value):
        return value

    if cache is not None:
        if cache.is_untracked(value):
            return value
        facade = cache.lookup(value)
        if facade is not None:
            facade._bind(trace)
            return facade

    facade = _facade_type(value)(value, trace, cache)
    if cache is not None:
        cache.remember(value, facade)
    return facade


def is_facade(value: Any) -> bool:
    return isinstance(value, _Facade)


def unwrap(value: Any, deep: bool = False) -> Any:
    """
    Recover the raw value behind a facade.

    With ``deep=True``, facades inside plain lists, tuples, sets and dicts are
    replaced too; a container with nothing to replace is returned as-is.
    """
    if isinstance(value, _Facade):
        return value._tracked_target
    if not deep:
        return value

    kind = type(value)
    if kind is list or kind is tuple or kind is set or kind is frozenset:
        items = [unwrap(item, deep=True) for item in value]
        if all(new is old for new, old in zip(items, value)):
            return value
        return kind(items)
    if isinstance(value, tuple) and hasattr(value, "_make"):
        items = [unwrap(item, deep=True) for item in value]
        if all(new is old for new, old in zip(items, value)):
            return value
        return kind._make(items)
    if kind is dict:
        items = {key: unwrap(item, deep=True) for key, item in value.items()}
        if all(items[key] is item for key, item in value.items()):
            return value
        return items
    return value
