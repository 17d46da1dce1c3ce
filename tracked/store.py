"""
Store - Minimal Synchronous State Container
===========================================

The container the tracked selectors and computers plug into. It holds one raw
state value, merges partial updates into a fresh snapshot on every
``set_state`` and delivers each committed snapshot synchronously to its
listeners.

State can be a plain mapping or a dataclass instance:

```python
store = create_store(lambda set_state, get_state, api: {
    "count": 0,
    "increment": lambda: set_state(lambda s: {"count": s["count"] + 1}),
})

unsubscribe = store.subscribe(lambda state, previous: print(state["count"]))
store.get_state()["increment"]()   # prints 1
```

A creator receives ``(set_state, get_state, store)`` and returns the initial
state. ``set_state`` accepts a partial mapping or a function of the current
state returning one; with ``replace=True`` the result becomes the whole state.
"""

import dataclasses
import logging
from collections.abc import Mapping
from typing import Any, Callable, FrozenSet, Generic, List, Optional, TypeVar, Union

logger = logging.getLogger(__name__)

S = TypeVar("S")

Listener = Callable[[Any, Any], None]
Partial = Union[Mapping, Any, Callable[[Any], Any]]
SetState = Callable[..., None]
GetState = Callable[[], Any]
Creator = Callable[[SetState, GetState, "Store"], Any]


def derived_field(**kwargs: Any) -> Any:
    """``dataclasses.field`` marked as a derived (computed) field."""
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata["derived"] = True
    return dataclasses.field(metadata=metadata, **kwargs)


def derived_fields(state: Any) -> FrozenSet[str]:
    """Names of the fields declared with ``derived_field`` on a dataclass state."""
    if not dataclasses.is_dataclass(state):
        return frozenset()
    return frozenset(
        f.name for f in dataclasses.fields(state) if f.metadata.get("derived")
    )


def is_dataclass_state(state: Any) -> bool:
    return dataclasses.is_dataclass(state) and not isinstance(state, type)


def merge_state(state: Any, partial: Mapping) -> Any:
    """New snapshot with ``partial`` laid over ``state``."""
    if is_dataclass_state(state):
        return dataclasses.replace(state, **partial)
    return {**state, **partial}


class Store(Generic[S]):
    """
    Synchronous state container with subscribe/notify.

    Args:
        creator: ``creator(set_state, get_state, store) -> initial state``, or
            the initial state itself.
    """

    def __init__(self, creator: Union[Creator, S]):
        self._state: Any = None
        self._listeners: List[Listener] = []
        if callable(creator):
            self._state = creator(self._set_state, self.get_state, self)
        else:
            self._state = creator
        self._initial_state = self._state

    def get_state(self) -> S:
        return self._state

    def get_initial_state(self) -> S:
        return self._initial_state

    def set_state(self, partial: Partial, replace: bool = False) -> None:
        """Commit an update and notify listeners; a no-op if nothing was replaced."""
        self._set_state(partial, replace)

    def _set_state(self, partial: Partial, replace: bool = False) -> None:
        # bound as the creator's set_state so replacing the public entry point
        # does not recurse into itself
        next_state = partial(self._state) if callable(partial) else partial
        if next_state is self._state:
            return

        previous = self._state
        if replace or not isinstance(next_state, Mapping):
            self._state = next_state
        else:
            self._state = merge_state(previous, next_state)

        for listener in list(self._listeners):
            try:
                listener(self._state, previous)
            except Exception:
                logger.exception("store listener %r failed", listener)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call ``listener(state, previous)`` after every commit; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def __repr__(self) -> str:
        return f"Store(listeners={len(self._listeners)})"


def create_store(creator: Optional[Union[Creator, S]] = None) -> Any:
    """Create a ``Store``; without a creator, return a function awaiting one."""
    if creator is None:
        return create_store
    return Store(creator)
