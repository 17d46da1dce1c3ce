"""
Bindings - Tracked Selectors Attached to a Store
================================================

Connects ``TrackedSelector`` to a ``Store``:

- ``TrackedSubscription`` re-evaluates its selector on every commit and calls
  its listeners only when the selected value actually changed. A selector
  that reads ``count`` is never re-run because ``text`` changed.
- ``BoundStore`` is a store you can call with a selector to read a slice. It
  keeps one ``TrackedSelector`` per selector function, so repeated reads
  (a UI redraw loop, a script rerun) skip the selector until the fields it
  read change.

```python
use_store = create_tracked(lambda set_state, get_state, api: {
    "count": 0,
    "text": "a",
    "increment": lambda: set_state(lambda s: {"count": s["count"] + 1}),
})

select_count = lambda s: s["count"]
count = use_store(select_count)          # 0
use_store.watch(select_count, lambda value, previous: print(value))
use_store.get_state()["increment"]()     # prints 1
```

The ``*_with_equality_fn`` variants take a comparison for the selected value;
when it reports the new slice equal to the previous one, the previous slice is
kept and nobody is notified.
"""

from typing import Any, Callable, Generic, List, Optional, TypeVar

from cachetools import LRUCache

from .equality import EqualityFn, same_value
from .selector import TrackedSelector
from .store import Creator, Store

S = TypeVar("S")
R = TypeVar("R")

SliceListener = Callable[[Any, Any], None]

DEFAULT_CACHE_SIZE = 128


def identity(state: Any) -> Any:
    return state


class TrackedSubscription(Generic[S, R]):
    """
    A tracked selector kept in sync with a store.

    Args:
        store: Store to follow.
        selector: Pure function of the state.
        listener: Optional ``listener(value, previous)`` called on change.
        equality_fn: Comparison for the selected value.
    """

    def __init__(
        self,
        store: Store,
        selector: Callable[[S], R] = identity,
        listener: Optional[SliceListener] = None,
        equality_fn: EqualityFn = same_value,
    ):
        self._store = store
        self._selector = TrackedSelector(selector)
        self._equality_fn = equality_fn
        self._listeners: List[SliceListener] = [listener] if listener else []
        self._notifications = 0
        self._value = self._selector(store.get_state())
        self._unsubscribe: Optional[Callable[[], None]] = store.subscribe(
            self._on_state
        )

    @property
    def value(self) -> R:
        """The selected value as of the last commit."""
        return self._value

    @property
    def selector(self) -> TrackedSelector:
        return self._selector

    @property
    def notifications(self) -> int:
        """How many times listeners were told the value changed."""
        return self._notifications

    @property
    def closed(self) -> bool:
        return self._unsubscribe is None

    def _on_state(self, state: Any, previous: Any) -> None:
        value = self._selector(state)
        if value is self._value or self._equality_fn(self._value, value):
            return

        previous_value = self._value
        self._value = value
        self._notifications += 1
        for listener in list(self._listeners):
            listener(value, previous_value)

    def subscribe(self, listener: SliceListener) -> Callable[[], None]:
        """Add a ``listener(value, previous)``; returns a function removing it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def close(self) -> None:
        """Detach from the store and drop the selector's cached state."""
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._listeners.clear()
        self._selector.reset()

    def __enter__(self) -> "TrackedSubscription[S, R]":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"TrackedSubscription(value={self._value!r}, closed={self.closed})"


def watch_tracked(
    store: Store,
    selector: Callable[[S], R] = identity,
    listener: Optional[SliceListener] = None,
) -> TrackedSubscription[S, R]:
    """Follow ``selector`` over ``store``, notifying only when its result changes."""
    return TrackedSubscription(store, selector, listener)


def watch_tracked_with_equality_fn(
    store: Store,
    selector: Callable[[S], R] = identity,
    listener: Optional[SliceListener] = None,
    equality_fn: EqualityFn = same_value,
) -> TrackedSubscription[S, R]:
    """``watch_tracked`` with a custom comparison for the selected value."""
    return TrackedSubscription(store, selector, listener, equality_fn)


class _Slot:
    __slots__ = ("selector", "value", "has_value")

    def __init__(self, selector: TrackedSelector):
        self.selector = selector
        self.value: Any = None
        self.has_value = False


class BoundStore(Generic[S]):
    """
    A store callable with a selector, like ``use_store(lambda s: s["count"])``.

    Tracked selectors are kept in an LRU cache keyed by selector function, so
    pass the same function object on every read to benefit from it. A new
    function (an inline lambda closing over changing values) gets a fresh
    tracked selector and is always evaluated.

    Everything else (``get_state``, ``set_state``, ``subscribe``,
    ``tracked_computer``...) is delegated to the underlying ``Store``.
    """

    def __init__(
        self,
        store: Store,
        equality_fn: EqualityFn = same_value,
        cache_size: int = DEFAULT_CACHE_SIZE,
    ):
        self._store = store
        self._equality_fn = equality_fn
        self._slots: LRUCache = LRUCache(maxsize=cache_size)

    @property
    def store(self) -> Store:
        return self._store

    def __call__(
        self,
        selector: Callable[[S], R] = identity,
        equality_fn: Optional[EqualityFn] = None,
    ) -> R:
        if equality_fn is None:
            equality_fn = self._equality_fn

        slot = self._slots.get(selector)
        if slot is None:
            slot = _Slot(TrackedSelector(selector))
            self._slots[selector] = slot

        value = slot.selector(self._store.get_state())
        if slot.has_value and (
            value is slot.value or equality_fn(slot.value, value)
        ):
            return slot.value

        slot.value = value
        slot.has_value = True
        return value

    def get_state(self) -> S:
        return self._store.get_state()

    def get_initial_state(self) -> S:
        return self._store.get_initial_state()

    def set_state(self, partial: Any, replace: bool = False) -> None:
        # looked up on every call: a tracked computer may have replaced it
        self._store.set_state(partial, replace)

    def subscribe(self, listener: Callable[[Any, Any], None]) -> Callable[[], None]:
        return self._store.subscribe(listener)

    def watch(
        self,
        selector: Callable[[S], R] = identity,
        listener: Optional[SliceListener] = None,
        equality_fn: Optional[EqualityFn] = None,
    ) -> TrackedSubscription[S, R]:
        """Follow ``selector`` with this store's equality function."""
        if equality_fn is None:
            equality_fn = self._equality_fn
        return TrackedSubscription(self._store, selector, listener, equality_fn)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self._store, name)

    def __repr__(self) -> str:
        return f"BoundStore(selectors={len(self._slots)}, store={self._store!r})"


def create_tracked(
    creator: Optional[Creator] = None, *, cache_size: int = DEFAULT_CACHE_SIZE
) -> Any:
    """
    Create a store and bind tracked selectors to it.

    Without a creator, returns a function that takes one, so it can be used
    as ``create_tracked()(creator)`` or as a decorator.
    """
    if creator is None:

        def curried(creator: Creator) -> BoundStore:
            return create_tracked(creator, cache_size=cache_size)

        return curried

    return BoundStore(Store(creator), cache_size=cache_size)


def create_tracked_with_equality_fn(
    creator: Optional[Creator] = None,
    equality_fn: EqualityFn = same_value,
    *,
    cache_size: int = DEFAULT_CACHE_SIZE,
) -> Any:
    """``create_tracked`` whose slices are compared with ``equality_fn``."""
    if creator is None:

        def curried(
            creator: Creator, equality_fn: EqualityFn = equality_fn
        ) -> BoundStore:
            return create_tracked_with_equality_fn(
                creator, equality_fn, cache_size=cache_size
            )

        return curried

    return BoundStore(Store(creator), equality_fn, cache_size)
