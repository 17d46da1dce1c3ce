"""
Tracked Selector
================

Memoizes a pure read function over state. The selector is re-run only when a
field it read during its last run differs in the new state; otherwise the
previous result is returned by the same reference, so callers can skip
downstream work with an ``is`` check.

Example:
    ```python
    select_count = tracked_selector(lambda s: s["count"])

    a = select_count({"count": 1, "text": "a"})
    b = select_count({"count": 1, "text": "b"})   # not re-run, text was never read
    ```

The selector must only read state through its argument. Anything else it
reads is invisible to the tracker and will not invalidate the cached result.
"""

import logging
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

from .detector import is_changed
from .equality import EqualityFn, same_value
from .tracker import UNSET, IdentityCache, Trace, unwrap, wrap

logger = logging.getLogger(__name__)

S = TypeVar("S")
R = TypeVar("R")


class TrackedSelector(Generic[S, R]):
    """
    One memoization unit per (selector function, consumer).

    Owns its trace, identity cache and last output; nothing is shared with
    other selectors.

    Args:
        selector: Pure function of the state.
        equality_fn: Leaf comparison used by the dirty check.
    """

    def __init__(
        self,
        selector: Callable[[S], R],
        equality_fn: EqualityFn = same_value,
    ):
        self._selector = selector
        self._equality_fn = equality_fn
        self._trace = Trace()
        self._cache = IdentityCache()
        self._previous_state: Any = UNSET
        self._value: Optional[R] = None
        self._runs = 0
        self._skips = 0

    @property
    def selector(self) -> Callable[[S], R]:
        return self._selector

    @property
    def trace(self) -> Trace:
        return self._trace

    @property
    def value(self) -> Optional[R]:
        """Last returned value (``None`` before the first call)."""
        return self._value

    def __call__(self, state: S) -> R:
        if not is_changed(
            self._previous_state, state, self._trace, equality_fn=self._equality_fn
        ):
            self._skips += 1
            return self._value

        trace = Trace()
        self._cache.begin_generation()
        try:
            value = unwrap(
                self._selector(wrap(state, trace, self._cache)), deep=True
            )
        finally:
            self._cache.end_generation()

        self._previous_state = state
        self._trace = trace
        self._value = value
        self._runs += 1
        logger.debug(
            "selector %s recomputed (run %d, %d traced objects)",
            getattr(self._selector, "__qualname__", self._selector),
            self._runs,
            len(trace),
        )
        return value

    apply = __call__

    def reset(self) -> None:
        """Forget the cached output; the next call always recomputes."""
        self._trace = Trace()
        self._cache.clear()
        self._previous_state = UNSET
        self._value = None

    def stats(self) -> Dict[str, Any]:
        return {
            "runs": self._runs,
            "skips": self._skips,
            "traced_objects": len(self._trace),
            "cached_facades": len(self._cache),
        }

    def __repr__(self) -> str:
        name = getattr(self._selector, "__qualname__", repr(self._selector))
        return f"TrackedSelector({name}, runs={self._runs}, skips={self._skips})"


def tracked_selector(
    selector: Callable[[S], R], equality_fn: EqualityFn = same_value
) -> TrackedSelector[S, R]:
    """Create a memoized accessor for ``selector``."""
    return TrackedSelector(selector, equality_fn)
