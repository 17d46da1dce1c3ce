"""
Tracked Computer
================

Keeps derived fields stored alongside raw state, recomputing them only when
something the compute function read last time has changed.

```python
computer = create_tracked_computer(lambda s: {"double": s["count"] * 2})

store = create_store(computer(lambda set_state, get_state, api: {
    "count": 0,
    "text": "a",
    "double": 0,
    "increment": lambda: set_state(lambda s: {"count": s["count"] + 1}),
    "set_text": lambda text: set_state({"text": text}),
}))

store.get_state()["increment"]()    # compute runs, double == 2
store.get_state()["set_text"]("b")  # compute skipped, double carried forward
```

The transform replaces the store's public ``set_state`` and hands the same
dirty-checking version to the creator, so direct calls and actions defined by
the creator all go through the check.

Lifecycle: uninitialized until the store runs the creator; afterwards every
state-setting call is either clean (derived fields carried forward by
reference) or dirty (compute re-run once, trace replaced).
"""

import logging
from collections.abc import Mapping
from typing import Any, Callable, Dict, FrozenSet, Generic, Iterable, Optional, TypeVar

from .detector import is_changed
from .errors import DerivedFieldError
from .store import Creator, GetState, Partial, SetState, derived_fields, merge_state
from .tracker import UNSET, IdentityCache, Trace, unwrap, wrap

logger = logging.getLogger(__name__)

S = TypeVar("S")

Compute = Callable[[Any], Optional[Mapping]]


class TrackedComputer(Generic[S]):
    """
    Dirty-checking ``set_state`` for one store.

    Args:
        compute: ``compute(state) -> partial mapping`` of derived fields.
        commit: The store's native ``set_state``.
        get_state: The store's ``get_state``.
        derived: Names ``compute`` may return. Defaults to the dataclass
            fields declared with ``derived_field``; unchecked when neither
            is given.
    """

    def __init__(
        self,
        compute: Compute,
        commit: SetState,
        get_state: GetState,
        derived: Optional[Iterable[str]] = None,
    ):
        self._compute = compute
        self._commit = commit
        self._get_state = get_state
        self._declared: Optional[FrozenSet[str]] = (
            frozenset(derived) if derived is not None else None
        )
        self._trace = Trace()
        self._cache = IdentityCache()
        self._observed_state: Any = UNSET
        self._derived: Dict[str, Any] = {}
        self._runs = 0
        self._skips = 0

    @property
    def initialized(self) -> bool:
        return self._observed_state is not UNSET

    @property
    def trace(self) -> Trace:
        return self._trace

    @property
    def derived(self) -> Dict[str, Any]:
        """Derived fields produced by the last compute run."""
        return dict(self._derived)

    @property
    def compute_count(self) -> int:
        return self._runs

    def run_compute(self, state: S) -> Dict[str, Any]:
        """Run ``compute`` over a freshly tracked view of ``state``."""
        trace = Trace()
        self._cache.begin_generation()
        try:
            result = unwrap(self._compute(wrap(state, trace, self._cache)))
            derived = {
                key: unwrap(value, deep=True)
                for key, value in (result or {}).items()
            }

            if self._declared:
                undeclared = set(derived) - self._declared
                if undeclared:
                    raise DerivedFieldError(undeclared, self._declared)

            # only outputs built by compute are suppressed; an input object
            # passed through stays traceable
            self._cache.replace_untracked(
                value
                for value in derived.values()
                if not self._cache.handed_out(value)
            )
        finally:
            self._cache.end_generation()

        # observe the state as committed, so reads of our own previous
        # outputs compare equal until someone else replaces them
        observed = merge_state(state, derived)
        trace.rebase(state, observed)
        self._observed_state = observed
        self._trace = trace
        self._derived = derived
        self._runs += 1
        logger.debug(
            "computed %s (run %d, %d traced objects)",
            sorted(derived),
            self._runs,
            len(trace),
        )
        return derived

    def initialize(self, initial_state: S) -> S:
        """Compute the initial derived fields and return the state to commit."""
        if self._declared is None:
            self._declared = derived_fields(initial_state) or None
        derived = self.run_compute(initial_state)
        return merge_state(initial_state, derived)

    def set_state(self, partial: Partial, replace: bool = False) -> None:
        """Resolve ``partial``, dirty-check it, and commit with derived fields."""
        current = self._get_state()
        next_partial = partial(current) if callable(partial) else partial
        replacing = replace or not isinstance(next_partial, Mapping)
        candidate = next_partial if replacing else merge_state(current, next_partial)

        if is_changed(self._observed_state, candidate, self._trace):
            derived = self.run_compute(candidate)
            if replacing:
                self._commit(merge_state(candidate, derived), True)
            else:
                self._commit({**next_partial, **derived}, False)
            return

        self._skips += 1
        logger.debug("compute skipped, no traced field changed")
        if replacing:
            self._commit(merge_state(candidate, self._derived), True)
        else:
            self._commit(next_partial, False)

    def stats(self) -> Dict[str, Any]:
        return {
            "runs": self._runs,
            "skips": self._skips,
            "traced_objects": len(self._trace),
            "cached_facades": len(self._cache),
        }

    def __repr__(self) -> str:
        return f"TrackedComputer(runs={self._runs}, skips={self._skips})"


def create_tracked_computer(
    compute: Compute, derived: Optional[Iterable[str]] = None
) -> Callable[[Creator], Creator]:
    """
    Build a creator transform that keeps ``compute``'s fields up to date.

    The returned function takes a store creator and returns a new creator to
    pass to ``create_store`` (or ``create_tracked``). The installed
    ``TrackedComputer`` is reachable as ``store.tracked_computer``.
    """
    declared = tuple(derived) if derived is not None else None

    def transform(creator: Creator) -> Creator:
        def tracked_creator(set_state: SetState, get_state: GetState, api: Any) -> Any:
            computer = TrackedComputer(compute, set_state, get_state, declared)
            api.set_state = computer.set_state
            api.tracked_computer = computer
            if callable(creator):
                initial_state = creator(computer.set_state, get_state, api)
            else:
                initial_state = creator
            return computer.initialize(initial_state)

        return tracked_creator

    return transform
