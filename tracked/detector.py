"""
Change Detector
===============

Decides whether any member recorded in a ``Trace`` differs between a previous
and a next raw value. Only traced members take part: an untouched field can
change freely without making the result dirty.

The walk follows the trace from the roots. A member that was itself read
through (it has its own entry in the trace) is walked recursively instead of
being compared whole; every other member is a leaf compared with the equality
function. The first differing leaf ends the walk.
"""

import logging
from collections.abc import Mapping
from typing import Any, Dict, Optional, Tuple

from .equality import EqualityFn, same_value
from .tracker import MISSING, UNSET, Trace, Usage, is_trackable

logger = logging.getLogger(__name__)

# id(prev) -> (prev, next, changed); the in-progress entry reads as unchanged,
# which is what terminates cyclic references
CompareCache = Dict[int, Tuple[Any, Any, bool]]


def _item(obj: Any, key: Any) -> Any:
    try:
        return obj[key]
    except (KeyError, IndexError, TypeError):
        return MISSING


def _contains(obj: Any, key: Any) -> bool:
    try:
        return key in obj
    except TypeError:
        return False


def _key_sequence(obj: Any) -> Any:
    if isinstance(obj, Mapping):
        return list(obj.keys())
    try:
        return len(obj)
    except TypeError:
        return MISSING


def _usage_changed(
    usage: Usage,
    prev: Any,
    nxt: Any,
    trace: Trace,
    cache: CompareCache,
    equality_fn: EqualityFn,
) -> bool:
    if usage.whole and not equality_fn(prev, nxt):
        return True

    for key in usage.membership:
        if _contains(prev, key) != _contains(nxt, key):
            return True

    if usage.keys and _key_sequence(prev) != _key_sequence(nxt):
        return True

    for key in usage.items:
        if _is_changed(_item(prev, key), _item(nxt, key), trace, cache, equality_fn):
            return True

    for name in usage.attrs:
        if _is_changed(
            getattr(prev, name, MISSING),
            getattr(nxt, name, MISSING),
            trace,
            cache,
            equality_fn,
        ):
            return True

    return False


def _is_changed(
    prev: Any,
    nxt: Any,
    trace: Trace,
    cache: CompareCache,
    equality_fn: EqualityFn,
) -> bool:
    if prev is nxt:
        return False
    if prev is MISSING or nxt is MISSING:
        return True

    usage = trace.nested(prev)
    if usage is None:
        # a leaf: never read through, so it is compared as a whole
        return not equality_fn(prev, nxt)
    if not is_trackable(nxt):
        return True

    hit = cache.get(id(prev))
    if hit is not None and hit[0] is prev and hit[1] is nxt:
        return hit[2]

    cache[id(prev)] = (prev, nxt, False)
    changed = _usage_changed(usage, prev, nxt, trace, cache, equality_fn)
    cache[id(prev)] = (prev, nxt, changed)
    return changed


def is_changed(
    prev: Any,
    nxt: Any,
    trace: Trace,
    compare_cache: Optional[CompareCache] = None,
    equality_fn: EqualityFn = same_value,
) -> bool:
    """
    Whether any member recorded in ``trace`` differs between ``prev`` and ``nxt``.

    Args:
        prev: Raw value the trace was produced against, or ``UNSET`` before
            the first execution (always reported as changed).
        nxt: Candidate raw value, shape-compatible with ``prev``.
        trace: Reads recorded during the execution against ``prev``.
        compare_cache: Pairwise memo for this call; a fresh one is used when
            omitted.
        equality_fn: Leaf comparison, ``same_value`` by default. Pass
            ``deep_equal`` to treat structurally equal replacements as
            unchanged.
    """
    if prev is UNSET:
        return True
    if compare_cache is None:
        compare_cache = {}
    changed = _is_changed(prev, nxt, trace, compare_cache, equality_fn)
    logger.debug(
        "dirty check over %d traced objects: %s",
        len(trace),
        "changed" if changed else "unchanged",
    )
    return changed
