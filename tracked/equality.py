"""
Equality functions used by the change detector and the bindings.

``same_value`` is the default: identity for objects, value equality for
primitives. ``deep_equal`` is the value-based alternative for call sites that
want structurally equal replacements to count as unchanged.
"""

import dataclasses
import datetime
import numbers
from collections.abc import Mapping
from types import MethodType
from typing import Any, Callable

import numpy as np

EqualityFn = Callable[[Any, Any], bool]

_VALUE_TYPES = (
    numbers.Number,
    str,
    bytes,
    type(None),
    datetime.date,
    datetime.time,
    datetime.timedelta,
)


def same_value(a: Any, b: Any) -> bool:
    """Identity for objects, equality for primitives; NaN equals NaN."""
    if a is b:
        return True
    if type(a) is not type(b):
        return False
    if isinstance(a, float):
        return a == b or (a != a and b != b)
    if isinstance(a, _VALUE_TYPES):
        return bool(a == b)
    if isinstance(a, MethodType):
        # bound methods are rebuilt on every attribute read
        return a.__func__ is b.__func__ and a.__self__ is b.__self__
    return False


def _is_dataclass_instance(value: Any) -> bool:
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def deep_equal(a: Any, b: Any) -> bool:
    """
    Structural equality over mappings, lists, tuples, dataclasses and arrays.

    NumPy arrays compare with ``np.array_equal`` and must have the same type on
    both sides. Anything else falls back to ``same_value`` and then ``==``;
    comparisons that raise count as unequal.
    """
    if a is b:
        return True

    if isinstance(a, np.ndarray) or isinstance(b, np.ndarray):
        if type(a) is not type(b):
            return False
        return a.shape == b.shape and bool(np.array_equal(a, b))

    if isinstance(a, Mapping) and isinstance(b, Mapping):
        if len(a) != len(b) or set(a.keys()) != set(b.keys()):
            return False
        return all(deep_equal(a[key], b[key]) for key in a)

    if _is_dataclass_instance(a) and _is_dataclass_instance(b):
        if type(a) is not type(b):
            return False
        return all(
            deep_equal(getattr(a, f.name), getattr(b, f.name))
            for f in dataclasses.fields(a)
        )

    if isinstance(a, (list, tuple)) and isinstance(b, (list, tuple)):
        if type(a) is not type(b) or len(a) != len(b):
            return False
        return all(deep_equal(x, y) for x, y in zip(a, b))

    if same_value(a, b):
        return True

    try:
        return bool(a == b)
    except (ValueError, TypeError):
        return False
