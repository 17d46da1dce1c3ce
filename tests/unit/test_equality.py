"""Unit tests for same_value and deep_equal."""

import dataclasses
import datetime

import numpy as np
import pytest

from tracked import deep_equal, same_value


class Box:
    def __init__(self, value):
        self.value = value

    def read(self):
        return self.value


@pytest.mark.unit
@pytest.mark.parametrize(
    "a, b, expected",
    [
        (1, 1, True),
        (1, 2, False),
        (1, 1.0, False),
        (True, 1, False),
        ("abc", "ab" + "c", True),
        (b"x", b"x", True),
        (None, None, True),
        (float("nan"), float("nan"), True),
        (datetime.date(2020, 1, 1), datetime.date(2020, 1, 1), True),
        ({"a": 1}, {"a": 1}, False),
        ([1], [1], False),
    ],
)
def test_same_value(a, b, expected):
    """Value equality for primitives, identity for everything else"""
    assert same_value(a, b) is expected


@pytest.mark.unit
def test_same_value_bound_methods():
    """Bound methods of the same object compare equal even though they are rebuilt"""
    box = Box(1)

    assert same_value(box.read, box.read) is True
    assert same_value(box.read, Box(1).read) is False


@pytest.mark.unit
@pytest.mark.parametrize(
    "a, b, expected",
    [
        ({"a": 1, "b": [1, 2]}, {"b": [1, 2], "a": 1}, True),
        ({"a": 1}, {"a": 1, "b": 3}, False),
        ({"a": 1, "b": 2}, {"a": 1, "b": 3}, False),
        ([1, {"x": 2}], [1, {"x": 2}], True),
        ([1, 2], (1, 2), False),
        ((1, 2), (1, 2, 3), False),
        ("a", "a", True),
        (1, 1.0, True),
    ],
)
def test_deep_equal_structures(a, b, expected):
    """Mappings, lists and tuples are compared element by element"""
    assert deep_equal(a, b) is expected


@pytest.mark.unit
def test_deep_equal_dataclasses():
    """Dataclasses compare field by field and must share a type"""

    @dataclasses.dataclass
    class Point:
        x: int
        y: list

    @dataclasses.dataclass
    class Other:
        x: int
        y: list

    assert deep_equal(Point(1, [2]), Point(1, [2])) is True
    assert deep_equal(Point(1, [2]), Point(1, [3])) is False
    assert deep_equal(Point(1, [2]), Other(1, [2])) is False


@pytest.mark.unit
def test_deep_equal_numpy_arrays():
    """Arrays compare by shape and contents"""
    a = np.arange(6).reshape(2, 3)

    assert deep_equal(a, a.copy()) is True
    assert deep_equal(a, a.reshape(3, 2)) is False
    assert deep_equal(a, a + 1) is False
    assert deep_equal(a, a.tolist()) is False
    assert deep_equal({"grid": a}, {"grid": a.copy()}) is True


@pytest.mark.unit
def test_deep_equal_falls_back_to_eq():
    """Objects without structure fall back to == and errors count as unequal"""

    class Exploding:
        def __eq__(self, other):
            raise ValueError("cannot compare")

    assert deep_equal({1, 2}, {2, 1}) is True
    assert deep_equal(Exploding(), Exploding()) is False
