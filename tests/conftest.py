"""
Shared pytest fixtures for the tracked test suite.
"""

import dataclasses

import pytest

from tracked import create_store, derived_field


def counter_state(set_state, get_state, api):
    """The count/text store used throughout the suite."""
    return {
        "count": 0,
        "text": "a",
        "increment": lambda: set_state(lambda s: {"count": s["count"] + 1}),
        "set_text": lambda text: set_state({"text": text}),
    }


@dataclasses.dataclass(frozen=True)
class CounterState:
    count: int = 0
    text: str = "a"
    double: int = derived_field(default=0)


@pytest.fixture
def counter_store():
    """A plain store holding {count, text} and its two actions."""
    return create_store(counter_state)


@pytest.fixture
def nested_state():
    """A state with nested mappings, a list and an untouched branch."""
    return {
        "user": {"name": "Ada", "address": {"city": "London", "zip": "N1"}},
        "items": [{"id": 1, "qty": 2}, {"id": 2, "qty": 5}],
        "settings": {"theme": "dark"},
        "version": 1,
    }


class Counter:
    """Callable wrapper counting how often a function ran."""

    def __init__(self, fn):
        self.fn = fn
        self.calls = 0

    def __call__(self, *args, **kwargs):
        self.calls += 1
        return self.fn(*args, **kwargs)


@pytest.fixture
def counted():
    """Factory wrapping a function so tests can count its runs."""
    return Counter


@pytest.fixture
def counter_state_cls():
    """Frozen dataclass state with a derived ``double`` field."""
    return CounterState


@pytest.fixture
def counter_creator():
    """The count/text creator, for wrapping in transforms before building a store."""
    return counter_state
