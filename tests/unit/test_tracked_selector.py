"""Unit tests for TrackedSelector memoization."""

import gc
import weakref

import pytest

from tracked import TrackedSelector, deep_equal, is_facade, tracked_selector


@pytest.mark.unit
@pytest.mark.selector
def test_first_call_runs_the_selector(counted):
    """The first call always evaluates"""
    select = counted(lambda s: s["count"])
    selector = tracked_selector(select)

    assert selector({"count": 1, "text": "a"}) == 1
    assert select.calls == 1


@pytest.mark.unit
@pytest.mark.selector
def test_unread_field_change_returns_cached_reference(counted):
    """A state differing only in unread fields returns the same object without re-running"""
    select = counted(lambda s: {"count": s["count"]})
    selector = tracked_selector(select)

    first = selector({"count": 1, "text": "a"})
    second = selector({"count": 1, "text": "b"})

    assert second is first
    assert select.calls == 1


@pytest.mark.unit
@pytest.mark.selector
def test_read_field_change_recomputes_once(counted):
    """A change to a read field re-runs the selector exactly once"""
    select = counted(lambda s: s["count"] * 10)
    selector = tracked_selector(select)

    selector({"count": 1, "text": "a"})
    state = {"count": 2, "text": "a"}

    assert selector(state) == 20
    assert selector(state) == 20
    assert select.calls == 2


@pytest.mark.unit
@pytest.mark.selector
def test_count_and_text_selectors_are_independent(counted):
    """Two selectors over the same state object only see their own fields"""
    select_count = counted(lambda s: s["count"])
    select_text = counted(lambda s: s["text"])
    by_count = tracked_selector(select_count)
    by_text = tracked_selector(select_text)

    state = {"count": 0, "text": "a"}
    by_count(state)
    by_text(state)

    state = {**state, "text": "b"}
    by_count(state)
    by_text(state)

    state = {**state, "count": 1}
    by_count(state)
    by_text(state)

    assert select_count.calls == 2
    assert select_text.calls == 2


@pytest.mark.unit
@pytest.mark.selector
def test_results_are_unwrapped(nested_state):
    """Structured results come back as raw values, even inside new containers"""
    selector = tracked_selector(lambda s: (s["user"], [s["settings"]]))

    user, settings = selector(nested_state)

    assert user is nested_state["user"]
    assert settings[0] is nested_state["settings"]
    assert not is_facade(user)


@pytest.mark.unit
@pytest.mark.selector
def test_returned_subtree_is_an_identity_leaf(nested_state):
    """Returning a subtree unread makes any replacement of it a change"""
    select = tracked_selector(lambda s: s["settings"])

    first = select(nested_state)
    second = select({**nested_state, "settings": {"theme": "dark"}})

    assert first is nested_state["settings"]
    assert second is not first
    assert select.stats()["runs"] == 2


@pytest.mark.unit
@pytest.mark.selector
def test_equality_fn_applies_to_the_dirty_check(nested_state):
    """deep_equal as the leaf comparison skips structurally equal replacements"""
    select = tracked_selector(lambda s: s["settings"], equality_fn=deep_equal)

    first = select(nested_state)
    second = select({**nested_state, "settings": {"theme": "dark"}})

    assert second is first
    assert select.stats()["runs"] == 1


@pytest.mark.unit
@pytest.mark.selector
def test_stats_and_reset(counted):
    """stats() counts runs and skips; reset() forces the next call to run"""
    select = counted(lambda s: s["count"])
    selector = TrackedSelector(select)
    state = {"count": 1}

    selector(state)
    selector(state)
    stats = selector.stats()
    assert stats["runs"] == 1
    assert stats["skips"] == 1
    assert stats["traced_objects"] == 1

    selector.reset()
    assert selector.value is None
    selector(state)
    assert select.calls == 2


@pytest.mark.unit
@pytest.mark.selector
def test_apply_is_an_alias_for_call():
    """apply() behaves exactly like calling the selector"""
    selector = tracked_selector(lambda s: s["count"])

    assert selector.apply({"count": 3}) == 3
    assert selector.value == 3


@pytest.mark.unit
@pytest.mark.selector
def test_selector_cannot_mutate_state():
    """Writes inside a selector raise and the state is left alone"""
    state = {"items": [1]}
    selector = tracked_selector(lambda s: s["items"].append(2))

    with pytest.raises(TypeError):
        selector(state)

    assert state == {"items": [1]}


@pytest.mark.unit
@pytest.mark.selector
def test_failed_run_keeps_previous_result():
    """An exception from the selector leaves the cached state untouched"""

    def select(s):
        if s["count"] < 0:
            raise ValueError("negative")
        return s["count"]

    selector = tracked_selector(select)
    selector({"count": 1})

    with pytest.raises(ValueError):
        selector({"count": -1})

    assert selector.value == 1
    assert selector({"count": 1}) == 1
    assert selector.stats()["runs"] == 1


@pytest.mark.unit
@pytest.mark.selector
def test_facade_reused_across_runs(nested_state):
    """Unchanged subtrees keep their facade between runs"""
    seen = []

    def select(s):
        seen.append(s["settings"])
        return s["version"]

    selector = tracked_selector(select)
    selector(nested_state)
    selector({**nested_state, "version": 2})

    assert seen[0] is seen[1]


class Snapshot(dict):
    """dict subclass so snapshots can be weakly referenced."""


@pytest.mark.unit
@pytest.mark.selector
def test_superseded_snapshot_is_released():
    """After a recompute, nothing in the selector keeps the old snapshot alive"""
    selector = tracked_selector(lambda s: s["user"]["name"])
    first = Snapshot(user={"name": "a"})
    second = Snapshot(user={"name": "b"})

    selector(first)
    selector(second)
    ref = weakref.ref(first)
    del first
    gc.collect()

    assert ref() is None
    assert selector.value == "b"


@pytest.mark.unit
@pytest.mark.selector
def test_deep_equal_selector_ignores_untouched_fields(counted):
    """A deep-equal selector compares only the fields it read"""

    class Payload:
        compared = 0

        def __eq__(self, other):
            Payload.compared += 1
            return True

        __hash__ = object.__hash__

    select = counted(lambda s: s["count"])
    selector = tracked_selector(select, equality_fn=deep_equal)

    selector({"count": 1, "payload": Payload()})
    selector({"count": 1, "payload": Payload()})

    assert Payload.compared == 0
    assert select.calls == 1


@pytest.mark.unit
@pytest.mark.selector
def test_method_calls_compare_the_whole_target(counted):
    """A selector calling copy() is clean when the copied object is equal"""
    select = counted(lambda s: s["settings"].copy())
    selector = tracked_selector(select, equality_fn=deep_equal)
    state = {"settings": {"theme": "dark"}, "version": 1}

    selector(state)
    selector({**state, "settings": {"theme": "dark"}})
    assert select.calls == 1

    assert selector({**state, "settings": {"theme": "light"}}) == {"theme": "light"}
    assert select.calls == 2
