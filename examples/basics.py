from tracked import create_tracked, deep_equal, tracked_selector

# A selector remembers which fields it read and skips everything else
select_name = tracked_selector(lambda s: s["user"]["name"].title())

state = {"user": {"name": "ada", "age": 36}, "theme": "dark"}
print(select_name(state))  # Ada

state = {**state, "theme": "light"}
print(select_name(state))  # Ada (selector not re-run)

state = {**state, "user": {**state["user"], "age": 37}}
print(select_name(state))  # Ada (user replaced, but name is the same)
print(select_name.stats())

# Bound stores keep one tracked selector per selector function
use_store = create_tracked(
    lambda set_state, get_state, api: {
        "count": 0,
        "filters": {"tags": ["a"]},
        "increment": lambda: set_state(lambda s: {"count": s["count"] + 1}),
        "set_tags": lambda tags: set_state({"filters": {"tags": tags}}),
    }
)


def select_tags(s):
    return s["filters"]["tags"]


use_store.watch(
    select_tags,
    lambda tags, previous: print(f"tags: {previous} -> {tags}"),
    equality_fn=deep_equal,
)

use_store.get_state()["increment"]()     # nothing printed
use_store.get_state()["set_tags"](["a"])  # equal under deep_equal, nothing printed
use_store.get_state()["set_tags"](["a", "b"])  # tags: ['a'] -> ['a', 'b']
print(use_store(select_tags))
