from tracked import create_store, create_tracked_computer, watch_tracked

# Totals are recomputed only when a price or a quantity changes
cart_totals = create_tracked_computer(
    lambda s: {
        "total": sum(line["price"] * line["qty"] for line in s["lines"]),
    },
    derived=["total"],
)


def cart(set_state, get_state, api):
    return {
        "lines": [{"sku": "tea", "price": 4.5, "qty": 1}],
        "note": "",
        "total": 0.0,
        "add": lambda sku, price: set_state(
            lambda s: {"lines": s["lines"] + [{"sku": sku, "price": price, "qty": 1}]}
        ),
        "set_note": lambda note: set_state({"note": note}),
    }


def update_ui(total: float, previous: float):
    print(f">>> Cart Total: ${total:.2f}")


store = create_store(cart_totals(cart))
watch_tracked(store, lambda s: s["total"], update_ui)

print("=" * 50)

store.get_state()["add"]("scones", 3.0)
store.get_state()["set_note"]("leave at the door")  # no recompute, no output
store.get_state()["add"]("jam", 2.25)

print(store.tracked_computer.stats())

# ==================================================
# >>> Cart Total: $7.50
# >>> Cart Total: $9.75
# {'runs': 3, 'skips': 1, 'traced_objects': 5, 'cached_facades': ...}
