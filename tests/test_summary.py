# tests/test_summary.py
from decimal import Decimal

from app.ordering import OrderSelection, build_order_summary

CATALOG = [
    {"id": "p1", "name": "בלון 12", "price": 10},
    {"id": "p2", "name": "בלון 48", "price": "25"},
]


def test_lines_and_total():
    summary = build_order_summary({"p1": 2, "p2": 1}, CATALOG)

    assert [(l.product_id, l.quantity, l.unit_price, l.line_total) for l in summary.lines] == [
        ("p1", 2, Decimal("10"), Decimal("20")),
        ("p2", 1, Decimal("25"), Decimal("25")),
    ]
    assert summary.total == Decimal("45")
    assert summary.total_items == 3


def test_total_equals_sum_of_lines():
    summary = build_order_summary({"p1": {"sunday": 3, "asap": 1}, "p2": 2}, CATALOG)

    assert summary.total == sum(l.line_total for l in summary.lines)
    assert summary.total == Decimal("90")


def test_unknown_products_and_non_positive_quantities_are_skipped():
    summary = build_order_summary({"p1": 0, "p2": -3, "ghost": 5}, CATALOG)

    assert summary.is_empty
    assert summary.total == Decimal("0")


def test_day_is_none_for_asap():
    summary = build_order_summary({"p1": {"asap": 1, "monday": 2}}, CATALOG)

    assert {l.day for l in summary.lines} == {None, "monday"}


def test_accepts_selection_and_mapping_of_objects():
    class Item:
        def __init__(self, id, name, price):
            self.id, self.name, self.price = id, name, price

    selection = OrderSelection()
    selection.set_quantity("p1", 2)

    summary = build_order_summary(selection, {"p1": Item("p1", "בלון", Decimal("12.50"))})

    assert summary.total == Decimal("25.00")
    assert summary.lines[0].product_name == "בלון"


def test_summary_is_pure():
    quantities = {"p1": 2}

    first = build_order_summary(quantities, CATALOG)
    second = build_order_summary(quantities, CATALOG)

    assert first == second
    assert quantities == {"p1": 2}


def test_total_does_not_depend_on_order():
    quantities = {"p1": {"sunday": 3, "asap": 1, "wednesday": 2}, "p2": {"monday": 1, "asap": 4}}
    reversed_quantities = {
        product_id: dict(reversed(list(days.items())))
        for product_id, days in reversed(list(quantities.items()))
    }
    catalog_by_id = {p["id"]: p for p in reversed(CATALOG)}

    totals = {
        build_order_summary(quantities, CATALOG).total,
        build_order_summary(reversed_quantities, CATALOG).total,
        build_order_summary(quantities, list(reversed(CATALOG))).total,
        build_order_summary(reversed_quantities, catalog_by_id).total,
    }

    assert totals == {Decimal("185")}
