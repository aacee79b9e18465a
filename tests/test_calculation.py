from dataclasses import dataclass

import pytest

from app.api.orders.services.service_calculation import (
    OrderTotals,
    discount,
    grand_total,
    item_total,
    recalculate,
    subtotal,
    to_money_string,
)


@dataclass
class Item:
    price_per_unit: int
    quantity: int
    status: str = "ACTIVE"


def test_item_total():
    assert item_total(1099, 2) == 2198


def test_subtotal_empty_is_zero():
    assert subtotal([]) == 0


def test_subtotal_ignores_voided_items():
    items = [Item(1000, 2), Item(500, 1, "VOIDED"), Item(250, 4)]
    assert subtotal(items) == 3000


def test_subtotal_all_voided_is_zero():
    assert subtotal([Item(1000, 1, "VOIDED"), Item(2000, 3, "VOIDED")]) == 0


@pytest.mark.parametrize(
    "sub, kind, value, expected",
    [
        (10000, None, None, 0),
        (10000, "PERCENT", None, 0),
        (10000, None, 10, 0),
        (10000, "PERCENT", 0, 0),
        (10000, "PERCENT", 10, 1000),
        (10000, "PERCENT", 100, 10000),
        (9999, "PERCENT", 15, 1499),
        (1, "PERCENT", 50, 0),
        (10000, "FIXED", 2500, 2500),
    ],
)
def test_discount(sub, kind, value, expected):
    assert discount(sub, kind, value) == expected


def test_discount_unknown_type():
    with pytest.raises(ValueError):
        discount(1000, "BOGO", 1)


def test_grand_total_floors_at_zero():
    assert grand_total(1000, 1000) == 0
    assert grand_total(1000, 1500) == 0
    assert grand_total(1000, 1) == 999


def test_recalculate_returns_consistent_triple():
    items = [Item(3333, 3), Item(100, 1, "VOIDED")]
    totals = recalculate(items, "PERCENT", 15)
    assert totals == OrderTotals(subtotal=9999, discount=1499, grand_total=8500)
    # função pura: mesmo resultado na segunda chamada
    assert recalculate(items, "PERCENT", 15) == totals


def test_recalculate_fixed_equal_to_subtotal():
    totals = recalculate([Item(5000, 2)], "FIXED", 10000)
    assert totals.grand_total == 0


def test_big_amounts_stay_exact():
    huge = 10 ** 15 + 7
    assert subtotal([Item(huge, 999)]) == huge * 999


def test_money_string():
    assert to_money_string(2198) == "2198"
    assert to_money_string(0) == "0"
    assert to_money_string(None) is None
