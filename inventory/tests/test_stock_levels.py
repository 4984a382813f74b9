from decimal import Decimal

import pytest

from inventory.stock_levels import (
    StockStatus,
    Urgency,
    evaluate_stock_status,
    is_low_stock,
    restock_priority,
    suggested_restock,
    urgency_level,
)


@pytest.mark.parametrize(
    "quantity, min_level, expected",
    [
        (0, 5, StockStatus.OUT_OF_STOCK),
        (0, 0, StockStatus.OUT_OF_STOCK),
        (Decimal("0.001"), 5, StockStatus.LOW_STOCK),
        (5, 5, StockStatus.LOW_STOCK),
        (Decimal("5.001"), 5, StockStatus.IN_STOCK),
        (3, 0, StockStatus.IN_STOCK),
    ],
)
def test_evaluate_stock_status(quantity, min_level, expected):
    assert evaluate_stock_status(quantity, min_level) == expected


def test_threshold_is_inclusive():
    assert is_low_stock(Decimal("5.000"), Decimal("5"))
    assert not is_low_stock(Decimal("6"), Decimal("5"))


@pytest.mark.parametrize(
    "quantity, min_level, expected",
    [
        (0, 10, Urgency.CRITICAL),
        (2, 10, Urgency.CRITICAL),
        (3, 10, Urgency.WARNING),
        (5, 10, Urgency.WARNING),
        (8, 10, Urgency.LOW),
    ],
)
def test_urgency_level(quantity, min_level, expected):
    assert urgency_level(quantity, min_level) == expected


def test_suggested_restock_uses_type_multiplier():
    # 2*10 - 4 = 16, floor of 2*10 = 20
    assert suggested_restock(4, 10, "STOCK") == 20
    # sellable items aim for 3x the threshold
    assert suggested_restock(4, 10, "SELLABLE") == 30


def test_suggested_restock_rounds_up_and_never_zero():
    assert suggested_restock(Decimal("0.5"), Decimal("1.25"), "STOCK") == 3
    assert suggested_restock(0, 0) == 1


@pytest.mark.parametrize(
    "quantity, min_level, expected",
    [
        (0, 10, ("HIGH", "Out of stock")),
        (2, 10, ("HIGH", "Critically low stock")),
        (5, 10, ("MEDIUM", "Stock level warning")),
        (Decimal("9.5"), 10, ("LOW", "Stock below minimum threshold")),
    ],
)
def test_restock_priority(quantity, min_level, expected):
    assert restock_priority(quantity, min_level) == expected
