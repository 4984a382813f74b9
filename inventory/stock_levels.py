import math
from decimal import Decimal

from django.db import models


class StockStatus(models.TextChoices):
    IN_STOCK = "IN_STOCK", "In stock"
    LOW_STOCK = "LOW_STOCK", "Low stock"
    OUT_OF_STOCK = "OUT_OF_STOCK", "Out of stock"


class Urgency(models.TextChoices):
    CRITICAL = "CRITICAL", "Critical"
    WARNING = "WARNING", "Warning"
    LOW = "LOW", "Low"


# quantity / min_stock_level ratios
URGENCY_RATIOS = {
    Urgency.CRITICAL: Decimal("0.2"),
    Urgency.WARNING: Decimal("0.5"),
}

# restock target as a multiple of min_stock_level
RESTOCK_MULTIPLIER = {
    "SELLABLE": Decimal("3"),
}
DEFAULT_RESTOCK_MULTIPLIER = Decimal("2")


def evaluate_stock_status(quantity, min_stock_level) -> str:
    # threshold is inclusive: quantity == min is low stock
    if quantity == 0:
        return StockStatus.OUT_OF_STOCK
    if quantity <= min_stock_level:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK


def is_low_stock(quantity, min_stock_level) -> bool:
    return evaluate_stock_status(quantity, min_stock_level) != StockStatus.IN_STOCK


def urgency_level(quantity, min_stock_level) -> str:
    if quantity == 0 or not min_stock_level:
        return Urgency.CRITICAL
    ratio = Decimal(quantity) / Decimal(min_stock_level)
    if ratio <= URGENCY_RATIOS[Urgency.CRITICAL]:
        return Urgency.CRITICAL
    if ratio <= URGENCY_RATIOS[Urgency.WARNING]:
        return Urgency.WARNING
    return Urgency.LOW


def suggested_restock(quantity, min_stock_level, item_type: str = "") -> int:
    quantity = Decimal(quantity)
    min_stock_level = Decimal(min_stock_level)
    multiplier = RESTOCK_MULTIPLIER.get(item_type, DEFAULT_RESTOCK_MULTIPLIER)
    suggested = max(min_stock_level * 2 - quantity, min_stock_level * multiplier)
    return max(math.ceil(suggested), 1)


# urgency -> (priority, reason) for restock suggestions
RESTOCK_PRIORITY = {
    Urgency.CRITICAL: ("HIGH", "Critically low stock"),
    Urgency.WARNING: ("MEDIUM", "Stock level warning"),
    Urgency.LOW: ("LOW", "Stock below minimum threshold"),
}


def restock_priority(quantity, min_stock_level):
    """Return ``(priority, reason)`` for restocking a low item."""
    level = urgency_level(quantity, min_stock_level)
    priority, reason = RESTOCK_PRIORITY[level]
    if quantity == 0:
        reason = "Out of stock"
    return priority, reason
