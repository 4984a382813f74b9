"""
Stock mutations: adjustment, usage (single and bulk), restock and sales.

Every mutation locks the affected item rows, validates against the locked
quantities and writes the item update together with its ledger entry in one
transaction. Low stock evaluation is scheduled with ``transaction.on_commit``
so it only runs once the stock change is durable, and a failure there never
undoes the change.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

from django.db import DatabaseError, transaction
from django.utils import timezone

from .exceptions import (
    InsufficientStock,
    InventoryError,
    ItemNotFound,
    ItemNotSellable,
    StorageError,
    TrackingDisabled,
    ValidationError,
)
from .models import Item, SalesTransaction, SalesTransactionItem, StockLedgerEntry
from .signals_stock import stock_committed

logger = logging.getLogger(__name__)

REASON_MAX_LENGTH = 500
MAX_QUANTITY = Decimal("999999999")
QUANTITY_PLACES = 3
MONEY_STEP = Decimal("0.01")


@dataclass
class StockChange:
    entries: list = field(default_factory=list)
    alerts_created: list = field(default_factory=list)
    alert_errors: list = field(default_factory=list)

    @property
    def entry(self):
        return self.entries[0] if self.entries else None

    @property
    def item_ids(self):
        return list(dict.fromkeys(e.item_id for e in self.entries))


@dataclass
class BatchRestockResult:
    successful: list = field(default_factory=list)
    failed: list = field(default_factory=list)
    changes: list = field(default_factory=list)

    @property
    def entries(self):
        return [e for change in self.changes for e in change.entries]


# -----------------------
# Input helpers
# -----------------------
def _to_decimal(value, field_name: str) -> Decimal:
    try:
        number = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(details={field_name: ["Enter a number."]})
    if not number.is_finite():
        raise ValidationError(details={field_name: ["Enter a number."]})
    if number.as_tuple().exponent < -QUANTITY_PLACES:
        raise ValidationError(
            details={field_name: [f"Ensure that there are no more than {QUANTITY_PLACES} decimal places."]}
        )
    if abs(number) > MAX_QUANTITY:
        raise ValidationError(details={field_name: ["Quantity is too large."]})
    return number


def _to_item_id(value) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(details={"item_id": ["Item ID is required."]})


def _positive_quantity(value, field_name="quantity") -> Decimal:
    quantity = _to_decimal(value, field_name)
    if quantity <= 0:
        raise ValidationError(details={field_name: ["Quantity must be positive."]})
    return quantity


def _clean_reason(reason, required=False) -> str:
    reason = (reason or "").strip()
    if required and not reason:
        raise ValidationError(details={"reason": ["Reason is required."]})
    if len(reason) > REASON_MAX_LENGTH:
        raise ValidationError(details={"reason": ["Reason too long."]})
    return reason


def _parse_lines(lines):
    """Normalise ``[{"item_id", "quantity", "reason"?}, ...]`` into tuples."""
    lines = list(lines or [])
    if not lines:
        raise ValidationError(details={"items": ["At least one item is required."]})

    parsed, errors = [], {}
    for index, line in enumerate(lines):
        try:
            parsed.append(
                (
                    _to_item_id(line.get("item_id")),
                    _positive_quantity(line.get("quantity")),
                    _clean_reason(line.get("reason")),
                )
            )
        except ValidationError as exc:
            errors[str(index)] = exc.details
        except AttributeError:
            errors[str(index)] = {"__all__": ["Each item must be an object."]}
    if errors:
        raise ValidationError(details={"items": errors})
    return parsed


def _actor(user):
    if user is not None and getattr(user, "is_authenticated", False):
        return user
    return None


# -----------------------
# Locking / writing
# -----------------------
def _lock_items(item_ids) -> dict:
    ids = sorted(set(item_ids))
    items = {
        item.pk: item
        for item in Item.objects.select_for_update().filter(pk__in=ids).order_by("pk")
    }
    missing = [pk for pk in ids if pk not in items]
    if missing:
        message = "Item not found" if len(ids) == 1 else "One or more items not found"
        raise ItemNotFound(missing, message=message)
    return items


def _require_tracked(items):
    disabled = [item.pk for item in items if not item.stock_tracking_enabled]
    if disabled:
        raise TrackingDisabled(disabled)


def _check_sufficient(items: dict, requested: dict):
    shortages = []
    for item_id, quantity in requested.items():
        item = items[item_id]
        if item.current_quantity < quantity:
            shortages.append(
                {
                    "item_id": item.pk,
                    "item_name": item.name,
                    "available": item.current_quantity,
                    "requested": quantity,
                    "unit": item.unit,
                }
            )
    if shortages:
        raise InsufficientStock(shortages)


def _write_entry(item, entry_type, new_quantity, reason, user, sale=None, extra_fields=()):
    previous = item.current_quantity
    item.current_quantity = new_quantity
    item.save(update_fields=["current_quantity", "updated_at", *extra_fields])

    return StockLedgerEntry.objects.create(
        item=item,
        entry_type=entry_type,
        quantity=new_quantity - previous,
        previous_quantity=previous,
        new_quantity=new_quantity,
        reason=reason,
        sale=sale,
        created_by=_actor(user),
    )


def announce_stock_change(item_ids, change: StockChange = None):
    """Run the low stock check for ``item_ids`` once the current transaction commits."""
    item_ids = list(dict.fromkeys(item_ids))

    def _evaluate():
        for item_id in item_ids:
            for _receiver, response in stock_committed.send_robust(sender=Item, item_id=item_id):
                if isinstance(response, Exception):
                    logger.error("Low stock check failed for item %s", item_id, exc_info=response)
                    if change is not None:
                        change.alert_errors.append({"item_id": item_id, "error": str(response)})
                elif response and change is not None:
                    change.alerts_created.append(item_id)

    transaction.on_commit(_evaluate)


# -----------------------
# Operations
# -----------------------
def adjust_stock(item_id, new_quantity, reason, user=None) -> StockChange:
    """Set an item's quantity to an absolute value with a mandatory reason."""
    errors = {}
    try:
        new_quantity = _to_decimal(new_quantity, "new_quantity")
        if new_quantity < 0:
            errors["new_quantity"] = ["Quantity must be non-negative."]
    except ValidationError as exc:
        errors.update(exc.details)
    try:
        reason = _clean_reason(reason, required=True)
    except ValidationError as exc:
        errors.update(exc.details)
    if errors:
        raise ValidationError(details=errors)
    item_id = _to_item_id(item_id)

    change = StockChange()
    try:
        with transaction.atomic():
            item = _lock_items([item_id])[item_id]
            _require_tracked([item])
            change.entries.append(
                _write_entry(item, StockLedgerEntry.Type.ADJUSTMENT, new_quantity, reason, user)
            )
            announce_stock_change([item.pk], change)
    except DatabaseError as exc:
        raise StorageError("Failed to adjust stock") from exc

    entry = change.entry
    logger.info(
        "Stock adjusted: item=%s %s -> %s reason=%r",
        item_id, entry.previous_quantity, entry.new_quantity, reason,
    )
    return change


def _deduct(parsed, user, entry_type, default_reason) -> StockChange:
    requested = defaultdict(Decimal)
    for item_id, quantity, _reason in parsed:
        requested[item_id] += quantity

    change = StockChange()
    try:
        with transaction.atomic():
            items = _lock_items(requested.keys())
            _require_tracked(items.values())
            _check_sufficient(items, requested)

            for item_id, quantity, reason in parsed:
                item = items[item_id]
                change.entries.append(
                    _write_entry(
                        item, entry_type, item.current_quantity - quantity, reason or default_reason, user
                    )
                )
            announce_stock_change(items.keys(), change)
    except DatabaseError as exc:
        raise StorageError("Failed to record stock usage") from exc
    return change


def record_usage(item_id, quantity, reason=None, user=None) -> StockChange:
    parsed = [(_to_item_id(item_id), _positive_quantity(quantity), _clean_reason(reason))]
    change = _deduct(parsed, user, StockLedgerEntry.Type.USAGE, "Stock usage recorded")
    logger.info("Stock usage recorded: item=%s quantity=%s", parsed[0][0], parsed[0][1])
    return change


def record_bulk_usage(lines, user=None) -> StockChange:
    """All lines validate (existence, tracking, stock) or nothing is written."""
    parsed = _parse_lines(lines)
    change = _deduct(parsed, user, StockLedgerEntry.Type.USAGE, "Bulk stock usage recorded")
    logger.info("Bulk stock usage recorded: %s lines", len(parsed))
    return change


def restock_item(item_id, quantity, reason=None, user=None) -> StockChange:
    item_id = _to_item_id(item_id)
    quantity = _positive_quantity(quantity)
    reason = _clean_reason(reason) or "Inventory restock"

    change = StockChange()
    try:
        with transaction.atomic():
            item = _lock_items([item_id])[item_id]
            _require_tracked([item])
            item.last_restocked_at = timezone.now()
            change.entries.append(
                _write_entry(
                    item,
                    StockLedgerEntry.Type.ADDITION,
                    item.current_quantity + quantity,
                    reason,
                    user,
                    extra_fields=("last_restocked_at",),
                )
            )
            announce_stock_change([item.pk], change)
    except DatabaseError as exc:
        raise StorageError("Failed to restock item") from exc

    logger.info("Item restocked: item=%s quantity=%s", item_id, quantity)
    return change


def restock_items(lines, user=None) -> BatchRestockResult:
    """
    Restock several items independently. Each line commits on its own; a line
    that fails is reported in ``failed`` and does not stop the others.
    """
    lines = list(lines or [])
    if not lines:
        raise ValidationError(details={"items": ["At least one item is required."]})

    result = BatchRestockResult()
    for line in lines:
        item_id = line.get("item_id")
        try:
            change = restock_item(item_id, line.get("quantity"), line.get("reason"), user=user)
        except InventoryError as exc:
            result.failed.append({"item_id": item_id, "code": exc.code, "error": exc.message})
            continue
        result.successful.append(change.entry.item_id)
        result.changes.append(change)

    logger.info("Batch restock: %s succeeded, %s failed", len(result.successful), len(result.failed))
    return result


def update_min_stock_level(item_id, min_stock_level, user=None) -> Item:
    item_id = _to_item_id(item_id)
    min_stock_level = _to_decimal(min_stock_level, "min_stock_level")
    if min_stock_level < 0:
        raise ValidationError(details={"min_stock_level": ["Minimum stock level must be non-negative."]})

    try:
        with transaction.atomic():
            item = _lock_items([item_id])[item_id]
            item.min_stock_level = min_stock_level
            item.save(update_fields=["min_stock_level", "updated_at"])
            announce_stock_change([item.pk])
    except DatabaseError as exc:
        raise StorageError("Failed to update stock threshold") from exc

    logger.info("Stock threshold updated: item=%s min=%s", item_id, min_stock_level)
    return item


def record_sale(lines, payment_method, user=None):
    """
    Record a sale and deduct stock for its tracked items.

    Returns ``(sale, change)``. Items must be sellable with a positive selling
    price; tracked items must have enough stock. Untracked items are sold
    without a ledger entry.
    """
    if payment_method not in SalesTransaction.PaymentMethod.values:
        raise ValidationError(details={"payment_method": ["Payment method is required."]})
    parsed = _parse_lines(lines)

    change = StockChange()
    try:
        with transaction.atomic():
            items = _lock_items(item_id for item_id, _q, _r in parsed)

            not_sellable = [
                {"item_id": item.pk, "item_name": item.name}
                for item in items.values()
                if not item.is_sellable or not item.selling_price or item.selling_price <= 0
            ]
            if not_sellable:
                raise ItemNotSellable(details=not_sellable)

            requested = defaultdict(Decimal)
            for item_id, quantity, _reason in parsed:
                if items[item_id].stock_tracking_enabled:
                    requested[item_id] += quantity
            _check_sufficient(items, requested)

            sale = SalesTransaction.objects.create(
                total_amount=Decimal("0"), payment_method=payment_method, created_by=_actor(user)
            )
            total = Decimal("0")
            for item_id, quantity, _reason in parsed:
                item = items[item_id]
                line_total = (item.selling_price * quantity).quantize(MONEY_STEP)
                SalesTransactionItem.objects.create(
                    sale=sale,
                    item=item,
                    quantity=quantity,
                    unit_price=item.selling_price,
                    total_price=line_total,
                )
                total += line_total

                if item.stock_tracking_enabled:
                    change.entries.append(
                        _write_entry(
                            item,
                            StockLedgerEntry.Type.SALE,
                            item.current_quantity - quantity,
                            f"Sale transaction {sale.pk}",
                            user,
                            sale=sale,
                        )
                    )

            sale.total_amount = total
            sale.save(update_fields=["total_amount"])
            announce_stock_change(change.item_ids, change)
    except DatabaseError as exc:
        raise StorageError("Failed to create sales transaction") from exc

    logger.info("Sale recorded: sale=%s total=%s lines=%s", sale.pk, sale.total_amount, len(parsed))
    return sale, change
