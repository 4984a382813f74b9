import logging
from dataclasses import dataclass, field

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.db import DatabaseError, IntegrityError, transaction

from .exceptions import NotificationConflict, StorageError
from .models import Item, Notification
from .querysets import low_stock_items_qs
from .stock_levels import StockStatus, evaluate_stock_status, urgency_level

logger = logging.getLogger(__name__)


@dataclass
class LowStockCheckResult:
    low_stock_items: list = field(default_factory=list)
    notifications_created: int = 0


def low_stock_alert_priority():
    value = str(getattr(settings, "LOW_STOCK_ALERT_PRIORITY", Notification.Priority.HIGH)).strip().upper()
    if value not in Notification.Priority.values:
        raise ImproperlyConfigured(
            f"LOW_STOCK_ALERT_PRIORITY must be one of {', '.join(Notification.Priority.values)}, got {value!r}"
        )
    return value


def _low_stock_payload(item: Item):
    status = evaluate_stock_status(item.current_quantity, item.min_stock_level)
    if status == StockStatus.OUT_OF_STOCK:
        title = f"Out of Stock Alert: {item.name}"
    else:
        title = f"Low Stock Alert: {item.name}"
    message = (
        f"{item.name} is running low. Current stock: {item.current_quantity} {item.unit}, "
        f"Minimum level: {item.min_stock_level} {item.unit}"
    )
    data = {
        "current_quantity": str(item.current_quantity),
        "min_stock_level": str(item.min_stock_level),
        "unit": item.unit,
        "status": status,
        "urgency": urgency_level(item.current_quantity, item.min_stock_level),
    }
    return title, message, data


def create_low_stock_alert(item: Item) -> bool:
    """Create an unread low stock alert unless one is already open for ``item``."""
    if Notification.objects.unread_low_stock().filter(item=item).exists():
        return False

    title, message, data = _low_stock_payload(item)
    try:
        with transaction.atomic():
            Notification.objects.create(
                ntype=Notification.Type.LOW_STOCK,
                title=title,
                message=message,
                item=item,
                priority=low_stock_alert_priority(),
                data=data,
            )
    except IntegrityError:
        # another trigger inserted the alert between the check and the insert
        logger.info("Low stock alert for item %s already created concurrently", item.pk)
        return False

    logger.info("Low stock alert created for item %s (%s %s)", item.pk, item.current_quantity, item.unit)
    return True


def check_item_low_stock(item_id) -> bool:
    """Re-evaluate one item and alert if it is low. Returns True when an alert was created."""
    try:
        item = Item.objects.filter(pk=item_id).first()
        if item is None or not item.stock_tracking_enabled:
            return False

        status = evaluate_stock_status(item.current_quantity, item.min_stock_level)
        if status == StockStatus.IN_STOCK:
            return False

        return create_low_stock_alert(item)
    except DatabaseError as exc:
        raise StorageError("Failed to check low stock", details={"item_id": item_id}) from exc


def check_all_low_stock() -> LowStockCheckResult:
    result = LowStockCheckResult()
    try:
        for item in low_stock_items_qs(Item):
            if create_low_stock_alert(item):
                result.notifications_created += 1
            result.low_stock_items.append(item)
    except DatabaseError as exc:
        raise StorageError("Failed to check low stock items") from exc

    logger.info(
        "Low stock check completed: %s low items, %s alerts created",
        len(result.low_stock_items),
        result.notifications_created,
    )
    return result


# -----------------------
# Generic notifications
# -----------------------
def create_notification(ntype, title, message="", item=None, priority=Notification.Priority.MEDIUM):
    if ntype == Notification.Type.LOW_STOCK:
        if item is None or not create_low_stock_alert(item):
            raise NotificationConflict()
        return Notification.objects.unread_low_stock().get(item=item)

    return Notification.objects.create(
        ntype=ntype, title=title, message=message, item=item, priority=priority
    )


def mark_read(notification: Notification) -> Notification:
    if not notification.is_read:
        notification.is_read = True
        notification.save(update_fields=["is_read"])
    return notification


def mark_unread(notification: Notification) -> Notification:
    if not notification.is_read:
        return notification
    notification.is_read = False
    try:
        with transaction.atomic():
            notification.save(update_fields=["is_read"])
    except IntegrityError as exc:
        notification.is_read = True
        raise NotificationConflict() from exc
    return notification


def mark_all_read() -> int:
    return Notification.objects.unread().update(is_read=True)


def unread_count() -> int:
    return Notification.objects.unread().count()
