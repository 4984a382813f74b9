"""Errors raised by the stock and notification services.

Each error is a DRF ``APIException`` carrying a machine ``code`` and the HTTP
``status_code`` the API answers with, plus a ``details`` payload the client
can render. ``api_exception_handler`` turns every API error into the
``{"success": false, "error": {...}}`` envelope.
"""
import logging

from rest_framework import exceptions, status
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class InventoryError(exceptions.APIException):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "INVENTORY_ERROR"
    default_message = "Inventory operation failed"

    def __init__(self, message=None, details=None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message, self.code)

    def to_dict(self):
        payload = {"code": self.code, "message": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class ValidationError(InventoryError):
    code = "VALIDATION_ERROR"
    default_message = "Invalid request data"


class ItemNotFound(InventoryError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "ITEM_NOT_FOUND"
    default_message = "Item not found"

    def __init__(self, item_ids, message=None):
        self.item_ids = list(item_ids)
        super().__init__(message, details={"item_ids": self.item_ids})


class TrackingDisabled(InventoryError):
    code = "STOCK_TRACKING_DISABLED"
    default_message = "Stock tracking is disabled for this item"

    def __init__(self, item_ids, message=None):
        self.item_ids = list(item_ids)
        super().__init__(message, details={"item_ids": self.item_ids})


class InsufficientStock(InventoryError):
    """Requested deduction exceeds what is on hand.

    ``shortages`` holds one dict per offending item with ``item_id``,
    ``item_name``, ``available``, ``requested`` and ``unit``. For the single
    item case the first shortage is also exposed as attributes.
    """

    code = "INSUFFICIENT_STOCK"
    default_message = "Insufficient stock for one or more items"

    def __init__(self, shortages, message=None):
        self.shortages = list(shortages)
        first = self.shortages[0]
        self.item_id = first["item_id"]
        self.available = first["available"]
        self.requested = first["requested"]
        self.unit = first["unit"]
        if message is None and len(self.shortages) == 1:
            message = (
                f"Insufficient stock. Available: {self.available} {self.unit}, "
                f"Requested: {self.requested} {self.unit}"
            )
        # quantities go out as strings, like the serializers render them
        details = [
            {**s, "available": str(s["available"]), "requested": str(s["requested"])}
            for s in self.shortages
        ]
        super().__init__(message, details=details)


class ItemNotSellable(InventoryError):
    code = "ITEM_NOT_SELLABLE"
    default_message = "Item cannot be sold"


class ItemInUse(InventoryError):
    status_code = status.HTTP_409_CONFLICT
    code = "ITEM_IN_USE"
    default_message = "Item has stock history and cannot be deleted"


class GroupInUse(InventoryError):
    status_code = status.HTTP_409_CONFLICT
    code = "GROUP_IN_USE"
    default_message = "Group still has items and cannot be deleted"


class StorageError(InventoryError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "STORAGE_ERROR"
    default_message = "Storage operation failed"


class NotificationConflict(InventoryError):
    status_code = status.HTTP_409_CONFLICT
    code = "NOTIFICATION_CONFLICT"
    default_message = "An unread low stock alert already exists for this item"


def _map_http_to_code(code: int) -> str:
    return {
        status.HTTP_400_BAD_REQUEST: "VALIDATION_ERROR",
        status.HTTP_401_UNAUTHORIZED: "NOT_AUTHENTICATED",
        status.HTTP_403_FORBIDDEN: "FORBIDDEN",
        status.HTTP_404_NOT_FOUND: "NOT_FOUND",
        status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
        status.HTTP_409_CONFLICT: "CONFLICT",
    }.get(code, "SERVER_ERROR")


def api_exception_handler(exc, context):
    """Wrap DRF's handler so every error answers with the same envelope."""
    response = exception_handler(exc, context)
    if response is None:
        return None

    request = context.get("request")
    where = f"{request.method} {request.path}" if request is not None else "API call"

    if isinstance(exc, InventoryError):
        error = exc.to_dict()
    elif isinstance(exc, exceptions.ValidationError):
        error = {"code": "VALIDATION_ERROR", "message": "Invalid request data", "details": response.data}
    else:
        detail = response.data.get("detail") if isinstance(response.data, dict) else None
        error = {"code": _map_http_to_code(response.status_code), "message": str(detail or "Error")}

    if response.status_code >= 500:
        logger.error("%s failed: %s", where, error["message"], exc_info=exc)
    else:
        logger.info("%s rejected: %s %s", where, error["code"], error["message"])

    response.data = {"success": False, "error": error}
    return response
