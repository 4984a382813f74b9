from . import stock_service
from .api import InventoryAPIView, LedgerPagination, ok
from .exceptions import ValidationError
from .models import AuditLog, Item, StockLedgerEntry
from .querysets import ledger_history_qs, low_stock_items_qs, stock_levels_qs, stock_summary
from .serializers import (
    BatchRestockSerializer,
    ItemSerializer,
    LedgerEntrySerializer,
    LowStockQuerySerializer,
    StockAdjustmentSerializer,
    StockChangeSerializer,
    StockLineSerializer,
    StockLinesSerializer,
    StockStatusItemSerializer,
    ThresholdSerializer,
)
from .stock_levels import Urgency, urgency_level

LOW_STOCK_ACTIONS = ["restock", "batch-restock", "update-threshold"]


class StockAdjustmentView(InventoryAPIView):
    required_groups = ["ADMIN", "MANAGER"]

    def post(self, request):
        serializer = StockAdjustmentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        vd = serializer.validated_data
        change = stock_service.adjust_stock(vd["item_id"], vd["new_quantity"], vd["reason"], user=request.user)

        entry = change.entry
        AuditLog.objects.create(
            action="STOCK_ADJUSTMENT",
            object_type="Item",
            object_id=str(entry.item_id),
            summary=f"{entry.item.name} {entry.previous_quantity} -> {entry.new_quantity}",
            created_by=request.user,
        )
        return ok(StockChangeSerializer(change).data)


class StockUsageView(InventoryAPIView):

    def post(self, request):
        if "items" in request.data:
            return self.bulk_usage(request)

        serializer = StockLineSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        vd = serializer.validated_data
        change = stock_service.record_usage(vd["item_id"], vd["quantity"], vd.get("reason"), user=request.user)

        entry = change.entry
        AuditLog.objects.create(
            action="STOCK_USAGE",
            object_type="Item",
            object_id=str(entry.item_id),
            summary=f"{entry.item.name} {entry.quantity} {entry.item.unit}",
            created_by=request.user,
        )
        return ok(StockChangeSerializer(change).data)

    def bulk_usage(self, request):
        serializer = StockLinesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        change = stock_service.record_bulk_usage(serializer.validated_data["items"], user=request.user)
        AuditLog.objects.create(
            action="STOCK_USAGE",
            object_type="Item",
            object_id=",".join(str(pk) for pk in change.item_ids)[:60],
            summary=f"Bulk usage of {len(change.entries)} items",
            created_by=request.user,
        )
        return ok(StockChangeSerializer(change).data)


class LowStockView(InventoryAPIView):
    write_groups = ["ADMIN", "MANAGER"]

    def get(self, request):
        query = LowStockQuerySerializer(data=request.query_params)
        query.is_valid(raise_exception=True)
        urgency = query.validated_data.get("urgency", "")
        include_suggestions = query.validated_data["include_suggestions"]

        items = [
            item for item in low_stock_items_qs(Item)
            if not urgency or urgency_level(item.current_quantity, item.min_stock_level) == urgency
        ]
        rows = StockStatusItemSerializer(
            items, many=True, context={"include_suggestions": include_suggestions}
        ).data

        summary = {"total": len(rows)}
        for level in Urgency.values:
            summary[level.lower()] = sum(1 for row in rows if row["urgency"] == level)
        return ok({"low_stock_items": rows, "summary": summary})

    def post(self, request):
        action = request.data.get("action") if isinstance(request.data, dict) else None
        if action == "restock":
            return self.restock(request)
        if action == "batch-restock":
            return self.batch_restock(request)
        if action == "update-threshold":
            return self.update_threshold(request)
        raise ValidationError("Invalid action specified", details={"action": LOW_STOCK_ACTIONS})

    def restock(self, request):
        serializer = StockLineSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        vd = serializer.validated_data
        change = stock_service.restock_item(vd["item_id"], vd["quantity"], vd.get("reason"), user=request.user)

        entry = change.entry
        AuditLog.objects.create(
            action="STOCK_RESTOCK",
            object_type="Item",
            object_id=str(entry.item_id),
            summary=f"{entry.item.name} +{entry.quantity} {entry.item.unit}",
            created_by=request.user,
        )
        return ok(StockChangeSerializer(change).data)

    def batch_restock(self, request):
        serializer = StockLinesSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = stock_service.restock_items(serializer.validated_data["items"], user=request.user)
        if result.successful:
            AuditLog.objects.create(
                action="STOCK_RESTOCK",
                object_type="Item",
                object_id=",".join(str(pk) for pk in result.successful)[:60],
                summary=f"Batch restock: {len(result.successful)} ok, {len(result.failed)} failed",
                created_by=request.user,
            )
        return ok(BatchRestockSerializer(result).data)

    def update_threshold(self, request):
        serializer = ThresholdSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        vd = serializer.validated_data
        item = stock_service.update_min_stock_level(vd["item_id"], vd["min_stock_level"], user=request.user)
        AuditLog.objects.create(
            action="UPDATE_THRESHOLD",
            object_type="Item",
            object_id=str(item.pk),
            summary=f"{item.name} min={item.min_stock_level}",
            created_by=request.user,
        )
        return ok(ItemSerializer(item).data)


class StockLevelsView(InventoryAPIView):
    """Every tracked item with its stock status, filterable and paged."""

    def get(self, request):
        qs = stock_levels_qs(Item, request.query_params)
        page = self.paginate_queryset(qs)
        data = StockStatusItemSerializer(page, many=True).data
        return self.paginator.get_paginated_response(data, summary=stock_summary(Item))


class LedgerHistoryView(InventoryAPIView):
    required_groups = ["ADMIN", "MANAGER"]
    pagination_class = LedgerPagination

    def get(self, request):
        qs = ledger_history_qs(StockLedgerEntry, request.query_params)
        page = self.paginate_queryset(qs)
        return self.paginator.get_paginated_response(LedgerEntrySerializer(page, many=True).data)
