from decimal import Decimal

from rest_framework import serializers

from .models import Item, ItemGroup, Notification, SalesTransaction, SalesTransactionItem, StockLedgerEntry
from .stock_levels import (
    StockStatus,
    Urgency,
    evaluate_stock_status,
    restock_priority,
    suggested_restock,
    urgency_level,
)

QUANTITY = dict(max_digits=12, decimal_places=3)
CENTS = Decimal("0.01")


# --- Read serializers ---

class ItemGroupSerializer(serializers.ModelSerializer):
    item_count = serializers.SerializerMethodField()

    class Meta:
        model = ItemGroup
        fields = ["id", "name", "item_count"]

    def get_item_count(self, obj):
        # annotated on list queries
        count = getattr(obj, "item_count", None)
        return obj.items.count() if count is None else count


class ItemSerializer(serializers.ModelSerializer):
    group_name = serializers.CharField(source="group.name", read_only=True, allow_null=True)

    class Meta:
        model = Item
        fields = [
            "id", "name", "group", "group_name", "item_type", "unit",
            "current_quantity", "min_stock_level",
            "cost_price", "selling_price", "stock_tracking_enabled",
            "last_restocked_at", "created_at", "updated_at",
        ]
        read_only_fields = ["last_restocked_at", "created_at", "updated_at"]


class ItemUpdateSerializer(ItemSerializer):
    """Quantity changes go through adjustments so they land in the ledger."""

    class Meta(ItemSerializer.Meta):
        read_only_fields = ItemSerializer.Meta.read_only_fields + ["current_quantity"]

    def update(self, instance, validated_data):
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        # only the submitted columns; a full save would write back a stale quantity
        instance.save(update_fields=[*validated_data, "updated_at"])
        return instance


class StockStatusItemSerializer(ItemSerializer):
    """An item with the low-stock evaluation attached."""

    status = serializers.SerializerMethodField()
    is_low_stock = serializers.SerializerMethodField()
    urgency = serializers.SerializerMethodField()
    suggested_restock = serializers.SerializerMethodField()

    class Meta(ItemSerializer.Meta):
        fields = ItemSerializer.Meta.fields + ["status", "is_low_stock", "urgency", "suggested_restock"]

    def get_status(self, obj):
        return evaluate_stock_status(obj.current_quantity, obj.min_stock_level)

    def get_is_low_stock(self, obj):
        return self.get_status(obj) != StockStatus.IN_STOCK

    def get_urgency(self, obj):
        if not self.get_is_low_stock(obj):
            return None
        return urgency_level(obj.current_quantity, obj.min_stock_level)

    def get_suggested_restock(self, obj):
        if not self.get_is_low_stock(obj):
            return None
        return suggested_restock(obj.current_quantity, obj.min_stock_level, obj.item_type)

    def to_representation(self, obj):
        data = super().to_representation(obj)
        if self.context.get("include_suggestions") and data["is_low_stock"]:
            priority, reason = restock_priority(obj.current_quantity, obj.min_stock_level)
            cost = (obj.cost_price or Decimal("0")) * data["suggested_restock"]
            data["estimated_cost"] = str(cost.quantize(CENTS))
            data["restock_priority"] = priority
            data["restock_reason"] = reason
        return data


class LedgerEntrySerializer(serializers.ModelSerializer):
    item_id = serializers.IntegerField(read_only=True)
    item_name = serializers.CharField(source="item.name", read_only=True)
    sale_id = serializers.IntegerField(read_only=True, allow_null=True)
    created_by = serializers.CharField(source="created_by.username", read_only=True, allow_null=True)

    class Meta:
        model = StockLedgerEntry
        fields = [
            "id", "item_id", "item_name", "entry_type", "quantity",
            "previous_quantity", "new_quantity", "reason", "sale_id",
            "created_by", "created_at",
        ]
        read_only_fields = ["entry_type", "quantity", "previous_quantity", "new_quantity", "reason", "created_at"]


class StockChangeSerializer(serializers.Serializer):
    entries = LedgerEntrySerializer(many=True, read_only=True)
    alerts = serializers.SerializerMethodField()

    def get_alerts(self, obj):
        return {"created": obj.alerts_created, "errors": obj.alert_errors}


class BatchRestockSerializer(serializers.Serializer):
    successful = serializers.ListField(child=serializers.IntegerField(), read_only=True)
    failed = serializers.ListField(child=serializers.DictField(), read_only=True)
    entries = LedgerEntrySerializer(many=True, read_only=True)


class SaleLineSerializer(serializers.ModelSerializer):
    item_id = serializers.IntegerField(read_only=True)
    item_name = serializers.CharField(source="item.name", read_only=True)

    class Meta:
        model = SalesTransactionItem
        fields = ["item_id", "item_name", "quantity", "unit_price", "total_price"]
        read_only_fields = ["quantity", "unit_price", "total_price"]


class SalesTransactionSerializer(serializers.ModelSerializer):
    items = SaleLineSerializer(source="lines", many=True, read_only=True)

    class Meta:
        model = SalesTransaction
        fields = ["id", "total_amount", "payment_method", "items", "created_at"]
        read_only_fields = ["total_amount", "payment_method", "created_at"]


class NotificationSerializer(serializers.ModelSerializer):
    type = serializers.CharField(source="ntype", read_only=True)
    item_id = serializers.IntegerField(read_only=True, allow_null=True)

    class Meta:
        model = Notification
        fields = ["id", "type", "title", "message", "item_id", "priority", "data", "is_read", "created_at"]
        read_only_fields = ["title", "message", "priority", "data", "is_read", "created_at"]


# --- Write serializers (request bodies) ---

class StockAdjustmentSerializer(serializers.Serializer):
    item_id = serializers.IntegerField(min_value=1)
    new_quantity = serializers.DecimalField(min_value=Decimal("0"), **QUANTITY)
    reason = serializers.CharField(max_length=500)


class StockLineSerializer(serializers.Serializer):
    item_id = serializers.IntegerField(min_value=1)
    quantity = serializers.DecimalField(min_value=Decimal("0.001"), **QUANTITY)
    reason = serializers.CharField(max_length=500, required=False, allow_blank=True)


class StockLinesSerializer(serializers.Serializer):
    items = StockLineSerializer(many=True, allow_empty=False)


class ThresholdSerializer(serializers.Serializer):
    item_id = serializers.IntegerField(min_value=1)
    min_stock_level = serializers.DecimalField(min_value=Decimal("0"), **QUANTITY)


class SaleLineInputSerializer(serializers.Serializer):
    item_id = serializers.IntegerField(min_value=1)
    quantity = serializers.DecimalField(min_value=Decimal("0.001"), **QUANTITY)


class SaleCreateSerializer(serializers.Serializer):
    payment_method = serializers.ChoiceField(choices=SalesTransaction.PaymentMethod.choices)
    items = SaleLineInputSerializer(many=True, allow_empty=False)


class NotificationCreateSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=Notification.Type.choices)
    title = serializers.CharField(max_length=200)
    message = serializers.CharField(required=False, allow_blank=True, default="")
    item_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    priority = serializers.ChoiceField(choices=Notification.Priority.choices, default=Notification.Priority.MEDIUM)

    def validate(self, attrs):
        if attrs["type"] == Notification.Type.LOW_STOCK and not attrs.get("item_id"):
            raise serializers.ValidationError({"item_id": ["Low stock notifications must reference an item."]})
        return attrs


class NotificationUpdateSerializer(serializers.Serializer):
    is_read = serializers.BooleanField()


class CheckLowStockSerializer(serializers.Serializer):
    item_id = serializers.IntegerField(min_value=1, required=False)


class LowStockQuerySerializer(serializers.Serializer):
    urgency = serializers.ChoiceField(choices=Urgency.choices, required=False, allow_blank=True)
    include_suggestions = serializers.BooleanField(required=False, default=False)

    def to_internal_value(self, data):
        data = {key: data.get(key) for key in data}
        if data.get("urgency"):
            data["urgency"] = data["urgency"].strip().upper()
        return super().to_internal_value(data)
