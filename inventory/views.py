from django.db import transaction
from django.db.models import Count, ProtectedError, Q
from django.shortcuts import get_object_or_404

from . import stock_service
from .api import InventoryAPIView, ok
from .exceptions import GroupInUse, ItemInUse
from .models import AuditLog, Item, ItemGroup
from .serializers import (
    ItemGroupSerializer,
    ItemSerializer,
    ItemUpdateSerializer,
    LedgerEntrySerializer,
    SaleCreateSerializer,
    SalesTransactionSerializer,
    StockChangeSerializer,
)

# fields whose change can flip an item's low-stock state
THRESHOLD_FIELDS = ("min_stock_level", "stock_tracking_enabled")


def _audit(request, action, object_type, object_id, summary=""):
    AuditLog.objects.create(
        action=action,
        object_type=object_type,
        object_id=str(object_id)[:60],
        summary=summary[:255],
        created_by=request.user,
    )


# -----------------------
# Item CRUD
# -----------------------
class ItemListView(InventoryAPIView):
    write_groups = ["ADMIN", "MANAGER"]

    def get(self, request):
        qs = Item.objects.select_related("group").order_by("name")
        q = request.query_params.get("q", "").strip()
        item_type = request.query_params.get("type", "").strip()
        if q:
            qs = qs.filter(Q(name__icontains=q) | Q(group__name__icontains=q))
        if item_type:
            qs = qs.filter(item_type=item_type)
        return ok(ItemSerializer(qs, many=True).data)

    def post(self, request):
        serializer = ItemSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        with transaction.atomic():
            item = serializer.save()
            _audit(request, "CREATE_ITEM", "Item", item.id, item.name)
            stock_service.announce_stock_change([item.pk])
        return ok(ItemSerializer(item).data, status=201)


class ItemDetailView(InventoryAPIView):
    write_groups = ["ADMIN", "MANAGER"]

    def get(self, request, pk):
        item = get_object_or_404(Item.objects.select_related("group"), pk=pk)
        data = ItemSerializer(item).data
        entries = item.ledger_entries.select_related("item", "created_by")[:20]
        data["recent_entries"] = LedgerEntrySerializer(entries, many=True).data
        return ok(data)

    def patch(self, request, pk):
        with transaction.atomic():
            # locked so a concurrent stock change cannot interleave with the edit
            item = get_object_or_404(Item.objects.select_for_update(), pk=pk)
            before = {f: getattr(item, f) for f in THRESHOLD_FIELDS}

            serializer = ItemUpdateSerializer(item, data=request.data, partial=True)
            serializer.is_valid(raise_exception=True)
            item = serializer.save()

            _audit(request, "UPDATE_ITEM", "Item", item.id, item.name)
            if any(getattr(item, f) != value for f, value in before.items()):
                stock_service.announce_stock_change([item.pk])
        return ok(ItemSerializer(item).data)

    def delete(self, request, pk):
        item = get_object_or_404(Item, pk=pk)
        try:
            item.delete()
        except ProtectedError:
            raise ItemInUse()

        _audit(request, "DELETE_ITEM", "Item", pk, item.name)
        return ok({"id": pk})


# -----------------------
# Item groups
# -----------------------
class ItemGroupListView(InventoryAPIView):
    write_groups = ["ADMIN", "MANAGER"]

    def get(self, request):
        qs = ItemGroup.objects.annotate(item_count=Count("items")).order_by("name")
        q = request.query_params.get("q", "").strip()
        if q:
            qs = qs.filter(name__icontains=q)
        return ok(ItemGroupSerializer(qs, many=True).data)

    def post(self, request):
        serializer = ItemGroupSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        group = serializer.save()
        _audit(request, "CREATE_GROUP", "ItemGroup", group.id, group.name)
        return ok(ItemGroupSerializer(group).data, status=201)


class ItemGroupDetailView(InventoryAPIView):
    write_groups = ["ADMIN", "MANAGER"]

    def get(self, request, pk):
        group = get_object_or_404(ItemGroup.objects.annotate(item_count=Count("items")), pk=pk)
        return ok(ItemGroupSerializer(group).data)

    def patch(self, request, pk):
        group = get_object_or_404(ItemGroup, pk=pk)
        serializer = ItemGroupSerializer(group, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        group = serializer.save()
        _audit(request, "UPDATE_GROUP", "ItemGroup", group.id, group.name)
        return ok(ItemGroupSerializer(group).data)

    def delete(self, request, pk):
        group = get_object_or_404(ItemGroup, pk=pk)
        try:
            group.delete()
        except ProtectedError:
            raise GroupInUse(details={"item_count": group.items.count()})

        _audit(request, "DELETE_GROUP", "ItemGroup", pk, group.name)
        return ok({"id": pk})


# -----------------------
# Sales
# -----------------------
class SaleCreateView(InventoryAPIView):

    def post(self, request):
        serializer = SaleCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        sale, change = stock_service.record_sale(
            serializer.validated_data["items"],
            serializer.validated_data["payment_method"],
            user=request.user,
        )
        _audit(request, "SALES_TRANSACTION", "Sale", sale.pk, f"{sale.payment_method} {sale.total_amount}")

        data = SalesTransactionSerializer(sale).data
        data.update(StockChangeSerializer(change).data)
        return ok(data, status=201)
