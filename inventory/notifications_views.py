from django.shortcuts import get_object_or_404

from . import notify
from .api import InventoryAPIView, ok
from .models import Item, Notification
from .serializers import (
    CheckLowStockSerializer,
    NotificationCreateSerializer,
    NotificationSerializer,
    NotificationUpdateSerializer,
    StockStatusItemSerializer,
)

NOTIFICATION_LIMIT = 100


class NotificationListView(InventoryAPIView):
    write_groups = ["ADMIN", "MANAGER"]

    def get(self, request):
        qs = Notification.objects.select_related("item").order_by("-created_at", "-id")
        if request.query_params.get("unread_only") == "true":
            qs = qs.unread()
        ntype = request.query_params.get("type", "").strip()
        if ntype:
            qs = qs.filter(ntype=ntype)
        return ok(NotificationSerializer(qs[:NOTIFICATION_LIMIT], many=True).data)

    def post(self, request):
        serializer = NotificationCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        vd = serializer.validated_data
        item = None
        if vd.get("item_id"):
            item = get_object_or_404(Item, pk=vd["item_id"])
        notification = notify.create_notification(
            vd["type"], vd["title"], vd["message"], item=item, priority=vd["priority"]
        )
        return ok(NotificationSerializer(notification).data, status=201)


class NotificationDetailView(InventoryAPIView):

    def patch(self, request, pk):
        notification = get_object_or_404(Notification, pk=pk)
        serializer = NotificationUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        if serializer.validated_data["is_read"]:
            notify.mark_read(notification)
        else:
            notify.mark_unread(notification)
        return ok(NotificationSerializer(notification).data)

    def delete(self, request, pk):
        notification = get_object_or_404(Notification, pk=pk)
        notification.delete()
        return ok({"id": pk})


class NotificationMarkAllReadView(InventoryAPIView):

    def patch(self, request):
        return ok({"modified_count": notify.mark_all_read()})


class NotificationUnreadCountView(InventoryAPIView):

    def get(self, request):
        return ok({"unread": notify.unread_count()})


class CheckLowStockView(InventoryAPIView):

    def post(self, request):
        serializer = CheckLowStockSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        item_id = serializer.validated_data.get("item_id")
        if item_id is not None:
            get_object_or_404(Item, pk=item_id)
            return ok({"item_id": item_id, "alert_created": notify.check_item_low_stock(item_id)})

        result = notify.check_all_low_stock()
        return ok(
            {
                "low_stock_items": StockStatusItemSerializer(result.low_stock_items, many=True).data,
                "notifications_created": result.notifications_created,
            }
        )
