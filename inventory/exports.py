import csv

from django.http import HttpResponse
from django.utils import timezone

from .models import Item, StockLedgerEntry
from .permissions import is_manager, is_staff_member
from .stock_levels import evaluate_stock_status


def export_items_csv(request):
    if not is_staff_member(request.user):
        return HttpResponse("Forbidden", status=403)

    resp = HttpResponse(content_type="text/csv")
    resp["Content-Disposition"] = f'attachment; filename="items_{timezone.now().date()}.csv"'
    w = csv.writer(resp)
    w.writerow(["name", "group", "type", "unit", "quantity", "min_stock_level", "status", "tracked"])

    for i in Item.objects.select_related("group").all().order_by("name"):
        w.writerow([
            i.name,
            str(i.group) if i.group else "",
            i.item_type,
            i.unit,
            i.current_quantity,
            i.min_stock_level,
            evaluate_stock_status(i.current_quantity, i.min_stock_level) if i.stock_tracking_enabled else "",
            "yes" if i.stock_tracking_enabled else "no",
        ])
    return resp


def export_ledger_csv(request):
    if not is_manager(request.user):
        return HttpResponse("Forbidden", status=403)

    resp = HttpResponse(content_type="text/csv")
    resp["Content-Disposition"] = f'attachment; filename="ledger_{timezone.now().date()}.csv"'
    w = csv.writer(resp)
    w.writerow(["time", "item", "type", "quantity", "before", "after", "by", "reason"])

    qs = StockLedgerEntry.objects.select_related("item", "created_by").all().order_by("-created_at")[:5000]
    for e in qs:
        w.writerow([
            e.created_at.isoformat(),
            e.item.name,
            e.entry_type,
            e.quantity,
            e.previous_quantity,
            e.new_quantity,
            getattr(e.created_by, "username", ""),
            e.reason,
        ])
    return resp
