from django.db.models import Count, F, Q
from django.utils.dateparse import parse_date

from .exceptions import ValidationError
from .stock_levels import StockStatus


def tracked_items_qs(ItemModel):
    return ItemModel.objects.select_related("group").filter(stock_tracking_enabled=True)


def low_stock_items_qs(ItemModel):
    """
    Tracked items at or below their minimum level (inclusive),
    emptiest first.
    """
    return (
        tracked_items_qs(ItemModel)
        .filter(current_quantity__lte=F("min_stock_level"))
        .order_by("current_quantity", "name")
    )


def stock_status_q(status):
    """ORM filter matching evaluate_stock_status()."""
    if status == StockStatus.OUT_OF_STOCK:
        return Q(current_quantity=0)
    if status == StockStatus.LOW_STOCK:
        return Q(current_quantity__gt=0, current_quantity__lte=F("min_stock_level"))
    return Q(current_quantity__gt=F("min_stock_level"))


def stock_levels_qs(ItemModel, params):
    qs = tracked_items_qs(ItemModel).order_by("name")

    q = params.get("search", "").strip()
    itype = params.get("type", "").strip()       # STOCK/SELLABLE/COMBINATION
    group = params.get("group", "").strip()      # group id
    status = params.get("status", "").strip()    # IN_STOCK/LOW_STOCK/OUT_OF_STOCK

    if q:
        qs = qs.filter(name__icontains=q)
    if itype in ItemModel.Type.values:
        qs = qs.filter(item_type=itype)
    if group.isdigit():
        qs = qs.filter(group_id=int(group))
    if status in StockStatus.values:
        qs = qs.filter(stock_status_q(status))
    return qs


def stock_summary(ItemModel):
    return tracked_items_qs(ItemModel).aggregate(
        total=Count("id"),
        in_stock=Count("id", filter=stock_status_q(StockStatus.IN_STOCK)),
        low_stock=Count("id", filter=stock_status_q(StockStatus.LOW_STOCK)),
        out_of_stock=Count("id", filter=stock_status_q(StockStatus.OUT_OF_STOCK)),
    )


def _date_param(params, key):
    raw = params.get(key, "").strip()
    if not raw:
        return None
    try:
        value = parse_date(raw)
    except ValueError:
        value = None
    if value is None:
        raise ValidationError(details={key: ["Enter a valid date (YYYY-MM-DD)."]})
    return value


def ledger_history_qs(LedgerModel, params):
    qs = LedgerModel.objects.select_related("item", "created_by", "sale").order_by("-created_at", "-id")

    q = params.get("q", "").strip()
    etype = params.get("type", "").strip()       # ADJUSTMENT/USAGE/SALE/ADDITION
    item = params.get("item", "").strip()        # item id or name contains
    date_from = _date_param(params, "from")
    date_to = _date_param(params, "to")

    if q:
        qs = qs.filter(Q(item__name__icontains=q) | Q(reason__icontains=q))
    if etype in LedgerModel.Type.values:
        qs = qs.filter(entry_type=etype)
    if item:
        if item.isdigit():
            qs = qs.filter(item_id=int(item))
        else:
            qs = qs.filter(item__name__icontains=item)
    if date_from:
        qs = qs.filter(created_at__date__gte=date_from)
    if date_to:
        qs = qs.filter(created_at__date__lte=date_to)
    return qs
