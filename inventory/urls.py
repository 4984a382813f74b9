from django.urls import path

from . import notifications_views, stock_views, views
from .exports import export_items_csv, export_ledger_csv


app_name = "inventory"

urlpatterns = [
    # Items
    path("items/", views.ItemListView.as_view(), name="item_list"),
    path("items/<int:pk>/", views.ItemDetailView.as_view(), name="item_detail"),
    path("groups/", views.ItemGroupListView.as_view(), name="group_list"),
    path("groups/<int:pk>/", views.ItemGroupDetailView.as_view(), name="group_detail"),

    # Stock
    path("inventory/adjustment/", stock_views.StockAdjustmentView.as_view(), name="stock_adjustment"),
    path("inventory/usage/", stock_views.StockUsageView.as_view(), name="stock_usage"),
    path("inventory/low-stock/", stock_views.LowStockView.as_view(), name="low_stock"),
    path("inventory/stock-levels/", stock_views.StockLevelsView.as_view(), name="stock_levels"),
    path("inventory/ledger/", stock_views.LedgerHistoryView.as_view(), name="ledger_history"),

    # Sales
    path("sales/", views.SaleCreateView.as_view(), name="sale_create"),

    path("export/items.csv", export_items_csv, name="export_items_csv"),
    path("export/ledger.csv", export_ledger_csv, name="export_ledger_csv"),
]

urlpatterns += [
    path("notifications/", notifications_views.NotificationListView.as_view(), name="notifications"),
    path("notifications/<int:pk>/", notifications_views.NotificationDetailView.as_view(), name="notification_detail"),
    path("notifications/mark-all-read/", notifications_views.NotificationMarkAllReadView.as_view(), name="notifications_mark_all_read"),
    path("notifications/unread-count/", notifications_views.NotificationUnreadCountView.as_view(), name="notifications_unread_count"),
    path("notifications/check-low-stock/", notifications_views.CheckLowStockView.as_view(), name="check_low_stock"),
]
