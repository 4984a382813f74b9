import threading
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import connection, transaction
from django.test.utils import CaptureQueriesContext

from inventory import notify, stock_service
from inventory.exceptions import (
    InsufficientStock,
    ItemNotFound,
    ItemNotSellable,
    TrackingDisabled,
    ValidationError,
)
from inventory.models import Item, Notification, SalesTransaction, StockLedgerEntry

pytestmark = pytest.mark.django_db


class TestAdjustStock:
    def test_sets_absolute_quantity_and_writes_entry(self, make_item, make_user):
        item = make_item("10")
        user = make_user("MANAGER")

        change = stock_service.adjust_stock(item.pk, "4", "Weekly count", user=user)

        item.refresh_from_db()
        entry = change.entry
        assert item.current_quantity == Decimal("4")
        assert entry.entry_type == StockLedgerEntry.Type.ADJUSTMENT
        assert entry.quantity == Decimal("-6")
        assert entry.previous_quantity == Decimal("10")
        assert entry.new_quantity == Decimal("4")
        assert entry.reason == "Weekly count"
        assert entry.created_by == user

    def test_adjust_can_raise_quantity(self, make_item):
        item = make_item("2")
        change = stock_service.adjust_stock(item.pk, Decimal("7.5"), "Found a crate")
        assert change.entry.quantity == Decimal("5.5")

    @pytest.mark.parametrize("reason", ["", "   ", None])
    def test_reason_is_required(self, make_item, reason):
        item = make_item("10")
        with pytest.raises(ValidationError) as exc:
            stock_service.adjust_stock(item.pk, "4", reason)
        assert "reason" in exc.value.details
        assert not StockLedgerEntry.objects.exists()

    def test_reason_length_is_capped(self, make_item):
        item = make_item("10")
        with pytest.raises(ValidationError):
            stock_service.adjust_stock(item.pk, "4", "x" * 501)

    def test_negative_target_rejected(self, make_item):
        item = make_item("10")
        with pytest.raises(ValidationError) as exc:
            stock_service.adjust_stock(item.pk, "-1", "oops")
        assert "new_quantity" in exc.value.details
        item.refresh_from_db()
        assert item.current_quantity == Decimal("10")

    def test_too_many_decimal_places_rejected(self, make_item):
        item = make_item("10")
        with pytest.raises(ValidationError):
            stock_service.adjust_stock(item.pk, "1.0001", "scale")

    def test_unknown_item(self):
        with pytest.raises(ItemNotFound) as exc:
            stock_service.adjust_stock(999999, "4", "count")
        assert exc.value.item_ids == [999999]

    def test_tracking_disabled(self, make_item):
        item = make_item("10", stock_tracking_enabled=False)
        with pytest.raises(TrackingDisabled):
            stock_service.adjust_stock(item.pk, "4", "count")
        assert not StockLedgerEntry.objects.exists()


class TestRecordUsage:
    def test_deducts_and_uses_default_reason(self, make_item):
        item = make_item("10")

        change = stock_service.record_usage(item.pk, "2.25")

        item.refresh_from_db()
        assert item.current_quantity == Decimal("7.75")
        assert change.entry.entry_type == StockLedgerEntry.Type.USAGE
        assert change.entry.quantity == Decimal("-2.25")
        assert change.entry.reason == "Stock usage recorded"

    def test_can_use_everything(self, make_item):
        item = make_item("3")
        stock_service.record_usage(item.pk, "3")
        item.refresh_from_db()
        assert item.current_quantity == 0

    def test_insufficient_stock_reports_available_and_requested(self, make_item):
        item = make_item("3", unit="kg")

        with pytest.raises(InsufficientStock) as exc:
            stock_service.record_usage(item.pk, "5")

        err = exc.value
        assert err.item_id == item.pk
        assert err.available == Decimal("3")
        assert err.requested == Decimal("5")
        assert err.unit == "kg"
        assert err.message.startswith("Insufficient stock. Available: 3")
        item.refresh_from_db()
        assert item.current_quantity == Decimal("3")
        assert not StockLedgerEntry.objects.exists()

    @pytest.mark.parametrize("quantity", ["0", "-1", "abc", None])
    def test_quantity_must_be_positive_number(self, make_item, quantity):
        item = make_item("10")
        with pytest.raises(ValidationError):
            stock_service.record_usage(item.pk, quantity)

    def test_tracking_disabled(self, make_item):
        item = make_item("10", stock_tracking_enabled=False)
        with pytest.raises(TrackingDisabled):
            stock_service.record_usage(item.pk, "1")


class TestRecordBulkUsage:
    def test_writes_one_entry_per_line(self, make_item):
        flour = make_item("10")
        oil = make_item("4")

        change = stock_service.record_bulk_usage(
            [
                {"item_id": flour.pk, "quantity": "2"},
                {"item_id": oil.pk, "quantity": "1", "reason": "Fryer top-up"},
            ]
        )

        assert len(change.entries) == 2
        flour.refresh_from_db()
        oil.refresh_from_db()
        assert flour.current_quantity == Decimal("8")
        assert oil.current_quantity == Decimal("3")
        reasons = {e.item_id: e.reason for e in change.entries}
        assert reasons == {flour.pk: "Bulk stock usage recorded", oil.pk: "Fryer top-up"}

    def test_one_short_line_rejects_the_batch(self, make_item):
        flour = make_item("10")
        oil = make_item("1")

        with pytest.raises(InsufficientStock) as exc:
            stock_service.record_bulk_usage(
                [
                    {"item_id": flour.pk, "quantity": "5"},
                    {"item_id": oil.pk, "quantity": "2"},
                ]
            )

        assert [s["item_id"] for s in exc.value.shortages] == [oil.pk]
        flour.refresh_from_db()
        assert flour.current_quantity == Decimal("10")
        assert not StockLedgerEntry.objects.exists()

    def test_repeated_item_is_summed(self, make_item):
        flour = make_item("5")
        with pytest.raises(InsufficientStock):
            stock_service.record_bulk_usage(
                [
                    {"item_id": flour.pk, "quantity": "3"},
                    {"item_id": flour.pk, "quantity": "3"},
                ]
            )

    def test_repeated_item_entries_chain(self, make_item):
        flour = make_item("10")
        change = stock_service.record_bulk_usage(
            [
                {"item_id": flour.pk, "quantity": "3"},
                {"item_id": flour.pk, "quantity": "2"},
            ]
        )
        first, second = change.entries
        assert (first.previous_quantity, first.new_quantity) == (Decimal("10"), Decimal("7"))
        assert (second.previous_quantity, second.new_quantity) == (Decimal("7"), Decimal("5"))

    def test_missing_item_lists_all_ids(self, make_item):
        flour = make_item("10")
        with pytest.raises(ItemNotFound) as exc:
            stock_service.record_bulk_usage(
                [
                    {"item_id": flour.pk, "quantity": "1"},
                    {"item_id": 424242, "quantity": "1"},
                    {"item_id": 434343, "quantity": "1"},
                ]
            )
        assert exc.value.item_ids == [424242, 434343]
        flour.refresh_from_db()
        assert flour.current_quantity == Decimal("10")

    def test_untracked_item_rejects_the_batch(self, make_item):
        flour = make_item("10")
        napkins = make_item("10", stock_tracking_enabled=False)
        with pytest.raises(TrackingDisabled) as exc:
            stock_service.record_bulk_usage(
                [
                    {"item_id": flour.pk, "quantity": "1"},
                    {"item_id": napkins.pk, "quantity": "1"},
                ]
            )
        assert exc.value.item_ids == [napkins.pk]
        assert not StockLedgerEntry.objects.exists()

    def test_empty_batch_rejected(self):
        with pytest.raises(ValidationError):
            stock_service.record_bulk_usage([])

    def test_invalid_line_is_reported_by_index(self, make_item):
        flour = make_item("10")
        with pytest.raises(ValidationError) as exc:
            stock_service.record_bulk_usage(
                [
                    {"item_id": flour.pk, "quantity": "1"},
                    {"item_id": flour.pk, "quantity": "-2"},
                ]
            )
        assert list(exc.value.details["items"]) == ["1"]


class TestRestockAndThreshold:
    def test_restock_adds_and_stamps(self, make_item):
        item = make_item("2")

        change = stock_service.restock_item(item.pk, "8")

        item.refresh_from_db()
        assert item.current_quantity == Decimal("10")
        assert item.last_restocked_at is not None
        assert change.entry.entry_type == StockLedgerEntry.Type.ADDITION
        assert change.entry.quantity == Decimal("8")
        assert change.entry.reason == "Inventory restock"

    def test_update_threshold_triggers_check(self, make_item, django_capture_on_commit_callbacks):
        item = make_item("6", "5")

        with django_capture_on_commit_callbacks(execute=True):
            updated = stock_service.update_min_stock_level(item.pk, "8")

        assert updated.min_stock_level == Decimal("8")
        assert Notification.objects.unread_low_stock().filter(item=item).count() == 1

    def test_threshold_must_be_non_negative(self, make_item):
        item = make_item("6", "5")
        with pytest.raises(ValidationError):
            stock_service.update_min_stock_level(item.pk, "-1")


class TestLowStockLifecycle:
    def test_usage_usage_restock(self, make_item, django_capture_on_commit_callbacks):
        item = make_item("10", "5", name="Tomatoes")

        with django_capture_on_commit_callbacks(execute=True):
            first = stock_service.record_usage(item.pk, "6")
        assert first.alerts_created == [item.pk]
        assert first.entry.new_quantity == Decimal("4")

        with django_capture_on_commit_callbacks(execute=True):
            second = stock_service.record_usage(item.pk, "1")
        assert second.alerts_created == []
        assert Notification.objects.filter(item=item).count() == 1

        with django_capture_on_commit_callbacks(execute=True):
            stock_service.restock_item(item.pk, "17")
        item.refresh_from_db()
        assert item.current_quantity == Decimal("20")

        # restocking leaves the alert for someone to acknowledge
        alert = Notification.objects.get(item=item)
        assert alert.is_read is False
        assert alert.title == "Low Stock Alert: Tomatoes"

    def test_evaluation_waits_for_commit(self, make_item, django_capture_on_commit_callbacks):
        item = make_item("10", "5")

        with django_capture_on_commit_callbacks() as callbacks:
            stock_service.record_usage(item.pk, "6")

        assert len(callbacks) == 1
        assert not Notification.objects.exists()

    def test_failed_validation_schedules_nothing(self, make_item, django_capture_on_commit_callbacks):
        item = make_item("1", "5")

        with django_capture_on_commit_callbacks() as callbacks:
            with pytest.raises(InsufficientStock):
                stock_service.record_usage(item.pk, "2")

        assert callbacks == []


class TestLedgerImmutability:
    def test_entries_cannot_be_changed(self, make_item):
        item = make_item("10")
        entry = stock_service.record_usage(item.pk, "1").entry

        entry.reason = "rewritten"
        with pytest.raises(DjangoValidationError):
            entry.save()

    def test_entries_cannot_be_deleted(self, make_item):
        item = make_item("10")
        entry = stock_service.record_usage(item.pk, "1").entry

        with pytest.raises(DjangoValidationError):
            entry.delete()
        assert StockLedgerEntry.objects.filter(pk=entry.pk).exists()


class TestRecordSale:
    def test_sale_deducts_tracked_items(self, make_item, make_user):
        burger = make_item("10", "2", item_type=Item.Type.SELLABLE, selling_price=Decimal("250.00"))
        user = make_user("STAFF")

        sale, change = stock_service.record_sale(
            [{"item_id": burger.pk, "quantity": "2"}], SalesTransaction.PaymentMethod.CASH, user=user
        )

        burger.refresh_from_db()
        assert burger.current_quantity == Decimal("8")
        assert sale.total_amount == Decimal("500.00")
        assert sale.lines.count() == 1
        entry = change.entry
        assert entry.entry_type == StockLedgerEntry.Type.SALE
        assert entry.sale == sale
        assert entry.reason == f"Sale transaction {sale.pk}"

    def test_untracked_item_sold_without_ledger_entry(self, make_item):
        coffee = make_item(
            "0", "0",
            item_type=Item.Type.COMBINATION,
            selling_price=Decimal("40.00"),
            stock_tracking_enabled=False,
        )

        sale, change = stock_service.record_sale(
            [{"item_id": coffee.pk, "quantity": "3"}], SalesTransaction.PaymentMethod.TELEBIRR
        )

        assert sale.total_amount == Decimal("120.00")
        assert change.entries == []
        assert not StockLedgerEntry.objects.exists()

    def test_stock_only_item_cannot_be_sold(self, make_item):
        flour = make_item("10", selling_price=Decimal("10.00"))
        with pytest.raises(ItemNotSellable):
            stock_service.record_sale(
                [{"item_id": flour.pk, "quantity": "1"}], SalesTransaction.PaymentMethod.CASH
            )
        assert not SalesTransaction.objects.exists()

    def test_item_without_price_cannot_be_sold(self, make_item):
        burger = make_item("10", item_type=Item.Type.SELLABLE, selling_price=None)
        with pytest.raises(ItemNotSellable):
            stock_service.record_sale(
                [{"item_id": burger.pk, "quantity": "1"}], SalesTransaction.PaymentMethod.CASH
            )

    def test_short_sale_writes_nothing(self, make_item):
        burger = make_item("1", item_type=Item.Type.SELLABLE, selling_price=Decimal("250.00"))
        with pytest.raises(InsufficientStock):
            stock_service.record_sale(
                [{"item_id": burger.pk, "quantity": "2"}], SalesTransaction.PaymentMethod.POS
            )
        assert not SalesTransaction.objects.exists()
        assert not StockLedgerEntry.objects.exists()

    def test_unknown_payment_method(self, make_item):
        burger = make_item("5", item_type=Item.Type.SELLABLE, selling_price=Decimal("250.00"))
        with pytest.raises(ValidationError):
            stock_service.record_sale([{"item_id": burger.pk, "quantity": "1"}], "BITCOIN")


class TestBatchRestock:
    def test_each_line_commits_independently(self, make_item, make_user):
        flour = make_item("2", "5")
        oil = make_item("1", "5")
        candles = make_item("0", "5", stock_tracking_enabled=False)
        user = make_user("MANAGER")

        result = stock_service.restock_items(
            [
                {"item_id": flour.pk, "quantity": Decimal("8")},
                {"item_id": candles.pk, "quantity": Decimal("3")},
                {"item_id": 999999, "quantity": Decimal("1")},
                {"item_id": oil.pk, "quantity": Decimal("4"), "reason": "supplier delivery"},
            ],
            user=user,
        )

        assert result.successful == [flour.pk, oil.pk]
        assert [(f["item_id"], f["code"]) for f in result.failed] == [
            (candles.pk, "STOCK_TRACKING_DISABLED"),
            (999999, "ITEM_NOT_FOUND"),
        ]
        flour.refresh_from_db()
        oil.refresh_from_db()
        assert flour.current_quantity == Decimal("10")
        assert oil.current_quantity == Decimal("5")
        assert [e.reason for e in result.entries] == ["Inventory restock", "supplier delivery"]
        assert all(e.created_by == user for e in result.entries)

    def test_invalid_quantity_is_reported_not_raised(self, make_item):
        item = make_item("2")
        result = stock_service.restock_items([{"item_id": item.pk, "quantity": "-1"}])
        assert result.successful == []
        assert result.failed[0]["code"] == "VALIDATION_ERROR"

    def test_empty_batch_rejected(self):
        with pytest.raises(ValidationError):
            stock_service.restock_items([])


class TestAdjustToRecovery:
    def test_adjusting_above_threshold_creates_no_alert(self, make_item, django_capture_on_commit_callbacks):
        item = make_item("3", "5")

        with django_capture_on_commit_callbacks(execute=True):
            change = stock_service.adjust_stock(item.pk, "20", "restock")

        assert change.entry.new_quantity == Decimal("20")
        assert change.alerts_created == []
        assert notify.check_item_low_stock(item.pk) is False
        assert not Notification.objects.exists()


@pytest.mark.django_db(transaction=True)
class TestRowLocking:
    def test_items_locked_for_update_in_pk_order(self, make_item):
        if not connection.features.has_select_for_update:
            pytest.skip("database has no SELECT ... FOR UPDATE")
        first = make_item("10")
        second = make_item("10")

        with CaptureQueriesContext(connection) as ctx:
            with transaction.atomic():
                stock_service._lock_items([second.pk, first.pk])

        selects = [q["sql"] for q in ctx.captured_queries if "FOR UPDATE" in q["sql"]]
        assert len(selects) == 1
        assert "ORDER BY" in selects[0]

    def test_concurrent_usage_never_oversells(self, make_item):
        if connection.vendor != "postgresql":
            pytest.skip("needs row locks across connections")
        item = make_item("10")
        barrier = threading.Barrier(2)
        outcomes = []

        def use_seven():
            barrier.wait()
            try:
                stock_service.record_usage(item.pk, "7")
                outcomes.append("ok")
            except InsufficientStock:
                outcomes.append("short")
            finally:
                connection.close()

        threads = [threading.Thread(target=use_seven) for _ in range(2)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        item.refresh_from_db()
        assert sorted(outcomes) == ["ok", "short"]
        assert item.current_quantity == Decimal("3")
        assert StockLedgerEntry.objects.filter(item=item).count() == 1
