from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.serializers.json import DjangoJSONEncoder
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q


QUANTITY_FIELD = dict(max_digits=12, decimal_places=3)
MONEY_FIELD = dict(max_digits=12, decimal_places=2)


# -----------------------
# Master data
# -----------------------
class ItemGroup(models.Model):
    name = models.CharField(max_length=120, unique=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


# -----------------------
# Items / Stock
# -----------------------
class Item(models.Model):
    class Type(models.TextChoices):
        STOCK = "STOCK", "Stock"
        SELLABLE = "SELLABLE", "Sellable"
        COMBINATION = "COMBINATION", "Combination"

    name = models.CharField(max_length=100)
    group = models.ForeignKey(
        ItemGroup, on_delete=models.PROTECT, null=True, blank=True, related_name="items"
    )
    item_type = models.CharField(max_length=20, choices=Type.choices, default=Type.STOCK)
    unit = models.CharField(max_length=20, default="units")  # kg, liters, pieces ...

    current_quantity = models.DecimalField(
        **QUANTITY_FIELD, default=Decimal("0"), validators=[MinValueValidator(0)]
    )
    min_stock_level = models.DecimalField(
        **QUANTITY_FIELD, default=Decimal("0"), validators=[MinValueValidator(0)]
    )
    cost_price = models.DecimalField(
        **MONEY_FIELD, null=True, blank=True, validators=[MinValueValidator(0)]
    )
    selling_price = models.DecimalField(
        **MONEY_FIELD, null=True, blank=True, validators=[MinValueValidator(0)]
    )
    stock_tracking_enabled = models.BooleanField(default=True)
    last_restocked_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        constraints = [
            models.CheckConstraint(
                condition=Q(current_quantity__gte=0), name="item_quantity_non_negative"
            ),
            models.CheckConstraint(
                condition=Q(min_stock_level__gte=0), name="item_min_stock_non_negative"
            ),
        ]

    @property
    def is_sellable(self) -> bool:
        return self.item_type in {self.Type.SELLABLE, self.Type.COMBINATION}

    def __str__(self):
        return f"{self.name} ({self.current_quantity} {self.unit})"


class StockLedgerEntry(models.Model):
    class Type(models.TextChoices):
        ADJUSTMENT = "ADJUSTMENT", "Manual adjustment"
        USAGE = "USAGE", "Recorded usage"
        SALE = "SALE", "Sale"
        ADDITION = "ADDITION", "Restock"

    item = models.ForeignKey(Item, on_delete=models.PROTECT, related_name="ledger_entries")
    entry_type = models.CharField(max_length=12, choices=Type.choices)
    quantity = models.DecimalField(**QUANTITY_FIELD)  # signed delta
    previous_quantity = models.DecimalField(**QUANTITY_FIELD, validators=[MinValueValidator(0)])
    new_quantity = models.DecimalField(**QUANTITY_FIELD, validators=[MinValueValidator(0)])
    reason = models.CharField(max_length=500, blank=True, default="")
    sale = models.ForeignKey(
        "SalesTransaction",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="ledger_entries",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        verbose_name_plural = "stock ledger entries"
        indexes = [models.Index(fields=["item", "-created_at"], name="ledger_item_created_idx")]

    def save(self, *args, **kwargs):
        # ledger is append-only
        if not self._state.adding:
            raise ValidationError("Stock ledger entries are immutable")
        return super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValidationError("Stock ledger entries are immutable")

    def __str__(self):
        return f"{self.item.name} {self.entry_type} {self.quantity}"


# -----------------------
# Sales
# -----------------------
class SalesTransaction(models.Model):
    class PaymentMethod(models.TextChoices):
        CBE = "CBE", "CBE"
        ABYSSINIA = "ABYSSINIA", "Abyssinia"
        ZEMEN = "ZEMEN", "Zemen"
        AWASH = "AWASH", "Awash"
        TELEBIRR = "TELEBIRR", "Telebirr"
        CASH = "CASH", "Cash"
        POS = "POS", "POS"

    total_amount = models.DecimalField(**MONEY_FIELD, validators=[MinValueValidator(0)])
    payment_method = models.CharField(max_length=12, choices=PaymentMethod.choices)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"Sale #{self.pk} {self.total_amount}"


class SalesTransactionItem(models.Model):
    sale = models.ForeignKey(SalesTransaction, on_delete=models.CASCADE, related_name="lines")
    item = models.ForeignKey(Item, on_delete=models.PROTECT, related_name="sale_lines")
    quantity = models.DecimalField(**QUANTITY_FIELD, validators=[MinValueValidator(Decimal("0.001"))])
    unit_price = models.DecimalField(**MONEY_FIELD)
    total_price = models.DecimalField(**MONEY_FIELD)


# -----------------------
# Audit Log
# -----------------------
class AuditLog(models.Model):
    action = models.CharField(max_length=60)  # STOCK_ADJUSTMENT, STOCK_USAGE, SALE, ...
    object_type = models.CharField(max_length=60)  # Item/Sale/Notification
    object_id = models.CharField(max_length=60)
    summary = models.CharField(max_length=255, blank=True, default="")
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.action} {self.object_type}:{self.object_id}"


# -----------------------
# Notifications
# -----------------------
class NotificationQuerySet(models.QuerySet):
    def unread(self):
        return self.filter(is_read=False)

    def unread_low_stock(self):
        return self.filter(ntype=Notification.Type.LOW_STOCK, is_read=False)


class Notification(models.Model):
    class Type(models.TextChoices):
        LOW_STOCK = "LOW_STOCK", "Low Stock"
        SYSTEM = "SYSTEM", "System"
        ALERT = "ALERT", "Alert"

    class Priority(models.TextChoices):
        LOW = "LOW", "Low"
        MEDIUM = "MEDIUM", "Medium"
        HIGH = "HIGH", "High"

    ntype = models.CharField(max_length=32, choices=Type.choices)
    title = models.CharField(max_length=200)
    message = models.TextField(blank=True, default="")
    item = models.ForeignKey(
        Item, on_delete=models.CASCADE, null=True, blank=True, related_name="notifications"
    )
    priority = models.CharField(max_length=10, choices=Priority.choices, default=Priority.MEDIUM)
    data = models.JSONField(default=dict, blank=True, encoder=DjangoJSONEncoder)
    is_read = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)

    objects = NotificationQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at", "-id"]
        constraints = [
            models.UniqueConstraint(
                fields=["item", "ntype"],
                condition=Q(ntype="LOW_STOCK", is_read=False),
                name="unique_unread_low_stock_per_item",
            )
        ]

    def __str__(self):
        return f"{self.ntype}: {self.title}"
