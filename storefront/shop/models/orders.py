# storefront/shop/models/orders.py
"""
Orders and their line items.
"""
from decimal import Decimal

from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import F, Sum
from django.utils import timezone

from storefront.core.exceptions import OrderStateError
from storefront.shop.managers import MONEY, OrderManager
from storefront.shop.models.base import TimeStampedModel


class Order(TimeStampedModel):
    class Status(models.TextChoices):
        PENDING = "pending", "Pending"
        PAID = "paid", "Paid"
        SHIPPED = "shipped", "Shipped"
        DELIVERED = "delivered", "Delivered"
        CANCELLED = "cancelled", "Cancelled"

    # Allowed forward moves; delivered and cancelled are terminal.
    TRANSITIONS = {
        "pending": ("paid", "cancelled"),
        "paid": ("shipped", "cancelled"),
        "shipped": ("delivered",),
        "delivered": (),
        "cancelled": (),
    }

    customer = models.ForeignKey("shop.Customer", on_delete=models.PROTECT, related_name="orders")
    status = models.CharField(max_length=12, choices=Status.choices, default=Status.PENDING, db_index=True)
    placed_at = models.DateTimeField(default=timezone.now, db_index=True)
    shipping_address = models.TextField(blank=True, default="")
    total = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal("0.00"))

    objects = OrderManager()

    class Meta:
        ordering = ["-placed_at"]
        constraints = [
            models.CheckConstraint(condition=models.Q(total__gte=0), name="order_total_non_negative"),
        ]

    def __str__(self):
        return f"Order #{self.pk or 'unsaved'} ({self.status})"

    def recalculate_total(self, save: bool = True) -> Decimal:
        """Sum the line items in the database and store the result on the order."""
        total = self.items.aggregate(
            total=Sum(F("quantity") * F("unit_price"), output_field=MONEY)
        )["total"] or Decimal("0.00")
        self.total = Decimal(total).quantize(Decimal("0.01"))
        if save:
            self.save(update_fields=["total", "updated_at"])
        return self.total

    def can_transition_to(self, status: str) -> bool:
        return str(status) in self.TRANSITIONS.get(str(self.status), ())

    def transition_to(self, status: str, save: bool = True) -> "Order":
        if not self.can_transition_to(status):
            raise OrderStateError(self.pk, str(self.status), str(status))
        self.status = str(status)
        if save:
            self.save(update_fields=["status", "updated_at"])
        return self


class OrderItem(models.Model):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey("shop.Product", on_delete=models.PROTECT, related_name="order_items")
    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["order", "product"], name="unique_product_per_order"),
            models.CheckConstraint(condition=models.Q(quantity__gte=1), name="order_item_quantity_positive"),
        ]

    def __str__(self):
        return f"{self.quantity} x {self.product_id} @ {self.unit_price}"

    @property
    def line_total(self) -> Decimal:
        return (self.unit_price * self.quantity).quantize(Decimal("0.01"))
