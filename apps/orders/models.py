"""
Order models for the Storefront platform
One Order per checkout attempt; status and payment status are independent axes
driven by the payment callback, the stale order sweep and back-office edits.
"""

from __future__ import annotations

from typing import ClassVar

from django.conf import settings
from django.db import models
from django.utils.translation import gettext_lazy as _

# ===============================================================================
# ORDER MANAGEMENT MODELS
# ===============================================================================


class OrderStatus:
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    PREPARING = "PREPARING"
    SHIPPED = "SHIPPED"
    ON_THE_WAY = "ON_THE_WAY"
    DELIVERED = "DELIVERED"
    CANCELLED = "CANCELLED"

    TERMINAL: ClassVar[frozenset[str]] = frozenset({DELIVERED, CANCELLED})
    SHIPPABLE: ClassVar[frozenset[str]] = frozenset({PENDING, CONFIRMED, PREPARING})


class PaymentStatus:
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"


class Order(models.Model):
    """
    Customer order created by checkout in (PENDING, PENDING).

    After creation only the payment callback, the stale order sweep and
    back-office status edits mutate it. Orders are never deleted.
    """

    STATUS_CHOICES: ClassVar[tuple[tuple[str, str], ...]] = (
        (OrderStatus.PENDING, _("Pending")),
        (OrderStatus.CONFIRMED, _("Confirmed")),
        (OrderStatus.PREPARING, _("Preparing")),
        (OrderStatus.SHIPPED, _("Shipped")),
        (OrderStatus.ON_THE_WAY, _("On the way")),
        (OrderStatus.DELIVERED, _("Delivered")),
        (OrderStatus.CANCELLED, _("Cancelled")),
    )

    PAYMENT_STATUS_CHOICES: ClassVar[tuple[tuple[str, str], ...]] = (
        (PaymentStatus.PENDING, _("Pending")),
        (PaymentStatus.PAID, _("Paid")),
        (PaymentStatus.FAILED, _("Failed")),
    )

    # Order identification
    order_no = models.CharField(max_length=11, unique=True, help_text=_("Public 11-digit order number"))
    paytr_merchant_oid = models.CharField(
        max_length=64, unique=True, help_text=_("Order identifier presented to the payment provider")
    )

    # Status workflow
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=OrderStatus.PENDING, db_index=True)
    payment_status = models.CharField(
        max_length=20, choices=PAYMENT_STATUS_CHOICES, default=PaymentStatus.PENDING, db_index=True
    )

    # Customer snapshot
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name="orders"
    )
    customer_email = models.EmailField(blank=True, help_text=_("Customer email at time of order"))
    customer_name = models.CharField(max_length=255, blank=True)

    # Amounts in kuruş
    subtotal_amount = models.PositiveIntegerField(default=0)
    discount_amount = models.PositiveIntegerField(default=0)
    total_amount = models.PositiveIntegerField(default=0)

    # Provider-reported payment details
    paytr_total_amount = models.PositiveIntegerField(null=True, blank=True)
    paytr_payment_type = models.CharField(max_length=40, blank=True, default="")
    payment_failed_reason_code = models.CharField(max_length=40, blank=True, default="")
    payment_failed_reason_msg = models.CharField(max_length=255, blank=True, default="")

    # Soft link back to the cart this order was created from
    cart_token = models.CharField(max_length=64, null=True, blank=True)

    # Shipping
    carrier = models.CharField(max_length=60, blank=True, default="")
    tracking_no = models.CharField(max_length=80, blank=True, default="")
    shipped_at = models.DateTimeField(null=True, blank=True)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)
    payment_completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "orders"
        ordering: ClassVar[tuple[str, ...]] = ("-created_at",)
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=["status", "payment_status", "created_at"], name="idx_order_stale_scan"),
            models.Index(fields=["customer_email", "-created_at"], name="idx_order_customer_time"),
        )

    def __str__(self) -> str:
        return f"Order {self.order_no} ({self.status}/{self.payment_status})"

    @property
    def is_payment_pending(self) -> bool:
        return self.payment_status == PaymentStatus.PENDING


class OrderItem(models.Model):
    """Order line with price snapshots taken at checkout."""

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    # Soft link: catalog rows may disappear, the snapshot stays
    product = models.ForeignKey(
        "products.Product", on_delete=models.SET_NULL, null=True, blank=True, related_name="order_items"
    )
    product_name = models.CharField(max_length=200)
    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.PositiveIntegerField(default=0)
    total_price = models.PositiveIntegerField(default=0)

    class Meta:
        db_table = "order_items"
        ordering: ClassVar[tuple[str, ...]] = ("id",)

    def __str__(self) -> str:
        return f"{self.quantity} x {self.product_name}"
