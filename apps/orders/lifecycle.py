"""
Order lifecycle state machine.

Two axes per order:

* ``payment_status`` moves PENDING -> PAID or PENDING -> FAILED exactly once.
  Both transitions below refuse to run on a non-PENDING order, which is what
  makes payment callbacks and the stale order sweep safe to race.
* ``status`` may move freely except out of DELIVERED or CANCELLED.

Callers must hold the order row lock (``select_for_update``) inside an
atomic block before calling ``mark_paid``/``mark_failed``.
"""

from __future__ import annotations

import logging

from django.utils import timezone

from apps.products.services import InventoryService

from .models import Order, OrderStatus, PaymentStatus

logger = logging.getLogger(__name__)

VALID_STATUSES = frozenset(code for code, _label in Order.STATUS_CHOICES)


def can_transition_status(current: str, target: str) -> bool:
    """Same status is a no-op; terminal statuses admit nothing else; anything else goes."""
    if current == target:
        return True
    if current in OrderStatus.TERMINAL:
        return False
    return target in VALID_STATUSES


def mark_paid(order: Order, *, provider_total_amount: int | None = None, payment_type: str = "") -> bool:
    """
    Record a successful payment on a PENDING order.

    Advances status PENDING -> CONFIRMED only; a status an operator already
    moved forward is left alone. Returns False (nothing written) when the
    payment was already settled.
    """
    if order.payment_status != PaymentStatus.PENDING:
        return False

    order.payment_status = PaymentStatus.PAID
    if order.status == OrderStatus.PENDING:
        order.status = OrderStatus.CONFIRMED
    order.payment_completed_at = timezone.now()
    order.paytr_total_amount = provider_total_amount
    order.paytr_payment_type = payment_type or ""
    order.payment_failed_reason_code = ""
    order.payment_failed_reason_msg = ""
    order.save(
        update_fields=[
            "payment_status",
            "status",
            "payment_completed_at",
            "paytr_total_amount",
            "paytr_payment_type",
            "payment_failed_reason_code",
            "payment_failed_reason_msg",
            "updated_at",
        ]
    )

    logger.info(f"💳 [Orders] Order {order.order_no} marked PAID ({order.status})")
    return True


def mark_failed(
    order: Order,
    *,
    reason_code: str = "",
    reason_message: str = "",
    provider_total_amount: int | None = None,
    payment_type: str = "",
) -> int | None:
    """
    Record a failed payment on a PENDING order and give its stock back.

    Returns the number of restocked line items, or None when the payment was
    already settled (nothing written, nothing restocked).
    """
    if order.payment_status != PaymentStatus.PENDING:
        return None

    order.payment_status = PaymentStatus.FAILED
    if order.status == OrderStatus.PENDING:
        order.status = OrderStatus.CANCELLED
    order.payment_completed_at = None
    order.payment_failed_reason_code = (reason_code or "")[:40]
    order.payment_failed_reason_msg = (reason_message or "")[:255]
    order.paytr_total_amount = provider_total_amount
    order.paytr_payment_type = payment_type or ""
    order.save(
        update_fields=[
            "payment_status",
            "status",
            "payment_completed_at",
            "payment_failed_reason_code",
            "payment_failed_reason_msg",
            "paytr_total_amount",
            "paytr_payment_type",
            "updated_at",
        ]
    )

    restocked = restock_items(order)
    logger.info(f"🚫 [Orders] Order {order.order_no} marked FAILED ({reason_code or 'no code'}), restocked {restocked}")
    return restocked


def restock_items(order: Order) -> int:
    """Return each quantity-controlled line item's quantity to stock."""
    restocked = 0
    for item in order.items.all():
        if item.product_id is None:
            continue
        if InventoryService.restock(item.product_id, item.quantity):
            restocked += 1
    return restocked
