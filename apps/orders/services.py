"""
Order Management Services for the Storefront platform
Checkout order creation, public order numbers and back-office status/shipping edits.
"""

from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypedDict

from django.db import IntegrityError, transaction
from django.utils import timezone

from apps.audit.events import AuditActor, OrderShippingUpdated, OrderStatusUpdated
from apps.audit.services import AuditService
from apps.common.constants import (
    CARRIER_MAX_LENGTH,
    ORDER_NO_MAX,
    ORDER_NO_MAX_ATTEMPTS,
    ORDER_NO_MIN,
    TRACKING_NO_MAX_LENGTH,
)
from apps.common.types import EmailAddress, Err, Ok, OrderNumber, Result
from apps.products.models import Product
from apps.products.services import InventoryService

from .lifecycle import VALID_STATUSES, can_transition_status
from .models import Order, OrderItem, OrderStatus

if TYPE_CHECKING:
    from django.contrib.auth.models import AbstractBaseUser

logger = logging.getLogger(__name__)


class OrderNumberGenerationError(Exception):
    """No free order number found within the bounded number of attempts."""


class _CheckoutRejected(Exception):
    """Internal: aborts the checkout transaction with a reason code."""

    def __init__(self, code: str) -> None:
        super().__init__(code)
        self.code = code


# ===============================================================================
# ORDER SERVICE PARAMETER OBJECTS
# ===============================================================================


class OrderItemData(TypedDict):
    """Cart line submitted to checkout"""

    product_id: int
    quantity: int


@dataclass
class OrderCreateData:
    """Parameter object for order creation"""

    items: list[OrderItemData]
    customer_email: EmailAddress
    customer_name: str = ""
    user: AbstractBaseUser | None = None
    cart_token: str | None = None
    coupon_code: str = ""


@dataclass
class ShippingUpdateData:
    """Parameter object for back-office shipping edits"""

    carrier: str
    tracking_no: str


# ===============================================================================
# ORDER NUMBERS
# ===============================================================================


def generate_order_no(max_attempts: int = ORDER_NO_MAX_ATTEMPTS) -> OrderNumber:
    """Pick a random unused 11-digit order number; bounded retry on collision."""
    for _attempt in range(max_attempts):
        candidate = str(ORDER_NO_MIN + secrets.randbelow(ORDER_NO_MAX - ORDER_NO_MIN + 1))
        if not Order.objects.filter(order_no=candidate).exists():
            return candidate

    logger.error(f"🔥 [Orders] Could not generate a unique order number after {max_attempts} attempts")
    raise OrderNumberGenerationError("ORDER_NO_GENERATION_ERROR")


def _insert_order(data: OrderCreateData, max_attempts: int = ORDER_NO_MAX_ATTEMPTS) -> Order:
    """
    Insert the order row under a fresh number.

    The existence check in ``generate_order_no`` can race with a concurrent
    checkout, so the unique index has the final word: a collision rolls back
    the savepoint and the insert is retried with a new number.
    """
    for _attempt in range(max_attempts):
        order_no = generate_order_no()
        try:
            with transaction.atomic():
                return Order.objects.create(
                    order_no=order_no,
                    paytr_merchant_oid=f"SF{order_no}",
                    user=data.user,
                    customer_email=(data.customer_email or "").strip().lower(),
                    customer_name=data.customer_name,
                    cart_token=data.cart_token or None,
                )
        except IntegrityError:
            logger.warning(f"⚠️ [Orders] Order number {order_no} taken at insert, retrying")

    logger.error(f"🔥 [Orders] Order insert kept colliding after {max_attempts} attempts")
    raise OrderNumberGenerationError("ORDER_NO_GENERATION_ERROR")


# ===============================================================================
# ORDER SERVICE
# ===============================================================================


class OrderService:
    """
    🛒 Order creation and back-office edits

    Payment outcome transitions live in ``apps.orders.lifecycle`` and are
    driven by the payment callback and the stale order sweep only.
    """

    @staticmethod
    def create_pending_order(data: OrderCreateData) -> Result[Order, str]:
        """
        Create a (PENDING, PENDING) order from cart lines.

        Stock for quantity-controlled products is reserved and the optional
        coupon usage is recorded in the same transaction; any rejection
        rolls everything back.
        """
        if not data.items:
            return Err("EMPTY_ORDER")

        try:
            with transaction.atomic():
                order = _insert_order(data)

                subtotal = 0
                for line in data.items:
                    quantity = int(line["quantity"])
                    product = Product.objects.filter(pk=line["product_id"], is_active=True).first()
                    if product is None or quantity <= 0:
                        raise _CheckoutRejected("INVALID_ITEM")
                    if not InventoryService.reserve(product.pk, quantity):
                        raise _CheckoutRejected("INSUFFICIENT_STOCK")

                    line_total = product.price * quantity
                    OrderItem.objects.create(
                        order=order,
                        product=product,
                        product_name=product.name,
                        quantity=quantity,
                        unit_price=product.price,
                        total_price=line_total,
                    )
                    subtotal += line_total

                order.subtotal_amount = subtotal
                order.total_amount = subtotal
                order.save(update_fields=["subtotal_amount", "total_amount", "updated_at"])

                if data.coupon_code:
                    from apps.promotions.services import CouponService  # noqa: PLC0415 - Circular import prevention

                    usage = CouponService.record_usage(data.coupon_code, order, order.customer_email)
                    if usage.is_err():
                        raise _CheckoutRejected(usage.unwrap_err())

        except _CheckoutRejected as rejection:
            logger.warning(f"⚠️ [Orders] Checkout rejected: {rejection.code}")
            return Err(rejection.code)

        order.refresh_from_db()
        logger.info(f"✅ [Orders] Created order {order.order_no} total={order.total_amount}")
        return Ok(order)

    @staticmethod
    def change_status(order_id: int, new_status: str, actor: AuditActor) -> Result[Order, str]:
        """Back-office status edit guarded by the lifecycle legality check."""
        if new_status not in VALID_STATUSES:
            return Err("INVALID_STATUS")

        with transaction.atomic():
            order = Order.objects.select_for_update().filter(pk=order_id).first()
            if order is None:
                return Err("ORDER_NOT_FOUND")

            old_status = order.status
            if not can_transition_status(old_status, new_status):
                logger.warning(
                    f"⚠️ [Orders] Rejected status change {old_status} -> {new_status} for {order.order_no}",
                    extra={"order_id": order.pk, "actor": actor.actor_id},
                )
                return Err("INVALID_TRANSITION")

            if old_status == new_status:
                return Ok(order)

            order.status = new_status
            order.save(update_fields=["status", "updated_at"])

            AuditService.record(
                OrderStatusUpdated(
                    order_id=order.pk,
                    old_status=old_status,
                    old_payment_status=order.payment_status,
                    new_status=new_status,
                    new_payment_status=order.payment_status,
                ),
                actor,
            )

        logger.info(f"🔄 [Orders] Order {order.order_no} status {old_status} -> {new_status}")
        return Ok(order)

    @staticmethod
    def update_shipping(order_id: int, data: ShippingUpdateData, actor: AuditActor) -> Result[Order, str]:
        """
        Record carrier and tracking number.

        Orders still PENDING/CONFIRMED/PREPARING move to SHIPPED; later
        in-flight statuses keep theirs. Terminal orders are rejected.
        """
        carrier = (data.carrier or "").strip()
        tracking_no = (data.tracking_no or "").strip().upper()
        if not carrier or len(carrier) > CARRIER_MAX_LENGTH:
            return Err("INVALID_CARRIER")
        if not tracking_no or len(tracking_no) > TRACKING_NO_MAX_LENGTH:
            return Err("INVALID_TRACKING_NO")

        with transaction.atomic():
            order = Order.objects.select_for_update().filter(pk=order_id).first()
            if order is None:
                return Err("ORDER_NOT_FOUND")

            old_status = order.status
            new_status = OrderStatus.SHIPPED if old_status in OrderStatus.SHIPPABLE else old_status
            if old_status in OrderStatus.TERMINAL or not can_transition_status(old_status, new_status):
                return Err("INVALID_TRANSITION")

            old_carrier, old_tracking_no = order.carrier, order.tracking_no
            order.status = new_status
            order.carrier = carrier
            order.tracking_no = tracking_no
            order.shipped_at = order.shipped_at or timezone.now()
            order.save(update_fields=["status", "carrier", "tracking_no", "shipped_at", "updated_at"])

            AuditService.record(
                OrderShippingUpdated(
                    order_id=order.pk,
                    old_status=old_status,
                    new_status=new_status,
                    carrier=carrier,
                    tracking_no=tracking_no,
                    old_carrier=old_carrier,
                    old_tracking_no=old_tracking_no,
                ),
                actor,
            )

        logger.info(f"🚚 [Orders] Order {order.order_no} shipped via {carrier}")
        return Ok(order)
