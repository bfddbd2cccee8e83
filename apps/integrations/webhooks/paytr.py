"""
PayTR payment notification processing.

PayTR POSTs a form to the merchant's callback URL for every payment attempt
and keeps redelivering until it receives ``OK``. The notification carries a
base64 HMAC-SHA256 over ``merchant_oid + salt + status + total_amount``
keyed with the merchant key.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from django.conf import settings
from django.db import transaction

from apps.audit.events import (
    AuditActor,
    CallbackBadHash,
    CallbackOrderNotFound,
    CallbackReceived,
    PaymentFailed,
    PurchaseItem,
    PurchaseOrder,
    VariantPurchase,
)
from apps.audit.services import AuditService
from apps.cart.services import CartService
from apps.common.cache import invalidate_pages
from apps.common.experiments import resolve_variant_for_token
from apps.common.validators import parse_positive_int
from apps.orders.lifecycle import mark_failed, mark_paid
from apps.orders.models import Order
from apps.promotions.loyalty import LoyaltyService

from ..config import PaytrConfig, get_paytr_config
from .base import BaseWebhookProcessor, WebhookOutcome, compute_hmac_base64, verify_base64_hmac_signature

logger = logging.getLogger(__name__)

PAYTR_SUCCESS_STATUS = "success"


@dataclass(frozen=True)
class PaytrNotification:
    """Trimmed callback form fields. The hash is kept out of every log and audit row."""

    merchant_oid: str
    status: str
    total_amount: str
    hash: str
    payment_type: str = ""
    failed_reason_code: str = ""
    failed_reason_msg: str = ""

    @property
    def is_complete(self) -> bool:
        return bool(self.merchant_oid and self.status and self.total_amount and self.hash)

    @property
    def is_success(self) -> bool:
        return self.status == PAYTR_SUCCESS_STATUS

    @property
    def provider_total_amount(self) -> int | None:
        return parse_positive_int(self.total_amount)

    def __repr__(self) -> str:
        return f"PaytrNotification(merchant_oid={self.merchant_oid!r}, status={self.status!r})"


def create_paytr_callback_hash(config: PaytrConfig, merchant_oid: str, status: str, total_amount: str) -> str:
    return compute_hmac_base64(merchant_oid + config.merchant_salt + status + total_amount, config.merchant_key)


def verify_paytr_callback_hash(config: PaytrConfig, notification: PaytrNotification) -> bool:
    message = notification.merchant_oid + config.merchant_salt + notification.status + notification.total_amount
    return verify_base64_hmac_signature(message, notification.hash, config.merchant_key)


class PaytrCallbackProcessor(BaseWebhookProcessor):
    """
    💳 PayTR callback processor

    The order row is re-locked and its payment status re-checked inside the
    settling transaction, so redelivered callbacks and the stale order sweep
    can never settle the same order twice.
    """

    source_name = "paytr"

    def parse(self, fields: dict[str, Any]) -> PaytrNotification:
        return PaytrNotification(
            merchant_oid=self.get_field(fields, "merchant_oid"),
            status=self.get_field(fields, "status"),
            total_amount=self.get_field(fields, "total_amount"),
            hash=self.get_field(fields, "hash"),
            payment_type=self.get_field(fields, "payment_type"),
            failed_reason_code=self.get_field(fields, "failed_reason_code"),
            failed_reason_msg=self.get_field(fields, "failed_reason_msg"),
        )

    def process(self, fields: dict[str, Any], ip_address: str | None = None) -> WebhookOutcome:
        config = get_paytr_config()
        if config is None:
            logger.error("🔥 [PayTR] Callback received but merchant credentials are not configured")
            return WebhookOutcome.failed(500, "missing config")

        notification = self.parse(fields)
        provider = AuditActor.provider(ip_address)

        AuditService.record(
            CallbackReceived(
                merchant_oid=notification.merchant_oid,
                status=notification.status,
                total_amount=notification.total_amount,
            ),
            provider,
        )

        if not notification.is_complete:
            logger.warning(f"⚠️ [PayTR] Callback missing required fields (oid={notification.merchant_oid or '-'})")
            return WebhookOutcome.failed(400, "missing required fields")

        if not verify_paytr_callback_hash(config, notification):
            logger.warning(f"🚨 [PayTR] Bad hash for {notification.merchant_oid} from {ip_address or 'unknown'}")
            AuditService.record(
                CallbackBadHash(
                    merchant_oid=notification.merchant_oid,
                    status=notification.status,
                    total_amount=notification.total_amount,
                ),
                provider,
            )
            return WebhookOutcome.failed(400, "bad hash")

        order = Order.objects.filter(paytr_merchant_oid=notification.merchant_oid).first()
        if order is None:
            logger.warning(f"⚠️ [PayTR] No order for merchant_oid {notification.merchant_oid}")
            AuditService.record(CallbackOrderNotFound(merchant_oid=notification.merchant_oid), provider)
            return WebhookOutcome.failed(404, "order not found")

        if not order.is_payment_pending:
            logger.info(f"🔁 [PayTR] Order {order.order_no} already {order.payment_status}, acknowledging")
            return WebhookOutcome.ok()

        if notification.is_success:
            settled = self._settle_success(order.pk, notification)
        else:
            settled = self._settle_failure(order.pk, notification, provider)

        if settled:
            invalidate_pages()

        return WebhookOutcome.ok()

    # ===========================================================================
    # Settlement
    # ===========================================================================

    def _settle_success(self, order_id: int, notification: PaytrNotification) -> bool:
        with transaction.atomic():
            order = Order.objects.select_for_update().get(pk=order_id)
            if not mark_paid(
                order,
                provider_total_amount=notification.provider_total_amount,
                payment_type=notification.payment_type,
            ):
                return False

            grant = LoyaltyService.grant_for_order(order.pk)
            if not grant.granted:
                logger.info(f"⭐ [PayTR] No loyalty grant for order {order.order_no}: {grant.reason}")

            if order.cart_token:
                CartService.clear_items(order.cart_token)

            self._record_purchase(order, notification)

        logger.info(f"✅ [PayTR] Order {order.order_no} paid")
        return True

    def _record_purchase(self, order: Order, notification: PaytrNotification) -> None:
        customer = AuditActor.customer(order.customer_email)
        total_amount = notification.provider_total_amount or order.total_amount
        items = list(order.items.filter(product__isnull=False))

        AuditService.record(
            PurchaseOrder(
                order_id=order.pk,
                order_no=order.order_no,
                total_amount=total_amount,
                item_count=len(items),
            ),
            customer,
        )

        experiment_key = getattr(settings, "AB_PURCHASE_EXPERIMENT_KEY", "")
        variant = resolve_variant_for_token(experiment_key, order.cart_token) if experiment_key else None
        if variant:
            AuditService.record(
                VariantPurchase(
                    experiment=experiment_key,
                    variant=variant,
                    order_id=order.pk,
                    total_amount=total_amount,
                ),
                customer,
            )

        for item in items:
            AuditService.record(
                PurchaseItem(
                    order_id=order.pk,
                    product_id=item.product_id,
                    quantity=item.quantity,
                    total_price=item.total_price,
                ),
                customer,
            )

    def _settle_failure(self, order_id: int, notification: PaytrNotification, provider: AuditActor) -> bool:
        with transaction.atomic():
            order = Order.objects.select_for_update().get(pk=order_id)
            restocked = mark_failed(
                order,
                reason_code=notification.failed_reason_code,
                reason_message=notification.failed_reason_msg,
                provider_total_amount=notification.provider_total_amount,
                payment_type=notification.payment_type,
            )
            if restocked is None:
                return False

            AuditService.record(
                PaymentFailed(
                    order_id=order.pk,
                    reason_code=notification.failed_reason_code,
                    reason_message=notification.failed_reason_msg,
                    restocked_items=restocked,
                ),
                provider,
            )

        logger.info(f"🚫 [PayTR] Order {order.order_no} payment failed ({notification.failed_reason_code or '-'})")
        return True
