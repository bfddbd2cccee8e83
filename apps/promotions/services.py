"""
Promotion services for the Storefront platform.
Coupon validation, discount calculation, usage recording and back-office CRUD.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

from django.db import transaction
from django.db.models import Count, Q
from django.utils import timezone

from apps.audit.events import AuditActor, CouponCreated, CouponDisabled, CouponUpdated
from apps.audit.services import AuditService
from apps.common.constants import COUPON_ADMIN_LIST_LIMIT, COUPON_SUGGESTION_SCAN_LIMIT
from apps.common.types import EmailAddress, Err, Ok, Result
from apps.common.validators import strip_all_whitespace

from .models import Coupon, CouponType, CouponUsage

if TYPE_CHECKING:
    from apps.orders.models import Order

logger = logging.getLogger(__name__)


# ===============================================================================
# Validation reasons (checked in this order)
# ===============================================================================

REASON_MISSING_CODE = "missing_code"
REASON_NOT_FOUND = "not_found"
REASON_INACTIVE = "inactive"
REASON_NOT_STARTED = "not_started"
REASON_EXPIRED = "expired"
REASON_MIN_ORDER_NOT_MET = "min_order_not_met"
REASON_USAGE_LIMIT_REACHED = "usage_limit_reached"
REASON_PER_USER_LIMIT_REACHED = "per_user_limit_reached"
REASON_INVALID_DISCOUNT = "invalid_discount"


# ===============================================================================
# Data Classes for Results
# ===============================================================================


@dataclass(frozen=True)
class CouponValidation:
    """
    Successful coupon validation.

    Attributes:
        coupon: The matched coupon.
        discount_amount: Discount in kuruş, within [1, subtotal].
    """

    coupon: Coupon
    discount_amount: int


class CouponService:
    """
    🎟️ Coupon engine

    ``validate`` is read-only. ``record_usage`` repeats the same checks
    under a row lock in the transaction that writes the usage row, so two
    checkouts cannot both take the last remaining use.
    """

    @staticmethod
    def normalize_code(code: str | None) -> str:
        """Lookup form: trimmed and upper-cased."""
        return (code or "").strip().upper()

    @staticmethod
    def normalize_admin_code(code: str | None) -> str:
        """Storage form for new codes: upper-cased with every whitespace character removed."""
        return strip_all_whitespace((code or "").strip().upper())

    @staticmethod
    def calculate_discount(coupon: Coupon, subtotal: int) -> int:
        """
        Discount in kuruş for ``subtotal``.

        FIXED takes the value, PERCENT floors ``subtotal * value / 100``.
        The result is capped by ``max_discount_amount`` and clamped to
        ``[0, subtotal]``.
        """
        if subtotal <= 0:
            return 0

        if coupon.type == CouponType.PERCENT:
            discount = (subtotal * coupon.value) // 100
        else:
            discount = coupon.value

        if coupon.max_discount_amount and coupon.max_discount_amount > 0:
            discount = min(discount, coupon.max_discount_amount)

        return max(0, min(discount, subtotal))

    @classmethod
    def get_coupon_by_code(cls, code: str) -> Coupon | None:
        normalized = cls.normalize_code(code)
        if not normalized:
            return None
        return Coupon.objects.select_related("owner").filter(code=normalized).first()

    @staticmethod
    def _owner_email(coupon: Coupon) -> str:
        if coupon.owner_email:
            return coupon.owner_email.strip().lower()
        return coupon.owner.email.strip().lower() if coupon.owner_id else ""

    @classmethod
    def validate(
        cls, code: str | None, subtotal: int, user_email: EmailAddress | None = None
    ) -> Result[CouponValidation, str]:
        """Validate ``code`` against an order subtotal; errors are reason codes."""
        normalized = cls.normalize_code(code)
        if not normalized:
            return Err(REASON_MISSING_CODE)

        coupon = cls.get_coupon_by_code(normalized)
        if coupon is None:
            return Err(REASON_NOT_FOUND)

        return cls.validate_instance(coupon, subtotal, user_email)

    @classmethod
    def validate_instance(
        cls,
        coupon: Coupon,
        subtotal: int,
        user_email: EmailAddress | None = None,
        now: datetime | None = None,
    ) -> Result[CouponValidation, str]:
        now = now or timezone.now()
        email = (user_email or "").strip().lower() or None

        # Scoped coupons do not exist for anybody but their owner
        if coupon.is_scoped and (email is None or email != cls._owner_email(coupon)):
            return Err(REASON_NOT_FOUND)

        if not coupon.is_active:
            return Err(REASON_INACTIVE)
        if coupon.starts_at and now < coupon.starts_at:
            return Err(REASON_NOT_STARTED)
        if coupon.expires_at and now > coupon.expires_at:
            return Err(REASON_EXPIRED)
        if coupon.min_order_amount and subtotal < coupon.min_order_amount:
            return Err(REASON_MIN_ORDER_NOT_MET)

        if coupon.usage_limit and coupon.usage_limit > 0:
            used = CouponUsage.objects.filter(coupon=coupon).count()
            if used >= coupon.usage_limit:
                return Err(REASON_USAGE_LIMIT_REACHED)

        if email and coupon.per_user_limit and coupon.per_user_limit > 0:
            used_by_user = CouponUsage.objects.filter(coupon=coupon, user_email=email).count()
            if used_by_user >= coupon.per_user_limit:
                return Err(REASON_PER_USER_LIMIT_REACHED)

        discount = cls.calculate_discount(coupon, subtotal)
        if discount <= 0:
            return Err(REASON_INVALID_DISCOUNT)

        return Ok(CouponValidation(coupon=coupon, discount_amount=discount))

    @classmethod
    def record_usage(cls, code: str, order: Order, user_email: EmailAddress) -> Result[CouponUsage, str]:
        """
        Apply a coupon to an order with race condition protection.

        Locks the coupon row, re-validates (including both usage counts) and
        writes the usage plus the order's discounted total atomically.
        """
        normalized = cls.normalize_code(code)
        if not normalized:
            return Err(REASON_MISSING_CODE)

        email = (user_email or "").strip().lower()
        with transaction.atomic():
            locked_coupon = Coupon.objects.select_for_update().filter(code=normalized).first()
            if locked_coupon is None:
                return Err(REASON_NOT_FOUND)

            validation = cls.validate_instance(locked_coupon, order.subtotal_amount, email or None)
            if validation.is_err():
                logger.warning(
                    "Coupon validation failed after lock: %s for order %s - %s",
                    normalized,
                    order.order_no,
                    validation.unwrap_err(),
                    extra={"coupon_code": normalized, "order_id": order.pk, "error": validation.unwrap_err()},
                )
                return Err(validation.unwrap_err())

            discount = validation.unwrap().discount_amount
            usage = CouponUsage.objects.create(
                coupon=locked_coupon,
                order=order,
                discount_amount=discount,
                user_email=email,
            )

            order.discount_amount = discount
            order.total_amount = max(0, order.subtotal_amount - discount)
            order.save(update_fields=["discount_amount", "total_amount", "updated_at"])

        logger.info(f"🎟️ [Coupons] {normalized} applied to order {order.order_no}: -{discount}")
        return Ok(usage)

    # ===========================================================================
    # Suggestions
    # ===========================================================================

    @classmethod
    def _candidate_coupons(cls, now: datetime) -> list[Coupon]:
        return list(
            Coupon.objects.select_related("owner")
            .filter(is_active=True)
            .filter(Q(starts_at__isnull=True) | Q(starts_at__lte=now))
            .filter(Q(expires_at__isnull=True) | Q(expires_at__gte=now))
            .order_by("-created_at", "-id")[:COUPON_SUGGESTION_SCAN_LIMIT]
        )

    @classmethod
    def applicable_coupons(cls, subtotal: int, user_email: EmailAddress | None) -> list[CouponValidation]:
        now = timezone.now()
        applicable: list[CouponValidation] = []
        for coupon in cls._candidate_coupons(now):
            result = cls.validate_instance(coupon, subtotal, user_email, now=now)
            if result.is_ok():
                applicable.append(result.unwrap())
        return applicable

    @classmethod
    def best_coupon_for_user(cls, subtotal: int, user_email: EmailAddress | None) -> CouponValidation | None:
        """
        Pick the coupon giving the largest discount.

        Ties go to the soonest expiry (no expiry sorts last), then to the code.
        """
        applicable = cls.applicable_coupons(subtotal, user_email)
        if not applicable:
            return None

        def sort_key(candidate: CouponValidation) -> tuple[int, int, float, str]:
            expires_at = candidate.coupon.expires_at
            return (
                -candidate.discount_amount,
                0 if expires_at else 1,
                expires_at.timestamp() if expires_at else 0.0,
                candidate.coupon.code,
            )

        return min(applicable, key=sort_key)

    @classmethod
    def available_coupon_count(cls, subtotal: int, user_email: EmailAddress | None) -> int:
        return len(cls.applicable_coupons(subtotal, user_email))

    # ===========================================================================
    # Back-office CRUD
    # ===========================================================================

    @staticmethod
    def list_for_admin() -> list[Coupon]:
        """Newest coupons with a ``usage_count`` annotation."""
        return list(
            Coupon.objects.annotate(usage_count=Count("usages")).order_by("-created_at", "-id")[
                :COUPON_ADMIN_LIST_LIMIT
            ]
        )

    @staticmethod
    def create_coupon(data: dict[str, Any], actor: AuditActor) -> Coupon:
        """Create from already validated field data."""
        with transaction.atomic():
            coupon = Coupon.objects.create(**data)
            AuditService.record(CouponCreated(coupon_id=coupon.pk, snapshot=coupon.snapshot()), actor)

        logger.info(f"✅ [Coupons] Created {coupon.code} by {actor.actor_id or actor.actor_type}")
        return coupon

    @staticmethod
    def update_coupon(coupon_id: int, data: dict[str, Any], actor: AuditActor) -> Result[Coupon, str]:
        """Apply already validated field changes."""
        with transaction.atomic():
            coupon = Coupon.objects.select_for_update().filter(pk=coupon_id).first()
            if coupon is None:
                return Err("COUPON_NOT_FOUND")

            before = coupon.snapshot()
            for field_name, value in data.items():
                setattr(coupon, field_name, value)
            coupon.save()

            AuditService.record(
                CouponUpdated(coupon_id=coupon.pk, old_snapshot=before, new_snapshot=coupon.snapshot()), actor
            )

        logger.info(f"✏️ [Coupons] Updated {coupon.code}")
        return Ok(coupon)

    @staticmethod
    def disable_coupon(coupon_id: int, actor: AuditActor) -> Result[Coupon, str]:
        """Soft delete: deactivate and expire now, keeping usage history."""
        with transaction.atomic():
            coupon = Coupon.objects.select_for_update().filter(pk=coupon_id).first()
            if coupon is None:
                return Err("COUPON_NOT_FOUND")

            coupon.is_active = False
            coupon.expires_at = timezone.now()
            coupon.save(update_fields=["is_active", "expires_at", "updated_at"])

            AuditService.record(CouponDisabled(coupon_id=coupon.pk, code=coupon.code), actor)

        logger.info(f"🗑️ [Coupons] Disabled {coupon.code}")
        return Ok(coupon)
