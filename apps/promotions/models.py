"""
Promotion models for the Storefront platform.
Coupons with usage tracking, and the loyalty points ledger.
"""

from __future__ import annotations

from typing import Any, ClassVar

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _

from apps.common.constants import COUPON_CODE_MAX_LENGTH, COUPON_DESCRIPTION_MAX_LENGTH

# ===============================================================================
# COUPONS
# ===============================================================================


class CouponType:
    FIXED = "FIXED"
    PERCENT = "PERCENT"


class Coupon(models.Model):
    """
    Promotional code.

    Created by operators or issued as single-use codes by loyalty redemption.
    Never hard-deleted: disabling keeps the usage history intact.
    """

    TYPE_CHOICES: ClassVar[tuple[tuple[str, str], ...]] = (
        (CouponType.FIXED, _("Fixed amount")),
        (CouponType.PERCENT, _("Percentage")),
    )

    code = models.CharField(
        max_length=COUPON_CODE_MAX_LENGTH,
        unique=True,
        help_text=_("Upper-case code without whitespace"),
    )
    description = models.CharField(max_length=COUPON_DESCRIPTION_MAX_LENGTH, blank=True, default="")
    type = models.CharField(max_length=10, choices=TYPE_CHOICES)
    value = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text=_("Kuruş for FIXED, percent (1-100) for PERCENT"),
    )

    # Conditions
    min_order_amount = models.PositiveIntegerField(null=True, blank=True)
    max_discount_amount = models.PositiveIntegerField(null=True, blank=True)
    usage_limit = models.PositiveIntegerField(null=True, blank=True, help_text=_("Global usage cap"))
    per_user_limit = models.PositiveIntegerField(null=True, blank=True)

    # Validity
    starts_at = models.DateTimeField(null=True, blank=True)
    expires_at = models.DateTimeField(null=True, blank=True)
    is_active = models.BooleanField(default=True)

    # Scoped coupons (loyalty redemption) only apply to their owner
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="owned_coupons",
    )
    owner_email = models.EmailField(
        blank=True,
        default="",
        help_text=_("Owner email at issue time; the coupon stays scoped if the owner is deleted"),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "promotions_coupon"
        ordering: ClassVar[tuple[str, ...]] = ("-created_at",)
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=["is_active", "expires_at"], name="idx_coupon_active_expiry"),
        )
        constraints: ClassVar[list[models.BaseConstraint]] = [
            models.CheckConstraint(
                condition=~Q(type=CouponType.PERCENT) | Q(value__lte=100),
                name="coupon_percent_value_lte_100",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.code} ({self.type} {self.value})"

    def save(self, *args: Any, **kwargs: Any) -> None:
        if self.owner_id and not self.owner_email:
            self.owner_email = self.owner.email.strip().lower()
        super().save(*args, **kwargs)

    @property
    def is_scoped(self) -> bool:
        return bool(self.owner_id or self.owner_email)

    def snapshot(self) -> dict[str, Any]:
        """Audit representation of the editable fields."""
        return {
            "code": self.code,
            "description": self.description,
            "type": self.type,
            "value": self.value,
            "min_order_amount": self.min_order_amount,
            "max_discount_amount": self.max_discount_amount,
            "usage_limit": self.usage_limit,
            "per_user_limit": self.per_user_limit,
            "starts_at": self.starts_at,
            "expires_at": self.expires_at,
            "is_active": self.is_active,
        }


class CouponUsage(models.Model):
    """One applied coupon on one order. Append-only; drives usage limits."""

    coupon = models.ForeignKey(Coupon, on_delete=models.PROTECT, related_name="usages")
    order = models.ForeignKey(
        "orders.Order", on_delete=models.SET_NULL, null=True, blank=True, related_name="coupon_usages"
    )
    discount_amount = models.PositiveIntegerField(default=0)
    user_email = models.EmailField(blank=True, default="")
    used_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "promotions_coupon_usage"
        ordering: ClassVar[tuple[str, ...]] = ("-used_at",)
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=["coupon", "user_email"], name="idx_coupon_usage_user"),
        )

    def __str__(self) -> str:
        return f"{self.coupon_id} used on order {self.order_id}"


# ===============================================================================
# LOYALTY
# ===============================================================================


class LoyaltyTier:
    BRONZE = "BRONZE"
    SILVER = "SILVER"
    GOLD = "GOLD"
    PLATINUM = "PLATINUM"


class LoyaltyTransactionType:
    EARN_PURCHASE = "EARN_PURCHASE"
    REDEEM_COUPON = "REDEEM_COUPON"
    MANUAL_ADJUST = "MANUAL_ADJUST"


class LoyaltyAccount(models.Model):
    """
    Per-user projection of the loyalty ledger.

    ``points_balance == total_earned - total_redeemed >= 0`` always holds;
    the fields are only written together with a ledger row.
    """

    TIER_CHOICES: ClassVar[tuple[tuple[str, str], ...]] = (
        (LoyaltyTier.BRONZE, _("Bronze")),
        (LoyaltyTier.SILVER, _("Silver")),
        (LoyaltyTier.GOLD, _("Gold")),
        (LoyaltyTier.PLATINUM, _("Platinum")),
    )

    user = models.OneToOneField(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="loyalty_account")
    points_balance = models.IntegerField(default=0, validators=[MinValueValidator(0)])
    total_earned = models.PositiveIntegerField(default=0)
    total_redeemed = models.PositiveIntegerField(default=0)
    tier = models.CharField(max_length=10, choices=TIER_CHOICES, default=LoyaltyTier.BRONZE)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "promotions_loyalty_account"
        constraints: ClassVar[list[models.BaseConstraint]] = [
            models.CheckConstraint(condition=Q(points_balance__gte=0), name="loyalty_balance_non_negative"),
        ]

    def __str__(self) -> str:
        return f"{self.user_id}: {self.points_balance} pts ({self.tier})"


class LoyaltyTransaction(models.Model):
    """Append-only ledger row; the source of truth for the account projection."""

    TYPE_CHOICES: ClassVar[tuple[tuple[str, str], ...]] = (
        (LoyaltyTransactionType.EARN_PURCHASE, _("Earned from purchase")),
        (LoyaltyTransactionType.REDEEM_COUPON, _("Redeemed for coupon")),
        (LoyaltyTransactionType.MANUAL_ADJUST, _("Manual adjustment")),
    )

    account = models.ForeignKey(LoyaltyAccount, on_delete=models.CASCADE, related_name="transactions")
    points_change = models.IntegerField(help_text=_("Signed points delta"))
    type = models.CharField(max_length=20, choices=TYPE_CHOICES)
    order = models.ForeignKey(
        "orders.Order", on_delete=models.SET_NULL, null=True, blank=True, related_name="loyalty_transactions"
    )
    coupon = models.ForeignKey(
        Coupon, on_delete=models.SET_NULL, null=True, blank=True, related_name="loyalty_transactions"
    )
    note = models.CharField(max_length=255, blank=True, default="")
    meta = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = "promotions_loyalty_transaction"
        ordering: ClassVar[tuple[str, ...]] = ("-created_at", "-id")
        constraints: ClassVar[list[models.BaseConstraint]] = [
            # A purchase earns points once, whatever the number of callbacks
            models.UniqueConstraint(
                fields=["order"],
                condition=Q(type=LoyaltyTransactionType.EARN_PURCHASE),
                name="uniq_loyalty_earn_per_order",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.type} {self.points_change:+d} for account {self.account_id}"
