"""
Loyalty points ledger for the Storefront platform.

``LoyaltyTransaction`` rows are the source of truth; ``LoyaltyAccount`` is a
projection that is only ever written in the same transaction as a ledger
row, and is re-checked against the ledger sums before that transaction
commits.
"""

from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Count, Q, Sum
from django.utils import timezone

from apps.audit.events import AuditActor, LoyaltyAdjusted, LoyaltyEarned, LoyaltyRedeemed
from apps.audit.services import AuditService
from apps.common.constants import LOYALTY_CODE_LENGTH, LOYALTY_CODE_PREFIX, LOYALTY_RECENT_TRANSACTIONS
from apps.common.types import Err, Ok, Result
from apps.orders.models import Order, PaymentStatus

from .config import (
    TIER_ORDER,
    get_accrual_block,
    get_coupon_code_attempts,
    get_coupon_expiry_days,
    get_points_per_block,
    get_redeem_options,
    get_tier_thresholds,
)
from .models import Coupon, CouponType, LoyaltyAccount, LoyaltyTier, LoyaltyTransaction, LoyaltyTransactionType

if TYPE_CHECKING:
    from django.contrib.auth.models import AbstractBaseUser

logger = logging.getLogger(__name__)

ADJUST_REASONS: dict[str, str] = {
    "REFUND_COMPENSATION": "Refund compensation",
    "CUSTOMER_SATISFACTION": "Customer satisfaction",
    "SYSTEM_FIX": "System fix",
    "CAMPAIGN_BONUS": "Campaign bonus",
    "OTHER": "Other",
}


class LedgerIntegrityError(Exception):
    """The account projection no longer matches its ledger rows."""


# ===============================================================================
# Data Classes for Results
# ===============================================================================


@dataclass(frozen=True)
class GrantResult:
    granted: bool
    points: int = 0
    reason: str = "ok"


@dataclass(frozen=True)
class RedemptionResult:
    coupon_code: str
    coupon_value: int
    spent_points: int


@dataclass
class LoyaltySummary:
    account: LoyaltyAccount
    recent_transactions: list[LoyaltyTransaction] = field(default_factory=list)
    redeem_options: dict[int, int] = field(default_factory=dict)


class LoyaltyService:
    """
    ⭐ Points accrual, redemption and operator adjustments

    Account rows are locked with ``select_for_update`` for every write, so
    concurrent redemptions serialize on the balance check.
    """

    # ===========================================================================
    # Pure calculations
    # ===========================================================================

    @staticmethod
    def calculate_points(amount: int) -> int:
        """Points earned for a paid amount in kuruş; whole accrual blocks only."""
        if amount <= 0:
            return 0
        return (amount // get_accrual_block()) * get_points_per_block()

    @staticmethod
    def calculate_tier(total_earned: int) -> str:
        thresholds = get_tier_thresholds()
        for tier in TIER_ORDER:
            if total_earned >= thresholds[tier]:
                return tier
        return LoyaltyTier.BRONZE

    # ===========================================================================
    # Accounts
    # ===========================================================================

    @staticmethod
    def ensure_account(user: AbstractBaseUser) -> LoyaltyAccount:
        account, created = LoyaltyAccount.objects.get_or_create(user=user)
        if created:
            logger.info(f"⭐ [Loyalty] Opened account for user {user.pk}")
        return account

    @classmethod
    def _lock_account(cls, user: AbstractBaseUser) -> LoyaltyAccount:
        cls.ensure_account(user)
        return LoyaltyAccount.objects.select_for_update().get(user=user)

    @staticmethod
    def _verify_projection(account: LoyaltyAccount) -> None:
        totals = LoyaltyTransaction.objects.filter(account=account).aggregate(
            balance=Sum("points_change"),
            earned=Sum("points_change", filter=Q(points_change__gt=0)),
            redeemed=Sum("points_change", filter=Q(points_change__lt=0)),
        )
        balance = totals["balance"] or 0
        earned = totals["earned"] or 0
        redeemed = -(totals["redeemed"] or 0)

        if (
            account.points_balance != balance
            or account.total_earned != earned
            or account.total_redeemed != redeemed
            or account.points_balance != account.total_earned - account.total_redeemed
        ):
            logger.error(
                f"🔥 [Loyalty] Projection mismatch for account {account.pk}: "
                f"balance={account.points_balance}/{balance} earned={account.total_earned}/{earned} "
                f"redeemed={account.total_redeemed}/{redeemed}"
            )
            raise LedgerIntegrityError(f"Loyalty account {account.pk} does not match its ledger")

    @classmethod
    def _apply(
        cls,
        account: LoyaltyAccount,
        points_change: int,
        tx_type: str,
        *,
        order: Order | None = None,
        coupon: Coupon | None = None,
        note: str = "",
        meta: dict[str, Any] | None = None,
    ) -> LoyaltyTransaction:
        """Append a ledger row and move the projection with it. Caller holds the account lock."""
        entry = LoyaltyTransaction.objects.create(
            account=account,
            points_change=points_change,
            type=tx_type,
            order=order,
            coupon=coupon,
            note=note[:255],
            meta=meta or {},
        )

        account.points_balance += points_change
        if points_change > 0:
            account.total_earned += points_change
        else:
            account.total_redeemed += -points_change
        account.tier = cls.calculate_tier(account.total_earned)
        account.save(update_fields=["points_balance", "total_earned", "total_redeemed", "tier", "updated_at"])

        cls._verify_projection(account)
        return entry

    @staticmethod
    def _find_user(user_id: int) -> AbstractBaseUser | None:
        return get_user_model().objects.filter(pk=user_id).first()

    # ===========================================================================
    # Accrual
    # ===========================================================================

    @classmethod
    def grant_for_order(cls, order_id: int) -> GrantResult:
        """
        Award purchase points for a PAID order, at most once per order.

        The customer is the order's user, or else the user registered under
        the order email.
        """
        order = Order.objects.select_related("user").filter(pk=order_id).first()
        if order is None or order.payment_status != PaymentStatus.PAID or not order.customer_email:
            return GrantResult(granted=False, reason="order_not_eligible")

        user = order.user or get_user_model().objects.filter(email__iexact=order.customer_email).first()
        if user is None:
            return GrantResult(granted=False, reason="user_not_found")

        if LoyaltyTransaction.objects.filter(type=LoyaltyTransactionType.EARN_PURCHASE, order_id=order.pk).exists():
            return GrantResult(granted=False, reason="already_granted")

        points = cls.calculate_points(order.total_amount)
        if points <= 0:
            return GrantResult(granted=False, reason="amount_too_low")

        try:
            with transaction.atomic():
                account = cls._lock_account(user)
                cls._apply(
                    account,
                    points,
                    LoyaltyTransactionType.EARN_PURCHASE,
                    order=order,
                    note=f"Order {order.order_no}",
                    meta={"order_no": order.order_no, "amount": order.total_amount},
                )
                AuditService.record(
                    LoyaltyEarned(user_id=user.pk, order_id=order.pk, points=points, tier=account.tier),
                    AuditActor.system("loyalty"),
                )
        except IntegrityError:
            # Lost the race against a concurrent grant for the same order
            logger.warning(f"⚠️ [Loyalty] Concurrent grant detected for order {order.order_no}")
            return GrantResult(granted=False, reason="already_granted")

        logger.info(f"⭐ [Loyalty] +{points} points for user {user.pk} (order {order.order_no})")
        return GrantResult(granted=True, points=points, reason="ok")

    # ===========================================================================
    # Redemption
    # ===========================================================================

    @staticmethod
    def _generate_coupon_code() -> str:
        timestamp_digits = str(int(time.time() * 1000))[-7:]
        random_digits = "".join(str(secrets.randbelow(10)) for _ in range(LOYALTY_CODE_LENGTH))
        return f"{LOYALTY_CODE_PREFIX}{timestamp_digits}{random_digits}"[:LOYALTY_CODE_LENGTH]

    @classmethod
    def _issue_reward_coupon(cls, user: AbstractBaseUser, points: int, percent: int) -> Coupon | None:
        """Insert the reward coupon under a fresh code; the unique index decides collisions."""
        attempts = get_coupon_code_attempts()
        for _attempt in range(attempts):
            code = cls._generate_coupon_code()
            try:
                with transaction.atomic():
                    return Coupon.objects.create(
                        code=code,
                        description=f"Loyalty reward ({points} points)",
                        type=CouponType.PERCENT,
                        value=percent,
                        usage_limit=1,
                        per_user_limit=1,
                        owner=user,
                        owner_email=(user.email or "").strip().lower(),
                        expires_at=timezone.now() + timedelta(days=get_coupon_expiry_days()),
                    )
            except IntegrityError:
                logger.warning(f"⚠️ [Loyalty] Coupon code {code} already taken, retrying")

        logger.error(f"🔥 [Loyalty] No unique coupon code for user {user.pk} after {attempts} attempts")
        return None
    @classmethod
    def redeem(cls, user_id: int, points: int) -> Result[RedemptionResult, str]:
        """Exchange an allowed points denomination for a single-use percent coupon."""
        options = get_redeem_options()
        if points not in options:
            return Err("LOYALTY_INVALID_POINTS")

        user = cls._find_user(user_id)
        if user is None:
            return Err("LOYALTY_USER_NOT_FOUND")

        percent = options[points]
        with transaction.atomic():
            account = cls._lock_account(user)
            if account.points_balance < points:
                logger.warning(
                    f"⚠️ [Loyalty] Insufficient points for user {user.pk}: {account.points_balance} < {points}",
                    extra={"user_id": user.pk, "requested": points},
                )
                return Err("LOYALTY_INSUFFICIENT_POINTS")

            coupon = cls._issue_reward_coupon(user, points, percent)
            if coupon is None:
                return Err("LOYALTY_COUPON_CODE_FAILED")

            code = coupon.code
            cls._apply(
                account,
                -points,
                LoyaltyTransactionType.REDEEM_COUPON,
                coupon=coupon,
                note=f"Coupon {code}",
                meta={"coupon_code": code, "percent": percent},
            )
            AuditService.record(
                LoyaltyRedeemed(user_id=user.pk, points=points, coupon_code=code, coupon_value=percent),
                AuditActor(actor_id=str(user.pk), actor_type="user"),
            )

        logger.info(f"🎁 [Loyalty] User {user.pk} redeemed {points} points for {code} ({percent}%)")
        return Ok(RedemptionResult(coupon_code=code, coupon_value=percent, spent_points=points))

    # ===========================================================================
    # Operator adjustments
    # ===========================================================================

    @classmethod
    def adjust(
        cls, user_id: int, delta: int, reason_code: str, note: str, actor: AuditActor
    ) -> Result[LoyaltyAccount, str]:
        """
        Signed manual correction with a mandatory reason code.

        The ledger note is the reason label, followed by the operator's note
        when one is given.
        """
        if not delta:
            return Err("LOYALTY_INVALID_DELTA")
        if reason_code not in ADJUST_REASONS:
            return Err("LOYALTY_INVALID_REASON")
        note = (note or "").strip()

        user = cls._find_user(user_id)
        if user is None:
            return Err("LOYALTY_USER_NOT_FOUND")

        with transaction.atomic():
            account = cls._lock_account(user)
            balance_before = account.points_balance
            if balance_before + delta < 0:
                return Err("LOYALTY_NEGATIVE_BALANCE")

            label = ADJUST_REASONS[reason_code]
            stored_note = f"{label} - {note}" if note else label
            cls._apply(
                account,
                delta,
                LoyaltyTransactionType.MANUAL_ADJUST,
                note=stored_note,
                meta={"actor_id": actor.actor_id, "reason_code": reason_code},
            )
            AuditService.record(
                LoyaltyAdjusted(
                    user_id=user.pk,
                    delta=delta,
                    reason_code=reason_code,
                    note=note,
                    balance_before=balance_before,
                    balance_after=account.points_balance,
                ),
                actor,
            )

        logger.info(f"🛠️ [Loyalty] Adjusted user {user.pk} by {delta:+d} ({reason_code}) by {actor.actor_id}")
        return Ok(account)

    # ===========================================================================
    # Read models
    # ===========================================================================

    @classmethod
    def summary(cls, user: AbstractBaseUser) -> LoyaltySummary:
        account = cls.ensure_account(user)
        recent = list(account.transactions.select_related("coupon").all()[:LOYALTY_RECENT_TRANSACTIONS])
        return LoyaltySummary(account=account, recent_transactions=recent, redeem_options=get_redeem_options())

    @staticmethod
    def admin_snapshot() -> dict[str, Any]:
        totals = LoyaltyAccount.objects.aggregate(
            accounts=Count("id"),
            points_balance=Sum("points_balance"),
            total_earned=Sum("total_earned"),
            total_redeemed=Sum("total_redeemed"),
        )
        tiers = {tier: 0 for tier, _label in LoyaltyAccount.TIER_CHOICES}
        for row in LoyaltyAccount.objects.values("tier").annotate(count=Count("id")):
            tiers[row["tier"]] = row["count"]

        recent = list(
            LoyaltyTransaction.objects.select_related("account").all()[:LOYALTY_RECENT_TRANSACTIONS]
        )
        return {
            "accounts": totals["accounts"] or 0,
            "points_balance": totals["points_balance"] or 0,
            "total_earned": totals["total_earned"] or 0,
            "total_redeemed": totals["total_redeemed"] or 0,
            "tiers": tiers,
            "recent_transactions": recent,
        }
