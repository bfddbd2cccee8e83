"""
Tests for the loyalty points ledger.
"""

from unittest.mock import patch

from django.db.models import Sum
from django.test import TestCase, override_settings

from apps.audit.events import AuditActor
from apps.audit.models import AuditEvent
from apps.orders.models import PaymentStatus
from apps.promotions.loyalty import LedgerIntegrityError, LoyaltyService
from apps.promotions.models import Coupon, CouponType, LoyaltyAccount, LoyaltyTier, LoyaltyTransaction
from apps.promotions.services import CouponService
from tests.factories.core_factories import OrderCreationRequest, create_order, create_user

OPERATOR = AuditActor(actor_id="7", actor_type="admin")


def _paid_order(user=None, email="shopper@example.com", units=1):
    """Paid order worth ``units`` x 100.00 TRY."""
    return create_order(
        OrderCreationRequest(
            items=[(None, units)],
            customer_email=email,
            user=user,
            payment_status=PaymentStatus.PAID,
        )
    )


def _assert_projection(testcase, account):
    account.refresh_from_db()
    ledger = LoyaltyTransaction.objects.filter(account=account)
    balance = ledger.aggregate(total=Sum("points_change"))["total"] or 0
    earned = ledger.filter(points_change__gt=0).aggregate(total=Sum("points_change"))["total"] or 0
    testcase.assertEqual(account.points_balance, balance)
    testcase.assertEqual(account.total_earned, earned)
    testcase.assertEqual(account.points_balance, account.total_earned - account.total_redeemed)
    testcase.assertGreaterEqual(account.points_balance, 0)


class CalculationTests(TestCase):
    def test_points_are_whole_blocks(self):
        self.assertEqual(LoyaltyService.calculate_points(0), 0)
        self.assertEqual(LoyaltyService.calculate_points(9999), 0)
        self.assertEqual(LoyaltyService.calculate_points(10000), 5)
        self.assertEqual(LoyaltyService.calculate_points(25050), 10)

    def test_tiers(self):
        self.assertEqual(LoyaltyService.calculate_tier(0), LoyaltyTier.BRONZE)
        self.assertEqual(LoyaltyService.calculate_tier(749), LoyaltyTier.BRONZE)
        self.assertEqual(LoyaltyService.calculate_tier(750), LoyaltyTier.SILVER)
        self.assertEqual(LoyaltyService.calculate_tier(2000), LoyaltyTier.GOLD)
        self.assertEqual(LoyaltyService.calculate_tier(5000), LoyaltyTier.PLATINUM)

    @override_settings(LOYALTY_ACCRUAL_BLOCK="bogus", LOYALTY_POINTS_PER_BLOCK=2)
    def test_invalid_setting_falls_back(self):
        self.assertEqual(LoyaltyService.calculate_points(20000), 4)


class GrantTests(TestCase):
    def setUp(self):
        self.user = create_user("shopper@example.com")

    def test_grant_is_idempotent_per_order(self):
        order = _paid_order(self.user, units=3)

        first = LoyaltyService.grant_for_order(order.pk)
        second = LoyaltyService.grant_for_order(order.pk)

        self.assertTrue(first.granted)
        self.assertEqual(first.points, 15)
        self.assertFalse(second.granted)
        self.assertEqual(second.reason, "already_granted")
        self.assertEqual(LoyaltyTransaction.objects.filter(order=order).count(), 1)
        account = LoyaltyAccount.objects.get(user=self.user)
        self.assertEqual(account.points_balance, 15)
        self.assertTrue(AuditEvent.objects.filter(action="loyalty:earn_purchase", entity_id=str(self.user.pk)).exists())

    def test_user_resolved_by_email(self):
        order = _paid_order(email="SHOPPER@example.com")

        self.assertTrue(LoyaltyService.grant_for_order(order.pk).granted)
        self.assertEqual(LoyaltyAccount.objects.get(user=self.user).points_balance, 5)

    def test_ineligible_orders(self):
        pending = create_order(OrderCreationRequest(items=[(None, 1)], user=self.user))
        stranger = _paid_order(email="nobody@example.com")
        tiny = create_order(
            OrderCreationRequest(items=[], user=self.user, payment_status=PaymentStatus.PAID)
        )

        self.assertEqual(LoyaltyService.grant_for_order(pending.pk).reason, "order_not_eligible")
        self.assertEqual(LoyaltyService.grant_for_order(999_999).reason, "order_not_eligible")
        self.assertEqual(LoyaltyService.grant_for_order(stranger.pk).reason, "user_not_found")
        self.assertEqual(LoyaltyService.grant_for_order(tiny.pk).reason, "amount_too_low")
        self.assertFalse(LoyaltyTransaction.objects.exists())

    def test_tier_follows_lifetime_earnings(self):
        order = _paid_order(self.user, units=150)

        LoyaltyService.grant_for_order(order.pk)

        self.assertEqual(LoyaltyAccount.objects.get(user=self.user).tier, LoyaltyTier.SILVER)


class RedeemTests(TestCase):
    def setUp(self):
        self.user = create_user("shopper@example.com")
        LoyaltyService.adjust(self.user.pk, 300, "CAMPAIGN_BONUS", "Welcome", OPERATOR).unwrap()

    def test_redeem_issues_owner_scoped_coupon(self):
        redemption = LoyaltyService.redeem(self.user.pk, 250).unwrap()

        account = LoyaltyAccount.objects.get(user=self.user)
        self.assertEqual(account.points_balance, 50)
        self.assertEqual(account.total_redeemed, 250)
        self.assertEqual(redemption.coupon_value, 10)

        coupon = Coupon.objects.get(code=redemption.coupon_code)
        self.assertTrue(coupon.code.startswith("LOY"))
        self.assertEqual(coupon.type, CouponType.PERCENT)
        self.assertEqual(coupon.owner, self.user)
        self.assertEqual(coupon.usage_limit, 1)
        self.assertEqual(coupon.per_user_limit, 1)
        self.assertIsNotNone(coupon.expires_at)
        self.assertTrue(CouponService.validate(coupon.code, 10000, "shopper@example.com").is_ok())
        self.assertEqual(CouponService.validate(coupon.code, 10000, "other@example.com").unwrap_err(), "not_found")
        _assert_projection(self, account)

    def test_insufficient_points_leave_ledger_untouched(self):
        before = LoyaltyTransaction.objects.count()

        self.assertEqual(LoyaltyService.redeem(self.user.pk, 500).unwrap_err(), "LOYALTY_INSUFFICIENT_POINTS")

        self.assertEqual(LoyaltyTransaction.objects.count(), before)
        self.assertEqual(LoyaltyAccount.objects.get(user=self.user).points_balance, 300)
        self.assertFalse(Coupon.objects.exists())

    def test_code_taken_at_insert_is_retried(self):
        Coupon.objects.create(code="LOY000000011111", type=CouponType.FIXED, value=100)
        codes = ["LOY000000011111", "LOY000000022222"]

        with patch.object(LoyaltyService, "_generate_coupon_code", side_effect=codes):
            redemption = LoyaltyService.redeem(self.user.pk, 250).unwrap()

        self.assertEqual(redemption.coupon_code, "LOY000000022222")
        self.assertEqual(Coupon.objects.get(code="LOY000000022222").owner, self.user)
        self.assertEqual(LoyaltyAccount.objects.get(user=self.user).points_balance, 50)

    @override_settings(LOYALTY_COUPON_CODE_ATTEMPTS=3)
    def test_exhausted_code_attempts_keep_points(self):
        Coupon.objects.create(code="LOY000000011111", type=CouponType.FIXED, value=100)
        before = LoyaltyTransaction.objects.count()

        with patch.object(LoyaltyService, "_generate_coupon_code", return_value="LOY000000011111") as generate:
            result = LoyaltyService.redeem(self.user.pk, 250)

        self.assertEqual(result.unwrap_err(), "LOYALTY_COUPON_CODE_FAILED")
        self.assertEqual(generate.call_count, 3)
        self.assertEqual(LoyaltyAccount.objects.get(user=self.user).points_balance, 300)
        self.assertEqual(LoyaltyTransaction.objects.count(), before)
        self.assertEqual(Coupon.objects.count(), 1)

    def test_reward_coupon_stays_scoped_after_owner_is_deleted(self):
        code = LoyaltyService.redeem(self.user.pk, 250).unwrap().coupon_code
        self.user.delete()

        coupon = Coupon.objects.get(code=code)
        self.assertIsNone(coupon.owner_id)
        self.assertEqual(coupon.owner_email, "shopper@example.com")
        self.assertEqual(CouponService.validate(code, 10000, "someone@example.com").unwrap_err(), "not_found")
        self.assertEqual(CouponService.validate(code, 10000).unwrap_err(), "not_found")

    def test_rejections(self):
        self.assertEqual(LoyaltyService.redeem(self.user.pk, 123).unwrap_err(), "LOYALTY_INVALID_POINTS")
        self.assertEqual(LoyaltyService.redeem(999_999, 100).unwrap_err(), "LOYALTY_USER_NOT_FOUND")


class AdjustTests(TestCase):
    def setUp(self):
        self.user = create_user("shopper@example.com")

    def test_adjust_records_reason_and_actor(self):
        account = LoyaltyService.adjust(self.user.pk, 40, "SYSTEM_FIX", " missed order ", OPERATOR).unwrap()

        entry = LoyaltyTransaction.objects.get(account=account)
        self.assertEqual(entry.note, "System fix - missed order")
        self.assertEqual(entry.meta, {"actor_id": "7", "reason_code": "SYSTEM_FIX"})
        event = AuditEvent.objects.get(action="loyalty:manual_adjust")
        self.assertEqual(event.before_json, {"points_balance": 0})
        self.assertEqual(event.after_json["points_balance"], 40)
        self.assertEqual(event.actor_type, "admin")

    def test_negative_adjust_cannot_overdraw(self):
        LoyaltyService.adjust(self.user.pk, 30, "OTHER", "seed", OPERATOR).unwrap()

        result = LoyaltyService.adjust(self.user.pk, -31, "OTHER", "too much", OPERATOR)

        self.assertEqual(result.unwrap_err(), "LOYALTY_NEGATIVE_BALANCE")
        account = LoyaltyAccount.objects.get(user=self.user)
        self.assertEqual(account.points_balance, 30)
        self.assertEqual(LoyaltyTransaction.objects.count(), 1)

    def test_negative_adjust_counts_as_redeemed(self):
        LoyaltyService.adjust(self.user.pk, 30, "OTHER", "seed", OPERATOR).unwrap()
        account = LoyaltyService.adjust(self.user.pk, -10, "OTHER", "correction", OPERATOR).unwrap()

        self.assertEqual(account.points_balance, 20)
        self.assertEqual(account.total_redeemed, 10)
        _assert_projection(self, account)

    def test_blank_note_stores_reason_label_only(self):
        account = LoyaltyService.adjust(self.user.pk, 25, "CUSTOMER_SATISFACTION", "   ", OPERATOR).unwrap()

        entry = LoyaltyTransaction.objects.get(account=account)
        self.assertEqual(entry.note, "Customer satisfaction")
        self.assertEqual(account.points_balance, 25)

    def test_drifted_projection_aborts_adjust(self):
        LoyaltyService.adjust(self.user.pk, 30, "OTHER", "seed", OPERATOR).unwrap()
        LoyaltyAccount.objects.filter(user=self.user).update(points_balance=999, total_earned=999)
        before = LoyaltyTransaction.objects.count()

        with self.assertRaises(LedgerIntegrityError):
            LoyaltyService.adjust(self.user.pk, 10, "OTHER", "top up", OPERATOR)

        self.assertEqual(LoyaltyTransaction.objects.count(), before)
        self.assertEqual(LoyaltyAccount.objects.get(user=self.user).points_balance, 999)
        self.assertEqual(AuditEvent.objects.filter(action="loyalty:manual_adjust").count(), 1)

    def test_input_validation(self):
        cases = [
            ((0, "OTHER", "note"), "LOYALTY_INVALID_DELTA"),
            ((5, "BECAUSE", "note"), "LOYALTY_INVALID_REASON"),
        ]
        for (delta, reason, note), code in cases:
            with self.subTest(code=code):
                self.assertEqual(LoyaltyService.adjust(self.user.pk, delta, reason, note, OPERATOR).unwrap_err(), code)
        self.assertEqual(
            LoyaltyService.adjust(999_999, 5, "OTHER", "note", OPERATOR).unwrap_err(), "LOYALTY_USER_NOT_FOUND"
        )


class ReadModelTests(TestCase):
    def test_summary_opens_account(self):
        user = create_user("new@example.com")

        summary = LoyaltyService.summary(user)

        self.assertEqual(summary.account.points_balance, 0)
        self.assertEqual(summary.recent_transactions, [])
        self.assertEqual(summary.redeem_options[250], 10)

    def test_admin_snapshot_totals(self):
        first = create_user("a@example.com")
        second = create_user("b@example.com")
        LoyaltyService.adjust(first.pk, 800, "OTHER", "bulk", OPERATOR).unwrap()
        LoyaltyService.adjust(second.pk, 100, "OTHER", "bulk", OPERATOR).unwrap()
        LoyaltyService.redeem(second.pk, 100).unwrap()

        snapshot = LoyaltyService.admin_snapshot()

        self.assertEqual(snapshot["accounts"], 2)
        self.assertEqual(snapshot["points_balance"], 800)
        self.assertEqual(snapshot["total_earned"], 900)
        self.assertEqual(snapshot["total_redeemed"], 100)
        self.assertEqual(snapshot["tiers"][LoyaltyTier.SILVER], 1)
        self.assertEqual(snapshot["tiers"][LoyaltyTier.BRONZE], 1)
        self.assertEqual(len(snapshot["recent_transactions"]), 3)
