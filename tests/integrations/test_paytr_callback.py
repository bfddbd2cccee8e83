"""
Tests for the PayTR payment notification endpoint.
"""

from unittest.mock import patch

from django.test import Client, SimpleTestCase, TestCase, override_settings
from django.urls import reverse

from apps.audit.models import AuditEvent
from apps.cart.models import CartItem
from apps.integrations.config import PaytrConfig, get_paytr_config
from apps.integrations.webhooks.base import SecurityError, compute_hmac_base64, verify_base64_hmac_signature
from apps.integrations.webhooks.paytr import create_paytr_callback_hash
from apps.orders.models import OrderStatus, PaymentStatus
from apps.products.models import Product
from apps.promotions.models import LoyaltyAccount, LoyaltyTransaction
from tests.factories.core_factories import (
    OrderCreationRequest,
    create_cart,
    create_order,
    create_product,
    create_user,
)

AB_ENABLED = {
    "enabled": True,
    "experiments": {"home_hero_copy": {"enabled": True, "traffic": 100, "variants": {"A": {}}}},
}


class SignatureHelperTests(TestCase):
    def test_round_trip_and_tamper(self):
        signature = compute_hmac_base64("payload", "secret")

        self.assertTrue(verify_base64_hmac_signature("payload", signature, "secret"))
        self.assertFalse(verify_base64_hmac_signature("payload!", signature, "secret"))
        self.assertFalse(verify_base64_hmac_signature("payload", "", "secret"))

    def test_empty_secret_refused(self):
        with self.assertRaises(SecurityError):
            compute_hmac_base64("payload", "")


class PaytrConfigTests(SimpleTestCase):
    def test_reads_credentials_only(self):
        config = get_paytr_config()

        expected = PaytrConfig(
            merchant_id="123456", merchant_key="test-merchant-key", merchant_salt="test-merchant-salt"
        )
        self.assertEqual(config, expected)
        self.assertEqual(repr(config), "PaytrConfig(merchant_id='123456')")

    @override_settings(PAYTR_MERCHANT_SALT="  ")
    def test_blank_credential_disables_config(self):
        self.assertIsNone(get_paytr_config())


class PaytrCallbackTests(TestCase):
    def setUp(self):
        self.client = Client()
        self.url = reverse("integrations:paytr_callback")
        self.user = create_user("shopper@example.com")
        self.product = create_product(price=10000, quantity=5)
        self.cart = create_cart("cart-abc", [(self.product, 2)])
        self.order = create_order(
            OrderCreationRequest(items=[(self.product, 2)], user=self.user, cart_token="cart-abc")
        )

    def _post(self, status="success", total_amount=None, **overrides):
        total = str(self.order.total_amount if total_amount is None else total_amount)
        fields = {
            "merchant_oid": self.order.paytr_merchant_oid,
            "status": status,
            "total_amount": total,
            "hash": create_paytr_callback_hash(get_paytr_config(), self.order.paytr_merchant_oid, status, total),
        }
        fields.update(overrides)
        return self.client.post(self.url, fields, REMOTE_ADDR="203.0.113.9")

    def test_success_settles_order(self):
        response = self._post(payment_type="card")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.content, b"OK")
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, PaymentStatus.PAID)
        self.assertEqual(self.order.status, OrderStatus.CONFIRMED)
        self.assertEqual(self.order.paytr_total_amount, 20000)
        self.assertEqual(self.order.paytr_payment_type, "card")
        self.assertIsNotNone(self.order.payment_completed_at)

        self.assertEqual(LoyaltyAccount.objects.get(user=self.user).points_balance, 10)
        self.assertFalse(CartItem.objects.filter(cart=self.cart).exists())

        actions = set(AuditEvent.objects.values_list("action", flat=True))
        self.assertIn("paytr:callback_received", actions)
        self.assertIn("event:purchase_order", actions)
        self.assertIn("event:purchase_item", actions)
        self.assertIn("loyalty:earn_purchase", actions)

    def test_replayed_success_is_acknowledged_once(self):
        self._post()
        response = self._post()

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.content, b"OK")
        self.assertEqual(LoyaltyTransaction.objects.filter(order=self.order).count(), 1)
        self.assertEqual(AuditEvent.objects.filter(action="event:purchase_order").count(), 1)
        self.assertEqual(AuditEvent.objects.filter(action="paytr:callback_received").count(), 2)

    def test_failure_restocks_and_cancels(self):
        response = self._post(status="failed", failed_reason_code="6", failed_reason_msg="Declined")

        self.assertEqual(response.status_code, 200)
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, PaymentStatus.FAILED)
        self.assertEqual(self.order.status, OrderStatus.CANCELLED)
        self.assertEqual(self.order.payment_failed_reason_code, "6")
        self.assertEqual(self.order.payment_failed_reason_msg, "Declined")
        self.assertEqual(Product.objects.get(pk=self.product.pk).quantity, 7)
        self.assertTrue(AuditEvent.objects.filter(action="order:payment_failed").exists())
        self.assertFalse(LoyaltyTransaction.objects.exists())
        # Cart is kept so the shopper can retry
        self.assertTrue(CartItem.objects.filter(cart=self.cart).exists())

    def test_success_after_failure_changes_nothing(self):
        self._post(status="failed")
        response = self._post(status="success")

        self.assertEqual(response.status_code, 200)
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, PaymentStatus.FAILED)
        self.assertEqual(Product.objects.get(pk=self.product.pk).quantity, 7)

    def test_tampered_hash_is_rejected(self):
        signed_for = create_paytr_callback_hash(get_paytr_config(), self.order.paytr_merchant_oid, "success", "1")

        response = self._post(hash=signed_for)

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.content, b"PAYTR notification failed: bad hash")
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, PaymentStatus.PENDING)
        self.assertTrue(
            AuditEvent.objects.filter(
                action="paytr:callback_bad_hash", entity_id=self.order.paytr_merchant_oid
            ).exists()
        )
        self.assertFalse(LoyaltyTransaction.objects.exists())

    def test_missing_fields(self):
        response = self.client.post(self.url, {"merchant_oid": self.order.paytr_merchant_oid, "status": "success"})

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.content, b"PAYTR notification failed: missing required fields")
        self.assertTrue(AuditEvent.objects.filter(action="paytr:callback_received").exists())

    def test_unknown_order(self):
        config = get_paytr_config()
        fields = {
            "merchant_oid": "SF99999999999",
            "status": "success",
            "total_amount": "100",
            "hash": create_paytr_callback_hash(config, "SF99999999999", "success", "100"),
        }

        response = self.client.post(self.url, fields)

        self.assertEqual(response.status_code, 404)
        self.assertTrue(
            AuditEvent.objects.filter(action="paytr:callback_order_not_found", entity_id="SF99999999999").exists()
        )

    def test_overlong_merchant_oid_is_audited_truncated(self):
        config = get_paytr_config()
        merchant_oid = "SF" + "9" * 100
        fields = {
            "merchant_oid": merchant_oid,
            "status": "success",
            "total_amount": "100",
            "hash": create_paytr_callback_hash(config, merchant_oid, "success", "100"),
        }

        response = self.client.post(self.url, fields)

        self.assertEqual(response.status_code, 404)
        event = AuditEvent.objects.get(action="paytr:callback_received")
        self.assertEqual(event.entity_id, merchant_oid[:64])
        self.assertEqual(event.after_json["merchant_oid"], merchant_oid)
        self.assertTrue(AuditEvent.objects.filter(action="paytr:callback_order_not_found").exists())

    def test_settlement_error_rolls_back_everything(self):
        with patch("apps.integrations.webhooks.paytr.CartService.clear_items", side_effect=RuntimeError("cart down")):
            response = self._post()

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.content, b"Internal processing error")
        self.order.refresh_from_db()
        self.assertEqual((self.order.status, self.order.payment_status), (OrderStatus.PENDING, PaymentStatus.PENDING))
        self.assertIsNone(self.order.payment_completed_at)
        self.assertFalse(LoyaltyTransaction.objects.exists())
        self.assertEqual(CartItem.objects.filter(cart=self.cart).count(), 1)
        self.assertEqual(Product.objects.get(pk=self.product.pk).quantity, 5)
        self.assertFalse(AuditEvent.objects.filter(action="event:purchase_order").exists())

        # Redelivery after the fault settles normally
        self.assertEqual(self._post().status_code, 200)
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, PaymentStatus.PAID)

    def test_fractional_total_amount_keeps_leading_integer(self):
        response = self._post(total_amount="20000.75")

        self.assertEqual(response.status_code, 200)
        self.order.refresh_from_db()
        self.assertEqual(self.order.payment_status, PaymentStatus.PAID)
        self.assertEqual(self.order.paytr_total_amount, 20000)

    @override_settings(PAYTR_MERCHANT_KEY=None)
    def test_missing_config(self):
        response = self.client.post(self.url, {"merchant_oid": self.order.paytr_merchant_oid})

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.content, b"PAYTR notification failed: missing config")
        self.assertFalse(AuditEvent.objects.exists())

    def test_get_not_allowed(self):
        self.assertEqual(self.client.get(self.url).status_code, 405)

    @override_settings(AB_TESTS=AB_ENABLED)
    def test_variant_purchase_is_tagged(self):
        self._post()

        self.assertTrue(AuditEvent.objects.filter(action="ab:home_hero_copy:A:purchase").exists())

    def test_no_variant_when_experiments_disabled(self):
        self._post()

        self.assertFalse(AuditEvent.objects.filter(action__startswith="ab:").exists())
