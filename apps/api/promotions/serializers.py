"""
Promotion API Serializers for the Storefront platform
Coupon administration input/output and loyalty payloads.
"""

from typing import Any, ClassVar

from rest_framework import serializers

from apps.common.constants import (
    COUPON_CODE_MAX_LENGTH,
    COUPON_CODE_MIN_LENGTH,
    COUPON_DESCRIPTION_MAX_LENGTH,
    MAX_PERCENT_DISCOUNT,
)
from apps.promotions.models import Coupon, CouponType, LoyaltyAccount, LoyaltyTransaction
from apps.promotions.services import CouponService

# ===============================================================================
# COUPONS
# ===============================================================================


class CouponSerializer(serializers.ModelSerializer):
    usage_count = serializers.SerializerMethodField()

    class Meta:
        model = Coupon
        fields: ClassVar[list[str]] = [
            "id",
            "code",
            "description",
            "type",
            "value",
            "min_order_amount",
            "max_discount_amount",
            "usage_limit",
            "per_user_limit",
            "starts_at",
            "expires_at",
            "is_active",
            "usage_count",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_usage_count(self, obj: Coupon) -> int:
        annotated = getattr(obj, "usage_count", None)
        return annotated if annotated is not None else obj.usages.count()


class CouponWriteSerializer(serializers.Serializer):
    """
    Coupon create/update input.

    Pass the existing coupon as ``instance`` with ``partial=True`` for
    updates; cross-field rules are then checked against the merged state.
    """

    code = serializers.CharField(max_length=COUPON_CODE_MAX_LENGTH * 2)
    description = serializers.CharField(
        max_length=COUPON_DESCRIPTION_MAX_LENGTH, allow_blank=True, required=False, default=""
    )
    type = serializers.ChoiceField(choices=[CouponType.FIXED, CouponType.PERCENT])
    value = serializers.IntegerField(min_value=1)
    min_order_amount = serializers.IntegerField(min_value=0, allow_null=True, required=False, default=None)
    max_discount_amount = serializers.IntegerField(min_value=1, allow_null=True, required=False, default=None)
    usage_limit = serializers.IntegerField(min_value=1, allow_null=True, required=False, default=None)
    per_user_limit = serializers.IntegerField(min_value=1, allow_null=True, required=False, default=None)
    starts_at = serializers.DateTimeField(allow_null=True, required=False, default=None)
    expires_at = serializers.DateTimeField(allow_null=True, required=False, default=None)
    is_active = serializers.BooleanField(required=False, default=True)

    def validate_code(self, value: str) -> str:
        code = CouponService.normalize_admin_code(value)
        if len(code) < COUPON_CODE_MIN_LENGTH or len(code) > COUPON_CODE_MAX_LENGTH:
            raise serializers.ValidationError(
                f"Code must be {COUPON_CODE_MIN_LENGTH}-{COUPON_CODE_MAX_LENGTH} characters without spaces."
            )

        existing = Coupon.objects.filter(code=code)
        if self.instance is not None:
            existing = existing.exclude(pk=self.instance.pk)
        if existing.exists():
            raise serializers.ValidationError("A coupon with this code already exists.")
        return code

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        merged = {**self.instance.snapshot(), **attrs} if self.instance is not None else attrs
        errors: dict[str, str] = {}

        if merged.get("type") == CouponType.PERCENT and (merged.get("value") or 0) > MAX_PERCENT_DISCOUNT:
            errors["value"] = f"Percent coupons cannot exceed {MAX_PERCENT_DISCOUNT}."

        starts_at, expires_at = merged.get("starts_at"), merged.get("expires_at")
        if starts_at and expires_at and starts_at > expires_at:
            errors["expires_at"] = "Expiry must not be before the start date."

        if errors:
            raise serializers.ValidationError(errors)
        return attrs


class CouponValidateInputSerializer(serializers.Serializer):
    code = serializers.CharField(allow_blank=True, max_length=64)
    subtotal = serializers.IntegerField(min_value=0)


class BestCouponQuerySerializer(serializers.Serializer):
    subtotal = serializers.IntegerField(min_value=0)


# ===============================================================================
# LOYALTY
# ===============================================================================


class LoyaltyTransactionSerializer(serializers.ModelSerializer):
    coupon_code = serializers.CharField(source="coupon.code", read_only=True, default=None)

    class Meta:
        model = LoyaltyTransaction
        fields: ClassVar[list[str]] = ["id", "points_change", "type", "order", "coupon_code", "note", "created_at"]
        read_only_fields = fields


class LoyaltyAccountSerializer(serializers.ModelSerializer):
    class Meta:
        model = LoyaltyAccount
        fields: ClassVar[list[str]] = ["user", "points_balance", "total_earned", "total_redeemed", "tier"]
        read_only_fields = fields


class RedeemInputSerializer(serializers.Serializer):
    points = serializers.IntegerField()


class AdjustInputSerializer(serializers.Serializer):
    """Operator correction; request keys are camelCase."""

    userId = serializers.IntegerField(min_value=1, source="user_id")
    delta = serializers.IntegerField()
    reasonCode = serializers.CharField(max_length=40, source="reason_code")
    note = serializers.CharField(required=False, allow_blank=True, max_length=200, default="")
