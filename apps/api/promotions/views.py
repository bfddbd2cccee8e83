"""
Promotion API Views for the Storefront platform
Coupon administration, coupon preview for shoppers, and the loyalty program.
"""

import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.request import Request
from rest_framework.response import Response

from apps.audit.events import AuditActor
from apps.common.request_ip import get_safe_client_ip
from apps.promotions.loyalty import ADJUST_REASONS, LoyaltyService
from apps.promotions.models import Coupon
from apps.promotions.services import CouponService

from ..core.permissions import IsStaffOperator
from ..core.responses import error_response, invalid_input_response, service_error_response
from ..core.throttling import AdminOpsThrottle, CouponValidateThrottle, LoyaltyRedeemThrottle
from .serializers import (
    AdjustInputSerializer,
    BestCouponQuerySerializer,
    CouponSerializer,
    CouponValidateInputSerializer,
    CouponWriteSerializer,
    LoyaltyAccountSerializer,
    LoyaltyTransactionSerializer,
    RedeemInputSerializer,
)

logger = logging.getLogger(__name__)

REDEEM_ERROR_STATUS = {
    "LOYALTY_INVALID_POINTS": status.HTTP_400_BAD_REQUEST,
    "LOYALTY_USER_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "LOYALTY_INSUFFICIENT_POINTS": status.HTTP_409_CONFLICT,
}

ADJUST_ERROR_STATUS = {
    "LOYALTY_INVALID_DELTA": status.HTTP_400_BAD_REQUEST,
    "LOYALTY_INVALID_REASON": status.HTTP_400_BAD_REQUEST,
    "LOYALTY_USER_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "LOYALTY_NEGATIVE_BALANCE": status.HTTP_409_CONFLICT,
}


def _operator(request: Request) -> AuditActor:
    return AuditActor.for_user(request.user, get_safe_client_ip(request), actor_type="admin")


# ===============================================================================
# COUPON ADMINISTRATION
# ===============================================================================


@api_view(["GET", "POST"])
@permission_classes([IsStaffOperator])
@throttle_classes([AdminOpsThrottle])
def coupon_list_create(request: Request) -> Response:
    """
    GET: newest coupons with usage counts.
    POST: create a coupon; field errors come back per field.
    """
    if request.method == "GET":
        coupons = CouponService.list_for_admin()
        return Response({"results": CouponSerializer(coupons, many=True).data, "count": len(coupons)})

    serializer = CouponWriteSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_input_response(serializer.errors)

    coupon = CouponService.create_coupon(dict(serializer.validated_data), _operator(request))
    return Response(CouponSerializer(coupon).data, status=status.HTTP_201_CREATED)


@api_view(["PATCH", "DELETE"])
@permission_classes([IsStaffOperator])
@throttle_classes([AdminOpsThrottle])
def coupon_detail(request: Request, coupon_id: int) -> Response:
    """PATCH: partial update. DELETE: soft-disable, usage history is kept."""
    coupon = Coupon.objects.filter(pk=coupon_id).first()
    if coupon is None:
        return error_response(status.HTTP_404_NOT_FOUND, "COUPON_NOT_FOUND", "Coupon not found")

    if request.method == "DELETE":
        result = CouponService.disable_coupon(coupon.pk, _operator(request))
    else:
        serializer = CouponWriteSerializer(instance=coupon, data=request.data, partial=True)
        if not serializer.is_valid():
            return invalid_input_response(serializer.errors)
        result = CouponService.update_coupon(coupon.pk, dict(serializer.validated_data), _operator(request))

    if result.is_err():
        return service_error_response(result.unwrap_err(), {"COUPON_NOT_FOUND": status.HTTP_404_NOT_FOUND})

    return Response(CouponSerializer(result.unwrap()).data)


# ===============================================================================
# COUPON PREVIEW (SHOPPERS)
# ===============================================================================


@api_view(["POST"])
@permission_classes([IsAuthenticated])
@throttle_classes([CouponValidateThrottle])
def coupon_validate(request: Request) -> Response:
    """Preview a code against a subtotal. Rejections are 200 with ``valid: false`` and the reason."""
    serializer = CouponValidateInputSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_input_response(serializer.errors)

    subtotal = serializer.validated_data["subtotal"]
    result = CouponService.validate(serializer.validated_data["code"], subtotal, request.user.email or None)
    if result.is_err():
        return Response({"valid": False, "reason": result.unwrap_err()})

    validation = result.unwrap()
    return Response(
        {
            "valid": True,
            "code": validation.coupon.code,
            "type": validation.coupon.type,
            "discount_amount": validation.discount_amount,
            "total_after_discount": subtotal - validation.discount_amount,
        }
    )


@api_view(["GET"])
@permission_classes([IsAuthenticated])
@throttle_classes([CouponValidateThrottle])
def coupon_best(request: Request) -> Response:
    """Best applicable coupon for ``?subtotal=`` and the number of applicable coupons."""
    serializer = BestCouponQuerySerializer(data=request.query_params)
    if not serializer.is_valid():
        return error_response(status.HTTP_400_BAD_REQUEST, "INVALID_QUERY", "Invalid query", serializer.errors)

    subtotal = serializer.validated_data["subtotal"]
    email = request.user.email or None
    best = CouponService.best_coupon_for_user(subtotal, email)
    return Response(
        {
            "best": (
                {"code": best.coupon.code, "discount_amount": best.discount_amount}
                if best is not None
                else None
            ),
            "available_count": CouponService.available_coupon_count(subtotal, email),
        }
    )


# ===============================================================================
# LOYALTY
# ===============================================================================


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def loyalty_summary(request: Request) -> Response:
    summary = LoyaltyService.summary(request.user)
    return Response(
        {
            "account": LoyaltyAccountSerializer(summary.account).data,
            "recent_transactions": LoyaltyTransactionSerializer(summary.recent_transactions, many=True).data,
            "redeem_options": [
                {"points": points, "percent": percent} for points, percent in summary.redeem_options.items()
            ],
        }
    )


@api_view(["POST"])
@permission_classes([IsAuthenticated])
@throttle_classes([LoyaltyRedeemThrottle])
def loyalty_redeem(request: Request) -> Response:
    serializer = RedeemInputSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_input_response(serializer.errors)

    result = LoyaltyService.redeem(request.user.pk, serializer.validated_data["points"])
    if result.is_err():
        return service_error_response(result.unwrap_err(), REDEEM_ERROR_STATUS)

    redemption = result.unwrap()
    return Response(
        {
            "coupon_code": redemption.coupon_code,
            "coupon_value": redemption.coupon_value,
            "spent_points": redemption.spent_points,
        },
        status=status.HTTP_201_CREATED,
    )


@api_view(["POST"])
@permission_classes([IsStaffOperator])
@throttle_classes([AdminOpsThrottle])
def loyalty_adjust(request: Request) -> Response:
    serializer = AdjustInputSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_input_response(serializer.errors)

    data = serializer.validated_data
    result = LoyaltyService.adjust(
        data["user_id"], data["delta"], data["reason_code"].strip().upper(), data.get("note", ""), _operator(request)
    )
    if result.is_err():
        return service_error_response(result.unwrap_err(), ADJUST_ERROR_STATUS)

    return Response(LoyaltyAccountSerializer(result.unwrap()).data)


@api_view(["GET"])
@permission_classes([IsStaffOperator])
def loyalty_snapshot(request: Request) -> Response:
    snapshot = LoyaltyService.admin_snapshot()
    snapshot["recent_transactions"] = LoyaltyTransactionSerializer(snapshot["recent_transactions"], many=True).data
    snapshot["adjust_reasons"] = ADJUST_REASONS
    return Response(snapshot)
