"""
Order API Views for the Storefront platform
Back-office operations: stale order sweep, status and shipping edits.
"""

import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, throttle_classes
from rest_framework.request import Request
from rest_framework.response import Response

from apps.audit.events import AuditActor
from apps.common.request_ip import get_safe_client_ip
from apps.common.validators import parse_bounded_int
from apps.orders.config import get_reclaim_bounds, get_reclaim_default_minutes
from apps.orders.reclaim import release_stale_orders
from apps.orders.services import OrderService, ShippingUpdateData

from ..core.permissions import IsStaffOperator
from ..core.responses import error_response, invalid_input_response, service_error_response
from ..core.throttling import AdminOpsThrottle
from .serializers import OrderSerializer, OrderStatusInputSerializer, ShippingInputSerializer

logger = logging.getLogger(__name__)

ORDER_ERROR_STATUS = {
    "INVALID_STATUS": status.HTTP_400_BAD_REQUEST,
    "INVALID_CARRIER": status.HTTP_400_BAD_REQUEST,
    "INVALID_TRACKING_NO": status.HTTP_400_BAD_REQUEST,
    "ORDER_NOT_FOUND": status.HTTP_404_NOT_FOUND,
    "INVALID_TRANSITION": status.HTTP_409_CONFLICT,
}


def _operator(request: Request) -> AuditActor:
    return AuditActor.for_user(request.user, get_safe_client_ip(request), actor_type="admin")


@api_view(["POST"])
@permission_classes([IsStaffOperator])
@throttle_classes([AdminOpsThrottle])
def release_stale(request: Request) -> Response:
    """
    Run the stale order sweep now.

    Optional ``?minutes=`` overrides the configured threshold within the
    allowed bounds.
    """
    minimum, maximum = get_reclaim_bounds()
    minutes = parse_bounded_int(
        request.query_params.get("minutes"),
        default=get_reclaim_default_minutes(),
        minimum=minimum,
        maximum=maximum,
    )
    if minutes is None:
        return error_response(
            status.HTTP_400_BAD_REQUEST,
            "INVALID_QUERY",
            f"minutes must be an integer between {minimum} and {maximum}",
        )

    result = release_stale_orders(minutes, actor=_operator(request), source="api")
    if result.is_err():
        return service_error_response(result.unwrap_err(), {"INVALID_QUERY": status.HTTP_400_BAD_REQUEST})

    logger.info(f"⏰ [Orders API] Stale sweep by {request.user.pk}: {result.unwrap().released} released")
    return Response(result.unwrap().as_dict())


@api_view(["PATCH"])
@permission_classes([IsStaffOperator])
@throttle_classes([AdminOpsThrottle])
def update_status(request: Request, order_id: int) -> Response:
    serializer = OrderStatusInputSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_input_response(serializer.errors)

    new_status = serializer.validated_data["status"].strip().upper()
    result = OrderService.change_status(order_id, new_status, _operator(request))
    if result.is_err():
        return service_error_response(result.unwrap_err(), ORDER_ERROR_STATUS)

    return Response(OrderSerializer(result.unwrap()).data)


@api_view(["PATCH"])
@permission_classes([IsStaffOperator])
@throttle_classes([AdminOpsThrottle])
def update_shipping(request: Request, order_id: int) -> Response:
    serializer = ShippingInputSerializer(data=request.data)
    if not serializer.is_valid():
        return invalid_input_response(serializer.errors)

    data = ShippingUpdateData(
        carrier=serializer.validated_data["carrier"],
        tracking_no=serializer.validated_data["tracking_no"],
    )
    result = OrderService.update_shipping(order_id, data, _operator(request))
    if result.is_err():
        return service_error_response(result.unwrap_err(), ORDER_ERROR_STATUS)

    return Response(OrderSerializer(result.unwrap()).data)
