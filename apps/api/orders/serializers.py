"""
Order API Serializers for the Storefront platform
"""

from typing import ClassVar

from rest_framework import serializers

from apps.common.constants import CARRIER_MAX_LENGTH, TRACKING_NO_MAX_LENGTH
from apps.orders.models import Order, OrderItem


class OrderItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = OrderItem
        fields: ClassVar[list[str]] = ["id", "product", "product_name", "quantity", "unit_price", "total_price"]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Back-office order view returned after status and shipping edits"""

    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields: ClassVar[list[str]] = [
            "id",
            "order_no",
            "status",
            "payment_status",
            "customer_email",
            "subtotal_amount",
            "discount_amount",
            "total_amount",
            "carrier",
            "tracking_no",
            "shipped_at",
            "payment_completed_at",
            "created_at",
            "items",
        ]
        read_only_fields = fields


class OrderStatusInputSerializer(serializers.Serializer):
    status = serializers.CharField(max_length=20)


class ShippingInputSerializer(serializers.Serializer):
    # Length and emptiness are enforced by the service so its error codes reach the client
    carrier = serializers.CharField(allow_blank=True, max_length=CARRIER_MAX_LENGTH * 2)
    tracking_no = serializers.CharField(allow_blank=True, max_length=TRACKING_NO_MAX_LENGTH * 2)
