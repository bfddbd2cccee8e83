"""
Cart models for the Storefront platform
A cart is identified by an opaque token carried by the storefront session.
"""

from __future__ import annotations

from typing import ClassVar

from django.db import models


class Cart(models.Model):
    token = models.CharField(max_length=64, unique=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "carts"

    def __str__(self) -> str:
        return f"Cart {self.token}"


class CartItem(models.Model):
    cart = models.ForeignKey(Cart, on_delete=models.CASCADE, related_name="items")
    product = models.ForeignKey("products.Product", on_delete=models.CASCADE, related_name="+")
    quantity = models.PositiveIntegerField(default=1)

    class Meta:
        db_table = "cart_items"
        constraints: ClassVar[list[models.BaseConstraint]] = [
            models.UniqueConstraint(fields=["cart", "product"], name="uniq_cart_item_product"),
        ]

    def __str__(self) -> str:
        return f"{self.quantity} x {self.product_id} in {self.cart_id}"
