"""
Inventory services for the Storefront platform.

All stock mutations are single conditional UPDATE statements evaluated by the
database (``F()`` expressions), run inside the caller's transaction.
"""

from __future__ import annotations

import logging

from django.db.models import F

from .models import Product

logger = logging.getLogger(__name__)


class InventoryService:
    """📦 Stock counters for quantity-controlled products"""

    @staticmethod
    def restock(product_id: int | None, quantity: int) -> bool:
        """
        Return ``quantity`` units to stock.

        Only quantity-controlled products are touched; unmanaged or missing
        products are a no-op. Returns True when a row was updated.
        """
        if product_id is None or quantity <= 0:
            return False

        updated = Product.objects.filter(pk=product_id, quantity_control=True).update(
            quantity=F("quantity") + quantity
        )
        if updated:
            logger.info(f"📦 [Inventory] Restocked product {product_id} by {quantity}")
        return bool(updated)

    @staticmethod
    def reserve(product_id: int, quantity: int) -> bool:
        """
        Take ``quantity`` units out of stock for a checkout.

        Unmanaged products always succeed. Managed products are decremented
        only while enough stock remains; False means insufficient stock.
        """
        if quantity <= 0:
            return False

        updated = Product.objects.filter(pk=product_id, quantity_control=True, quantity__gte=quantity).update(
            quantity=F("quantity") - quantity
        )
        if updated:
            return True

        # Nothing decremented: fine for unmanaged products, a stock-out otherwise
        return Product.objects.filter(pk=product_id, quantity_control=False).exists()
