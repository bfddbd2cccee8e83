"""
Cart services for the Storefront platform.
"""

from __future__ import annotations

import logging

from .models import CartItem

logger = logging.getLogger(__name__)


class CartService:
    @staticmethod
    def clear_items(token: str | None) -> int:
        """Delete the line items of the cart identified by ``token``; unknown carts delete nothing."""
        if not token:
            return 0

        deleted, _ = CartItem.objects.filter(cart__token=token).delete()
        if deleted:
            logger.info(f"🛒 [Cart] Cleared {deleted} items from spent cart")
        return deleted
