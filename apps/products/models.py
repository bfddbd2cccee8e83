"""
Product catalog models for the Storefront platform
Only what order fulfillment needs: price snapshot source and stock counters.
"""

from __future__ import annotations

from typing import ClassVar

from django.db import models
from django.utils.translation import gettext_lazy as _


class Product(models.Model):
    """
    Sellable catalog item.

    ``quantity`` is only tracked when ``quantity_control`` is on; unmanaged
    products are always available and never restocked.
    """

    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=200, unique=True)
    price = models.PositiveIntegerField(default=0, help_text=_("Unit price in kuruş"))

    quantity = models.PositiveIntegerField(default=0)
    quantity_control = models.BooleanField(
        default=True, help_text=_("Track stock for this product; unmanaged products are never restocked")
    )

    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "products"
        ordering: ClassVar[tuple[str, ...]] = ("name",)

    def __str__(self) -> str:
        return self.name
