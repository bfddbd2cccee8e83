"""
Tests for conditional inventory counters.
"""

from django.test import TestCase

from apps.products.models import Product
from apps.products.services import InventoryService
from tests.factories.core_factories import create_product


class InventoryServiceTests(TestCase):
    def test_restock_managed_product(self):
        product = create_product(quantity=3)

        self.assertTrue(InventoryService.restock(product.pk, 2))

        product.refresh_from_db()
        self.assertEqual(product.quantity, 5)

    def test_restock_skips_unmanaged_and_missing(self):
        """Unmanaged SKUs are never restocked; unknown ids are a no-op"""
        product = create_product(quantity=3, quantity_control=False)

        self.assertFalse(InventoryService.restock(product.pk, 2))
        self.assertFalse(InventoryService.restock(999_999, 2))
        self.assertFalse(InventoryService.restock(None, 2))

        product.refresh_from_db()
        self.assertEqual(product.quantity, 3)

    def test_reserve_decrements_only_with_enough_stock(self):
        product = create_product(quantity=2)

        self.assertTrue(InventoryService.reserve(product.pk, 2))
        self.assertFalse(InventoryService.reserve(product.pk, 1))

        self.assertEqual(Product.objects.get(pk=product.pk).quantity, 0)

    def test_reserve_unmanaged_always_succeeds(self):
        product = create_product(quantity=0, quantity_control=False)

        self.assertTrue(InventoryService.reserve(product.pk, 50))
        self.assertEqual(Product.objects.get(pk=product.pk).quantity, 0)
