"""
Tests for cached page invalidation.
"""

from unittest.mock import patch

from django.core.cache import cache
from django.test import SimpleTestCase, override_settings

from apps.common.cache import invalidate_pages, page_cache_key


@override_settings(ORDER_STATE_CACHED_PAGES=["/cart/", "/account/loyalty/"])
class InvalidatePagesTests(SimpleTestCase):
    def setUp(self):
        cache.clear()

    def test_default_pages_are_dropped(self):
        cache.set(page_cache_key("/cart/"), "<html>cart</html>")
        cache.set(page_cache_key("/account/loyalty/"), "<html>points</html>")
        cache.set(page_cache_key("/about/"), "<html>about</html>")

        self.assertEqual(invalidate_pages(), 2)

        self.assertIsNone(cache.get(page_cache_key("/cart/")))
        self.assertIsNone(cache.get(page_cache_key("/account/loyalty/")))
        self.assertEqual(cache.get(page_cache_key("/about/")), "<html>about</html>")

    def test_explicit_paths(self):
        cache.set(page_cache_key("/about/"), "x")
        self.assertEqual(invalidate_pages(["/about/"]), 1)
        self.assertIsNone(cache.get(page_cache_key("/about/")))

    def test_backend_failure_is_not_raised(self):
        """Invalidation is best-effort"""
        with patch("apps.common.cache.cache") as mock_cache:
            mock_cache.delete_many.side_effect = ConnectionError("cache down")
            self.assertEqual(invalidate_pages(), 0)
