# ===============================================================================
# PYTEST CONFIGURATION FOR THE STOREFRONT PLATFORM
# ===============================================================================
"""
Global test configuration for the Storefront platform.

Test Structure:
- tests/ mirrors apps/ structure for app-specific tests
- Shared model builders live in tests/factories/

Run specific app tests: pytest tests/orders/
"""

import os

import django


def pytest_configure():
    """Configure Django settings for pytest"""
    os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings.test")

    # Configure Django
    django.setup()


# ===============================================================================
# PYTEST FIXTURES
# ===============================================================================

import pytest  # noqa: E402
from django.core.cache import cache  # noqa: E402

from tests.factories.core_factories import create_admin_user, create_user  # noqa: E402


@pytest.fixture(autouse=True)
def clear_cache():
    """Locmem cache is process-wide; reset it between tests."""
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def user(db):
    """Create test shopper"""
    return create_user()


@pytest.fixture
def admin_user(db):
    """Create staff operator"""
    return create_admin_user()
