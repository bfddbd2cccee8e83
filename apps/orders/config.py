"""
Stale order sweep configuration.

Values come from Django settings with validated fallbacks so a bad operator
value never widens the sweep beyond sane bounds.
"""

import logging

from django.conf import settings

logger = logging.getLogger(__name__)

# ===============================================================================
# HELPER: SAFE VALUE PARSING
# ===============================================================================


def _get_positive_int(setting_name: str, default: int) -> int:
    """Get a positive integer from settings with validation."""
    value = getattr(settings, setting_name, default)
    try:
        result = int(value)
    except (TypeError, ValueError):
        logger.warning(f"⚠️ [Config] Invalid {setting_name}={value!r}, using {default}")
        result = default
    return max(1, result)


# ===============================================================================
# STALE ORDER RECLAIM
# ===============================================================================


def get_reclaim_bounds() -> tuple[int, int]:
    """(min, max) accepted threshold in minutes."""
    minimum = _get_positive_int("STALE_ORDER_MIN_MINUTES", 5)
    maximum = _get_positive_int("STALE_ORDER_MAX_MINUTES", 1440)
    return minimum, max(minimum, maximum)


def get_reclaim_default_minutes() -> int:
    minimum, maximum = get_reclaim_bounds()
    return min(maximum, max(minimum, _get_positive_int("STALE_ORDER_DEFAULT_MINUTES", 30)))


def get_reclaim_batch_size() -> int:
    return _get_positive_int("STALE_ORDER_BATCH_SIZE", 200)
