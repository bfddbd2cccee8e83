"""
Loyalty program configuration.

Accrual rate, tier thresholds and redemption denominations are operator
settings; invalid values fall back to the defaults below.
"""

import logging

from django.conf import settings

from .models import LoyaltyTier

logger = logging.getLogger(__name__)

DEFAULT_POINTS_PER_BLOCK = 5
DEFAULT_ACCRUAL_BLOCK = 10000  # 100.00 TRY in kuruş
DEFAULT_TIER_THRESHOLDS: dict[str, int] = {
    LoyaltyTier.SILVER: 750,
    LoyaltyTier.GOLD: 2000,
    LoyaltyTier.PLATINUM: 5000,
}
DEFAULT_REDEEM_OPTIONS: dict[int, int] = {100: 5, 250: 10, 500: 20, 1000: 40}

# Highest tier first
TIER_ORDER = (LoyaltyTier.PLATINUM, LoyaltyTier.GOLD, LoyaltyTier.SILVER)

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
# ACCRUAL & TIERS
# ===============================================================================


def get_points_per_block() -> int:
    return _get_positive_int("LOYALTY_POINTS_PER_BLOCK", DEFAULT_POINTS_PER_BLOCK)


def get_accrual_block() -> int:
    return _get_positive_int("LOYALTY_ACCRUAL_BLOCK", DEFAULT_ACCRUAL_BLOCK)


def get_tier_thresholds() -> dict[str, int]:
    configured = getattr(settings, "LOYALTY_TIER_THRESHOLDS", None) or {}
    thresholds = dict(DEFAULT_TIER_THRESHOLDS)
    for tier in TIER_ORDER:
        if tier in configured:
            try:
                thresholds[tier] = max(0, int(configured[tier]))
            except (TypeError, ValueError):
                logger.warning(f"⚠️ [Config] Invalid tier threshold for {tier}, using default")
    return thresholds


# ===============================================================================
# REDEMPTION
# ===============================================================================


def get_redeem_options() -> dict[int, int]:
    """Allowed denominations: points -> coupon percent (1-100)."""
    configured = getattr(settings, "LOYALTY_REDEEM_OPTIONS", None) or DEFAULT_REDEEM_OPTIONS
    options: dict[int, int] = {}
    for points, percent in configured.items():
        try:
            points_int, percent_int = int(points), int(percent)
        except (TypeError, ValueError):
            continue
        if points_int > 0 and 0 < percent_int <= 100:
            options[points_int] = percent_int
    return dict(sorted(options.items())) or dict(DEFAULT_REDEEM_OPTIONS)


def get_coupon_expiry_days() -> int:
    return _get_positive_int("LOYALTY_COUPON_EXPIRY_DAYS", 30)


def get_coupon_code_attempts() -> int:
    return _get_positive_int("LOYALTY_COUPON_CODE_ATTEMPTS", 6)
