"""
Storefront platform constants

Centralized limits shared by orders, promotions and integrations.
Operator-tunable values (reclaim window, loyalty accrual) live in settings.
"""

from typing import Final

# ===============================================================================
# ORDERS 🛒
# ===============================================================================

ORDER_NO_MIN: Final[int] = 10_000_000_000  # 11-digit public order numbers
ORDER_NO_MAX: Final[int] = 99_999_999_999
ORDER_NO_MAX_ATTEMPTS: Final[int] = 12  # Bounded retry on collision

TRACKING_NO_MAX_LENGTH: Final[int] = 80
CARRIER_MAX_LENGTH: Final[int] = 60

# Failure code stored on orders released by the stale order sweep
STALE_ORDER_FAILURE_CODE: Final[str] = "TIMEOUT"
STALE_ORDER_FAILURE_MESSAGE: Final[str] = "auto-cancel: payment timeout"

# ===============================================================================
# COUPONS 🎟️
# ===============================================================================

COUPON_CODE_MIN_LENGTH: Final[int] = 3
COUPON_CODE_MAX_LENGTH: Final[int] = 32
COUPON_DESCRIPTION_MAX_LENGTH: Final[int] = 220
MAX_PERCENT_DISCOUNT: Final[int] = 100

COUPON_SUGGESTION_SCAN_LIMIT: Final[int] = 200  # Candidates scanned for best coupon
COUPON_ADMIN_LIST_LIMIT: Final[int] = 100

# ===============================================================================
# LOYALTY ⭐
# ===============================================================================

LOYALTY_CODE_PREFIX: Final[str] = "LOY"
LOYALTY_CODE_LENGTH: Final[int] = 15
LOYALTY_RECENT_TRANSACTIONS: Final[int] = 20

# ===============================================================================
# A/B EXPERIMENTS 🧪
# ===============================================================================

AB_HASH_MODULUS: Final[int] = 1_000_003
AB_BUCKET_COUNT: Final[int] = 100
