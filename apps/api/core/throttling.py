# ===============================================================================
# API THROTTLING CLASSES 🚦
# ===============================================================================

from rest_framework.throttling import UserRateThrottle

# Keyed per user (client IP when anonymous); rate from DEFAULT_THROTTLE_RATES[scope]


class CouponValidateThrottle(UserRateThrottle):
    """Coupon validation and suggestion (code guessing protection)"""

    scope = "coupon_validate"


class LoyaltyRedeemThrottle(UserRateThrottle):
    """Points redemption"""

    scope = "loyalty_redeem"


class AdminOpsThrottle(UserRateThrottle):
    """Back-office write operations"""

    scope = "admin_ops"
