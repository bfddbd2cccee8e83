# ===============================================================================
# STOREFRONT API APP CONFIGURATION 🛠️
# ===============================================================================

from django.apps import AppConfig


class ApiConfig(AppConfig):
    """
    Configuration for the Storefront REST API app.

    Operator and customer endpoints for:
    - Stale order reclaim and order status/shipping edits
    - Coupon administration, validation and suggestions
    - Loyalty summary, redemption and adjustments
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.api"
    label = "storefront_api"
    verbose_name = "Storefront API"
