# ===============================================================================
# STOREFRONT API MAIN URLS 🚀
# ===============================================================================
#
# URL Structure:
#   /api/orders/      → Order operations (reclaim sweep, status, shipping)
#   /api/promotions/  → Coupons and loyalty
#

from django.urls import include, path

from .orders import urls as order_urls
from .promotions import urls as promotion_urls

app_name = "api"

urlpatterns = [
    path("orders/", include((order_urls, "orders"))),
    path("promotions/", include((promotion_urls, "promotions"))),
]
