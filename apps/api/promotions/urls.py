"""
Promotion API URLs for the Storefront platform
"""

from django.urls import path

from . import views

urlpatterns = [
    # Coupon administration (staff)
    path("coupons/", views.coupon_list_create, name="coupon_list_create"),
    path("coupons/<int:coupon_id>/", views.coupon_detail, name="coupon_detail"),
    # Coupon preview (authenticated shoppers)
    path("coupons/validate/", views.coupon_validate, name="coupon_validate"),
    path("coupons/best/", views.coupon_best, name="coupon_best"),
    # Loyalty
    path("loyalty/", views.loyalty_summary, name="loyalty_summary"),
    path("loyalty/redeem/", views.loyalty_redeem, name="loyalty_redeem"),
    path("loyalty/adjust/", views.loyalty_adjust, name="loyalty_adjust"),
    path("loyalty/snapshot/", views.loyalty_snapshot, name="loyalty_snapshot"),
]
