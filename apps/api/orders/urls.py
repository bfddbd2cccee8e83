"""
Order API URLs for the Storefront platform
"""

from django.urls import path

from . import views

urlpatterns = [
    path("release-stale/", views.release_stale, name="release_stale"),
    path("<int:order_id>/status/", views.update_status, name="update_status"),
    path("<int:order_id>/shipping/", views.update_shipping, name="update_shipping"),
]
