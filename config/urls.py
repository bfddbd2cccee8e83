"""
URL configuration for the Storefront platform
"""

from django.urls import include, path

# ===============================================================================
# MAIN URL PATTERNS
# ===============================================================================

urlpatterns = [
    # Operator and customer APIs
    path("api/", include("apps.api.urls")),
    # External integrations & payment callbacks
    path("integrations/", include("apps.integrations.urls")),
]
