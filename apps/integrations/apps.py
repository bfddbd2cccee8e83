from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class IntegrationsConfig(AppConfig):
    """
    🔌 Payment provider integrations

    Handles:
    - PayTR merchant configuration
    - PayTR payment notification callbacks
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "apps.integrations"
    verbose_name = _("🔌 Integrations")
