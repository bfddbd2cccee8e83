import logging
from typing import Any

from django.http import HttpRequest, HttpResponse
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt
from django_ratelimit.decorators import ratelimit  # type: ignore[import-untyped]

from apps.common.request_ip import get_safe_client_ip

from .webhooks.base import BaseWebhookProcessor
from .webhooks.paytr import PaytrCallbackProcessor

logger = logging.getLogger(__name__)


# ===============================================================================
# PROVIDER CALLBACK VIEWS
# ===============================================================================


@method_decorator(
    [
        csrf_exempt,
        ratelimit(key="ip", rate="60/m", method="POST", block=False),  # 60 callbacks per minute per IP
    ],
    name="dispatch",
)
class ProviderCallbackView(View):
    """
    🔄 Form-encoded payment provider callback endpoint

    Answers in plain text; the provider retries anything that is not a 200.
    """

    processor_class: type[BaseWebhookProcessor] | None = None  # Override in subclasses
    http_method_names = ["post"]  # noqa: RUF012

    def post(self, request: HttpRequest) -> HttpResponse:
        if self.processor_class is None:
            return self._text("Callback source not configured", status=400)

        ip_address = get_safe_client_ip(request)

        if getattr(request, "limited", False):
            logger.warning(
                f"🚨 [Security] Rate limit exceeded for {self.processor_class.source_name} callback from IP: {ip_address}"
            )
            return self._text("Too many requests", status=429)

        try:
            outcome = self.processor_class().process(self._fields(request), ip_address=ip_address)
        except Exception:
            logger.exception(f"💥 Critical error processing {self.processor_class.source_name} callback")
            # SECURITY: Never expose internal exception details to external callers
            return self._text("Internal processing error", status=500)

        return self._text(outcome.body, status=outcome.status_code)

    @staticmethod
    def _fields(request: HttpRequest) -> dict[str, Any]:
        return {key: request.POST.get(key) for key in request.POST}

    @staticmethod
    def _text(body: str, *, status: int) -> HttpResponse:
        return HttpResponse(body, status=status, content_type="text/plain; charset=utf-8")


class PaytrCallbackView(ProviderCallbackView):
    """💳 PayTR payment notification endpoint"""

    processor_class = PaytrCallbackProcessor
