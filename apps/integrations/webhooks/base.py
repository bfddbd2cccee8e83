import base64
import hashlib
import hmac
import logging
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


class SecurityError(Exception):
    """🔒 Security-related errors in webhook processing"""


# ===============================================================================
# WEBHOOK PROCESSING RESULT TYPES
# ===============================================================================


@dataclass(frozen=True)
class WebhookOutcome:
    """Status code and plain-text body returned to the provider."""

    status_code: int
    body: str

    @classmethod
    def ok(cls) -> "WebhookOutcome":
        return cls(status_code=200, body="OK")

    @classmethod
    def failed(cls, status_code: int, reason: str, *, provider: str = "PAYTR") -> "WebhookOutcome":
        return cls(status_code=status_code, body=f"{provider} notification failed: {reason}")


# ===============================================================================
# BASE WEBHOOK PROCESSING
# ===============================================================================


class BaseWebhookProcessor:
    """
    🔧 Base class for provider callback processing

    Subclasses turn the provider's request fields into a ``WebhookOutcome``.
    Unexpected exceptions propagate to the view, which answers 500 so the
    provider redelivers.
    """

    source_name: str | None = None  # Override in subclasses

    def __init__(self) -> None:
        if not self.source_name:
            raise ValueError("source_name must be defined in subclass")

    def process(self, fields: dict[str, Any], ip_address: str | None = None) -> WebhookOutcome:
        raise NotImplementedError("Subclasses must implement process")

    @staticmethod
    def get_field(fields: dict[str, Any], key: str) -> str:
        """Trimmed string value of a form field; empty when missing or not a string."""
        value = fields.get(key)
        return value.strip() if isinstance(value, str) else ""


# ===============================================================================
# WEBHOOK SIGNATURE VERIFICATION UTILITIES
# ===============================================================================


def compute_hmac_base64(message: str, secret: str, algorithm: str = "sha256") -> str:
    """Base64-encoded HMAC digest of ``message``."""
    if not secret:
        raise SecurityError("Refusing to sign with an empty secret")

    mac = hmac.new(secret.encode("utf-8"), message.encode("utf-8"), getattr(hashlib, algorithm))
    return base64.b64encode(mac.digest()).decode("ascii")


def verify_base64_hmac_signature(message: str, signature: str, secret: str, algorithm: str = "sha256") -> bool:
    """
    🔐 Verify a base64 HMAC signature for webhook authenticity

    Used by form-encoded callbacks (PayTR) that sign a concatenation of
    fields instead of the raw body.
    """
    if not signature or not secret:
        return False

    expected_signature = compute_hmac_base64(message, secret, algorithm)

    # Compare signatures (timing-safe)
    return hmac.compare_digest(signature.encode("utf-8"), expected_signature.encode("utf-8"))
