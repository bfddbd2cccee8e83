"""
PayTR merchant configuration.

Credentials come from the environment through settings; the callback
endpoint refuses to run without all three of them.
"""

from __future__ import annotations

from dataclasses import dataclass

from django.conf import settings


@dataclass(frozen=True)
class PaytrConfig:
    merchant_id: str
    merchant_key: str
    merchant_salt: str

    def __repr__(self) -> str:
        # Never expose the key or salt in logs or tracebacks
        return f"PaytrConfig(merchant_id={self.merchant_id!r})"


def get_paytr_config() -> PaytrConfig | None:
    """Current merchant configuration, or None when any credential is missing."""
    merchant_id = (getattr(settings, "PAYTR_MERCHANT_ID", None) or "").strip()
    merchant_key = (getattr(settings, "PAYTR_MERCHANT_KEY", None) or "").strip()
    merchant_salt = (getattr(settings, "PAYTR_MERCHANT_SALT", None) or "").strip()
    if not merchant_id or not merchant_key or not merchant_salt:
        return None

    return PaytrConfig(merchant_id=merchant_id, merchant_key=merchant_key, merchant_salt=merchant_salt)
