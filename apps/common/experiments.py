"""
A/B experiment variant resolution.

Variants are derived from a stable hash of the cart token so that the variant
shown at checkout and the one tagged on the purchase event always agree
without storing anything. Configuration lives in ``settings.AB_TESTS``::

    AB_TESTS = {
        "enabled": True,
        "experiments": {
            "home_hero_copy": {"enabled": True, "traffic": 50, "variants": {"A": {}, "B": {}}},
        },
    }
"""

from __future__ import annotations

from typing import Any

from django.conf import settings

from .constants import AB_BUCKET_COUNT, AB_HASH_MODULUS


def stable_bucket(seed: str) -> int:
    """Map a seed string to a bucket in [0, 100)."""
    value = 0
    for char in seed:
        value = (value * 31 + ord(char)) % AB_HASH_MODULUS
    return abs(value) % AB_BUCKET_COUNT


def _normalize_traffic(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int | float):
        return AB_BUCKET_COUNT
    return min(AB_BUCKET_COUNT, max(0, int(value)))


def resolve_variant_for_token(experiment_key: str, token: str | None) -> str | None:
    """Return the variant key assigned to ``token`` or None when not enrolled."""
    if not token:
        return None

    ab_settings: dict[str, Any] = getattr(settings, "AB_TESTS", {}) or {}
    if not ab_settings.get("enabled"):
        return None

    experiment = (ab_settings.get("experiments") or {}).get(experiment_key)
    if not experiment or not experiment.get("enabled"):
        return None

    traffic = _normalize_traffic(experiment.get("traffic"))
    if stable_bucket(f"{experiment_key}:traffic:{token}") >= traffic:
        return None

    variants = [key for key in (experiment.get("variants") or {}) if key]
    if not variants:
        return None

    return variants[stable_bucket(f"{experiment_key}:variant:{token}") % len(variants)]
