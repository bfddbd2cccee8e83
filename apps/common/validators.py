"""
Input parsing helpers shared by API views and services.
"""

from __future__ import annotations

import re
from typing import Any

_WHITESPACE_RE = re.compile(r"\s+")
_LEADING_INT_RE = re.compile(r"\s*[+-]?\d+")


def parse_bounded_int(value: Any, *, default: int, minimum: int, maximum: int) -> int | None:
    """
    Parse an optional integer query/form value within [minimum, maximum].

    Missing or blank input yields ``default``; anything non-integral or out of
    bounds yields ``None`` so callers can reject the request.
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        return default

    try:
        parsed = int(str(value).strip())
    except (TypeError, ValueError):
        return None

    if parsed < minimum or parsed > maximum:
        return None
    return parsed


def parse_positive_int(value: Any) -> int | None:
    """
    Leading integer of a provider-reported amount.

    Reads an optional sign and the digits after leading whitespace and
    ignores the rest, so ``"100.50"`` and ``"3456 TL"`` give 100 and 3456.
    Values without leading digits or not above zero yield None.
    """
    if value is None:
        return None

    match = _LEADING_INT_RE.match(str(value))
    if match is None:
        return None

    amount = int(match.group(0))
    return amount if amount > 0 else None


def strip_all_whitespace(value: str) -> str:
    return _WHITESPACE_RE.sub("", value)
