"""
Best-effort invalidation of cached page renderings.

Payment callbacks and stale order sweeps change what the account, cart and
back-office pages show; their cached copies are dropped after the owning
transaction commits. Failures here never affect the business operation.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from django.conf import settings
from django.core.cache import cache

logger = logging.getLogger(__name__)


def page_cache_key(path: str) -> str:
    prefix = getattr(settings, "PAGE_CACHE_KEY_PREFIX", "page")
    return f"{prefix}:{path}"


def invalidate_pages(paths: Iterable[str] | None = None) -> int:
    """
    🧹 Drop cached renderings for the given paths (defaults to the order-state pages).

    Returns the number of keys submitted for deletion, 0 if the cache backend failed.
    """
    targets = list(paths) if paths is not None else list(getattr(settings, "ORDER_STATE_CACHED_PAGES", []))
    if not targets:
        return 0

    keys = [page_cache_key(path) for path in targets]
    try:
        cache.delete_many(keys)
    except Exception as e:
        logger.warning(f"⚠️ [Cache] Page invalidation failed for {len(keys)} keys: {e}")
        return 0

    logger.debug(f"🧹 [Cache] Invalidated {len(keys)} cached pages")
    return len(keys)
