"""
Stale order reclaim sweep.

Cancels orders that never received a payment callback and gives their stock
back. Shares the PENDING payment precondition with the payment callback, so
whichever of the two settles an order first wins and the other does nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any

from django.db import transaction
from django.utils import timezone

from apps.audit.events import AuditActor, StaleOrderReleased
from apps.audit.services import AuditService
from apps.common.cache import invalidate_pages
from apps.common.constants import STALE_ORDER_FAILURE_CODE, STALE_ORDER_FAILURE_MESSAGE
from apps.common.types import Err, Ok, Result

from .config import get_reclaim_batch_size, get_reclaim_bounds, get_reclaim_default_minutes
from .lifecycle import mark_failed
from .models import Order, OrderStatus, PaymentStatus

logger = logging.getLogger(__name__)


@dataclass
class ReclaimSummary:
    threshold_minutes: int
    scanned: int = 0
    released: int = 0
    released_order_ids: list[int] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        """External (API, task result and command output) representation."""
        return {
            "thresholdMinutes": self.threshold_minutes,
            "scanned": self.scanned,
            "released": self.released,
            "releasedOrderIds": list(self.released_order_ids),
        }


class StaleOrderReclaimer:
    """⏰ Releases orders stuck in (PENDING, PENDING) past a threshold"""

    def __init__(self, *, batch_size: int | None = None) -> None:
        self.batch_size = batch_size or get_reclaim_batch_size()

    def run(
        self, minutes: int | None = None, *, actor: AuditActor | None = None, source: str = "api"
    ) -> Result[ReclaimSummary, str]:
        """
        Release up to ``batch_size`` orders created at least ``minutes`` ago, oldest first.

        Each order is settled in its own transaction so one failure does not
        undo the rest of the sweep.
        """
        if minutes is None:
            minutes = get_reclaim_default_minutes()

        minimum, maximum = get_reclaim_bounds()
        if minutes < minimum or minutes > maximum:
            return Err("INVALID_QUERY")

        actor = actor or AuditActor.system(source)
        threshold = timezone.now() - timedelta(minutes=minutes)
        candidate_ids = list(
            Order.objects.filter(
                status=OrderStatus.PENDING,
                payment_status=PaymentStatus.PENDING,
                created_at__lte=threshold,
            )
            .order_by("created_at", "id")
            .values_list("id", flat=True)[: self.batch_size]
        )

        summary = ReclaimSummary(threshold_minutes=minutes, scanned=len(candidate_ids))
        for order_id in candidate_ids:
            if self._release_order(order_id, minutes, actor, source):
                summary.released += 1
                summary.released_order_ids.append(order_id)

        if summary.released:
            invalidate_pages()

        logger.info(
            f"⏰ [Orders] Stale sweep ({minutes}m, {source}): scanned={summary.scanned} released={summary.released}"
        )
        return Ok(summary)

    @staticmethod
    def _release_order(order_id: int, minutes: int, actor: AuditActor, source: str) -> bool:
        with transaction.atomic():
            order = (
                Order.objects.select_for_update()
                .filter(pk=order_id, status=OrderStatus.PENDING, payment_status=PaymentStatus.PENDING)
                .first()
            )
            if order is None:
                # Settled by a payment callback since the scan
                return False

            item_count = order.items.count()
            mark_failed(order, reason_code=STALE_ORDER_FAILURE_CODE, reason_message=STALE_ORDER_FAILURE_MESSAGE)
            AuditService.record(
                StaleOrderReleased(
                    order_id=order.pk,
                    threshold_minutes=minutes,
                    item_count=item_count,
                    source=source,
                ),
                actor,
            )
        return True


def release_stale_orders(
    minutes: int | None = None, *, actor: AuditActor | None = None, source: str = "api"
) -> Result[ReclaimSummary, str]:
    """Convenience wrapper used by the API, the management command and scheduled tasks."""
    return StaleOrderReclaimer().run(minutes, actor=actor, source=source)
