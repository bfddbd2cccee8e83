"""
Order background tasks for the Storefront platform.

Runs the stale order sweep through django-q, either on demand or on the
five-minute schedule installed by ``setup_order_scheduled_tasks``.
"""

from __future__ import annotations

import logging
from typing import Any

from django.core.cache import cache
from django_q.models import Schedule
from django_q.tasks import async_task, schedule

from apps.audit.events import AuditActor

from .reclaim import release_stale_orders

logger = logging.getLogger(__name__)

TASK_TIME_LIMIT = 600  # 10 minutes
SWEEP_LOCK_KEY = "release_stale_orders_lock"
SWEEP_LOCK_SECONDS = 300
SWEEP_SCHEDULE_NAME = "order-release-stale"


def release_stale_orders_task(minutes: int | None = None) -> dict[str, Any]:
    """
    Scheduled stale order sweep.

    Overlapping runs are skipped; correctness does not depend on the lock,
    it only avoids two workers scanning the same batch.
    """
    logger.info("🔄 [OrderTasks] Starting stale order sweep")

    if not cache.add(SWEEP_LOCK_KEY, True, SWEEP_LOCK_SECONDS):
        logger.info("⏭️ [OrderTasks] Stale order sweep already running, skipping")
        return {"success": True, "message": "Already running"}

    try:
        result = release_stale_orders(minutes, actor=AuditActor.system("schedule"), source="schedule")
        if result.is_err():
            logger.error(f"🔥 [OrderTasks] Stale order sweep rejected: {result.unwrap_err()}")
            return {"success": False, "error": result.unwrap_err()}

        summary = result.unwrap()
        logger.info(f"✅ [OrderTasks] Stale order sweep completed: {summary.released}/{summary.scanned} released")
        return {"success": True, "results": summary.as_dict()}
    finally:
        cache.delete(SWEEP_LOCK_KEY)


# ===============================================================================
# ASYNC WRAPPERS
# ===============================================================================


def release_stale_orders_async(minutes: int | None = None) -> str:
    """Queue a stale order sweep (async)."""
    return async_task("apps.orders.tasks.release_stale_orders_task", minutes, timeout=TASK_TIME_LIMIT)


# ===============================================================================
# SCHEDULED TASKS SETUP
# ===============================================================================


def setup_order_scheduled_tasks() -> dict[str, str]:
    """Install the stale order sweep schedule (every 5 minutes) once."""
    tasks_created = {}

    if Schedule.objects.filter(name=SWEEP_SCHEDULE_NAME).exists():
        tasks_created["release_stale"] = "already_exists"
    else:
        schedule(
            "apps.orders.tasks.release_stale_orders_task",
            schedule_type=Schedule.MINUTES,
            minutes=5,
            name=SWEEP_SCHEDULE_NAME,
            cluster="storefront-cluster",
        )
        tasks_created["release_stale"] = "created"

    logger.info(f"✅ [OrderTasks] Scheduled tasks setup: {tasks_created}")
    return tasks_created
