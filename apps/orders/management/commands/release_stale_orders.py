"""
Management command for the stale order sweep.

Cancels orders stuck in (PENDING, PENDING) past a threshold and restocks
their quantity-controlled items.

Usage:
    python manage.py release_stale_orders
    python manage.py release_stale_orders --minutes 60
"""

from __future__ import annotations

import json
from typing import Any

from django.core.management.base import BaseCommand, CommandError, CommandParser

from apps.audit.events import AuditActor
from apps.orders.reclaim import release_stale_orders


class Command(BaseCommand):
    """Release stale unpaid orders."""

    help = "Cancel orders left unpaid past a threshold and restock their items"

    def add_arguments(self, parser: CommandParser) -> None:
        parser.add_argument(
            "--minutes",
            type=int,
            default=None,
            help="Age threshold in minutes (default: STALE_ORDER_DEFAULT_MINUTES)",
        )

    def handle(self, *args: Any, **options: Any) -> None:
        result = release_stale_orders(options["minutes"], actor=AuditActor.system("script"), source="script")
        if result.is_err():
            raise CommandError(f"❌ Sweep rejected: {result.unwrap_err()}")

        self.stdout.write(json.dumps(result.unwrap().as_dict()))
