"""
Management command to install the Storefront scheduled tasks in django-q.
"""

from typing import Any

from django.core.management.base import BaseCommand, CommandError

from apps.orders.tasks import setup_order_scheduled_tasks


class Command(BaseCommand):
    help = "Set up Storefront scheduled tasks (stale order sweep)"

    def _setup_task_category(self, category_name: str, emoji: str, setup_function: Any) -> dict[str, str]:
        """Set up a category of scheduled tasks and display results."""
        self.stdout.write(f"{emoji} Setting up {category_name} tasks...")

        task_results: dict[str, str] = setup_function()
        prefix = category_name.replace(" ", "_").lower()
        for task_name, result in task_results.items():
            if result == "already_exists":
                self.stdout.write(self.style.WARNING(f"  - {prefix}_{task_name}: Task already exists (skipped)"))
            else:
                self.stdout.write(self.style.SUCCESS(f"  - {prefix}_{task_name}: Created successfully"))
        return task_results

    def handle(self, *args: Any, **options: Any) -> None:
        self.stdout.write("🚀 Setting up Storefront scheduled tasks...")

        try:
            results = self._setup_task_category("order processing", "📦", setup_order_scheduled_tasks)
        except Exception as e:
            raise CommandError(f"❌ Failed to set up scheduled tasks: {e}") from e

        created = sum(1 for value in results.values() if value == "created")
        self.stdout.write("")
        self.stdout.write("📋 Release Stale Orders: Every 5 minutes")
        self.stdout.write("🔧 Start workers: python manage.py qcluster")
        self.stdout.write(f"📊 Summary: {created} new tasks created, {len(results) - created} existing tasks skipped")
