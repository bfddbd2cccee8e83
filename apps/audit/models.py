"""
Audit models for the Storefront platform
Append-only event store written by every mutating order, payment, coupon and loyalty operation.
"""

from __future__ import annotations

import uuid
from typing import Any, ClassVar

from django.db import models
from django.utils.translation import gettext_lazy as _


class AuditImmutableError(Exception):
    """Raised when code tries to rewrite or remove an audit row."""


class AuditEvent(models.Model):
    """Immutable audit log row: action on entity/entity_id by an actor, with JSON snapshots."""

    ENTITY_ID_MAX_LENGTH: ClassVar[int] = 64

    ACTOR_TYPE_CHOICES: ClassVar[tuple[tuple[str, str], ...]] = (
        ("user", _("User")),
        ("admin", _("Administrator")),
        ("system", _("System")),
        ("provider", _("Payment Provider")),
    )

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    # What
    action = models.CharField(max_length=120, db_index=True)
    entity = models.CharField(max_length=40, db_index=True)
    entity_id = models.CharField(max_length=ENTITY_ID_MAX_LENGTH, blank=True, default="")

    # Who
    actor_id = models.CharField(max_length=254, blank=True, default="")
    actor_type = models.CharField(max_length=20, choices=ACTOR_TYPE_CHOICES, default="system")
    ip_address = models.GenericIPAddressField(null=True, blank=True)

    # Snapshots
    before_json = models.JSONField(null=True, blank=True)
    after_json = models.JSONField(null=True, blank=True)

    class Meta:
        db_table = "audit_event"
        ordering: ClassVar[tuple[str, ...]] = ("-created_at",)
        indexes: ClassVar[tuple[models.Index, ...]] = (
            models.Index(fields=["entity", "entity_id", "-created_at"], name="idx_audit_entity_time"),
            models.Index(fields=["action", "-created_at"], name="idx_audit_action_time"),
            models.Index(fields=["actor_type", "-created_at"], name="idx_audit_actor_time"),
        )

    def __str__(self) -> str:
        return f"{self.action} on {self.entity}:{self.entity_id or '-'} by {self.actor_id or self.actor_type}"

    def save(self, *args: Any, **kwargs: Any) -> None:
        if not self._state.adding:
            raise AuditImmutableError("Audit events are append-only")
        super().save(*args, **kwargs)

    def delete(self, *args: Any, **kwargs: Any) -> tuple[int, dict[str, int]]:
        raise AuditImmutableError("Audit events are append-only")
