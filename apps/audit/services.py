"""
Audit services for the Storefront platform
Centralized, typed writes into the append-only audit trail.
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from .events import AuditActor, AuditPayload
from .models import AuditEvent

logger = logging.getLogger(__name__)


class AuditJSONEncoder(json.JSONEncoder):
    """
    JSON encoder for audit snapshots.

    Handles UUIDs, datetimes/dates (ISO format), Decimals (string, keeps
    precision) and model instances (``Model(pk=...)``).
    """

    def default(self, obj: Any) -> Any:
        if isinstance(obj, uuid.UUID):
            return str(obj)
        elif isinstance(obj, datetime | date):
            return obj.isoformat()
        elif isinstance(obj, Decimal):
            return str(obj)
        elif hasattr(obj, "pk"):
            return f"{obj.__class__.__name__}(pk={obj.pk})"

        return super().default(obj)


def serialize_snapshot(snapshot: dict[str, Any] | None) -> dict[str, Any] | None:
    """Round-trip a snapshot through AuditJSONEncoder so it is safe for JSONField storage."""
    if snapshot is None:
        return None
    return json.loads(json.dumps(snapshot, cls=AuditJSONEncoder, ensure_ascii=False))  # type: ignore[no-any-return]


class AuditService:
    """
    📜 Append-only audit writer

    Rows are written inside the caller's transaction, so an aborted business
    operation leaves no audit trace of the parts that rolled back.
    """

    @staticmethod
    def record(payload: AuditPayload, actor: AuditActor | None = None) -> AuditEvent:
        """Persist one typed audit payload attributed to ``actor`` (system when omitted)."""
        actor = actor or AuditActor.system()
        action = payload.get_action()

        try:
            event = AuditEvent.objects.create(
                action=action,
                entity=payload.entity,
                entity_id=(payload.get_entity_id() or "")[: AuditEvent.ENTITY_ID_MAX_LENGTH],
                actor_id=actor.actor_id,
                actor_type=actor.actor_type,
                ip_address=actor.ip_address,
                before_json=serialize_snapshot(payload.before()),
                after_json=serialize_snapshot(payload.after()),
            )
        except Exception as e:
            logger.error(f"🔥 [Audit] Failed to log event {action}: {e}")
            raise

        logger.info(f"✅ [Audit] {action} logged for {payload.entity}:{event.entity_id or '-'} ({actor.actor_type})")
        return event

    @staticmethod
    def events_for(entity: str, entity_id: str | int) -> list[AuditEvent]:
        return list(AuditEvent.objects.filter(entity=entity, entity_id=str(entity_id)).order_by("created_at"))
