"""Audit sink that writes events to a dedicated logger."""

from __future__ import annotations

import json
import logging
from typing import Any, Optional

from flightwx.application.interfaces import AuditSinkInterface
from flightwx.domain.models import AuditEventType

audit_logger = logging.getLogger("flightwx.audit")


class LoggingAuditSink(AuditSinkInterface):
    """Emits one JSON line per audit event."""

    async def record(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
        actor_id: Optional[str],
        data: dict[str, Any],
    ) -> None:
        audit_logger.info(
            json.dumps(
                {
                    "event_type": event_type.value,
                    "entity_type": entity_type,
                    "entity_id": entity_id,
                    "actor_id": actor_id,
                    "data": data,
                },
                default=str,
            )
        )


__all__ = ["LoggingAuditSink"]
