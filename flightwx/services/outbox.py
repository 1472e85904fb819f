"""Best-effort side effects queued behind the primary state change."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Optional

from flightwx.application.interfaces import AuditSinkInterface
from flightwx.domain.models import AuditEventType

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SideEffect:
    """A deferred audit entry or notification."""

    kind: str
    description: str
    action: Callable[[], Awaitable[None]]


@dataclass
class SideEffectOutbox:
    """Collects audit and notification work for one operation.

    Callers finish their primary write first, then call :meth:`dispatch`.
    Failures are logged and never propagate.
    """

    audit: AuditSinkInterface
    _pending: list[SideEffect] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self._pending)

    def record(
        self,
        event_type: AuditEventType,
        entity_type: str,
        entity_id: str,
        actor_id: Optional[str],
        data: Optional[dict[str, Any]] = None,
    ) -> None:
        async def action() -> None:
            await self.audit.record(event_type, entity_type, entity_id, actor_id, data or {})

        self._pending.append(SideEffect("audit", event_type.value, action))

    def notify(self, description: str, action: Callable[[], Awaitable[None]]) -> None:
        self._pending.append(SideEffect("notification", description, action))

    async def dispatch(self) -> DispatchResult:
        """Run every queued effect in order."""

        pending, self._pending = self._pending, []
        result = DispatchResult()
        for effect in pending:
            try:
                await effect.action()
            except Exception:
                result.failed += 1
                logger.exception("Side effect %s '%s' failed", effect.kind, effect.description)
                continue
            if effect.kind == "notification":
                result.notifications += 1
            else:
                result.audits += 1
        return result


@dataclass
class DispatchResult:
    audits: int = 0
    notifications: int = 0
    failed: int = 0


__all__ = ["DispatchResult", "SideEffect", "SideEffectOutbox"]
