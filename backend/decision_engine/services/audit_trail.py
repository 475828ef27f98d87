"""
Audit Trail

Structured audit entries for compliance tooling. The pipeline emits an event
for every completed generation, every bias-check failure, and every lock
contention; subscribers decide where the entries go (log, database, queue).
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("decision_engine.audit")


class AuditAction(str, Enum):
    LETTER_GENERATED = "letter.generated"
    BIAS_CHECK_FAILED = "letter.bias_check_failed"
    LOCK_CONTENTION = "idempotency.lock_contention"


@dataclass
class AuditEvent:
    actor: str
    action: AuditAction
    entity_type: str
    entity_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "actor": self.actor,
            "action": self.action.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "metadata": self.metadata,
            "occurred_at": self.occurred_at.isoformat(),
        }


AuditHook = Callable[[AuditEvent], None]


class AuditTrail:
    """Ordered fan-out of audit events to subscribed hooks."""

    def __init__(self, hooks: Optional[List[AuditHook]] = None):
        self._hooks: List[AuditHook] = list(hooks or [])

    def subscribe(self, hook: AuditHook) -> AuditHook:
        self._hooks.append(hook)
        return hook

    def emit(self, event: AuditEvent) -> None:
        # A broken sink must never change the outcome of the audited operation
        for hook in list(self._hooks):
            try:
                hook(event)
            except Exception as e:
                logger.warning(
                    f"Audit hook {getattr(hook, '__name__', hook)!r} failed for "
                    f"{event.action.value}: {e}"
                )

    def record(
        self,
        action: AuditAction,
        entity_type: str,
        entity_id: Optional[str] = None,
        actor: str = "system",
        **metadata: Any,
    ) -> AuditEvent:
        event = AuditEvent(
            actor=actor,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            metadata=metadata,
        )
        self.emit(event)
        return event


def log_audit_event(event: AuditEvent) -> None:
    """Default sink: one INFO line per event on the audit logger."""
    audit_logger.info(
        f"[AUDIT] {event.action.value} actor={event.actor} "
        f"{event.entity_type}={event.entity_id} metadata={event.metadata}"
    )
