"""
Audit Models for the Financial Reasoning Engine

Every conversation turn and every state change is logged for audit purposes.
This provides:
1. Traceability of which intent answered which question
2. Debugging information when the text provider or storage fails
3. A record of goal creation and memory updates

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
Message text is truncated before it is logged; raw financial records are
never logged.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from finance_engine.models.finance import utc_now


class AuditEventType(str, Enum):
    """
    Types of events we audit.

    Every stage of a conversation turn has its own event type.
    """
    # Conversation turn
    MESSAGE_RECEIVED = "message_received"
    RATE_LIMITED = "rate_limited"
    CONCURRENT_TURN_REJECTED = "concurrent_turn_rejected"
    INTENT_DETECTED = "intent_detected"
    RESPONSE_GENERATED = "response_generated"

    # External text provider
    TEXT_PROVIDER_USED = "text_provider_used"
    TEXT_PROVIDER_FALLBACK = "text_provider_fallback"

    # Goals and scenarios
    GOAL_CREATED = "goal_created"
    GOAL_REJECTED = "goal_rejected"
    GOAL_PROGRESS_UPDATED = "goal_progress_updated"
    SIMULATION_RUN = "simulation_run"

    # Memory
    ALERTS_SCANNED = "alerts_scanned"
    MEMORY_UPDATED = "memory_updated"
    HISTORY_CLEARED = "history_cleared"

    # Failures
    DATA_UNAVAILABLE = "data_unavailable"
    PERSISTENCE_FAILED = "persistence_failed"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


def _preview(text: str, limit: int = 80) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'session', 'goal', 'memory')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to (user id, goal id)"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., all events in one turn)"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            self.entity_id or "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.message_received(user_id, text, correlation_id)
        event = AuditEventBuilder.goal_created(user_id, goal_id, name, target, correlation_id)
    """

    @staticmethod
    def message_received(
        user_id: str,
        message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MESSAGE_RECEIVED,
            entity_type="session",
            entity_id=user_id,
            correlation_id=correlation_id,
            description=f"Message received: {_preview(message)}",
            details={"length": len(message)},
            is_user_action=True,
        )

    @staticmethod
    def rate_limited(
        user_id: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RATE_LIMITED,
            severity=AuditSeverity.WARNING,
            entity_type="session",
            entity_id=user_id,
            correlation_id=correlation_id,
            description="Message rejected: rate limit reached",
            is_user_action=True,
        )

    @staticmethod
    def concurrent_turn_rejected(
        user_id: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CONCURRENT_TURN_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="session",
            entity_id=user_id,
            correlation_id=correlation_id,
            description="Message rejected: previous turn still in flight",
            is_user_action=True,
        )

    @staticmethod
    def intent_detected(
        user_id: str,
        intent_type: str,
        confidence: float,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INTENT_DETECTED,
            entity_type="session",
            entity_id=user_id,
            correlation_id=correlation_id,
            description=f"Intent detected: {intent_type} ({confidence:.0%})",
            details={
                "intent": intent_type,
                "confidence": confidence,
            },
        )

    @staticmethod
    def response_generated(
        user_id: str,
        source: str,
        length: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RESPONSE_GENERATED,
            entity_type="session",
            entity_id=user_id,
            correlation_id=correlation_id,
            description=f"Response generated by {source}",
            details={
                "source": source,
                "length": length,
            },
        )

    @staticmethod
    def text_provider_used(
        provider: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TEXT_PROVIDER_USED,
            entity_type="provider",
            entity_id=provider,
            correlation_id=correlation_id,
            description=f"External text provider answered: {provider}",
        )

    @staticmethod
    def text_provider_fallback(
        provider: str,
        reason: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TEXT_PROVIDER_FALLBACK,
            severity=AuditSeverity.WARNING,
            entity_type="provider",
            entity_id=provider,
            correlation_id=correlation_id,
            description=f"Fell back to local answer: {provider}",
            error_message=reason,
        )

    @staticmethod
    def goal_created(
        user_id: str,
        goal_id: str,
        name: str,
        target_amount: float,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_CREATED,
            entity_type="goal",
            entity_id=goal_id,
            correlation_id=correlation_id,
            description=f"Goal created: {name} - ₹{target_amount:,.0f}",
            details={
                "user_id": user_id,
                "name": name,
                "target_amount": target_amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def goal_rejected(
        user_id: str,
        name: str,
        reason: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="session",
            entity_id=user_id,
            correlation_id=correlation_id,
            description=f"Goal rejected: {name}",
            details={"reason": reason},
            is_user_action=True,
        )

    @staticmethod
    def goal_progress_updated(
        user_id: str,
        goal_count: int,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.GOAL_PROGRESS_UPDATED,
            severity=AuditSeverity.DEBUG,
            entity_type="session",
            entity_id=user_id,
            correlation_id=correlation_id,
            description=f"Progress recomputed for {goal_count} goals",
            details={"goal_count": goal_count},
        )

    @staticmethod
    def simulation_run(
        user_id: str,
        target: str,
        direction: str,
        savings_change: float,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SIMULATION_RUN,
            entity_type="session",
            entity_id=user_id,
            correlation_id=correlation_id,
            description=f"Simulated {direction} of {target}",
            details={
                "target": target,
                "direction": direction,
                "savings_change": savings_change,
            },
        )

    @staticmethod
    def alerts_scanned(
        user_id: str,
        alert_types: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ALERTS_SCANNED,
            severity=AuditSeverity.WARNING if alert_types else AuditSeverity.DEBUG,
            entity_type="memory",
            entity_id=user_id,
            description=f"Alert scan found {len(alert_types)} alerts",
            details={"alerts": alert_types},
        )

    @staticmethod
    def memory_updated(
        user_id: str,
        fields: list[str],
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.MEMORY_UPDATED,
            entity_type="memory",
            entity_id=user_id,
            correlation_id=correlation_id,
            description=f"Memory updated: {', '.join(fields)}",
            details={"fields": fields},
        )

    @staticmethod
    def history_cleared(
        user_id: str,
        cleared_count: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.HISTORY_CLEARED,
            entity_type="session",
            entity_id=user_id,
            description=f"Conversation history cleared ({cleared_count} interactions)",
            details={"cleared_count": cleared_count},
            is_user_action=True,
        )

    @staticmethod
    def data_unavailable(
        user_id: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DATA_UNAVAILABLE,
            severity=AuditSeverity.WARNING,
            entity_type="session",
            entity_id=user_id,
            correlation_id=correlation_id,
            description="Financial records could not be loaded",
            error_message=error_message,
        )

    @staticmethod
    def persistence_failed(
        user_id: str,
        what: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSISTENCE_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=what,
            entity_id=user_id,
            correlation_id=correlation_id,
            description=f"Could not persist {what}",
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
