"""
Audit Logger

DESIGN DECISION: Every conversation turn and state change is logged.
This provides:
1. Traceability (which intent, which source answered)
2. Debugging capability when a provider or storage fails
3. A history of goal and memory changes

The audit logger:
- Is async to not block the conversation
- NEVER raises (logging failures must not break a turn)
- Supports correlation IDs to trace all events of one turn
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from finance_engine.models.audit import AuditEvent, AuditEventBuilder
from finance_engine.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage, when configured (for persistence)
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("finance_engine.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_message_received(
        self,
        user_id: str,
        message: str,
        correlation_id: UUID,
    ) -> None:
        """Log an incoming user message."""
        await self.log(AuditEventBuilder.message_received(
            user_id=user_id,
            message=message,
            correlation_id=correlation_id,
        ))

    async def log_rate_limited(self, user_id: str, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.rate_limited(user_id, correlation_id))

    async def log_concurrent_turn_rejected(self, user_id: str, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.concurrent_turn_rejected(user_id, correlation_id))

    async def log_intent_detected(
        self,
        user_id: str,
        intent_type: str,
        confidence: float,
        correlation_id: UUID,
    ) -> None:
        """Log the classified intent of a message."""
        await self.log(AuditEventBuilder.intent_detected(
            user_id=user_id,
            intent_type=intent_type,
            confidence=confidence,
            correlation_id=correlation_id,
        ))

    async def log_response_generated(
        self,
        user_id: str,
        source: str,
        length: int,
        correlation_id: UUID,
    ) -> None:
        """Log which source produced the final response."""
        await self.log(AuditEventBuilder.response_generated(
            user_id=user_id,
            source=source,
            length=length,
            correlation_id=correlation_id,
        ))

    async def log_text_provider_used(self, provider: str, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.text_provider_used(provider, correlation_id))

    async def log_text_provider_fallback(
        self,
        provider: str,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        """Log a provider failure that fell back to the local answer."""
        await self.log(AuditEventBuilder.text_provider_fallback(
            provider=provider,
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_goal_created(
        self,
        user_id: str,
        goal_id: str,
        name: str,
        target_amount: float,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.goal_created(
            user_id=user_id,
            goal_id=goal_id,
            name=name,
            target_amount=target_amount,
            correlation_id=correlation_id,
        ))

    async def log_goal_rejected(
        self,
        user_id: str,
        name: str,
        reason: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.goal_rejected(
            user_id=user_id,
            name=name,
            reason=reason,
            correlation_id=correlation_id,
        ))

    async def log_goal_progress_updated(
        self,
        user_id: str,
        goal_count: int,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.goal_progress_updated(
            user_id=user_id,
            goal_count=goal_count,
            correlation_id=correlation_id,
        ))

    async def log_simulation_run(
        self,
        user_id: str,
        target: str,
        direction: str,
        savings_change: float,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.simulation_run(
            user_id=user_id,
            target=target,
            direction=direction,
            savings_change=savings_change,
            correlation_id=correlation_id,
        ))

    async def log_alerts_scanned(self, user_id: str, alert_types: list[str]) -> None:
        await self.log(AuditEventBuilder.alerts_scanned(user_id, alert_types))

    async def log_memory_updated(
        self,
        user_id: str,
        fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.memory_updated(
            user_id=user_id,
            fields=fields,
            correlation_id=correlation_id,
        ))

    async def log_history_cleared(self, user_id: str, cleared_count: int) -> None:
        await self.log(AuditEventBuilder.history_cleared(user_id, cleared_count))

    async def log_data_unavailable(
        self,
        user_id: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.data_unavailable(
            user_id=user_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_persistence_failed(
        self,
        user_id: str,
        what: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a best-effort write that did not succeed."""
        await self.log(AuditEventBuilder.persistence_failed(
            user_id=user_id,
            what=what,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        await self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a conversation turn.
    Pass it through all subsequent operations.
    """
    return uuid4()
