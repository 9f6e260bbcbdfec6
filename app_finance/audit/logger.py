"""
Audit Logger

DESIGN DECISION: Every significant action in the system is logged.
This provides:
1. Traceability of local writes and sync passes
2. Debugging capability when the server disagrees with the device
3. User can see history of their changes

The audit logger:
- Is async like the rest of the data layer
- Gracefully handles failures (doesn't crash the app if logging fails)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from app_finance.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from app_finance.storage.interface import AuditStorageInterface


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
    2. An audit storage backend (SQLite on device), when given
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
        self._logger = structlog.get_logger("app_finance.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity is AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity is AuditSeverity.DEBUG:
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

    async def log_entity_created(
        self,
        entity_type: str,
        entity_id: str,
        label: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a local insert."""
        await self.log(AuditEventBuilder.entity_created(
            entity_type=entity_type,
            entity_id=entity_id,
            label=label,
            correlation_id=correlation_id,
        ))

    async def log_entity_updated(
        self,
        entity_type: str,
        entity_id: str,
        fields: list[str],
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.entity_updated(
            entity_type=entity_type,
            entity_id=entity_id,
            fields=fields,
            correlation_id=correlation_id,
        ))

    async def log_entity_deleted(
        self,
        entity_type: str,
        entity_id: str,
        soft: bool,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(AuditEventBuilder.entity_deleted(
            entity_type=entity_type,
            entity_id=entity_id,
            soft=soft,
            correlation_id=correlation_id,
        ))

    async def log_defaults_seeded(self, user_id: str, count: int) -> None:
        await self.log(AuditEventBuilder.defaults_seeded(user_id=user_id, count=count))

    async def log_sync_started(self, correlation_id: UUID, pending: int) -> None:
        """Log the start of a sync pass."""
        await self.log(AuditEventBuilder.sync_started(
            correlation_id=correlation_id,
            pending=pending,
        ))

    async def log_sync_completed(self, report: dict, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.sync_completed(
            report=report,
            correlation_id=correlation_id,
        ))

    async def log_sync_failed(self, error_message: str, correlation_id: UUID) -> None:
        await self.log(AuditEventBuilder.sync_failed(
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_sync_skipped(self, reason: str) -> None:
        await self.log(AuditEventBuilder.sync_skipped(reason=reason))

    async def log_push_failed(
        self,
        entity_type: str,
        entity_id: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        """Log a single entity that could not be pushed."""
        await self.log(AuditEventBuilder.push_failed(
            entity_type=entity_type,
            entity_id=entity_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_user_logged_in(self, user_id: str) -> None:
        await self.log(AuditEventBuilder.user_logged_in(user_id=user_id))

    async def log_user_logged_out(self, user_id: Optional[str]) -> None:
        await self.log(AuditEventBuilder.user_logged_out(user_id=user_id))

    async def log_auth_failed(self, operation: str, error_message: str) -> None:
        await self.log(AuditEventBuilder.auth_failed(
            operation=operation,
            error_message=error_message,
        ))

    async def log_category_suggested(
        self,
        text: str,
        category: str,
        source: str,
        confidence: str,
    ) -> None:
        await self.log(AuditEventBuilder.category_suggested(
            text=text,
            category=category,
            source=source,
            confidence=confidence,
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

    async def log_external_service_error(
        self,
        service: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log external service error."""
        await self.log(AuditEventBuilder.external_service_error(
            service=service,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a user action or a sync pass and pass it
    through all subsequent operations.
    """
    return uuid4()
