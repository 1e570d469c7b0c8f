"""
Audit Logger

DESIGN DECISION: Every ingestion outcome and dashboard request is logged.
This provides:
1. Traceability of what entered the event log
2. Debugging capability when a dashboard disagrees with expectations
3. Accountability for administrator queries

The audit logger:
- Gracefully handles failures (a failed audit write never breaks a request)
- Supports correlation IDs to trace related events
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from aquamitra.models.audit import AuditEvent, AuditEventBuilder
from aquamitra.services.storage import AuditStorageInterface


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
    2. Audit storage (for persistence), when configured
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
        self._logger = structlog.get_logger("aquamitra.audit")

    def log(self, event: AuditEvent) -> bool:
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
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    def log_event_recorded(
        self,
        event_id: UUID,
        account_id: str,
        amount: float,
        correlation_id: UUID,
    ) -> None:
        """Log a consumption event written to the store."""
        self.log(AuditEventBuilder.event_recorded(
            event_id=event_id,
            account_id=account_id,
            amount=amount,
            correlation_id=correlation_id,
        ))

    def log_event_rejected(
        self,
        field: str,
        message: str,
        account_id: Optional[str],
        correlation_id: UUID,
    ) -> None:
        """Log an ingest record refused by validation."""
        self.log(AuditEventBuilder.event_rejected(
            field=field,
            message=message,
            account_id=account_id,
            correlation_id=correlation_id,
        ))

    def log_batch_ingested(
        self,
        accepted: int,
        rejected: int,
        correlation_id: UUID,
    ) -> None:
        """Log the outcome of a batch ingestion."""
        self.log(AuditEventBuilder.batch_ingested(
            accepted=accepted,
            rejected=rejected,
            correlation_id=correlation_id,
        ))

    def log_household_view(
        self,
        account_id: str,
        event_count: int,
        timezone: str,
        correlation_id: UUID,
    ) -> None:
        """Log a household dashboard build."""
        self.log(AuditEventBuilder.household_view_built(
            account_id=account_id,
            event_count=event_count,
            timezone=timezone,
            correlation_id=correlation_id,
        ))

    def log_jurisdiction_view(
        self,
        employee_id: str,
        account_count: int,
        event_count: int,
        granularity: str,
        city_filter: Optional[str],
        correlation_id: UUID,
    ) -> None:
        """Log a jurisdiction dashboard build."""
        self.log(AuditEventBuilder.jurisdiction_view_built(
            employee_id=employee_id,
            account_count=account_count,
            event_count=event_count,
            granularity=granularity,
            city_filter=city_filter,
            correlation_id=correlation_id,
        ))

    def log_lookup_failed(
        self,
        entity_type: str,
        entity_id: str,
        reason: str,
        correlation_id: UUID,
    ) -> None:
        """Log an unknown account or employee."""
        self.log(AuditEventBuilder.lookup_failed(
            entity_type=entity_type,
            entity_id=entity_id,
            reason=reason,
            correlation_id=correlation_id,
        ))

    def log_complaint_submitted(
        self,
        complaint_id: UUID,
        account_id: str,
        complaint_type: str,
        correlation_id: UUID,
    ) -> None:
        """Log a new complaint."""
        self.log(AuditEventBuilder.complaint_submitted(
            complaint_id=complaint_id,
            account_id=account_id,
            complaint_type=complaint_type,
            correlation_id=correlation_id,
        ))

    def log_storage_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log a storage failure."""
        self.log(AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of a request (e.g., one ingestion batch).
    Pass it through all subsequent operations.
    """
    return uuid4()
