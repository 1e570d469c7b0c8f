"""
Audit Models for Aquamitra

Every ingestion outcome and every dashboard request is logged for audit.
This provides:
1. Traceability of what entered the event log (and what was refused)
2. Debugging information when a dashboard looks wrong
3. Accountability for administrator queries

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from aquamitra.models.consumption import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Ingestion
    EVENT_RECORDED = "event_recorded"
    EVENT_REJECTED = "event_rejected"
    BATCH_INGESTED = "batch_ingested"

    # Dashboards
    HOUSEHOLD_VIEW_BUILT = "household_view_built"
    JURISDICTION_VIEW_BUILT = "jurisdiction_view_built"
    LOOKUP_FAILED = "lookup_failed"

    # Complaints
    COMPLAINT_SUBMITTED = "complaint_submitted"

    # System events
    STORAGE_ERROR = "storage_error"
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    entity_id is a plain string because account and employee
    identifiers are externally assigned, not UUIDs.
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
        description="Type of entity (e.g., 'account', 'employee', 'event')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="ID of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events (e.g., one ingestion batch)"
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

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

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
            "error_code": self.error_code,
            "error_message": self.error_message,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_code, error_message]
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
            self.error_code or "",
            self.error_message or "",
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.event_recorded(event_id, account_id, amount, correlation_id)
        event = AuditEventBuilder.lookup_failed("account", account_id, reason, correlation_id)
    """

    @staticmethod
    def event_recorded(
        event_id: UUID,
        account_id: str,
        amount: float,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EVENT_RECORDED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Consumption recorded: {amount:g} for {account_id}",
            details={
                "event_id": str(event_id),
                "amount": amount,
            },
        )

    @staticmethod
    def event_rejected(
        field: str,
        message: str,
        account_id: Optional[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EVENT_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Consumption record rejected on field '{field}'",
            details={
                "field": field,
            },
            error_code="invalid_input",
            error_message=message,
        )

    @staticmethod
    def batch_ingested(
        accepted: int,
        rejected: int,
        correlation_id: UUID
    ) -> AuditEvent:
        severity = AuditSeverity.WARNING if rejected else AuditSeverity.INFO
        return AuditEvent(
            event_type=AuditEventType.BATCH_INGESTED,
            severity=severity,
            correlation_id=correlation_id,
            description=f"Batch ingested: {accepted} accepted, {rejected} rejected",
            details={
                "accepted": accepted,
                "rejected": rejected,
            },
        )

    @staticmethod
    def household_view_built(
        account_id: str,
        event_count: int,
        timezone: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.HOUSEHOLD_VIEW_BUILT,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Household dashboard built from {event_count} events",
            details={
                "event_count": event_count,
                "timezone": timezone,
            },
        )

    @staticmethod
    def jurisdiction_view_built(
        employee_id: str,
        account_count: int,
        event_count: int,
        granularity: str,
        city_filter: Optional[str],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.JURISDICTION_VIEW_BUILT,
            entity_type="employee",
            entity_id=employee_id,
            correlation_id=correlation_id,
            description=(
                f"Jurisdiction dashboard built: {account_count} accounts, "
                f"{event_count} events"
            ),
            details={
                "account_count": account_count,
                "event_count": event_count,
                "granularity": granularity,
                "city_filter": city_filter,
            },
        )

    @staticmethod
    def lookup_failed(
        entity_type: str,
        entity_id: str,
        reason: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LOOKUP_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type=entity_type,
            entity_id=entity_id,
            correlation_id=correlation_id,
            description=f"{entity_type.capitalize()} lookup failed",
            error_code="not_found",
            error_message=reason,
        )

    @staticmethod
    def complaint_submitted(
        complaint_id: UUID,
        account_id: str,
        complaint_type: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.COMPLAINT_SUBMITTED,
            entity_type="account",
            entity_id=account_id,
            correlation_id=correlation_id,
            description=f"Complaint submitted: {complaint_type}",
            details={
                "complaint_id": str(complaint_id),
                "complaint_type": complaint_type,
            },
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={
                "operation": operation,
            },
            correlation_id=correlation_id,
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
