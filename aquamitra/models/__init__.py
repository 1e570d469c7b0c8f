"""
Data Models Package

This package contains all Pydantic models used in Aquamitra.
All data flowing through the system must conform to these schemas.
"""

from aquamitra.models.consumption import (
    Account,
    Complaint,
    ComplaintStatus,
    ComplaintType,
    ConsumptionEvent,
    DashboardMetrics,
    DashboardSnapshot,
    Employee,
    Granularity,
    IngestRecord,
    IngestReport,
    Jurisdiction,
    RankedEntry,
    RejectedRecord,
    RollupBucket,
    RollupView,
    SeriesValues,
    SnapshotScope,
    utc_now,
)
from aquamitra.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Telemetry models
    "Account",
    "Complaint",
    "ComplaintStatus",
    "ComplaintType",
    "ConsumptionEvent",
    "DashboardMetrics",
    "DashboardSnapshot",
    "Employee",
    "Granularity",
    "IngestRecord",
    "IngestReport",
    "Jurisdiction",
    "RankedEntry",
    "RejectedRecord",
    "RollupBucket",
    "RollupView",
    "SeriesValues",
    "SnapshotScope",
    "utc_now",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
