"""
Core Data Models for Aquamitra

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Enforce type safety at runtime
2. Keep every instant timezone-aware (UTC at rest)
3. Be serializable for storage and dashboard responses
4. Give both dashboard views one canonical output shape

DESIGN DECISION: Consumption events are frozen. The event log is
append-only, so nothing downstream may mutate a recorded event.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import UUID, uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)


def utc_now() -> datetime:
    """Current instant as an aware UTC datetime."""
    return datetime.now(timezone.utc)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class Granularity(str, Enum):
    """
    Rollup bucket width.

    Dashboard queries send the adjective form ("daily", "weekly", ...),
    which is accepted as an alias of the canonical value.
    """
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"

    @classmethod
    def _missing_(cls, value):
        if not isinstance(value, str):
            return None
        lowered = value.strip().lower()
        aliases = {
            "daily": cls.DAY,
            "weekly": cls.WEEK,
            "monthly": cls.MONTH,
            "yearly": cls.YEAR,
        }
        if lowered in aliases:
            return aliases[lowered]
        for member in cls:
            if member.value == lowered:
                return member
        return None


class ComplaintType(str, Enum):
    """Complaint categories a household can raise."""
    LEAKAGE = "Leakage"
    METER_ISSUE = "Meter Issue"
    BILLING_ERROR = "Billing Error"
    NO_WATER_SUPPLY = "No Water Supply"
    OTHER = "Other"


class ComplaintStatus(str, Enum):
    """Complaint handling status."""
    SUBMITTED = "Submitted"
    IN_PROGRESS = "In Progress"
    RESOLVED = "Resolved"
    CLOSED = "Closed"


class SnapshotScope(str, Enum):
    """Which dashboard a snapshot was assembled for."""
    HOUSEHOLD = "household"
    JURISDICTION = "jurisdiction"


# =============================================================================
# CORE TELEMETRY MODELS
# =============================================================================

class ConsumptionEvent(BaseModel):
    """
    A single metered consumption reading.

    CRITICAL: occurred_at is always stored as an aware UTC instant.
    Local calendar days are derived per request from the caller's timezone.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    account_id: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Account (household) the reading belongs to"
    )
    amount: float = Field(
        ...,
        ge=0,
        allow_inf_nan=False,
        description="Volume consumed"
    )
    occurred_at: datetime = Field(
        ...,
        description="When the consumption happened (UTC)"
    )

    @field_validator('occurred_at')
    @classmethod
    def normalise_to_utc(cls, v: datetime) -> datetime:
        """Reject naive datetimes, convert aware ones to UTC."""
        if v.tzinfo is None or v.utcoffset() is None:
            raise ValueError("occurred_at must be timezone-aware")
        return v.astimezone(timezone.utc)


class Jurisdiction(BaseModel):
    """
    Country/state[/city] grouping key.

    Not stored on its own; derived from account records.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    country: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    city: Optional[str] = None

    @property
    def key(self) -> str:
        parts = [self.country, self.state]
        if self.city:
            parts.append(self.city)
        return "/".join(parts)


class Account(BaseModel):
    """
    A household account and its public record.

    occupant_count may be missing on legacy records; the metrics
    calculator applies the configured fallback in one place.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    account_id: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Account identifier"
    )
    jurisdiction: Jurisdiction
    occupant_count: Optional[int] = Field(
        default=None,
        gt=0,
        description="Number of people in the household"
    )
    address: Optional[str] = Field(default=None, max_length=500)
    pincode: Optional[str] = Field(default=None, max_length=20)

    @property
    def city(self) -> Optional[str]:
        return self.jurisdiction.city


class Employee(BaseModel):
    """An administrator responsible for a country/state jurisdiction."""
    model_config = ConfigDict(str_strip_whitespace=True)

    employee_id: str = Field(..., min_length=1, max_length=100)
    name: Optional[str] = None
    country: Optional[str] = None
    state: Optional[str] = None

    @property
    def has_jurisdiction(self) -> bool:
        return bool(self.country and self.state)


class Complaint(BaseModel):
    """A complaint raised by a household."""
    model_config = ConfigDict(str_strip_whitespace=True)

    complaint_id: UUID = Field(default_factory=uuid4)
    account_id: str = Field(..., min_length=1, max_length=100)
    complaint_type: ComplaintType
    description: str = Field(
        ...,
        min_length=1,
        max_length=1000,
        description="What the household reported"
    )
    status: ComplaintStatus = Field(default=ComplaintStatus.SUBMITTED)
    created_at: datetime = Field(default_factory=utc_now)


# =============================================================================
# INGESTION MODELS
# =============================================================================

class IngestRecord(BaseModel):
    """
    A raw reading as delivered by the device transport.

    The timestamp is a local wall-clock string; conversion to UTC
    happens in the validator, never here.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    account_id: str = Field(..., min_length=1, max_length=100)
    amount: float = Field(..., gt=0, allow_inf_nan=False, strict=True)
    timestamp: str = Field(..., min_length=1)


class RejectedRecord(BaseModel):
    """A record that failed ingestion, with the offending field."""

    index: int = Field(ge=0)
    field: str
    message: str


class IngestReport(BaseModel):
    """Outcome of a batch ingestion. Failures are isolated per record."""

    accepted: list[ConsumptionEvent] = Field(default_factory=list)
    rejected: list[RejectedRecord] = Field(default_factory=list)

    @property
    def accepted_count(self) -> int:
        return len(self.accepted)

    @property
    def rejected_count(self) -> int:
        return len(self.rejected)


# =============================================================================
# ROLLUP MODELS
# =============================================================================

class RollupBucket(BaseModel):
    """
    One calendar-aligned aggregation unit.

    totals holds every series key of the rollup, zero where a series
    had no events in this period.
    """

    period_key: str
    period_label: str
    period_start: datetime
    totals: dict[str, float] = Field(default_factory=dict)

    @property
    def total(self) -> float:
        return sum(self.totals.values())


class SeriesValues(BaseModel):
    """One named series of a chart, index-aligned with the labels."""

    key: str
    values: list[float] = Field(default_factory=list)


class RollupView(BaseModel):
    """Chart-ready rollup: labels plus one values list per series."""

    labels: list[str] = Field(default_factory=list)
    series: list[SeriesValues] = Field(default_factory=list)

    @model_validator(mode='after')
    def validate_alignment(self) -> 'RollupView':
        """Every series must have exactly one value per label."""
        for s in self.series:
            if len(s.values) != len(self.labels):
                raise ValueError(
                    f"Series '{s.key}' has {len(s.values)} values "
                    f"for {len(self.labels)} labels"
                )
        return self


# =============================================================================
# METRICS & SNAPSHOT MODELS
# =============================================================================

class RankedEntry(BaseModel):
    """A key with its consumed amount, used for rankings."""

    key: str
    amount: float


class DashboardMetrics(BaseModel):
    """
    Threshold-relative figures for either dashboard view.

    Household views populate the month fields; jurisdiction views
    populate the account/city counts and the ranking. remaining is
    never clamped, a negative value signals overage.
    """

    threshold: float
    consumed_today: float
    remaining: float
    percentage_used: float
    consumed_month_to_date: Optional[float] = None
    avg_daily_this_month: Optional[float] = None
    account_count: Optional[int] = None
    city_count: Optional[int] = None
    top_performer: Optional[RankedEntry] = None
    ranking: list[RankedEntry] = Field(default_factory=list)

    @property
    def is_over_threshold(self) -> bool:
        return self.remaining < 0


class DashboardSnapshot(BaseModel):
    """
    Everything a dashboard needs for one request.

    Recomputed on every request; there is no stored snapshot.
    """

    scope: SnapshotScope
    generated_at: datetime = Field(default_factory=utc_now)
    timezone: str
    granularity: Granularity = Granularity.DAY
    events: list[ConsumptionEvent] = Field(default_factory=list)
    complaints: list[Complaint] = Field(default_factory=list)
    metrics: DashboardMetrics
    rollup: RollupView = Field(default_factory=RollupView)

    # Context for the view
    account: Optional[Account] = None
    employee: Optional[Employee] = None
    cities: list[str] = Field(default_factory=list)
    city_filter: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.events

    def to_response(self) -> dict:
        """JSON-ready payload for the dashboard endpoint."""
        return self.model_dump(mode="json")
