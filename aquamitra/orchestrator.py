"""
Main Orchestrator for Aquamitra

This module ties together all the components and defines the
end-to-end flows for:
1. Ingestion (raw record -> validate -> append -> audit)
2. Household dashboard (account -> events -> metrics + rollup)
3. Jurisdiction dashboard (employee -> accounts -> events -> per-city rollup + ranking)
4. Complaints (account -> complaint -> store)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Nothing malformed reaches the event store
- Every dashboard is recomputed from the store on every request
- Every step is audited

Dashboards are pure functions of the event batch, the account records
and `now`; nothing here holds mutable state between requests.
"""

from datetime import datetime, tzinfo
from typing import Any, Iterable, Optional, Union
from uuid import UUID

import structlog
from pydantic import ValidationError

from aquamitra.audit import AuditLogger, create_correlation_id
from aquamitra.config import get_settings, validate_all_settings
from aquamitra.entities import (
    UNASSIGNED_CITY,
    AccountNotFoundError,
    EmployeeNotFoundError,
    EntityResolver,
    normalise_city_filter,
)
from aquamitra.metrics import MetricsCalculator
from aquamitra.models.consumption import (
    Complaint,
    ComplaintType,
    ConsumptionEvent,
    DashboardSnapshot,
    Granularity,
    IngestRecord,
    IngestReport,
    RejectedRecord,
    SnapshotScope,
    utc_now,
)
from aquamitra.rollups import rollup, to_chart
from aquamitra.services.storage import (
    AccountStorageInterface,
    ComplaintStorageInterface,
    EventStorageInterface,
    GoogleSheetsAccountStorage,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsComplaintStorage,
    GoogleSheetsEventStorage,
    InMemoryAccountStorage,
    InMemoryComplaintStorage,
    InMemoryEventStorage,
    StorageError,
)
from aquamitra.validation import (
    IngestValidator,
    InvalidInputError,
    require_aware,
    resolve_timezone,
)


logger = structlog.get_logger("aquamitra.orchestrator")


def _timezone_name(tz: tzinfo) -> str:
    return getattr(tz, "key", None) or str(tz)


class IngestionFlow:
    """
    Orchestrates the ingestion of raw consumption records.

    Flow:
    1. Validate -> schema + timestamp parsing (InvalidInputError on failure)
    2. Append -> one record, one insert
    3. Audit -> recorded or rejected

    Each record stands alone: a failure never rolls back other records.
    """

    def __init__(
        self,
        event_storage: EventStorageInterface,
        validator: Optional[IngestValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._events = event_storage
        self._validator = validator or IngestValidator()
        self._audit_logger = audit_logger

    def ingest(
        self,
        record: Union[IngestRecord, dict[str, Any]],
        correlation_id: Optional[UUID] = None,
    ) -> ConsumptionEvent:
        """
        Validate and store a single record.

        Raises:
            InvalidInputError: If the record is malformed
            StorageError: If the append fails
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            event = self._validator.validate(record)
        except InvalidInputError as e:
            if self._audit_logger:
                self._audit_logger.log_event_rejected(
                    field=e.field,
                    message=e.message,
                    account_id=self._account_id_of(record),
                    correlation_id=correlation_id,
                )
            raise

        try:
            self._events.append_event(event)
        except StorageError as e:
            if self._audit_logger:
                self._audit_logger.log_storage_error(
                    operation="append_event",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if self._audit_logger:
            self._audit_logger.log_event_recorded(
                event_id=event.event_id,
                account_id=event.account_id,
                amount=event.amount,
                correlation_id=correlation_id,
            )
        return event

    def ingest_batch(
        self,
        records: Iterable[Union[IngestRecord, dict[str, Any]]],
        correlation_id: Optional[UUID] = None,
    ) -> IngestReport:
        """
        Ingest many records, isolating failures per record.

        Returns:
            IngestReport listing accepted events and rejected indices
        """
        correlation_id = correlation_id or create_correlation_id()
        report = IngestReport()

        for index, record in enumerate(records):
            try:
                report.accepted.append(self.ingest(record, correlation_id))
            except InvalidInputError as e:
                report.rejected.append(RejectedRecord(
                    index=index, field=e.field, message=e.message,
                ))
            except StorageError as e:
                report.rejected.append(RejectedRecord(
                    index=index, field="storage", message=str(e),
                ))

        if self._audit_logger:
            self._audit_logger.log_batch_ingested(
                accepted=report.accepted_count,
                rejected=report.rejected_count,
                correlation_id=correlation_id,
            )
        return report

    @staticmethod
    def _account_id_of(record: Any) -> Optional[str]:
        if isinstance(record, IngestRecord):
            return record.account_id
        if isinstance(record, dict):
            value = record.get("account_id", record.get("accountId"))
            return str(value) if value is not None else None
        return None


class DashboardAssembler:
    """
    Composes resolver, rollup and metrics outputs into the two views.

    Household view:
        account -> all events -> metrics + rollup (dense 7-day window when daily)
    Jurisdiction view:
        employee -> state accounts (optionally one city) -> events
        -> per-city stacked rollup + same-day per-city ranking
    """

    def __init__(
        self,
        account_storage: AccountStorageInterface,
        event_storage: EventStorageInterface,
        complaint_storage: Optional[ComplaintStorageInterface] = None,
        calculator: Optional[MetricsCalculator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        settings = get_settings().app
        self._resolver = EntityResolver(account_storage)
        self._events = event_storage
        self._complaints = complaint_storage
        self._calculator = calculator or MetricsCalculator(settings)
        self._audit_logger = audit_logger
        self._default_timezone = settings.default_timezone
        self._window_days = settings.daily_window_days

    @property
    def resolver(self) -> EntityResolver:
        return self._resolver

    @staticmethod
    def _parse_granularity(value: Union[Granularity, str]) -> Granularity:
        try:
            return Granularity(value)
        except ValueError:
            raise InvalidInputError(
                "granularity", f"Expected daily, weekly, monthly or yearly, got {value!r}"
            )

    def _window_for(self, granularity: Granularity) -> Optional[int]:
        """Daily charts show a dense trailing window; coarser ones are sparse."""
        return self._window_days if granularity is Granularity.DAY else None

    def build_household_view(
        self,
        account_id: str,
        now: Optional[datetime] = None,
        timezone: Union[str, tzinfo, None] = None,
        correlation_id: Optional[UUID] = None,
        granularity: Union[Granularity, str] = Granularity.DAY,
    ) -> DashboardSnapshot:
        """
        Build the household dashboard.

        Raises:
            AccountNotFoundError: If the account is unknown
            InvalidInputError: If the granularity is invalid or `now` is naive
            InvalidTimezoneError: If the timezone is not a valid IANA name
        """
        correlation_id = correlation_id or create_correlation_id()
        granularity = self._parse_granularity(granularity)
        tz = resolve_timezone(timezone, default=self._default_timezone)
        now = require_aware(now) if now else utc_now()

        try:
            account = self._resolver.resolve_account(account_id)
        except AccountNotFoundError as e:
            if self._audit_logger:
                self._audit_logger.log_lookup_failed(
                    entity_type="account",
                    entity_id=account_id,
                    reason=str(e),
                    correlation_id=correlation_id,
                )
            raise

        occupants = self._calculator.effective_occupants(account)
        events = self._events.list_events([account.account_id])
        complaints = (
            self._complaints.list_complaints(account.account_id)
            if self._complaints else []
        )

        metrics = self._calculator.compute_metrics(events, occupants, now, tz)
        buckets = rollup(
            events,
            granularity,
            tz,
            window_days=self._window_for(granularity),
            now=now,
        )

        snapshot = DashboardSnapshot(
            scope=SnapshotScope.HOUSEHOLD,
            generated_at=now,
            timezone=_timezone_name(tz),
            granularity=granularity,
            events=events,
            complaints=complaints,
            metrics=metrics,
            rollup=to_chart(buckets),
            account=account,
        )

        if self._audit_logger:
            self._audit_logger.log_household_view(
                account_id=account.account_id,
                event_count=len(events),
                timezone=snapshot.timezone,
                correlation_id=correlation_id,
            )
        return snapshot

    def build_jurisdiction_view(
        self,
        employee_id: str,
        city_filter: Optional[str] = None,
        now: Optional[datetime] = None,
        granularity: Union[Granularity, str] = Granularity.DAY,
        timezone: Union[str, tzinfo, None] = None,
        correlation_id: Optional[UUID] = None,
    ) -> DashboardSnapshot:
        """
        Build the jurisdiction dashboard.

        A jurisdiction without accounts yields an empty but valid
        snapshot; it is not an error.

        Raises:
            EmployeeNotFoundError: If the employee is unknown or unassigned
            InvalidInputError: If the granularity or timezone is invalid
        """
        correlation_id = correlation_id or create_correlation_id()
        granularity = self._parse_granularity(granularity)
        tz = resolve_timezone(timezone, default=self._default_timezone)
        now = require_aware(now) if now else utc_now()

        try:
            employee = self._resolver.resolve_employee(employee_id)
        except EmployeeNotFoundError as e:
            if self._audit_logger:
                self._audit_logger.log_lookup_failed(
                    entity_type="employee",
                    entity_id=employee_id,
                    reason=str(e),
                    correlation_id=correlation_id,
                )
            raise

        city = normalise_city_filter(city_filter)
        cities = self._resolver.distinct_cities(employee.country, employee.state)
        accounts = self._resolver.find_accounts(employee.country, employee.state, city)
        if not accounts:
            logger.info(
                "jurisdiction_has_no_accounts",
                employee_id=employee_id,
                country=employee.country,
                state=employee.state,
                city=city,
            )

        city_of = EntityResolver.city_index(accounts)
        events = self._events.list_events(city_of.keys())

        metrics = self._calculator.compute_jurisdiction_metrics(
            events,
            accounts,
            city_of,
            now,
            tz,
            city_count=1 if city else len(cities),
        )
        buckets = rollup(
            events,
            granularity,
            tz,
            lambda event: city_of.get(event.account_id, UNASSIGNED_CITY),
            window_days=self._window_for(granularity),
            now=now,
            series_keys=[city] if city else cities,
        )

        snapshot = DashboardSnapshot(
            scope=SnapshotScope.JURISDICTION,
            generated_at=now,
            timezone=_timezone_name(tz),
            granularity=granularity,
            events=events,
            metrics=metrics,
            rollup=to_chart(buckets),
            employee=employee,
            cities=cities,
            city_filter=city,
        )

        if self._audit_logger:
            self._audit_logger.log_jurisdiction_view(
                employee_id=employee.employee_id,
                account_count=len(city_of),
                event_count=len(events),
                granularity=granularity.value,
                city_filter=city,
                correlation_id=correlation_id,
            )
        return snapshot


class ComplaintFlow:
    """Submission and listing of household complaints."""

    def __init__(
        self,
        account_storage: AccountStorageInterface,
        complaint_storage: ComplaintStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._resolver = EntityResolver(account_storage)
        self._complaints = complaint_storage
        self._audit_logger = audit_logger

    def submit(
        self,
        account_id: str,
        complaint_type: Union[ComplaintType, str],
        description: str,
        correlation_id: Optional[UUID] = None,
    ) -> Complaint:
        """
        Record a complaint for a known account.

        Raises:
            AccountNotFoundError: If the account is unknown
            InvalidInputError: If the type or description is invalid
        """
        correlation_id = correlation_id or create_correlation_id()
        account = self._resolver.resolve_account(account_id)

        try:
            complaint_type = ComplaintType(complaint_type)
        except ValueError:
            raise InvalidInputError("complaint_type", f"Unknown complaint type: {complaint_type!r}")

        try:
            complaint = Complaint(
                account_id=account.account_id,
                complaint_type=complaint_type,
                description=description,
            )
        except ValidationError as e:
            raise InvalidInputError("description", e.errors()[0]["msg"])

        self._complaints.save_complaint(complaint)

        if self._audit_logger:
            self._audit_logger.log_complaint_submitted(
                complaint_id=complaint.complaint_id,
                account_id=account.account_id,
                complaint_type=complaint.complaint_type.value,
                correlation_id=correlation_id,
            )
        return complaint

    def list_for_account(self, account_id: str) -> list[Complaint]:
        """An account's complaints, newest first."""
        account = self._resolver.resolve_account(account_id)
        return self._complaints.list_complaints(account.account_id)


def create_app_components(
    use_storage: bool = True,
) -> tuple[IngestionFlow, DashboardAssembler, ComplaintFlow, Optional[GoogleSheetsClient]]:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to initialize Google Sheets storage.
                    Set to False for the in-memory backend.

    Returns:
        (ingestion_flow, dashboard_assembler, complaint_flow, sheets_client)
    """
    sheets_client = None

    if use_storage:
        checks = validate_all_settings()
        if not checks["app"]:
            raise ValueError(f"Invalid application settings: {checks['app_error']}")
        if not checks["google_sheets"]:
            logger.warning(
                "storage_not_configured",
                error=checks["google_sheets_error"],
            )
            use_storage = False

    if use_storage:
        try:
            sheets_client = GoogleSheetsClient()
            account_storage = GoogleSheetsAccountStorage(sheets_client)
            event_storage = GoogleSheetsEventStorage(sheets_client)
            complaint_storage = GoogleSheetsComplaintStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue in memory
            logger.warning("storage_not_configured", error=str(e))
            sheets_client = None
            use_storage = False

    if not use_storage:
        account_storage = InMemoryAccountStorage()
        event_storage = InMemoryEventStorage()
        complaint_storage = InMemoryComplaintStorage()
        audit_logger = AuditLogger()  # Local-only logging

    ingestion_flow = IngestionFlow(
        event_storage=event_storage,
        audit_logger=audit_logger,
    )
    dashboard_assembler = DashboardAssembler(
        account_storage=account_storage,
        event_storage=event_storage,
        complaint_storage=complaint_storage,
        audit_logger=audit_logger,
    )
    complaint_flow = ComplaintFlow(
        account_storage=account_storage,
        complaint_storage=complaint_storage,
        audit_logger=audit_logger,
    )

    return ingestion_flow, dashboard_assembler, complaint_flow, sheets_client
