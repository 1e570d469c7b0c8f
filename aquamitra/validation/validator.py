"""
Two-Stage Ingestion Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Required field presence
- Type checking (amount must be a finite number)
- Amount must be strictly positive

STAGE 2 - SEMANTIC VALIDATION:
- Timestamp must match the fixed ingest format exactly
- Wall-clock time is interpreted in the configured ingest timezone
  and converted to a UTC instant

IMPORTANT: Validation NEVER coerces malformed input.
A record that fails either stage raises an InvalidInputError naming
the offending field; nothing is written.
"""

from datetime import datetime, timezone, tzinfo
from typing import Any, Optional, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import ValidationError

from aquamitra.config import get_settings
from aquamitra.models.consumption import ConsumptionEvent, IngestRecord


class InvalidInputError(Exception):
    """Input rejected at a boundary. Carries the offending field."""

    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class InvalidTimestampError(InvalidInputError):
    """Timestamp missing or not in the ingest format."""

    def __init__(self, message: str, field: str = "timestamp"):
        super().__init__(field, message)


class InvalidAmountError(InvalidInputError):
    """Amount missing, non-numeric, non-finite or not positive."""

    def __init__(self, message: str, field: str = "amount"):
        super().__init__(field, message)


class InvalidTimezoneError(InvalidInputError):
    """Not a resolvable IANA timezone name."""

    def __init__(self, message: str, field: str = "timezone"):
        super().__init__(field, message)


class MissingOccupantCountError(InvalidInputError):
    """Account has no occupant count and no fallback is configured."""

    def __init__(self, message: str, field: str = "occupant_count"):
        super().__init__(field, message)


def resolve_timezone(
    value: Union[str, tzinfo, None],
    default: Union[str, tzinfo, None] = None,
) -> tzinfo:
    """
    Turn a caller-declared timezone into a tzinfo.

    Accepts an IANA name or a tzinfo. Blank values fall back to
    `default`, then to the configured default timezone.
    """
    if isinstance(value, tzinfo):
        return value
    if value is None or not str(value).strip():
        if default is not None:
            return resolve_timezone(default)
        return get_settings().app.default_tz

    name = str(value).strip()
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError):
        raise InvalidTimezoneError(f"Unknown IANA timezone: {name!r}")


def parse_ingest_timestamp(
    value: str,
    tz: tzinfo,
    fmt: str = "%d-%m-%Y %H:%M:%S",
) -> datetime:
    """
    Parse a local wall-clock timestamp into an aware UTC datetime.

    Raises:
        InvalidTimestampError: If the value does not match `fmt`
    """
    if not isinstance(value, str):
        raise InvalidTimestampError(f"Expected a string, got {type(value).__name__}")
    text = value.strip()
    try:
        local = datetime.strptime(text, fmt)
    except ValueError:
        raise InvalidTimestampError(
            f"{value!r} does not match the expected format {fmt!r}"
        )
    # strptime tolerates missing zero padding; the format is fixed-width
    if local.strftime(fmt) != text:
        raise InvalidTimestampError(
            f"{value!r} does not match the expected format {fmt!r}"
        )
    return local.replace(tzinfo=tz).astimezone(timezone.utc)


def require_aware(value: datetime, field: str = "now") -> datetime:
    """
    Reject naive datetimes, convert aware ones to UTC.

    A naive value would be read in the process timezone by astimezone().
    """
    if value.tzinfo is None or value.utcoffset() is None:
        raise InvalidInputError(field, "Must be timezone-aware")
    return value.astimezone(timezone.utc)


class IngestValidator:
    """
    Validates raw ingest records and turns them into ConsumptionEvents.

    Stage 1: Schema validation via the IngestRecord model
    Stage 2: Timestamp parsing in the ingest timezone
    """

    def __init__(
        self,
        ingest_timezone: Union[str, tzinfo, None] = None,
        timestamp_format: Optional[str] = None,
    ):
        settings = get_settings().app
        self._tz = resolve_timezone(ingest_timezone, default=settings.ingest_timezone)
        self._format = timestamp_format or settings.ingest_timestamp_format

    def _validate_schema(self, raw: Union[IngestRecord, dict[str, Any]]) -> IngestRecord:
        """
        Stage 1: Schema validation.

        Maps the first pydantic error onto the matching InvalidInputError.
        """
        if isinstance(raw, IngestRecord):
            return raw
        if not isinstance(raw, dict):
            raise InvalidInputError("record", f"Expected a mapping, got {type(raw).__name__}")

        # Device transports send camelCase
        data = dict(raw)
        if "accountId" in data and "account_id" not in data:
            data["account_id"] = data.pop("accountId")

        try:
            return IngestRecord.model_validate(data)
        except ValidationError as e:
            error = e.errors()[0]
            field = str(error["loc"][0]) if error["loc"] else "record"
            message = error["msg"]
            if field == "amount":
                raise InvalidAmountError(message)
            if field == "timestamp":
                raise InvalidTimestampError(message)
            raise InvalidInputError(field, message)

    def validate(self, raw: Union[IngestRecord, dict[str, Any]]) -> ConsumptionEvent:
        """
        Run the full two-stage pipeline.

        Returns:
            The ConsumptionEvent to append

        Raises:
            InvalidInputError: If any stage rejects the record
        """
        record = self._validate_schema(raw)
        occurred_at = parse_ingest_timestamp(record.timestamp, self._tz, self._format)
        return ConsumptionEvent(
            account_id=record.account_id,
            amount=record.amount,
            occurred_at=occurred_at,
        )
