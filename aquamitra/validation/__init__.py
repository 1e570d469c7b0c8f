"""Ingestion validation package."""

from aquamitra.validation.validator import (
    IngestValidator,
    InvalidAmountError,
    InvalidInputError,
    InvalidTimestampError,
    InvalidTimezoneError,
    MissingOccupantCountError,
    parse_ingest_timestamp,
    require_aware,
    resolve_timezone,
)

__all__ = [
    "IngestValidator",
    "InvalidAmountError",
    "InvalidInputError",
    "InvalidTimestampError",
    "InvalidTimezoneError",
    "MissingOccupantCountError",
    "parse_ingest_timestamp",
    "require_aware",
    "resolve_timezone",
]
