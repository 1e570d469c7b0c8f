"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Google Sheets is the hosted backend; the in-memory backend serves tests
and local runs.
"""

from aquamitra.services.storage.interface import (
    AccountStorageInterface,
    AuditStorageInterface,
    ComplaintStorageInterface,
    ConnectionError,
    EventStorageInterface,
    NotFoundError,
    StorageError,
)
from aquamitra.services.storage.memory import (
    InMemoryAccountStorage,
    InMemoryAuditStorage,
    InMemoryComplaintStorage,
    InMemoryEventStorage,
)
from aquamitra.services.storage.google_sheets import (
    GoogleSheetsAccountStorage,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsComplaintStorage,
    GoogleSheetsEventStorage,
)

__all__ = [
    # Interfaces
    "AccountStorageInterface",
    "AuditStorageInterface",
    "ComplaintStorageInterface",
    "EventStorageInterface",
    # Exceptions
    "ConnectionError",
    "NotFoundError",
    "StorageError",
    # In-memory implementation
    "InMemoryAccountStorage",
    "InMemoryAuditStorage",
    "InMemoryComplaintStorage",
    "InMemoryEventStorage",
    # Google Sheets implementation
    "GoogleSheetsAccountStorage",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsComplaintStorage",
    "GoogleSheetsEventStorage",
]
