"""Services package."""

from aquamitra.services.storage import (
    AccountStorageInterface,
    AuditStorageInterface,
    ComplaintStorageInterface,
    ConnectionError,
    EventStorageInterface,
    GoogleSheetsAccountStorage,
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsComplaintStorage,
    GoogleSheetsEventStorage,
    InMemoryAccountStorage,
    InMemoryAuditStorage,
    InMemoryComplaintStorage,
    InMemoryEventStorage,
    NotFoundError,
    StorageError,
)

__all__ = [
    "AccountStorageInterface",
    "AuditStorageInterface",
    "ComplaintStorageInterface",
    "ConnectionError",
    "EventStorageInterface",
    "GoogleSheetsAccountStorage",
    "GoogleSheetsAuditStorage",
    "GoogleSheetsClient",
    "GoogleSheetsComplaintStorage",
    "GoogleSheetsEventStorage",
    "InMemoryAccountStorage",
    "InMemoryAuditStorage",
    "InMemoryComplaintStorage",
    "InMemoryEventStorage",
    "NotFoundError",
    "StorageError",
]
