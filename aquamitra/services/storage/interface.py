"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep rollup and metrics logic decoupled from storage implementation

The interface is intentionally small. The event store is an append-only
log with range queries; account and employee records are read-only here
because their CRUD lives outside the telemetry core.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

from aquamitra.models.audit import AuditEvent
from aquamitra.models.consumption import (
    Account,
    Complaint,
    ConsumptionEvent,
    Employee,
)


class AccountStorageInterface(ABC):
    """
    Read access to household accounts and administrators.
    """

    @abstractmethod
    def get_account(self, account_id: str) -> Optional[Account]:
        """
        Retrieve an account by its ID.

        Returns:
            The account if found, None otherwise
        """
        pass

    @abstractmethod
    def find_accounts(
        self,
        country: str,
        state: str,
        city: Optional[str] = None,
    ) -> list[Account]:
        """
        List accounts in a jurisdiction.

        Args:
            country: Exact country match
            state: Exact state match
            city: Exact city match; None means every city of the state

        Returns:
            Matching accounts
        """
        pass

    @abstractmethod
    def get_employee(self, employee_id: str) -> Optional[Employee]:
        """
        Retrieve an administrator by ID.

        Returns:
            The employee if found, None otherwise
        """
        pass


class EventStorageInterface(ABC):
    """
    Append-only store of consumption events.

    Events are never updated or deleted once recorded.
    """

    @abstractmethod
    def append_event(self, event: ConsumptionEvent) -> bool:
        """
        Append one event to the log.

        Returns:
            True if stored successfully

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def list_events(
        self,
        account_ids: Iterable[str],
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[ConsumptionEvent]:
        """
        List events for a set of accounts.

        Args:
            account_ids: Accounts to include
            start: Inclusive lower bound on occurred_at
            end: Exclusive upper bound on occurred_at

        Returns:
            Matching events, newest first
        """
        pass

    def sum_amount(
        self,
        account_ids: Iterable[str],
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> float:
        """Total consumption for the accounts in [start, end)."""
        return sum(e.amount for e in self.list_events(account_ids, start, end))


class ComplaintStorageInterface(ABC):
    """Complaints raised by households."""

    @abstractmethod
    def save_complaint(self, complaint: Complaint) -> bool:
        """
        Save a complaint.

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    def list_complaints(self, account_id: str) -> list[Complaint]:
        """
        List an account's complaints, newest first.
        """
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """
        Get all events for a correlation ID (e.g., one ingestion batch).

        Returns:
            List of related events in chronological order
        """
        pass

    @abstractmethod
    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """
        Get the most recent audit events.

        Returns:
            List of recent events (newest first)
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
