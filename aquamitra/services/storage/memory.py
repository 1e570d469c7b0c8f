"""
In-Memory Storage Implementation

Used by the test suite and for local runs without Google credentials.

Events are indexed per account and kept sorted by occurred_at, so range
queries are a bisect instead of a scan over the whole log.
"""

import threading
from bisect import bisect_left, insort
from collections import defaultdict
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
from aquamitra.services.storage.interface import (
    AccountStorageInterface,
    AuditStorageInterface,
    ComplaintStorageInterface,
    EventStorageInterface,
)


class InMemoryAccountStorage(AccountStorageInterface):
    """Accounts and employees held in dictionaries."""

    def __init__(
        self,
        accounts: Optional[Iterable[Account]] = None,
        employees: Optional[Iterable[Employee]] = None,
    ):
        self._accounts: dict[str, Account] = {}
        self._employees: dict[str, Employee] = {}
        for account in accounts or []:
            self.add_account(account)
        for employee in employees or []:
            self.add_employee(employee)

    def add_account(self, account: Account) -> None:
        self._accounts[account.account_id] = account

    def add_employee(self, employee: Employee) -> None:
        self._employees[employee.employee_id] = employee

    def get_account(self, account_id: str) -> Optional[Account]:
        return self._accounts.get(account_id)

    def find_accounts(
        self,
        country: str,
        state: str,
        city: Optional[str] = None,
    ) -> list[Account]:
        matches = []
        for account in self._accounts.values():
            j = account.jurisdiction
            if j.country != country or j.state != state:
                continue
            if city is not None and j.city != city:
                continue
            matches.append(account)
        return matches

    def get_employee(self, employee_id: str) -> Optional[Employee]:
        return self._employees.get(employee_id)


class InMemoryEventStorage(EventStorageInterface):
    """
    Append-only event log.

    Each account maps to a list of (occurred_at, sequence, event) tuples
    kept in ascending order. The sequence number keeps insertion order
    stable for events sharing an instant.
    """

    def __init__(self, events: Optional[Iterable[ConsumptionEvent]] = None):
        self._by_account: dict[str, list[tuple[datetime, int, ConsumptionEvent]]] = defaultdict(list)
        self._sequence = 0
        self._lock = threading.Lock()
        for event in events or []:
            self.append_event(event)

    def append_event(self, event: ConsumptionEvent) -> bool:
        with self._lock:
            self._sequence += 1
            insort(
                self._by_account[event.account_id],
                (event.occurred_at, self._sequence, event),
                key=lambda entry: (entry[0], entry[1]),
            )
        return True

    def list_events(
        self,
        account_ids: Iterable[str],
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
    ) -> list[ConsumptionEvent]:
        entries = []
        for account_id in set(account_ids):
            rows = self._by_account.get(account_id)
            if not rows:
                continue
            lo = 0
            hi = len(rows)
            if start is not None:
                lo = bisect_left(rows, start, key=lambda entry: entry[0])
            if end is not None:
                hi = bisect_left(rows, end, key=lambda entry: entry[0])
            entries.extend(rows[lo:hi])

        # Newest first
        entries.sort(key=lambda entry: (entry[0], entry[1]), reverse=True)
        return [entry[2] for entry in entries]

    def __len__(self) -> int:
        return sum(len(rows) for rows in self._by_account.values())


class InMemoryComplaintStorage(ComplaintStorageInterface):
    """Complaints kept in insertion order."""

    def __init__(self):
        self._complaints: list[Complaint] = []
        self._lock = threading.Lock()

    def save_complaint(self, complaint: Complaint) -> bool:
        with self._lock:
            self._complaints.append(complaint)
        return True

    def list_complaints(self, account_id: str) -> list[Complaint]:
        complaints = [c for c in self._complaints if c.account_id == account_id]
        complaints.sort(key=lambda c: c.created_at, reverse=True)
        return complaints


class InMemoryAuditStorage(AuditStorageInterface):
    """Audit events kept in a list."""

    def __init__(self):
        self._events: list[AuditEvent] = []
        self._lock = threading.Lock()

    def append_event(self, event: AuditEvent) -> bool:
        with self._lock:
            self._events.append(event)
        return True

    def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        events.sort(key=lambda e: e.timestamp)
        return events

    def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
