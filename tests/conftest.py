"""
Shared fixtures.

All tests run against the in-memory storage backend. No network calls.

Reference instant: 2026-10-19 12:00 UTC, which is Monday 19 Oct 2026,
17:30 in Asia/Kolkata.
"""

from datetime import datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from aquamitra.models.consumption import (
    Account,
    ConsumptionEvent,
    Employee,
    Jurisdiction,
)
from aquamitra.services.storage import (
    InMemoryAccountStorage,
    InMemoryAuditStorage,
    InMemoryComplaintStorage,
    InMemoryEventStorage,
)


KOLKATA = "Asia/Kolkata"


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_event():
    """Factory: event at a local wall-clock time in the given timezone."""
    def _make(account_id: str, amount: float, local: str, tz: str = KOLKATA) -> ConsumptionEvent:
        occurred = datetime.fromisoformat(local).replace(tzinfo=ZoneInfo(tz))
        return ConsumptionEvent(account_id=account_id, amount=amount, occurred_at=occurred)
    return _make


@pytest.fixture
def accounts() -> list[Account]:
    tamil_nadu = {"country": "India", "state": "Tamil Nadu"}
    return [
        Account(
            account_id="TN-CHN-1",
            jurisdiction=Jurisdiction(city="Chennai", **tamil_nadu),
            occupant_count=4,
        ),
        Account(
            account_id="TN-CHN-2",
            jurisdiction=Jurisdiction(city="Chennai", **tamil_nadu),
            occupant_count=2,
        ),
        Account(
            # Legacy record without a headcount
            account_id="TN-MDU-1",
            jurisdiction=Jurisdiction(city="Madurai", **tamil_nadu),
        ),
        Account(
            account_id="KL-KOC-1",
            jurisdiction=Jurisdiction(country="India", state="Kerala", city="Kochi"),
            occupant_count=3,
        ),
    ]


@pytest.fixture
def employees() -> list[Employee]:
    return [
        Employee(employee_id="EMP-TN", name="Priya", country="India", state="Tamil Nadu"),
        Employee(employee_id="EMP-KA", name="Arun", country="India", state="Karnataka"),
        Employee(employee_id="EMP-NONE", name="Unassigned"),
    ]


@pytest.fixture
def account_storage(accounts, employees) -> InMemoryAccountStorage:
    return InMemoryAccountStorage(accounts=accounts, employees=employees)


@pytest.fixture
def event_storage() -> InMemoryEventStorage:
    return InMemoryEventStorage()


@pytest.fixture
def complaint_storage() -> InMemoryComplaintStorage:
    return InMemoryComplaintStorage()


@pytest.fixture
def audit_storage() -> InMemoryAuditStorage:
    return InMemoryAuditStorage()
