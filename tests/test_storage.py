"""
Tests for storage backends.

The Google Sheets backend is exercised through a stand-in client that
serves rows from memory, so no credentials or network are needed.
"""

from datetime import datetime, timezone
from types import SimpleNamespace
from uuid import uuid4

import pytest

from aquamitra.models.consumption import Complaint, ComplaintType, ConsumptionEvent
from aquamitra.services.storage import (
    GoogleSheetsAccountStorage,
    GoogleSheetsEventStorage,
    InMemoryComplaintStorage,
    InMemoryEventStorage,
    StorageError,
)


class FakeSheetsClient:
    """Serves fixed worksheet rows in place of GoogleSheetsClient."""

    def __init__(self, rows_by_title=None, fail=False):
        self._rows = rows_by_title or {}
        self._fail = fail
        self.settings = SimpleNamespace(
            accounts_sheet_name="Accounts",
            employees_sheet_name="Employees",
            events_sheet_name="ConsumptionEvents",
        )

    def get_data_rows(self, title, columns):
        if self._fail:
            raise RuntimeError("quota exceeded")
        return self._rows.get(title, [])


class TestInMemoryEventStorage:
    """Tests for the in-memory event log."""

    def test_newest_first(self, event_storage, make_event):
        older = make_event("A", 1, "2026-10-18T10:00:00")
        newer = make_event("A", 2, "2026-10-19T10:00:00")
        event_storage.append_event(newer)
        event_storage.append_event(older)

        assert event_storage.list_events(["A"]) == [newer, older]

    def test_multiple_accounts_merged(self, event_storage, make_event):
        a = make_event("A", 1, "2026-10-18T10:00:00")
        b = make_event("B", 2, "2026-10-18T11:00:00")
        c = make_event("C", 3, "2026-10-18T12:00:00")
        for event in (a, b, c):
            event_storage.append_event(event)

        assert event_storage.list_events(["A", "B"]) == [b, a]
        assert event_storage.list_events([]) == []
        assert event_storage.list_events(["missing"]) == []

    def test_range_is_half_open(self, event_storage, make_event):
        """start is inclusive, end is exclusive."""
        start = datetime(2026, 10, 18, 0, 0, tzinfo=timezone.utc)
        end = datetime(2026, 10, 19, 0, 0, tzinfo=timezone.utc)
        at_start = ConsumptionEvent(account_id="A", amount=1, occurred_at=start)
        inside = ConsumptionEvent(account_id="A", amount=2, occurred_at=datetime(2026, 10, 18, 12, tzinfo=timezone.utc))
        at_end = ConsumptionEvent(account_id="A", amount=4, occurred_at=end)
        for event in (at_end, inside, at_start):
            event_storage.append_event(event)

        assert event_storage.list_events(["A"], start=start, end=end) == [inside, at_start]
        assert event_storage.sum_amount(["A"], start=start, end=end) == 3
        assert len(event_storage) == 3

    def test_same_instant_keeps_insertion_order(self, make_event):
        first = make_event("A", 1, "2026-10-18T10:00:00")
        second = make_event("A", 2, "2026-10-18T10:00:00")
        storage = InMemoryEventStorage([first, second])
        assert storage.list_events(["A"]) == [second, first]


class TestInMemoryComplaintStorage:
    """Tests for complaint persistence."""

    def test_list_filters_by_account(self):
        storage = InMemoryComplaintStorage()
        mine = Complaint(account_id="A", complaint_type=ComplaintType.LEAKAGE, description="Drip")
        other = Complaint(account_id="B", complaint_type=ComplaintType.OTHER, description="Noise")
        storage.save_complaint(mine)
        storage.save_complaint(other)
        assert storage.list_complaints("A") == [mine]


class TestGoogleSheetsRows:
    """Tests for row conversion in the Sheets backend."""

    def test_event_row_round_trip(self):
        event = ConsumptionEvent(
            account_id="TN-CHN-1",
            amount=12.75,
            occurred_at=datetime(2026, 10, 19, 2, 30, tzinfo=timezone.utc),
        )
        row = GoogleSheetsEventStorage._event_to_row(event)
        assert row[3] == "2026-10-19T02:30:00+00:00"
        assert GoogleSheetsEventStorage._row_to_event(row) == event

    def test_account_row_blank_occupants(self):
        account = GoogleSheetsAccountStorage._row_to_account(
            ["TN-MDU-1", "India", "Tamil Nadu", "Madurai", "", "12 Temple St"]
        )
        assert account.occupant_count is None
        assert account.city == "Madurai"
        assert account.pincode is None


class TestGoogleSheetsEventStorage:
    """Tests for event listing against worksheet rows."""

    def _row(self, account_id, amount, occurred_at):
        return [str(uuid4()), account_id, str(amount), occurred_at]

    def test_list_filters_sorts_and_skips_malformed(self):
        client = FakeSheetsClient({"ConsumptionEvents": [
            self._row("A", 1, "2026-10-18T10:00:00+00:00"),
            self._row("B", 5, "2026-10-18T11:00:00+00:00"),
            self._row("A", 2, "2026-10-19T10:00:00+00:00"),
            ["broken", "A", "not-a-number", "yesterday"],
            [],
        ]})
        storage = GoogleSheetsEventStorage(client)

        events = storage.list_events(["A"])

        assert [e.amount for e in events] == [2, 1]

    def test_duplicate_rows_counted_once(self):
        """A row landed twice by a retried append is listed once."""
        landed = self._row("A", 40, "2026-10-19T03:00:00+00:00")
        client = FakeSheetsClient({"ConsumptionEvents": [
            landed,
            self._row("A", 5, "2026-10-19T04:00:00+00:00"),
            list(landed),
        ]})
        storage = GoogleSheetsEventStorage(client)

        events = storage.list_events(["A"])

        assert [e.amount for e in events] == [5, 40]
        assert storage.sum_amount(["A"]) == 45

    def test_read_failure_raises_storage_error(self):
        storage = GoogleSheetsEventStorage(FakeSheetsClient(fail=True))
        with pytest.raises(StorageError):
            storage.list_events(["A"])

    def test_find_accounts(self):
        client = FakeSheetsClient({"Accounts": [
            ["TN-CHN-1", "India", "Tamil Nadu", "Chennai", "4"],
            ["TN-MDU-1", "India", "Tamil Nadu", "Madurai", ""],
            ["KL-KOC-1", "India", "Kerala", "Kochi", "3"],
        ]})
        storage = GoogleSheetsAccountStorage(client)

        accounts = storage.find_accounts("India", "Tamil Nadu", "Chennai")

        assert [a.account_id for a in accounts] == ["TN-CHN-1"]
        assert accounts[0].occupant_count == 4
