"""
Tests for the entity resolver.
"""

import pytest

from aquamitra.entities import (
    UNASSIGNED_CITY,
    AccountNotFoundError,
    EmployeeNotFoundError,
    EntityResolver,
    normalise_city_filter,
)
from aquamitra.models.consumption import Account, Jurisdiction
from aquamitra.services.storage import NotFoundError


@pytest.fixture
def resolver(account_storage) -> EntityResolver:
    return EntityResolver(account_storage)


class TestAccountResolution:
    """Tests for account and jurisdiction lookups."""

    def test_resolve_jurisdiction(self, resolver):
        jurisdiction = resolver.resolve_jurisdiction("TN-CHN-1")
        assert jurisdiction == Jurisdiction(country="India", state="Tamil Nadu", city="Chennai")

    def test_unknown_account(self, resolver):
        with pytest.raises(AccountNotFoundError) as exc_info:
            resolver.resolve_account("NOPE")
        assert exc_info.value.account_id == "NOPE"
        assert isinstance(exc_info.value, NotFoundError)


class TestJurisdictionMembership:
    """Tests for jurisdiction-to-accounts queries."""

    def test_state_wide(self, resolver):
        ids = resolver.accounts_in_jurisdiction("India", "Tamil Nadu")
        assert ids == {"TN-CHN-1", "TN-CHN-2", "TN-MDU-1"}

    def test_city_narrows(self, resolver):
        assert resolver.accounts_in_jurisdiction("India", "Tamil Nadu", "Madurai") == {"TN-MDU-1"}

    def test_all_sentinel(self, resolver):
        """'all' means every city of the state."""
        assert resolver.accounts_in_jurisdiction("India", "Tamil Nadu", "All") == {
            "TN-CHN-1", "TN-CHN-2", "TN-MDU-1",
        }

    def test_unknown_jurisdiction_is_empty(self, resolver):
        assert resolver.accounts_in_jurisdiction("India", "Goa") == set()

    def test_state_match_is_exact(self, resolver):
        """A state name in another country does not match."""
        assert resolver.accounts_in_jurisdiction("Sri Lanka", "Tamil Nadu") == set()

    def test_distinct_cities_sorted(self, resolver):
        assert resolver.distinct_cities("India", "Tamil Nadu") == ["Chennai", "Madurai"]

    def test_city_index_marks_missing_city(self):
        accounts = [
            Account(account_id="X", jurisdiction=Jurisdiction(country="India", state="Goa")),
            Account(
                account_id="Y",
                jurisdiction=Jurisdiction(country="India", state="Goa", city="Panaji"),
            ),
        ]
        assert EntityResolver.city_index(accounts) == {"X": UNASSIGNED_CITY, "Y": "Panaji"}

    @pytest.mark.parametrize("value,expected", [
        (None, None),
        ("", None),
        ("all", None),
        (" Madurai ", "Madurai"),
    ])
    def test_normalise_city_filter(self, value, expected):
        assert normalise_city_filter(value) == expected


class TestEmployeeResolution:
    """Tests for employee lookups."""

    def test_resolve_employee(self, resolver):
        employee = resolver.resolve_employee("EMP-TN")
        assert employee.state == "Tamil Nadu"

    def test_unknown_employee(self, resolver):
        with pytest.raises(EmployeeNotFoundError):
            resolver.resolve_employee("EMP-404")

    def test_employee_without_jurisdiction(self, resolver):
        with pytest.raises(EmployeeNotFoundError, match="no state/country"):
            resolver.resolve_employee("EMP-NONE")
