"""
Entity Resolver

Maps households to the jurisdiction that owns them and jurisdictions
back to their households. Everything here is read-only.

DESIGN DECISION: Jurisdictions are not stored. They are derived from
the country/state/city fields of account records, so the resolver is
the only place that knows how those fields are matched.
"""

from typing import Iterable, Optional

from aquamitra.models.consumption import Account, Employee, Jurisdiction
from aquamitra.services.storage import AccountStorageInterface, NotFoundError


UNASSIGNED_CITY = "Unassigned"

# Filter values that mean "every city of the state"
ALL_CITIES = {"", "all"}


class AccountNotFoundError(NotFoundError):
    """No account with this ID."""

    def __init__(self, account_id: str):
        self.account_id = account_id
        super().__init__(f"Account not found: {account_id}")


class EmployeeNotFoundError(NotFoundError):
    """No employee with this ID, or no jurisdiction assigned."""

    def __init__(self, employee_id: str, reason: str = "not found"):
        self.employee_id = employee_id
        super().__init__(f"Employee {employee_id}: {reason}")


def normalise_city_filter(city: Optional[str]) -> Optional[str]:
    """Collapse the 'all cities' sentinels to None."""
    if city is None:
        return None
    stripped = city.strip()
    if stripped.lower() in ALL_CITIES:
        return None
    return stripped


class EntityResolver:
    """
    Resolves accounts, employees and jurisdictions against account storage.
    """

    def __init__(self, storage: AccountStorageInterface):
        self._storage = storage

    def resolve_account(self, account_id: str) -> Account:
        """
        Raises:
            AccountNotFoundError: If the account is unknown
        """
        account = self._storage.get_account(account_id)
        if account is None:
            raise AccountNotFoundError(account_id)
        return account

    def resolve_jurisdiction(self, account_id: str) -> Jurisdiction:
        """The country/state/city an account belongs to."""
        return self.resolve_account(account_id).jurisdiction

    def resolve_employee(self, employee_id: str) -> Employee:
        """
        Raises:
            EmployeeNotFoundError: If unknown or without country/state
        """
        employee = self._storage.get_employee(employee_id)
        if employee is None:
            raise EmployeeNotFoundError(employee_id)
        if not employee.has_jurisdiction:
            raise EmployeeNotFoundError(employee_id, "no state/country assigned")
        return employee

    def accounts_in_jurisdiction(
        self,
        country: str,
        state: str,
        city: Optional[str] = None,
    ) -> set[str]:
        """
        Account IDs in a jurisdiction.

        Country and state match exactly. A city narrows the set;
        None (or "all") returns accounts across every city of the state.
        """
        city = normalise_city_filter(city)
        accounts = self._storage.find_accounts(country, state, city)
        return {a.account_id for a in accounts}

    def distinct_cities(self, country: str, state: str) -> list[str]:
        """Sorted city names in a state, for jurisdiction filter options."""
        accounts = self._storage.find_accounts(country, state)
        return sorted({a.city for a in accounts if a.city})

    def find_accounts(
        self,
        country: str,
        state: str,
        city: Optional[str] = None,
    ) -> list[Account]:
        """Full account records in a jurisdiction."""
        return self._storage.find_accounts(country, state, normalise_city_filter(city))

    @staticmethod
    def city_index(accounts: Iterable[Account]) -> dict[str, str]:
        """Map account ID to city, used as the series key for stacked rollups."""
        return {a.account_id: a.city or UNASSIGNED_CITY for a in accounts}
