"""
Metrics Calculator

Derives threshold-relative figures from raw events:
- daily allocation (per-capita rate x occupants)
- consumption today and month-to-date, in the caller's timezone
- remaining allocation and percentage used
- per-entity rankings and the top consumer

DESIGN DECISION: One calculator for both dashboards. The occupant-count
fallback, the rate and the rounding policy are stated here once instead
of being re-derived per view.

Rounding happens only when the output model is built. Accumulation runs
at full float precision so per-event rounding never compounds.
"""

from collections.abc import Mapping
from datetime import datetime, tzinfo
from typing import Iterable, Optional, Union

from aquamitra.config import AppSettings, get_settings
from aquamitra.entities import UNASSIGNED_CITY
from aquamitra.models.consumption import (
    Account,
    ConsumptionEvent,
    DashboardMetrics,
    RankedEntry,
    RollupBucket,
    utc_now,
)
from aquamitra.rollups import local_date
from aquamitra.validation import (
    InvalidInputError,
    MissingOccupantCountError,
    require_aware,
    resolve_timezone,
)


TotalsSource = Union[
    Mapping[str, float],
    Iterable[tuple[str, float]],
    Iterable[RollupBucket],
]


def _iter_totals(source: TotalsSource) -> Iterable[tuple[str, float]]:
    """Normalise a mapping, (key, amount) pairs or buckets to pairs."""
    if isinstance(source, Mapping):
        return source.items()

    items = list(source)
    if items and isinstance(items[0], RollupBucket):
        combined: dict[str, float] = {}
        for bucket in items:
            for key, amount in bucket.totals.items():
                combined[key] = combined.get(key, 0.0) + amount
        return combined.items()
    return items


def top_performer(source: TotalsSource) -> Optional[RankedEntry]:
    """
    The key with the largest amount.

    Single pass; on ties the first key encountered wins. Buckets are
    summed per series first. Returns None for empty input.
    """
    best_key = None
    best_amount = 0.0
    for key, amount in _iter_totals(source):
        if best_key is None or amount > best_amount:
            best_key, best_amount = key, amount

    if best_key is None:
        return None
    return RankedEntry(key=best_key, amount=round(best_amount, 2))


def rank(source: TotalsSource) -> list[RankedEntry]:
    """All keys by amount, descending. Ties keep encounter order."""
    pairs = sorted(_iter_totals(source), key=lambda kv: kv[1], reverse=True)
    return [RankedEntry(key=k, amount=round(v, 2)) for k, v in pairs]


def _percentage(part: float, whole: float) -> float:
    if whole <= 0:
        return 0.0
    return part / whole * 100


class MetricsCalculator:
    """
    Computes DashboardMetrics for households and jurisdictions.

    GUARANTEES:
    - consumed_today + remaining == threshold
    - remaining is never clamped (negative means overage)
    - month average divides by the local day-of-month, not elapsed hours
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        settings = settings or get_settings().app
        self._rate = settings.per_capita_daily_rate
        self._fallback_occupants = settings.default_occupant_count

    @property
    def per_capita_daily_rate(self) -> float:
        return self._rate

    def threshold(self, occupant_count: int) -> float:
        """Daily allocation for a household of `occupant_count` people."""
        if occupant_count is None or occupant_count <= 0:
            raise InvalidInputError(
                "occupant_count", f"Must be a positive integer, got {occupant_count!r}"
            )
        return self._rate * occupant_count

    def effective_occupants(self, account: Account) -> int:
        """
        Occupant count with the configured fallback applied.

        Raises:
            MissingOccupantCountError: If the account has none and no
                fallback is configured
        """
        if account.occupant_count is not None:
            return account.occupant_count
        if self._fallback_occupants is None:
            raise MissingOccupantCountError(
                f"Account {account.account_id} has no occupant count"
            )
        return self._fallback_occupants

    def compute_metrics(
        self,
        events: Iterable[ConsumptionEvent],
        occupant_count: int,
        now: Optional[datetime] = None,
        timezone: Union[str, tzinfo, None] = None,
    ) -> DashboardMetrics:
        """
        Household metrics relative to the daily allocation.

        "Today" and "this month" are the local calendar day and month
        of `now` in `timezone`.
        """
        tz = resolve_timezone(timezone)
        today = local_date(require_aware(now) if now else utc_now(), tz)
        threshold = self.threshold(occupant_count)

        consumed_today = 0.0
        month_to_date = 0.0
        for event in events:
            day = local_date(event.occurred_at, tz)
            if day == today:
                consumed_today += event.amount
            if day.year == today.year and day.month == today.month:
                month_to_date += event.amount

        threshold_out = round(threshold, 2)
        consumed_out = round(consumed_today, 2)
        return DashboardMetrics(
            threshold=threshold_out,
            consumed_today=consumed_out,
            remaining=round(threshold_out - consumed_out, 2),
            percentage_used=round(_percentage(consumed_today, threshold), 2),
            consumed_month_to_date=round(month_to_date, 2),
            avg_daily_this_month=round(month_to_date / today.day, 2),
        )

    def compute_jurisdiction_metrics(
        self,
        events: Iterable[ConsumptionEvent],
        accounts: Iterable[Account],
        city_of: Mapping[str, str],
        now: Optional[datetime] = None,
        timezone: Union[str, tzinfo, None] = None,
        city_count: Optional[int] = None,
    ) -> DashboardMetrics:
        """
        Jurisdiction metrics: total allocation across households,
        same-day consumption and a per-city same-day ranking.
        """
        tz = resolve_timezone(timezone)
        today = local_date(require_aware(now) if now else utc_now(), tz)

        account_ids = set()
        allocation = 0.0
        for account in accounts:
            if account.account_id in account_ids:
                continue
            account_ids.add(account.account_id)
            allocation += self.threshold(self.effective_occupants(account))

        by_city: dict[str, float] = {}
        for event in events:
            if local_date(event.occurred_at, tz) != today:
                continue
            city = city_of.get(event.account_id, UNASSIGNED_CITY)
            by_city[city] = by_city.get(city, 0.0) + event.amount

        consumed_today = sum(by_city.values())
        allocation_out = round(allocation, 2)
        consumed_out = round(consumed_today, 2)
        return DashboardMetrics(
            threshold=allocation_out,
            consumed_today=consumed_out,
            remaining=round(allocation_out - consumed_out, 2),
            percentage_used=round(_percentage(consumed_today, allocation), 2),
            account_count=len(account_ids),
            city_count=city_count,
            top_performer=top_performer(by_city),
            ranking=rank(by_city),
        )


def compute_metrics(
    events: Iterable[ConsumptionEvent],
    occupant_count: int,
    now: Optional[datetime] = None,
    timezone: Union[str, tzinfo, None] = None,
) -> DashboardMetrics:
    """Household metrics using the configured allocation rate."""
    return MetricsCalculator().compute_metrics(events, occupant_count, now, timezone)
