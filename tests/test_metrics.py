"""
Tests for the metrics calculator.
"""

from datetime import datetime, timezone

import pytest

from aquamitra.config import AppSettings
from aquamitra.metrics import MetricsCalculator, rank, top_performer
from aquamitra.models.consumption import Account, Jurisdiction, RollupBucket
from aquamitra.validation import InvalidInputError, MissingOccupantCountError


@pytest.fixture
def calculator() -> MetricsCalculator:
    return MetricsCalculator(AppSettings(per_capita_daily_rate=55.0, default_occupant_count=4))


class TestHouseholdMetrics:
    """Tests for household threshold-relative figures."""

    def test_threshold(self, calculator):
        assert calculator.threshold(4) == 220
        assert calculator.threshold(1) == 55

    def test_threshold_rejects_non_positive(self, calculator):
        with pytest.raises(InvalidInputError):
            calculator.threshold(0)

    def test_consumed_and_remaining(self, calculator, make_event, now):
        """Four occupants, 50 + 30 today: 80 used, 140 left."""
        events = [
            make_event("A", 50, "2026-10-19T08:00:00"),
            make_event("A", 30, "2026-10-19T12:00:00"),
        ]

        metrics = calculator.compute_metrics(events, 4, now, "Asia/Kolkata")

        assert metrics.threshold == 220
        assert metrics.consumed_today == 80
        assert metrics.remaining == 140
        assert metrics.percentage_used == 36.36
        assert metrics.consumed_today + metrics.remaining == metrics.threshold

    def test_no_events(self, calculator, now):
        """Empty input is a full allocation, not an error."""
        metrics = calculator.compute_metrics([], 4, now, "Asia/Kolkata")
        assert metrics.consumed_today == 0
        assert metrics.remaining == 220
        assert metrics.consumed_month_to_date == 0
        assert metrics.avg_daily_this_month == 0

    def test_overage_is_not_clamped(self, calculator, make_event, now):
        """Going over the allocation gives negative remaining."""
        events = [make_event("A", 70, "2026-10-19T08:00:00")]
        metrics = calculator.compute_metrics(events, 1, now, "Asia/Kolkata")
        assert metrics.remaining == -15
        assert metrics.is_over_threshold

    def test_today_follows_caller_timezone(self, calculator, make_event, now):
        """00:30 IST on the 19th is today in Kolkata but yesterday in UTC."""
        events = [make_event("A", 25, "2026-10-19T00:30:00")]

        local = calculator.compute_metrics(events, 4, now, "Asia/Kolkata")
        utc = calculator.compute_metrics(events, 4, now, "UTC")

        assert local.consumed_today == 25
        assert utc.consumed_today == 0

    def test_month_average_divides_by_day_of_month(self, calculator, make_event, now):
        """(100 + 90) over 19 days; September is excluded."""
        events = [
            make_event("A", 500, "2026-09-30T10:00:00"),
            make_event("A", 100, "2026-10-01T10:00:00"),
            make_event("A", 90, "2026-10-19T10:00:00"),
        ]
        metrics = calculator.compute_metrics(events, 4, now, "Asia/Kolkata")
        assert metrics.consumed_month_to_date == 190
        assert metrics.avg_daily_this_month == 10.0

    def test_naive_now_rejected(self, calculator, make_event):
        """A naive reference instant would be read in the server's timezone."""
        events = [make_event("A", 50, "2026-10-19T08:00:00")]
        with pytest.raises(InvalidInputError) as exc_info:
            calculator.compute_metrics(events, 4, datetime(2026, 10, 19, 12, 0), "Asia/Kolkata")
        assert exc_info.value.field == "now"

    def test_first_of_month_average(self, calculator, make_event):
        """Shortly after midnight on the 1st the average equals the amount so far."""
        just_after_midnight = datetime(2026, 9, 30, 19, 0, tzinfo=timezone.utc)  # 00:30 IST Oct 1
        events = [make_event("A", 30, "2026-10-01T00:15:00")]
        metrics = calculator.compute_metrics(events, 4, just_after_midnight, "Asia/Kolkata")
        assert metrics.avg_daily_this_month == 30


class TestOccupantFallback:
    """Tests for accounts without an occupant count."""

    def _account(self, occupants=None):
        return Account(
            account_id="A",
            jurisdiction=Jurisdiction(country="India", state="Tamil Nadu"),
            occupant_count=occupants,
        )

    def test_recorded_count_wins(self, calculator):
        assert calculator.effective_occupants(self._account(2)) == 2

    def test_fallback_applied(self, calculator):
        assert calculator.effective_occupants(self._account()) == 4

    def test_missing_without_fallback(self):
        """Test error when no fallback is configured."""
        calculator = MetricsCalculator(AppSettings(default_occupant_count=None))
        with pytest.raises(MissingOccupantCountError) as exc_info:
            calculator.effective_occupants(self._account())
        assert exc_info.value.field == "occupant_count"


class TestRanking:
    """Tests for top_performer and rank."""

    def test_top_performer_from_mapping(self):
        entry = top_performer({"Chennai": 100, "Madurai": 40})
        assert entry.key == "Chennai"
        assert entry.amount == 100

    def test_tie_goes_to_first_key(self):
        """On equal amounts the first key encountered wins."""
        assert top_performer([("A", 5), ("B", 9), ("C", 9)]).key == "B"

    def test_empty_is_none(self):
        assert top_performer({}) is None
        assert top_performer([]) is None

    def test_from_buckets(self):
        """Buckets are summed per series before picking the maximum."""
        start = datetime(2026, 10, 18, tzinfo=timezone.utc)
        buckets = [
            RollupBucket(
                period_key="2026-10-18", period_label="Oct 18",
                period_start=start, totals={"Chennai": 10, "Madurai": 30},
            ),
            RollupBucket(
                period_key="2026-10-19", period_label="Oct 19",
                period_start=start, totals={"Chennai": 25, "Madurai": 0},
            ),
        ]
        entry = top_performer(buckets)
        assert entry.key == "Chennai"
        assert entry.amount == 35

    def test_rank_is_descending_and_stable(self):
        ranking = rank({"A": 5, "B": 9, "C": 9})
        assert [r.key for r in ranking] == ["B", "C", "A"]


class TestJurisdictionMetrics:
    """Tests for state/city-level metrics."""

    def test_per_city_ranking(self, calculator, accounts, make_event, now):
        """Chennai's 60 + 40 beats Madurai's 40; yesterday does not count."""
        tamil_nadu = [a for a in accounts if a.jurisdiction.state == "Tamil Nadu"]
        city_of = {a.account_id: a.city for a in tamil_nadu}
        events = [
            make_event("TN-CHN-1", 60, "2026-10-19T09:00:00"),
            make_event("TN-CHN-2", 40, "2026-10-19T10:00:00"),
            make_event("TN-MDU-1", 40, "2026-10-19T11:00:00"),
            make_event("TN-MDU-1", 500, "2026-10-18T11:00:00"),
        ]

        metrics = calculator.compute_jurisdiction_metrics(
            events, tamil_nadu, city_of, now, "Asia/Kolkata", city_count=2,
        )

        # 55 x (4 + 2 + 4 fallback)
        assert metrics.threshold == 550
        assert metrics.consumed_today == 140
        assert metrics.remaining == 410
        assert metrics.percentage_used == 25.45
        assert metrics.account_count == 3
        assert metrics.city_count == 2
        assert metrics.top_performer.key == "Chennai"
        assert metrics.top_performer.amount == 100
        assert [(r.key, r.amount) for r in metrics.ranking] == [
            ("Chennai", 100), ("Madurai", 40),
        ]

    def test_naive_now_rejected(self, calculator):
        with pytest.raises(InvalidInputError):
            calculator.compute_jurisdiction_metrics(
                [], [], {}, datetime(2026, 10, 19, 12, 0), "Asia/Kolkata",
            )

    def test_no_accounts(self, calculator, now):
        """An empty jurisdiction yields zeros and no top performer."""
        metrics = calculator.compute_jurisdiction_metrics([], [], {}, now, "Asia/Kolkata")
        assert metrics.threshold == 0
        assert metrics.consumed_today == 0
        assert metrics.percentage_used == 0
        assert metrics.account_count == 0
        assert metrics.top_performer is None
        assert metrics.ranking == []
