"""
Rollup Engine

Buckets consumption events into calendar-aligned periods.

DESIGN DECISION: Bucketing is DETERMINISTIC in an explicit timezone.
Every boundary is computed from the caller's IANA timezone, never from
the process locale. An event at 23:30 local time on day D belongs to
day D even when its UTC instant is already D+1.

Period rules:
- day:   local midnight to midnight
- week:  ISO weeks, starting Monday
- month: first of the month
- year:  first of January

Daily rollups over a trailing window are dense (every day emitted, zero
when empty) so chart series line up. Week/month/year rollups are sparse.
"""

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Callable, Iterable, Optional, Union

from aquamitra.models.consumption import (
    ConsumptionEvent,
    Granularity,
    RollupBucket,
    RollupView,
    SeriesValues,
    utc_now,
)
from aquamitra.validation import require_aware, resolve_timezone


DEFAULT_SERIES = "total"

# Fixed English abbreviations so labels never depend on the process locale
MONTH_ABBR = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

SeriesKeyFn = Callable[[ConsumptionEvent], str]


def local_date(instant: datetime, tz: tzinfo) -> date:
    """Calendar date of an instant in the given timezone."""
    return instant.astimezone(tz).date()


def local_midnight(day: date, tz: tzinfo) -> datetime:
    """UTC instant of local midnight starting `day`."""
    return datetime.combine(day, time.min, tzinfo=tz).astimezone(timezone.utc)


def period_start_date(day: date, granularity: Granularity) -> date:
    """First local date of the period containing `day`."""
    if granularity is Granularity.DAY:
        return day
    if granularity is Granularity.WEEK:
        return day - timedelta(days=day.weekday())
    if granularity is Granularity.MONTH:
        return day.replace(day=1)
    return date(day.year, 1, 1)


def period_key(start: date, granularity: Granularity) -> str:
    """Sortable identifier of a period."""
    if granularity is Granularity.DAY:
        return start.isoformat()
    if granularity is Granularity.WEEK:
        iso_year, iso_week, _ = start.isocalendar()
        return f"{iso_year:04d}-W{iso_week:02d}"
    if granularity is Granularity.MONTH:
        return f"{start.year:04d}-{start.month:02d}"
    return f"{start.year:04d}"


def period_label(start: date, granularity: Granularity) -> str:
    """Chart label of a period ("Oct 5", "Week 41", "Oct 2026", "2026")."""
    if granularity is Granularity.DAY:
        return f"{MONTH_ABBR[start.month - 1]} {start.day}"
    if granularity is Granularity.WEEK:
        return f"Week {start.isocalendar()[1]}"
    if granularity is Granularity.MONTH:
        return f"{MONTH_ABBR[start.month - 1]} {start.year}"
    return str(start.year)


def rollup(
    events: Iterable[ConsumptionEvent],
    granularity: Union[Granularity, str],
    timezone: Union[str, tzinfo, None],
    series_key_fn: Optional[SeriesKeyFn] = None,
    *,
    window_days: Optional[int] = None,
    now: Optional[datetime] = None,
    series_keys: Optional[Iterable[str]] = None,
) -> list[RollupBucket]:
    """
    Bucket events into ordered, labeled periods.

    Args:
        events: Events to aggregate (any order)
        granularity: day, week, month or year (or the -ly aliases)
        timezone: IANA name or tzinfo that defines calendar boundaries
        series_key_fn: Sub-entity key per event; one implicit series if None
        window_days: Day granularity only. Restrict to the trailing N local
            days ending at `now` and emit every day, zero-filled
        now: Aware reference instant for the window (defaults to current time)
        series_keys: Keys to pre-seed so they appear even without events

    Returns:
        Buckets sorted by period_start ascending. Every bucket's totals
        carry every series key, zero where that series had no events.
        Empty input returns an empty list.
    """
    granularity = Granularity(granularity)
    tz = resolve_timezone(timezone)

    if window_days is not None:
        if granularity is not Granularity.DAY:
            raise ValueError("window_days is only supported for day granularity")
        if window_days < 1:
            raise ValueError("window_days must be at least 1")

    events = list(events)
    if not events:
        return []

    key_fn = series_key_fn or (lambda _event: DEFAULT_SERIES)
    keys = set(series_keys or ())
    if series_key_fn is None:
        keys.add(DEFAULT_SERIES)

    first_day = last_day = None
    if window_days is not None:
        last_day = local_date(require_aware(now) if now else utc_now(), tz)
        first_day = last_day - timedelta(days=window_days - 1)

    sums: dict[date, dict[str, float]] = {}
    for event in events:
        day = local_date(event.occurred_at, tz)
        if first_day is not None and not (first_day <= day <= last_day):
            continue
        start = period_start_date(day, granularity)
        key = str(key_fn(event))
        keys.add(key)
        totals = sums.setdefault(start, {})
        totals[key] = totals.get(key, 0.0) + event.amount

    if first_day is not None:
        starts = [first_day + timedelta(days=i) for i in range(window_days)]
    else:
        # Sparse: amounts are non-negative, so a positive total means real data
        starts = sorted(s for s, totals in sums.items() if sum(totals.values()) > 0)

    ordered_keys = sorted(keys)
    buckets = []
    for start in starts:
        totals = sums.get(start, {})
        buckets.append(RollupBucket(
            period_key=period_key(start, granularity),
            period_label=period_label(start, granularity),
            period_start=local_midnight(start, tz),
            totals={k: totals.get(k, 0.0) for k in ordered_keys},
        ))
    return buckets


def to_chart(buckets: list[RollupBucket]) -> RollupView:
    """
    Convert buckets to the index-aligned chart shape.

    Values are rounded to 2 decimals here, at the output boundary.
    """
    if not buckets:
        return RollupView()

    keys: dict[str, None] = {}
    for bucket in buckets:
        for key in bucket.totals:
            keys.setdefault(key, None)

    return RollupView(
        labels=[b.period_label for b in buckets],
        series=[
            SeriesValues(
                key=key,
                values=[round(b.totals.get(key, 0.0), 2) for b in buckets],
            )
            for key in keys
        ],
    )
