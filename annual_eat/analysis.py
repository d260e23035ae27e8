"""Yearly report computation over normalized records.

All calendar fields are read in China Standard Time as a fixed UTC+8 offset:
the epoch timestamp is shifted by eight hours and the fields of the resulting
UTC datetime are used. No timezone database is consulted, so the output does
not depend on the host's local time configuration.

Amounts are summed as :class:`~decimal.Decimal` (every normalized amount has
at most two decimals) and converted back to ``float`` once per bucket, so the
total equals the sum of the per-merchant buckets exactly.

"First maximum wins" selections rely on ``dict`` insertion order. Month and
hour buckets are created up front in numeric order; merchant buckets are
created in order of first appearance.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from types import MappingProxyType
from typing import TypeVar

from .errors import NoDataError
from .logging_setup import get_logger
from .models import MealMoment, NormalizedRecord, Report

CST_OFFSET_SECONDS = 8 * 3600

BREAKFAST_HOURS = range(6, 9)
LUNCH_HOURS = range(11, 14)
DINNER_HOURS = range(17, 19)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

NumT = TypeVar("NumT", int, float, Decimal)

_logger = get_logger("annual_eat.analysis")


# ---------------------------------------------------------------------------
# Time helpers
# ---------------------------------------------------------------------------


def shift_time(epoch_seconds: int) -> datetime:
    """Return ``epoch_seconds`` as a UTC datetime carrying UTC+8 wall-clock fields."""

    return _EPOCH + timedelta(seconds=epoch_seconds + CST_OFFSET_SECONDS)


def format_cn_time(t: datetime) -> str:
    """Format as ``{month}月{day}日{hour}时{minute:02}分``."""

    return f"{t.month}月{t.day}日{t.hour}时{t.minute:02d}分"


def _seconds_of_day(t: datetime) -> int:
    return t.hour * 3600 + t.minute * 60 + t.second


# ---------------------------------------------------------------------------
# Selection helpers
# ---------------------------------------------------------------------------


def max_key(values: Mapping[str, NumT]) -> str:
    """Return the key of the first strictly largest value.

    Starts from ``("", 0)``: an empty mapping, or one whose values are all
    ``<= 0``, yields ``""``.
    """

    best_key = ""
    best_value: int | float | Decimal = 0
    for k, v in values.items():
        if v > best_value:
            best_key = k
            best_value = v
    return best_key


def meal_buckets(records: Iterable[NormalizedRecord]) -> tuple[int, int, int]:
    """Count records by local hour into ``(breakfast, lunch, dinner)``.

    Breakfast is [6, 9), lunch [11, 14) and dinner [17, 19); other hours count
    towards none of them.
    """

    breakfast = lunch = dinner = 0
    for r in records:
        h = shift_time(r.pay_time).hour
        if h in BREAKFAST_HOURS:
            breakfast += 1
        elif h in LUNCH_HOURS:
            lunch += 1
        elif h in DINNER_HOURS:
            dinner += 1
    return breakfast, lunch, dinner


def earliest_meal(day_firsts: Iterable[NormalizedRecord]) -> NormalizedRecord | None:
    """Pick the record with the smallest local time of day.

    Ties go to the first record in iteration order. Returns ``None`` for an
    empty input.
    """

    earliest: NormalizedRecord | None = None
    earliest_seconds: int | None = None
    for r in day_firsts:
        seconds = _seconds_of_day(shift_time(r.pay_time))
        if earliest_seconds is None or seconds < earliest_seconds:
            earliest = r
            earliest_seconds = seconds
    return earliest


def _moment(r: NormalizedRecord) -> MealMoment:
    return MealMoment(
        location=r.normalized_merchant,
        time=format_cn_time(shift_time(r.pay_time)),
        amount=r.amount,
    )


# ---------------------------------------------------------------------------
# Report
# ---------------------------------------------------------------------------


def analyze_records(records: Sequence[NormalizedRecord]) -> Report:
    """Build the yearly :class:`Report` from chronologically sorted records.

    Raises
    ------
    NoDataError
        When ``records`` is empty.
    """

    if not records:
        raise NoDataError("filtered")

    first = records[0]
    year = shift_time(first.pay_time).year

    total = Decimal(0)
    merchant_count: dict[str, int] = {}
    merchant_amount: dict[str, Decimal] = {}
    month_amount: dict[str, Decimal] = {str(m): Decimal(0) for m in range(1, 13)}
    hour_count: dict[str, int] = {str(h): 0 for h in range(24)}
    day_first: dict[date, NormalizedRecord] = {}
    max_record = first

    for r in records:
        t = shift_time(r.pay_time)
        amount = Decimal(str(r.amount))
        key = r.normalized_merchant

        total += amount
        merchant_count[key] = merchant_count.get(key, 0) + 1
        merchant_amount[key] = merchant_amount.get(key, Decimal(0)) + amount
        month_amount[str(t.month)] += amount
        hour_count[str(t.hour)] += 1

        day = t.date()
        current = day_first.get(day)
        if current is None or r.pay_time < current.pay_time:
            day_first[day] = r

        if r.amount > max_record.amount:
            max_record = r

    most_frequent = max_key(merchant_count)
    most_spent = max_key(merchant_amount)
    peak_key = max_key(month_amount)
    breakfast, lunch, dinner = meal_buckets(records)
    # day_first is non-empty because records is.
    earliest = earliest_meal(day_first.values()) or first

    merchant_totals = {k: float(v) for k, v in merchant_amount.items()}
    month_totals = {k: float(v) for k, v in month_amount.items()}

    report = Report(
        year=year,
        total_amount=float(total),
        first_meal=_moment(first),
        max_meal=_moment(max_record),
        most_frequent_location=most_frequent,
        most_frequent_count=merchant_count.get(most_frequent, 0),
        most_frequent_amount=merchant_totals.get(most_frequent, 0.0),
        most_spent_location=most_spent,
        most_spent_amount=merchant_totals.get(most_spent, 0.0),
        most_spent_count=merchant_count.get(most_spent, 0),
        breakfast_count=breakfast,
        lunch_count=lunch,
        dinner_count=dinner,
        earliest_meal=_moment(earliest),
        peak_month=int(peak_key) if peak_key else 1,
        peak_month_amount=month_totals.get(peak_key, 0.0),
        merchant_amount=MappingProxyType(merchant_totals),
        monthly_amount=MappingProxyType(month_totals),
        time_distribution=MappingProxyType(dict(hour_count)),
    )
    _logger.info(
        "report for %d: %d records, %d merchants, total %.2f",
        year,
        len(records),
        len(merchant_totals),
        report.total_amount,
    )
    return report


__all__ = [
    "CST_OFFSET_SECONDS",
    "analyze_records",
    "earliest_meal",
    "format_cn_time",
    "max_key",
    "meal_buckets",
    "shift_time",
]
