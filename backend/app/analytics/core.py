from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from backend.app.analytics.errors import ChartConfigurationError
from backend.app.analytics.resources import ChartableRecord

logger = logging.getLogger(__name__)

UNKNOWN_LABEL = "unknown"

KeySelector = Callable[[ChartableRecord], Optional[str]]

_FRACTION_RE = re.compile(r"\.(\d+)")


@dataclass(frozen=True)
class ChartDataPoint:
    name: str
    count: int
    volume: float
    average: float
    currency: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "count": self.count,
            "volume": self.volume,
            "average": self.average,
            "currency": self.currency,
        }


@dataclass(frozen=True)
class ChartSeries:
    currency: str
    points: List[ChartDataPoint]

    def to_dict(self) -> Dict[str, Any]:
        return {"currency": self.currency, "points": [p.to_dict() for p in self.points]}


@dataclass(frozen=True)
class CurrencySummary:
    currency: str
    total_count: int
    total_volume: float
    overall_average: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "currency": self.currency,
            "totalCount": self.total_count,
            "totalVolume": self.total_volume,
            "overallAverage": self.overall_average,
        }


@dataclass(frozen=True)
class DateRangeLabel:
    start: str
    end: str


@dataclass(frozen=True)
class ChartSummary:
    total_count: int
    # None whenever more than one currency is present
    total_volume: Optional[float]
    overall_average: Optional[float]
    per_currency: List[CurrencySummary] = field(default_factory=list)
    date_range: Optional[DateRangeLabel] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "totalCount": self.total_count,
            "totalVolume": self.total_volume,
            "overallAverage": self.overall_average,
            "perCurrency": [entry.to_dict() for entry in self.per_currency],
        }
        if self.date_range is not None:
            payload["dateRange"] = {"from": self.date_range.start, "to": self.date_range.end}
        return payload


@dataclass(frozen=True)
class AggregationResult:
    chart_data: Optional[List[ChartDataPoint]] = None
    chart_series: Optional[List[ChartSeries]] = None

    @property
    def data_point_count(self) -> int:
        if self.chart_series is not None:
            return sum(len(series.points) for series in self.chart_series)
        return len(self.chart_data or [])


# -------------------------
# Helpers
# -------------------------


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO-8601 string into an aware UTC datetime.

    Date-only strings are midnight UTC; naive datetimes are read as UTC.
    Fractional seconds of any precision are accepted.
    """
    if not value:
        return None
    try:
        text = value.strip()
        if "T" in text or " " in text:
            text = _FRACTION_RE.sub(lambda m: "." + (m.group(1) + "000000")[:6], text, count=1)
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            return parsed.astimezone(timezone.utc) if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
        parsed_date = date.fromisoformat(text)
        return datetime(parsed_date.year, parsed_date.month, parsed_date.day, tzinfo=timezone.utc)
    except ValueError:
        return None


def _round2(value: float) -> float:
    return round(value, 2)


class _Bucket:
    __slots__ = ("count", "volume")

    def __init__(self) -> None:
        self.count = 0
        self.volume = 0

    def add(self, amount: int) -> None:
        self.count += 1
        self.volume += amount

    def point(self, name: str, currency: str) -> ChartDataPoint:
        average = self.volume / self.count if self.count else 0.0
        return ChartDataPoint(
            name=name,
            count=self.count,
            volume=_round2(self.volume),
            average=_round2(average),
            currency=currency,
        )


def _group_by_currency(records: Iterable[ChartableRecord]) -> Dict[str, List[ChartableRecord]]:
    grouped: Dict[str, List[ChartableRecord]] = {}
    for record in records:
        grouped.setdefault(record.currency, []).append(record)
    return grouped


def drop_undated(records: Iterable[ChartableRecord]) -> List[ChartableRecord]:
    """Keep records whose timestamp parses, so series and summary count the same set."""
    kept: List[ChartableRecord] = []
    skipped = 0
    for record in records:
        if parse_timestamp(record.created_at) is None:
            skipped += 1
            continue
        kept.append(record)
    if skipped:
        logger.warning("Dropped %s records with unparseable timestamps", skipped)
    return kept


# -------------------------
# Time-based aggregation
# -------------------------

# bucket key (sortable) and display name from a UTC timestamp
TimeKeyFn = Callable[[datetime], Tuple[Any, str]]


def _day_key(ts: datetime) -> Tuple[Any, str]:
    day = ts.date()
    return day.isoformat(), f"{day.strftime('%A')}, {day.strftime('%b')} {day.day}"


def _hour_key(ts: datetime) -> Tuple[Any, str]:
    return ts.hour, f"{ts.hour:02d}:00"


def _week_key(ts: datetime) -> Tuple[Any, str]:
    iso_year, iso_week, _weekday = ts.date().isocalendar()
    key = f"{iso_year:04d}-W{iso_week:02d}"
    return key, key


def _month_key(ts: datetime) -> Tuple[Any, str]:
    key = f"{ts.year:04d}-{ts.month:02d}"
    return key, key


def _aggregate_by_time(records: Iterable[ChartableRecord], key_fn: TimeKeyFn) -> List[ChartSeries]:
    buckets: Dict[str, Dict[Any, _Bucket]] = {}
    names: Dict[Any, str] = {}

    for record in records:
        ts = parse_timestamp(record.created_at)
        if ts is None:
            logger.warning("Skipping record with unparseable timestamp: %r", record.created_at)
            continue
        key, name = key_fn(ts)
        names[key] = name
        buckets.setdefault(record.currency, {}).setdefault(key, _Bucket()).add(record.amount)

    series: List[ChartSeries] = []
    for currency in sorted(buckets.keys()):
        by_key = buckets[currency]
        points = [by_key[key].point(names[key], currency) for key in sorted(by_key.keys())]
        series.append(ChartSeries(currency=currency, points=points))
    return series


def aggregate_by_day(records: Iterable[ChartableRecord]) -> List[ChartSeries]:
    """Bucket by UTC calendar day; names look like ``Tuesday, Dec 10``."""
    return _aggregate_by_time(records, _day_key)


def aggregate_by_hour(records: Iterable[ChartableRecord]) -> List[ChartSeries]:
    return _aggregate_by_time(records, _hour_key)


def aggregate_by_week(records: Iterable[ChartableRecord]) -> List[ChartSeries]:
    """Bucket by ISO week-year (``YYYY-Www``).

    Late-December days can land in week 01 of the following year.
    """
    return _aggregate_by_time(records, _week_key)


def aggregate_by_month(records: Iterable[ChartableRecord]) -> List[ChartSeries]:
    return _aggregate_by_time(records, _month_key)


# -------------------------
# Categorical aggregation
# -------------------------


def aggregate_by_key(
    records: Iterable[ChartableRecord],
    key_selector: KeySelector,
    *,
    sort_key: Optional[Callable[[str], Any]] = None,
    unknown_label: str = UNKNOWN_LABEL,
) -> List[ChartDataPoint]:
    """Group records by ``key_selector`` with one point per (bucket, currency).

    Buckets are ordered by name, or by ``sort_key`` when given (ties keep
    name order). Within a bucket, points are ordered by currency code.
    """
    grouped: Dict[str, Dict[str, _Bucket]] = {}
    for record in records:
        value = key_selector(record)
        name = unknown_label if value is None or value == "" else str(value)
        grouped.setdefault(name, {}).setdefault(record.currency, _Bucket()).add(record.amount)

    names = sorted(grouped.keys())
    if sort_key is not None:
        names = sorted(names, key=sort_key)

    chart_data: List[ChartDataPoint] = []
    for name in names:
        by_currency = grouped[name]
        for currency in sorted(by_currency.keys()):
            chart_data.append(by_currency[currency].point(name, currency))
    return chart_data


def aggregate_by_status(records: Iterable[ChartableRecord]) -> List[ChartDataPoint]:
    return aggregate_by_key(records, lambda r: r.status)


def aggregate_by_channel(records: Iterable[ChartableRecord]) -> List[ChartDataPoint]:
    # Only the fetched page window is grouped; large merchants may be under-represented.
    return aggregate_by_key(records, lambda r: r.channel)


def aggregate_by_type(records: Iterable[ChartableRecord]) -> List[ChartDataPoint]:
    return aggregate_by_key(records, lambda r: r.type)


def aggregate_by_category(records: Iterable[ChartableRecord]) -> List[ChartDataPoint]:
    return aggregate_by_key(records, lambda r: r.category)


def aggregate_by_resolution(records: Iterable[ChartableRecord]) -> List[ChartDataPoint]:
    return aggregate_by_key(records, lambda r: r.resolution)


TIME_AGGREGATORS: Dict[str, Callable[[Iterable[ChartableRecord]], List[ChartSeries]]] = {
    "by-day": aggregate_by_day,
    "by-hour": aggregate_by_hour,
    "by-week": aggregate_by_week,
    "by-month": aggregate_by_month,
}

CATEGORICAL_AGGREGATORS: Dict[str, Callable[[Iterable[ChartableRecord]], List[ChartDataPoint]]] = {
    "by-status": aggregate_by_status,
    "by-channel": aggregate_by_channel,
    "by-type": aggregate_by_type,
    "by-category": aggregate_by_category,
    "by-resolution": aggregate_by_resolution,
}


def aggregate_records(records: Iterable[ChartableRecord], aggregation_type: str) -> AggregationResult:
    records = list(records)
    if aggregation_type in TIME_AGGREGATORS:
        return AggregationResult(chart_series=TIME_AGGREGATORS[aggregation_type](records))
    if aggregation_type in CATEGORICAL_AGGREGATORS:
        return AggregationResult(chart_data=CATEGORICAL_AGGREGATORS[aggregation_type](records))
    raise ChartConfigurationError(f"Unknown aggregation type: {aggregation_type}")


# -------------------------
# Summary
# -------------------------


def format_display_date(value: str) -> str:
    ts = parse_timestamp(value)
    if ts is None:
        return value
    return f"{ts.strftime('%b')} {ts.day}, {ts.year}"


def calculate_summary(
    records: Iterable[ChartableRecord],
    date_range: Optional[Tuple[Optional[str], Optional[str]]] = None,
) -> ChartSummary:
    records = list(records)
    per_currency: List[CurrencySummary] = []
    for currency, group in sorted(_group_by_currency(records).items()):
        bucket = _Bucket()
        for record in group:
            bucket.add(record.amount)
        point = bucket.point(currency, currency)
        per_currency.append(
            CurrencySummary(
                currency=currency,
                total_count=point.count,
                total_volume=point.volume,
                overall_average=point.average,
            )
        )

    if len(per_currency) == 1:
        total_volume: Optional[float] = per_currency[0].total_volume
        overall_average: Optional[float] = per_currency[0].overall_average
    elif len(per_currency) > 1:
        total_volume = None
        overall_average = None
    else:
        total_volume = 0
        overall_average = 0

    range_label = None
    if date_range is not None:
        start, end = date_range
        if start or end:
            range_label = DateRangeLabel(
                start=format_display_date(start) if start else "N/A",
                end=format_display_date(end) if end else "N/A",
            )

    return ChartSummary(
        total_count=len(records),
        total_volume=total_volume,
        overall_average=overall_average,
        per_currency=per_currency,
        date_range=range_label,
    )


__all__ = [
    "AggregationResult",
    "ChartDataPoint",
    "ChartSeries",
    "ChartSummary",
    "CurrencySummary",
    "DateRangeLabel",
    "aggregate_by_category",
    "aggregate_by_channel",
    "aggregate_by_day",
    "aggregate_by_hour",
    "aggregate_by_key",
    "aggregate_by_month",
    "aggregate_by_resolution",
    "aggregate_by_status",
    "aggregate_by_type",
    "aggregate_by_week",
    "aggregate_records",
    "calculate_summary",
    "drop_undated",
    "format_display_date",
    "parse_timestamp",
]
