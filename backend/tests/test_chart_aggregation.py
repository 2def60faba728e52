import time

import pytest

from backend.app.analytics.core import (
    aggregate_by_category,
    aggregate_by_channel,
    aggregate_by_day,
    aggregate_by_hour,
    aggregate_by_key,
    aggregate_by_month,
    aggregate_by_resolution,
    aggregate_by_status,
    aggregate_by_type,
    aggregate_by_week,
    aggregate_records,
    calculate_summary,
    drop_undated,
    parse_timestamp,
)
from backend.app.analytics.errors import ChartConfigurationError
from backend.tests.chart_helpers import record


def test_aggregate_by_day_single_bucket_example():
    records = [
        record(1000, "2024-12-10T09:00:00Z"),
        record(2000, "2024-12-10T12:30:00Z"),
        record(1500, "2024-12-10T18:45:00Z"),
    ]

    series = aggregate_by_day(records)

    assert len(series) == 1
    assert series[0].currency == "NGN"
    assert [p.to_dict() for p in series[0].points] == [
        {"name": "Tuesday, Dec 10", "count": 3, "volume": 4500, "average": 1500, "currency": "NGN"}
    ]


def test_aggregate_by_day_is_chronological_across_days():
    records = [
        record(300, "2024-12-12T10:00:00Z"),
        record(100, "2024-12-10T10:00:00Z"),
        record(200, "2024-12-11T10:00:00Z"),
    ]

    points = aggregate_by_day(records)[0].points

    assert [p.name for p in points] == ["Tuesday, Dec 10", "Wednesday, Dec 11", "Thursday, Dec 12"]
    assert [p.volume for p in points] == [100, 200, 300]


@pytest.mark.parametrize("tz_name", ["UTC", "America/Los_Angeles", "Asia/Tokyo"])
def test_aggregate_by_day_uses_utc_regardless_of_local_timezone(monkeypatch, tz_name):
    if not hasattr(time, "tzset"):
        pytest.skip("tzset unavailable on this platform")
    monkeypatch.setenv("TZ", tz_name)
    time.tzset()
    try:
        records = [
            record(1000, "2024-12-10T00:15:00Z"),
            record(1000, "2024-12-10T23:30:00Z"),
            record(1000, "2024-12-10T23:30:00+00:00"),
        ]
        points = aggregate_by_day(records)[0].points
    finally:
        monkeypatch.delenv("TZ", raising=False)
        time.tzset()

    assert len(points) == 1
    assert points[0].name == "Tuesday, Dec 10"
    assert points[0].count == 3


def test_aggregate_by_day_converts_offsets_to_utc():
    # 2024-12-11T01:00+02:00 is 23:00 UTC on Dec 10
    points = aggregate_by_day([record(500, "2024-12-11T01:00:00+02:00")])[0].points

    assert points[0].name == "Tuesday, Dec 10"


def test_aggregate_by_hour_formats_and_sorts_hours():
    records = [
        record(100, "2024-12-10T20:10:00Z"),
        record(100, "2024-12-10T08:05:00Z"),
        record(100, "2024-12-11T08:59:00Z"),
        record(100, "2024-12-10T14:00:00Z"),
    ]

    points = aggregate_by_hour(records)[0].points

    assert [p.name for p in points] == ["08:00", "14:00", "20:00"]
    assert [p.count for p in points] == [2, 1, 1]


def test_aggregate_by_week_uses_iso_week_year_at_year_boundary():
    points = aggregate_by_week([record(1000, "2024-12-31T10:00:00Z")])[0].points

    assert points[0].name == "2025-W01"


def test_aggregate_by_week_groups_monday_through_sunday():
    records = [
        record(100, "2024-12-09T00:00:00Z"),  # Monday
        record(100, "2024-12-15T23:59:00Z"),  # Sunday
        record(100, "2024-12-16T00:00:00Z"),  # next Monday
    ]

    points = aggregate_by_week(records)[0].points

    assert [(p.name, p.count) for p in points] == [("2024-W50", 2), ("2024-W51", 1)]


def test_aggregate_by_week_early_january_can_belong_to_previous_year():
    # Jan 1 2021 is a Friday, so it sits in ISO week 53 of 2020
    points = aggregate_by_week([record(100, "2021-01-01T12:00:00Z")])[0].points

    assert points[0].name == "2020-W53"


def test_aggregate_by_month_sorts_chronologically():
    records = [
        record(300, "2024-12-01T10:00:00Z"),
        record(100, "2024-10-15T10:00:00Z"),
        record(200, "2024-11-30T23:59:59Z"),
    ]

    points = aggregate_by_month(records)[0].points

    assert [(p.name, p.volume) for p in points] == [("2024-10", 100), ("2024-11", 200), ("2024-12", 300)]


def test_time_aggregation_splits_one_series_per_currency():
    records = [
        record(1000, "2024-12-10T10:00:00Z", currency="USD"),
        record(3000, "2024-12-10T11:00:00Z", currency="NGN"),
        record(5000, "2024-12-11T11:00:00Z", currency="NGN"),
    ]

    series = aggregate_by_day(records)

    assert [s.currency for s in series] == ["NGN", "USD"]
    assert [p.volume for p in series[0].points] == [3000, 5000]
    assert [p.volume for p in series[1].points] == [1000]


def test_time_aggregation_skips_unparseable_timestamps():
    records = [record(1000, "not-a-date"), record(2000, "2024-12-10T10:00:00Z")]

    points = aggregate_by_month(records)[0].points

    assert [(p.name, p.count) for p in points] == [("2024-12", 1)]


def test_empty_input_produces_no_series_or_points():
    assert aggregate_by_day([]) == []
    assert aggregate_by_status([]) == []


def test_average_is_computed_from_totals_and_rounded():
    records = [record(100, "2024-12-10T10:00:00Z"), record(100, "2024-12-10T10:00:00Z"), record(101, "2024-12-10T10:00:00Z")]

    point = aggregate_by_day(records)[0].points[0]

    assert point.volume == 301
    assert point.average == 100.33


def test_aggregate_by_status_sorts_names_lexicographically():
    records = [
        record(100, "2024-12-10T10:00:00Z", status="success"),
        record(200, "2024-12-10T10:00:00Z", status="failed"),
        record(300, "2024-12-10T10:00:00Z", status="abandoned"),
        record(400, "2024-12-10T10:00:00Z", status="success"),
    ]

    data = aggregate_by_status(records)

    assert [p.name for p in data] == ["abandoned", "failed", "success"]
    success = data[-1]
    assert (success.count, success.volume, success.average) == (2, 500, 250)


def test_aggregate_by_key_splits_mixed_currencies_within_a_bucket():
    records = [
        record(1000, "2024-12-10T10:00:00Z", status="a", currency="USD"),
        record(2000, "2024-12-10T10:00:00Z", status="a", currency="NGN"),
        record(4000, "2024-12-10T10:00:00Z", status="a", currency="NGN"),
    ]

    data = aggregate_by_key(records, lambda r: r.status)

    assert [p.to_dict() for p in data] == [
        {"name": "a", "count": 2, "volume": 6000, "average": 3000, "currency": "NGN"},
        {"name": "a", "count": 1, "volume": 1000, "average": 1000, "currency": "USD"},
    ]


def test_aggregate_by_key_order_is_independent_of_input_order():
    records = [
        record(100, "2024-12-10T10:00:00Z", status="b", currency="USD"),
        record(200, "2024-12-10T10:00:00Z", status="a"),
        record(300, "2024-12-10T10:00:00Z", status="c"),
        record(400, "2024-12-10T10:00:00Z", status="b"),
    ]

    forward = aggregate_by_key(records, lambda r: r.status)
    backward = aggregate_by_key(list(reversed(records)), lambda r: r.status)

    assert forward == backward
    assert [(p.name, p.currency) for p in forward] == [("a", "NGN"), ("b", "NGN"), ("b", "USD"), ("c", "NGN")]


def test_aggregate_by_key_custom_sort_key():
    records = [
        record(100, "2024-12-10T10:00:00Z", status="a"),
        record(900, "2024-12-10T10:00:00Z", status="b"),
    ]
    order = {"b": 0, "a": 1}

    data = aggregate_by_key(records, lambda r: r.status, sort_key=order.__getitem__)

    assert [p.name for p in data] == ["b", "a"]


def test_aggregate_by_key_missing_values_use_unknown_label():
    records = [record(100, "2024-12-10T10:00:00Z", channel=None)]

    assert aggregate_by_channel(records)[0].name == "unknown"
    assert aggregate_by_key(records, lambda r: r.channel, unknown_label="unresolved")[0].name == "unresolved"


def test_resource_specific_categorical_aggregations():
    refunds = [
        record(100, "2024-12-10T10:00:00Z", type="full"),
        record(50, "2024-12-10T10:00:00Z", type="partial"),
        record(70, "2024-12-10T10:00:00Z", type="partial"),
    ]
    disputes = [
        record(100, "2024-12-10T10:00:00Z", category="fraud", resolution=None),
        record(300, "2024-12-10T10:00:00Z", category="chargeback", resolution="declined"),
    ]

    assert [(p.name, p.count) for p in aggregate_by_type(refunds)] == [("full", 1), ("partial", 2)]
    assert [p.name for p in aggregate_by_category(disputes)] == ["chargeback", "fraud"]
    assert [p.name for p in aggregate_by_resolution(disputes)] == ["declined", "unknown"]


def test_aggregate_records_routes_time_vs_categorical():
    records = [record(100, "2024-12-10T10:00:00Z")]

    timed = aggregate_records(records, "by-month")
    categorical = aggregate_records(records, "by-status")

    assert timed.chart_series is not None and timed.chart_data is None
    assert categorical.chart_data is not None and categorical.chart_series is None
    assert timed.data_point_count == 1
    assert categorical.data_point_count == 1


def test_aggregate_records_rejects_unknown_aggregation():
    with pytest.raises(ChartConfigurationError):
        aggregate_records([], "by-minute")


def test_parse_timestamp_accepts_any_fraction_precision():
    assert parse_timestamp("2024-12-10T10:00:00.1Z").microsecond == 100000
    assert parse_timestamp("2024-12-10T10:00:00.12345Z").microsecond == 123450
    assert parse_timestamp("2024-12-10T10:00:00.123456789+00:00").microsecond == 123456
    assert parse_timestamp("2024-12-10") is not None
    assert parse_timestamp("10/12/2024") is None


def test_drop_undated_keeps_series_and_summary_in_step():
    records = [
        record(100, "2024-12-10T10:00:00Z"),
        record(100, "2024-12-10T12:00:00.5Z"),
        record(100, "garbage"),
    ]

    dated = drop_undated(records)

    assert len(dated) == 2
    series_total = sum(p.count for s in aggregate_by_day(dated) for p in s.points)
    assert series_total == calculate_summary(dated).total_count == 2
