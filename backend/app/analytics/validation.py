from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from backend.app.analytics.core import parse_timestamp
from backend.app.analytics.errors import ChartConfigurationError, ChartErrorCode, DateRangeError
from backend.app.analytics.resources import (
    PAYMENT_CHANNELS,
    RESOURCE_TYPES,
    STATUS_VALUES,
    VALID_AGGREGATIONS,
    is_valid_aggregation,
)

MAX_DATE_RANGE_DAYS = 30


@dataclass(frozen=True)
class ChartValidationResult:
    ok: bool
    error: Optional[str] = None
    code: Optional[ChartErrorCode] = None
    days: Optional[int] = None


def _utc_day_span(start: datetime, end: datetime) -> int:
    return abs((end.date() - start.date()).days)


def check_date_range(
    start: Optional[str],
    end: Optional[str],
    *,
    now: Optional[datetime] = None,
    max_days: int = MAX_DATE_RANGE_DAYS,
) -> Optional[int]:
    """
    Raise DateRangeError when the range is unparseable, inverted or too long.

    Only a two-sided range can be inverted; a single bound is measured
    against ``now``. Spans are counted in whole UTC calendar days. Returns
    the span, or None when no bound is set.
    """
    if not start and not end:
        return None

    start_at = parse_timestamp(start) if start else None
    if start and start_at is None:
        raise DateRangeError(
            f"Invalid 'from' date format: {start}. Please use ISO 8601 format (e.g., 2024-01-01)"
        )
    end_at = parse_timestamp(end) if end else None
    if end and end_at is None:
        raise DateRangeError(
            f"Invalid 'to' date format: {end}. Please use ISO 8601 format (e.g., 2024-01-01)"
        )

    if start_at is not None and end_at is not None:
        if start_at > end_at:
            raise DateRangeError("The 'from' date cannot be after the 'to' date")
        days = _utc_day_span(start_at, end_at)
    else:
        # one-sided: measure from the given bound to now, in either direction
        current = now or datetime.now(timezone.utc)
        if current.tzinfo is None:
            current = current.replace(tzinfo=timezone.utc)
        days = _utc_day_span(start_at or end_at, current)

    if days > max_days:
        raise DateRangeError(
            f"Date range exceeds the maximum allowed period of {max_days} days. "
            f"The requested range is {days} days. Please narrow your date range.",
            days=days,
        )
    return days


def check_chart_params(
    *,
    resource_type: str,
    aggregation_type: str,
    status: Optional[str] = None,
    channel: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Optional[int]:
    if resource_type not in RESOURCE_TYPES:
        raise ChartConfigurationError(
            f"Invalid resource type '{resource_type}'. Valid options are: {', '.join(RESOURCE_TYPES)}",
            code="invalid_resource_type",
        )

    if not is_valid_aggregation(resource_type, aggregation_type):
        raise ChartConfigurationError(
            f"Invalid aggregation type '{aggregation_type}' for resource type '{resource_type}'. "
            f"Valid options are: {', '.join(VALID_AGGREGATIONS[resource_type])}",
            code="invalid_aggregation_type",
        )

    if status and status not in STATUS_VALUES[resource_type]:
        raise ChartConfigurationError(
            f"Invalid status '{status}' for resource type '{resource_type}'. "
            f"Valid options are: {', '.join(STATUS_VALUES[resource_type])}",
            code="invalid_status",
        )

    if channel:
        if resource_type != "transaction":
            raise ChartConfigurationError(
                "Channel filter is only supported for transactions. "
                f"Received resource type '{resource_type}'.",
                code="invalid_aggregation_type",
            )
        if channel not in PAYMENT_CHANNELS:
            raise ChartConfigurationError(
                f"Invalid channel '{channel}'. Valid options are: {', '.join(PAYMENT_CHANNELS)}",
                code="invalid_channel",
            )

    return check_date_range(start, end, now=now)


def validate_chart_params(
    *,
    resource_type: str,
    aggregation_type: str,
    status: Optional[str] = None,
    channel: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ChartValidationResult:
    """Run every pre-fetch check and report the first failure as a result."""
    try:
        days = check_chart_params(
            resource_type=resource_type,
            aggregation_type=aggregation_type,
            status=status,
            channel=channel,
            start=start,
            end=end,
            now=now,
        )
    except ChartConfigurationError as exc:
        return ChartValidationResult(ok=False, error=str(exc), code=exc.code)
    except DateRangeError as exc:
        return ChartValidationResult(ok=False, error=str(exc), code=exc.code, days=exc.days)
    return ChartValidationResult(ok=True, days=days)
