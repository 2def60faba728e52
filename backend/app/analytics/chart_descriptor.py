from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Literal

from backend.app.analytics.errors import ChartConfigurationError
from backend.app.analytics.resources import get_resource_display_name

ChartType = Literal["line", "area", "bar", "doughnut", "pie"]

CHART_TYPES: Dict[str, ChartType] = {
    "by-day": "area",
    "by-hour": "bar",
    "by-week": "area",
    "by-month": "area",
    "by-status": "doughnut",
    "by-channel": "doughnut",
    "by-type": "doughnut",
    "by-category": "doughnut",
    "by-resolution": "doughnut",
}

_TIME_LABEL_PREFIX = {
    "by-day": "Daily",
    "by-hour": "Hourly",
    "by-week": "Weekly",
    "by-month": "Monthly",
}

_DIMENSION_NAMES = {
    "by-status": "Status",
    "by-channel": "Channel",
    "by-type": "Type",
    "by-category": "Category",
    "by-resolution": "Resolution",
}


@dataclass(frozen=True)
class ChartDescriptor:
    chart_type: ChartType
    label: str


def get_chart_type(aggregation_type: str) -> ChartType:
    chart_type = CHART_TYPES.get(aggregation_type)
    if chart_type is None:
        raise ChartConfigurationError(f"Unknown aggregation type: {aggregation_type}")
    return chart_type


def generate_chart_label(aggregation_type: str, resource_type: str = "transaction") -> str:
    name = get_resource_display_name(resource_type)
    if aggregation_type in _TIME_LABEL_PREFIX:
        return f"{_TIME_LABEL_PREFIX[aggregation_type]} {name} Metrics"
    if aggregation_type in _DIMENSION_NAMES:
        return f"{name} Metrics by {_DIMENSION_NAMES[aggregation_type]}"
    raise ChartConfigurationError(f"Unknown aggregation type: {aggregation_type}")


def describe_chart(aggregation_type: str, resource_type: str = "transaction") -> ChartDescriptor:
    return ChartDescriptor(
        chart_type=get_chart_type(aggregation_type),
        label=generate_chart_label(aggregation_type, resource_type),
    )
