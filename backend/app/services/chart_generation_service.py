from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterator, List, Literal, Optional, Union

from backend.app.analytics.chart_descriptor import ChartType, describe_chart
from backend.app.analytics.core import (
    ChartDataPoint,
    ChartSeries,
    ChartSummary,
    aggregate_records,
    calculate_summary,
    drop_undated,
)
from backend.app.analytics.resources import (
    API_ENDPOINTS,
    get_resource_display_name,
    is_time_aggregation,
    to_chartable_records,
)
from backend.app.analytics.validation import validate_chart_params
from backend.app.integrations.base import PageFetcher

logger = logging.getLogger(__name__)

PAGE_SIZE = 100
MAX_PAGES = 10


@dataclass(frozen=True)
class ChartConfig:
    resource_type: str
    aggregation_type: str
    start: Optional[str] = None
    end: Optional[str] = None
    status: Optional[str] = None
    currency: Optional[str] = None
    channel: Optional[str] = None


@dataclass(frozen=True)
class ChartLoadingState:
    label: str
    chart_type: ChartType
    message: str
    kind: Literal["loading"] = "loading"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "loading": True,
            "label": self.label,
            "chartType": self.chart_type,
            "message": self.message,
        }


@dataclass(frozen=True)
class ChartSuccessState:
    label: str
    chart_type: ChartType
    summary: ChartSummary
    message: str
    chart_data: Optional[List[ChartDataPoint]] = None
    chart_series: Optional[List[ChartSeries]] = None
    kind: Literal["success"] = "success"

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "success": True,
            "label": self.label,
            "chartType": self.chart_type,
        }
        if self.chart_series is not None:
            payload["chartSeries"] = [series.to_dict() for series in self.chart_series]
        else:
            payload["chartData"] = [point.to_dict() for point in self.chart_data or []]
        payload["summary"] = self.summary.to_dict()
        payload["message"] = self.message
        return payload


@dataclass(frozen=True)
class ChartErrorState:
    error: str
    code: Optional[str] = None
    kind: Literal["error"] = "error"

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.error}


ChartGenerationState = Union[ChartLoadingState, ChartSuccessState, ChartErrorState]


def build_page_params(config: ChartConfig, *, page: int, per_page: int = PAGE_SIZE) -> Dict[str, Any]:
    params: Dict[str, Any] = {"perPage": per_page, "page": page, "use_cursor": False}
    if config.resource_type == "transaction":
        params["reduced_fields"] = True
        if config.channel:
            params["channel"] = config.channel
    if config.status:
        params["status"] = config.status
    if config.start:
        params["from"] = config.start
    if config.end:
        params["to"] = config.end
    if config.currency:
        params["currency"] = config.currency
    return params


def generate_chart_data(
    config: ChartConfig,
    fetcher: PageFetcher,
    auth_token: Optional[str],
    *,
    page_size: int = PAGE_SIZE,
    max_pages: int = MAX_PAGES,
    now: Optional[datetime] = None,
) -> Iterator[ChartGenerationState]:
    """
    Lazily fetch, aggregate and summarize one chart.

    Yields zero or more ChartLoadingState frames followed by exactly one
    terminal ChartSuccessState or ChartErrorState. Pages are requested one at a
    time; a consumer that stops iterating stops further page requests.
    """
    if not auth_token:
        yield ChartErrorState(
            error="Authentication token not available. Please ensure you are logged in.",
            code="missing_auth_token",
        )
        return

    validation = validate_chart_params(
        resource_type=config.resource_type,
        aggregation_type=config.aggregation_type,
        status=config.status,
        channel=config.channel,
        start=config.start,
        end=config.end,
        now=now,
    )
    if not validation.ok:
        yield ChartErrorState(error=validation.error or "Invalid chart parameters", code=validation.code)
        return

    descriptor = describe_chart(config.aggregation_type, config.resource_type)
    plural = f"{get_resource_display_name(config.resource_type).lower()}s"
    endpoint = API_ENDPOINTS[config.resource_type]
    time_based = is_time_aggregation(config.aggregation_type)

    def loading(message: str) -> ChartLoadingState:
        return ChartLoadingState(label=descriptor.label, chart_type=descriptor.chart_type, message=message)

    yield loading(f"Fetching {plural}...")

    raw_records: List[Dict[str, Any]] = []
    for page in range(1, max_pages + 1):
        params = build_page_params(config, page=page, per_page=page_size)
        try:
            response = fetcher.fetch_page(endpoint, auth_token, params)
        except Exception as exc:
            logger.warning(
                "Chart fetch failed endpoint=%s page=%s error=%s", endpoint, page, exc, exc_info=True
            )
            yield ChartErrorState(
                error=f"Failed to fetch {plural} from the payments API. Please try again later.",
                code="upstream_error",
            )
            return

        page_rows = list(response.data)
        raw_records.extend(page_rows[:page_size])
        yield loading(f"Fetching {plural}... ({len(raw_records)} loaded)")
        if len(page_rows) < page_size:
            break

    date_range = (config.start, config.end)

    def empty_success() -> ChartSuccessState:
        return ChartSuccessState(
            label=descriptor.label,
            chart_type=descriptor.chart_type,
            chart_series=[] if time_based else None,
            chart_data=None if time_based else [],
            summary=calculate_summary([], date_range),
            message=f"No {plural} found for the specified criteria",
        )

    if not raw_records:
        yield empty_success()
        return

    yield loading(f"Processing {len(raw_records)} {plural}...")

    try:
        records = drop_undated(to_chartable_records(raw_records, config.resource_type))
        result = aggregate_records(records, config.aggregation_type)
        summary = calculate_summary(records, date_range)
    except Exception:
        logger.exception(
            "Chart processing failed resource=%s aggregation=%s records=%s",
            config.resource_type,
            config.aggregation_type,
            len(raw_records),
        )
        yield ChartErrorState(
            error=f"Failed to process {plural} into chart data. Please try again later.",
            code="processing_error",
        )
        return

    if not records:
        yield empty_success()
        return

    skipped = len(raw_records) - len(records)
    logger.info(
        "Chart generated resource=%s aggregation=%s records=%s skipped=%s points=%s",
        config.resource_type,
        config.aggregation_type,
        len(records),
        skipped,
        result.data_point_count,
    )
    message = f"Generated chart data with {result.data_point_count} data points from {len(records)} {plural}"
    if skipped:
        message += f" ({skipped} skipped for unreadable dates)"
    yield ChartSuccessState(
        label=descriptor.label,
        chart_type=descriptor.chart_type,
        chart_data=result.chart_data,
        chart_series=result.chart_series,
        summary=summary,
        message=message,
    )


def run_chart_generation(
    config: ChartConfig,
    fetcher: PageFetcher,
    auth_token: Optional[str],
    **kwargs: Any,
) -> Union[ChartSuccessState, ChartErrorState]:
    """Drain the frame sequence and return its terminal state."""
    final: Optional[ChartGenerationState] = None
    for state in generate_chart_data(config, fetcher, auth_token, **kwargs):
        final = state
    if final is None or isinstance(final, ChartLoadingState):
        return ChartErrorState(error="Failed to generate chart data")
    return final
