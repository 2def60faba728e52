from __future__ import annotations

import json
from typing import Any, Dict, Iterator, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from backend.app.analytics.validation import validate_chart_params
from backend.app.api.deps import get_auth_token, get_chart_cache, get_fetcher
from backend.app.integrations.base import PageFetcher
from backend.app.services.chart_cache_service import ChartCacheService
from backend.app.services.chart_generation_service import ChartConfig, generate_chart_data

router = APIRouter(prefix="/api/charts", tags=["charts"])


class ChartDataOut(BaseModel):
    success: bool
    label: str
    chartType: str
    chartData: Optional[List[Dict[str, Any]]] = None
    chartSeries: Optional[List[Dict[str, Any]]] = None
    summary: Dict[str, Any]
    message: str
    cached: bool


class CacheInvalidationOut(BaseModel):
    chart_id: str
    deleted: int
    ok: bool


def _chart_config(
    resource_type: str = Query(...),
    aggregation_type: str = Query(...),
    start: Optional[str] = Query(None, alias="from"),
    end: Optional[str] = Query(None, alias="to"),
    status: Optional[str] = Query(None),
    currency: Optional[str] = Query(None),
    channel: Optional[str] = Query(None),
) -> ChartConfig:
    return ChartConfig(
        resource_type=resource_type.strip().lower(),
        aggregation_type=aggregation_type.strip().lower(),
        start=start or None,
        end=end or None,
        status=status or None,
        currency=currency.strip().upper() if currency else None,
        channel=channel or None,
    )


def _require_valid(config: ChartConfig) -> None:
    result = validate_chart_params(
        resource_type=config.resource_type,
        aggregation_type=config.aggregation_type,
        status=config.status,
        channel=config.channel,
        start=config.start,
        end=config.end,
    )
    if not result.ok:
        raise HTTPException(status_code=400, detail={"code": result.code, "message": result.error})


@router.get("/generate")
def stream_chart(
    config: ChartConfig = Depends(_chart_config),
    auth_token: str = Depends(get_auth_token),
    fetcher: PageFetcher = Depends(get_fetcher),
):
    def frames() -> Iterator[str]:
        for state in generate_chart_data(config, fetcher, auth_token):
            yield json.dumps(state.to_dict()) + "\n"

    return StreamingResponse(frames(), media_type="application/x-ndjson")


@router.get("/{chart_id}/data", response_model=ChartDataOut)
def get_chart_data(
    chart_id: str,
    config: ChartConfig = Depends(_chart_config),
    auth_token: str = Depends(get_auth_token),
    fetcher: PageFetcher = Depends(get_fetcher),
    cache: ChartCacheService = Depends(get_chart_cache),
):
    _require_valid(config)
    result = cache.get_or_generate(chart_id, config, fetcher, auth_token)
    if result.error is not None:
        status_code = 502 if result.error.code in {"upstream_error", "processing_error"} else 400
        raise HTTPException(
            status_code=status_code,
            detail={"code": result.error.code, "message": result.error.error},
        )
    return ChartDataOut(**result.payload, cached=result.cached)


@router.delete("/{chart_id}/cache", response_model=CacheInvalidationOut)
def invalidate_chart_cache(
    chart_id: str,
    cache: ChartCacheService = Depends(get_chart_cache),
):
    outcome = cache.invalidate_chart(chart_id)
    deleted = int((outcome.value or {}).get("deleted", 0))
    return CacheInvalidationOut(chart_id=chart_id, deleted=deleted, ok=outcome.ok)
