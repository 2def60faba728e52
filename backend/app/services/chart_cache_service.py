from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from backend.app.api.config import chart_cache_ttl_seconds
from backend.app.integrations.base import PageFetcher
from backend.app.services.chart_cache_store import CacheStore
from backend.app.services.chart_generation_service import (
    ChartConfig,
    ChartErrorState,
    run_chart_generation,
)

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = "chart"
CACHE_HASH_LENGTH = 12


@dataclass(frozen=True)
class CacheKeyParams:
    chart_id: str
    resource_type: str
    aggregation_type: str
    start: Optional[str] = None
    end: Optional[str] = None
    status: Optional[str] = None
    currency: Optional[str] = None
    channel: Optional[str] = None

    @classmethod
    def from_config(cls, chart_id: str, config: ChartConfig) -> "CacheKeyParams":
        return cls(
            chart_id=chart_id,
            resource_type=config.resource_type,
            aggregation_type=config.aggregation_type,
            start=config.start,
            end=config.end,
            status=config.status,
            currency=config.currency,
            channel=config.channel,
        )

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CacheKeyParams":
        """Accept either wire names (``chartId``, ``from``) or attribute names."""

        def pick(*names: str) -> Optional[str]:
            for name in names:
                value = data.get(name)
                if value is not None:
                    return str(value)
            return None

        return cls(
            chart_id=pick("chartId", "chart_id") or "",
            resource_type=pick("resourceType", "resource_type") or "",
            aggregation_type=pick("aggregationType", "aggregation_type") or "",
            start=pick("from", "start"),
            end=pick("to", "end"),
            status=pick("status"),
            currency=pick("currency"),
            channel=pick("channel"),
        )

    def canonical(self) -> Dict[str, Optional[str]]:
        # absent and empty filters collapse to null
        return {
            "aggregationType": self.aggregation_type,
            "channel": self.channel or None,
            "chartId": self.chart_id,
            "currency": self.currency or None,
            "from": self.start or None,
            "resourceType": self.resource_type,
            "status": self.status or None,
            "to": self.end or None,
        }


def generate_cache_key(params: CacheKeyParams) -> str:
    payload = json.dumps(params.canonical(), sort_keys=True, separators=(",", ":"))
    digest = hashlib.sha256(payload.encode("utf-8")).hexdigest()[:CACHE_HASH_LENGTH]
    return f"{CACHE_KEY_PREFIX}:{params.chart_id}:{digest}"


def chart_cache_pattern(chart_id: str) -> str:
    return f"{CACHE_KEY_PREFIX}:{chart_id}:*"


@dataclass(frozen=True)
class CacheResult:
    ok: bool
    value: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @property
    def hit(self) -> bool:
        return self.ok and self.value is not None


@dataclass(frozen=True)
class CachedChart:
    payload: Dict[str, Any]
    cached: bool
    error: Optional[ChartErrorState] = None


class ChartCacheService:
    """
    Soft-fail cache around chart generation.

    Store failures are logged and reported as CacheResult(ok=False); they
    never raise, so a broken cache only costs a regeneration.
    """

    def __init__(self, store: Optional[CacheStore], *, ttl_seconds: Optional[int] = None):
        self.store = store
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else chart_cache_ttl_seconds()

    def safe_get(self, key: str) -> CacheResult:
        if self.store is None:
            return CacheResult(ok=True)
        try:
            return CacheResult(ok=True, value=self.store.get(key))
        except Exception as exc:
            logger.warning("Cache get failed for key %s: %s", key, exc)
            return CacheResult(ok=False, error=str(exc))

    def safe_set(self, key: str, value: Dict[str, Any]) -> CacheResult:
        if self.store is None:
            return CacheResult(ok=True)
        try:
            self.store.set(key, value, self.ttl_seconds)
        except Exception as exc:
            logger.warning("Cache set failed for key %s: %s", key, exc)
            return CacheResult(ok=False, error=str(exc))
        return CacheResult(ok=True)

    def invalidate_chart(self, chart_id: str) -> CacheResult:
        if self.store is None:
            return CacheResult(ok=True, value={"deleted": 0})
        prefix = chart_cache_pattern(chart_id).rstrip("*")
        try:
            deleted = self.store.delete_prefix(prefix)
        except Exception as exc:
            logger.warning("Cache invalidation failed for chart %s: %s", chart_id, exc)
            return CacheResult(ok=False, error=str(exc))
        return CacheResult(ok=True, value={"deleted": deleted})

    def get_or_generate(
        self,
        chart_id: str,
        config: ChartConfig,
        fetcher: PageFetcher,
        auth_token: Optional[str],
        **kwargs: Any,
    ) -> CachedChart:
        key = generate_cache_key(CacheKeyParams.from_config(chart_id, config))
        lookup = self.safe_get(key)
        if lookup.hit:
            return CachedChart(payload=lookup.value or {}, cached=True)

        final = run_chart_generation(config, fetcher, auth_token, **kwargs)
        if isinstance(final, ChartErrorState):
            return CachedChart(payload=final.to_dict(), cached=False, error=final)

        payload = final.to_dict()
        self.safe_set(key, payload)
        return CachedChart(payload=payload, cached=False)
