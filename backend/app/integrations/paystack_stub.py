from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

from backend.app.analytics.resources import API_ENDPOINTS, PAYMENT_CHANNELS, STATUS_VALUES
from backend.app.integrations.base import PageResponse, QueryParams

_ENDPOINT_RESOURCES = {endpoint: resource for resource, endpoint in API_ENDPOINTS.items()}
_ANCHOR = datetime(2024, 1, 15, 12, 0, tzinfo=timezone.utc)
_CURRENCIES = ("NGN", "NGN", "NGN", "USD")
_REFUND_TYPES = ("full", "partial")
_DISPUTE_CATEGORIES = ("fraud", "chargeback")
_DISPUTE_RESOLUTIONS = (None, "merchant-accepted", "declined", "auto-accepted")


def _sample_record(resource: str, idx: int) -> Dict[str, Any]:
    created_at = (_ANCHOR - timedelta(hours=idx * 7)).isoformat().replace("+00:00", "Z")
    amount = 5_000 + (idx * 1_250) % 40_000
    currency = _CURRENCIES[idx % len(_CURRENCIES)]
    statuses = STATUS_VALUES[resource]
    status = statuses[idx % len(statuses)]

    if resource == "transaction":
        return {
            "id": 1_000 + idx,
            "amount": amount,
            "currency": currency,
            "createdAt": created_at,
            "status": status,
            "channel": PAYMENT_CHANNELS[idx % 4],
        }
    if resource == "refund":
        return {
            "id": 2_000 + idx,
            "amount": amount,
            "currency": currency,
            "refunded_at": created_at,
            "createdAt": created_at,
            "status": status,
            "refund_type": _REFUND_TYPES[idx % len(_REFUND_TYPES)],
        }
    if resource == "payout":
        return {
            "id": 3_000 + idx,
            "total_amount": amount * 10,
            "currency": currency,
            "createdAt": created_at,
            "status": status,
        }
    return {
        "id": 4_000 + idx,
        "refund_amount": amount,
        "currency": currency,
        "createdAt": created_at,
        "status": status,
        "category": _DISPUTE_CATEGORIES[idx % len(_DISPUTE_CATEGORIES)],
        "resolution": _DISPUTE_RESOLUTIONS[idx % len(_DISPUTE_RESOLUTIONS)],
    }


class PaystackStubClient:
    """Offline page fetcher with deterministic sample records per resource."""

    def __init__(self, *, records_per_resource: int = 240):
        self.records_per_resource = records_per_resource
        self.calls: List[Dict[str, Any]] = []

    def _records(self, resource: str) -> List[Dict[str, Any]]:
        return [_sample_record(resource, idx) for idx in range(self.records_per_resource)]

    def fetch_page(self, endpoint: str, auth_token: str, params: QueryParams) -> PageResponse:
        _ = auth_token
        self.calls.append({"endpoint": endpoint, "params": dict(params)})
        resource = _ENDPOINT_RESOURCES.get(endpoint)
        if resource is None:
            raise ValueError(f"unsupported endpoint: {endpoint}")

        rows = self._records(resource)
        status = params.get("status")
        currency = params.get("currency")
        channel = params.get("channel")
        if status:
            rows = [r for r in rows if r.get("status") == status]
        if currency:
            rows = [r for r in rows if r.get("currency") == currency]
        if channel:
            rows = [r for r in rows if r.get("channel") == channel]

        per_page = int(params.get("perPage") or 50)
        page = int(params.get("page") or 1)
        start = (page - 1) * per_page
        chunk = rows[start : start + per_page]
        return PageResponse(
            data=chunk,
            meta={"total": len(rows), "page": page, "perPage": per_page},
        )
