from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Literal, Mapping, Optional, Tuple

from backend.app.analytics.errors import ChartConfigurationError

logger = logging.getLogger(__name__)

ResourceType = Literal["transaction", "refund", "payout", "dispute"]
AggregationType = Literal[
    "by-day",
    "by-hour",
    "by-week",
    "by-month",
    "by-status",
    "by-channel",
    "by-type",
    "by-category",
    "by-resolution",
]

RESOURCE_TYPES: Tuple[str, ...] = ("transaction", "refund", "payout", "dispute")

TIME_AGGREGATIONS: Tuple[str, ...] = ("by-day", "by-hour", "by-week", "by-month")
CATEGORICAL_AGGREGATIONS: Tuple[str, ...] = (
    "by-status",
    "by-channel",
    "by-type",
    "by-category",
    "by-resolution",
)

VALID_AGGREGATIONS: Dict[str, Tuple[str, ...]] = {
    "transaction": (*TIME_AGGREGATIONS, "by-status", "by-channel"),
    "refund": (*TIME_AGGREGATIONS, "by-status", "by-type"),
    "payout": (*TIME_AGGREGATIONS, "by-status"),
    "dispute": (*TIME_AGGREGATIONS, "by-status", "by-category", "by-resolution"),
}

STATUS_VALUES: Dict[str, Tuple[str, ...]] = {
    "transaction": ("success", "failed", "abandoned"),
    "refund": ("pending", "failed", "processed", "processing", "retriable"),
    "payout": ("success", "computing", "pending", "failed", "manualprocessing", "open", "processing"),
    "dispute": ("resolved", "awaiting-merchant-feedback"),
}

PAYMENT_CHANNELS: Tuple[str, ...] = (
    "card",
    "ussd",
    "bank",
    "qr",
    "eft",
    "bank_transfer",
    "mobile_money",
    "direct_debit",
    "debit_order",
    "payattitude",
    "apple_pay",
    "paypal",
    "preauth",
    "capitec_pay",
)

API_ENDPOINTS: Dict[str, str] = {
    "transaction": "/transaction",
    "refund": "/refund",
    "payout": "/settlement",
    "dispute": "/dispute",
}

DISPLAY_NAMES: Dict[str, str] = {
    "transaction": "Transaction",
    "refund": "Refund",
    "payout": "Payout",
    "dispute": "Dispute",
}


@dataclass(frozen=True)
class ChartableRecord:
    amount: int  # minor currency units, never negative
    currency: str
    created_at: str  # ISO-8601
    status: str
    channel: Optional[str] = None
    type: Optional[str] = None
    category: Optional[str] = None
    resolution: Optional[str] = None


RawRecord = Mapping[str, Any]
Accessor = Callable[[RawRecord], Any]


@dataclass(frozen=True)
class ResourceFieldConfig:
    get_amount: Accessor
    get_currency: Accessor
    get_created_at: Accessor
    get_status: Accessor
    get_channel: Optional[Accessor] = None
    get_type: Optional[Accessor] = None
    get_category: Optional[Accessor] = None
    get_resolution: Optional[Accessor] = None


FIELD_CONFIGS: Dict[str, ResourceFieldConfig] = {
    "transaction": ResourceFieldConfig(
        get_amount=lambda t: t.get("amount"),
        get_currency=lambda t: t.get("currency"),
        get_created_at=lambda t: t.get("createdAt") or t.get("created_at"),
        get_status=lambda t: t.get("status"),
        get_channel=lambda t: t.get("channel"),
    ),
    "refund": ResourceFieldConfig(
        get_amount=lambda r: r.get("amount"),
        get_currency=lambda r: r.get("currency"),
        get_created_at=lambda r: r.get("refunded_at") or r.get("createdAt"),
        get_status=lambda r: r.get("status"),
        get_type=lambda r: r.get("refund_type"),
    ),
    "payout": ResourceFieldConfig(
        get_amount=lambda p: p.get("total_amount"),
        get_currency=lambda p: p.get("currency"),
        get_created_at=lambda p: p.get("createdAt") or p.get("created_at"),
        get_status=lambda p: p.get("status"),
    ),
    "dispute": ResourceFieldConfig(
        get_amount=lambda d: d.get("refund_amount"),
        get_currency=lambda d: d.get("currency"),
        get_created_at=lambda d: d.get("createdAt") or d.get("created_at"),
        get_status=lambda d: d.get("status"),
        get_category=lambda d: d.get("category"),
        get_resolution=lambda d: d.get("resolution"),
    ),
}


def get_field_config(resource_type: str) -> ResourceFieldConfig:
    config = FIELD_CONFIGS.get(resource_type)
    if config is None:
        raise ChartConfigurationError(
            f"Unknown resource type: {resource_type}",
            code="invalid_resource_type",
        )
    return config


def get_resource_display_name(resource_type: str) -> str:
    return DISPLAY_NAMES.get(resource_type, str(resource_type).title())


def is_valid_aggregation(resource_type: str, aggregation_type: str) -> bool:
    return aggregation_type in VALID_AGGREGATIONS.get(resource_type, ())


def is_time_aggregation(aggregation_type: str) -> bool:
    return aggregation_type in TIME_AGGREGATIONS


def _amount_subunits(value: Any) -> int:
    try:
        amount = int(value or 0)
    except (TypeError, ValueError):
        logger.warning("Unparseable record amount %r treated as 0", value)
        return 0
    if amount < 0:
        logger.warning("Invariant guard: record amount is negative: %s", amount)
        amount = abs(amount)
    return amount


def _optional(accessor: Optional[Accessor], raw: RawRecord) -> Optional[str]:
    if accessor is None:
        return None
    value = accessor(raw)
    return None if value is None else str(value)


def to_chartable_record(raw: RawRecord, config: ResourceFieldConfig) -> ChartableRecord:
    return ChartableRecord(
        amount=_amount_subunits(config.get_amount(raw)),
        currency=str(config.get_currency(raw) or "").upper(),
        created_at=str(config.get_created_at(raw) or ""),
        status=str(config.get_status(raw) or ""),
        channel=_optional(config.get_channel, raw),
        type=_optional(config.get_type, raw),
        category=_optional(config.get_category, raw),
        resolution=_optional(config.get_resolution, raw),
    )


def to_chartable_records(records: Iterable[RawRecord], resource_type: str) -> List[ChartableRecord]:
    config = get_field_config(resource_type)
    return [to_chartable_record(raw, config) for raw in records]


__all__ = [
    "API_ENDPOINTS",
    "AggregationType",
    "CATEGORICAL_AGGREGATIONS",
    "ChartableRecord",
    "PAYMENT_CHANNELS",
    "RESOURCE_TYPES",
    "ResourceFieldConfig",
    "ResourceType",
    "STATUS_VALUES",
    "TIME_AGGREGATIONS",
    "VALID_AGGREGATIONS",
    "get_field_config",
    "get_resource_display_name",
    "is_time_aggregation",
    "is_valid_aggregation",
    "to_chartable_record",
    "to_chartable_records",
]
