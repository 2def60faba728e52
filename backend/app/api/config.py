from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_PAYSTACK_BASE_URL = "https://api.paystack.co"
DEFAULT_CACHE_TTL_SECONDS = 3 * 60 * 60


def paystack_base_url() -> str:
    return (os.getenv("PAYSTACK_BASE_URL") or DEFAULT_PAYSTACK_BASE_URL).rstrip("/")


def paystack_timeout_seconds() -> float:
    raw = os.getenv("PAYSTACK_TIMEOUT_SECONDS")
    if not raw:
        return 20.0
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring invalid PAYSTACK_TIMEOUT_SECONDS=%r", raw)
        return 20.0


def paystack_use_stub() -> bool:
    return os.getenv("PAYSTACK_USE_STUB", "").strip().lower() == "true"


def chart_cache_backend() -> str:
    return (os.getenv("CHART_CACHE_BACKEND") or "memory").strip().lower()


def chart_cache_ttl_seconds() -> int:
    raw = os.getenv("CHART_CACHE_TTL_SECONDS")
    if not raw:
        return DEFAULT_CACHE_TTL_SECONDS
    try:
        ttl = int(raw)
    except ValueError:
        logger.warning("Ignoring invalid CHART_CACHE_TTL_SECONDS=%r", raw)
        return DEFAULT_CACHE_TTL_SECONDS
    if ttl <= 0:
        logger.warning("CHART_CACHE_TTL_SECONDS must be positive; got %s", ttl)
        return DEFAULT_CACHE_TTL_SECONDS
    return ttl
