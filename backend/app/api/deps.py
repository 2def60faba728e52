# backend/app/api/deps.py
from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException

from backend.app.integrations import get_page_fetcher
from backend.app.integrations.base import PageFetcher
from backend.app.services.chart_cache_service import ChartCacheService
from backend.app.services.chart_cache_store import build_cache_store

_CACHE_SERVICE: Optional[ChartCacheService] = None


def get_auth_token(authorization: Optional[str] = Header(default=None)) -> str:
    """
    Bearer token forwarded to the payments API on every page request.
    """
    if not authorization:
        raise HTTPException(status_code=401, detail="Missing Authorization header")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise HTTPException(status_code=401, detail="Authorization header must be 'Bearer <token>'")
    return token.strip()


def get_fetcher() -> PageFetcher:
    return get_page_fetcher()


def get_chart_cache() -> ChartCacheService:
    global _CACHE_SERVICE
    if _CACHE_SERVICE is None:
        _CACHE_SERVICE = ChartCacheService(build_cache_store())
    return _CACHE_SERVICE
