from __future__ import annotations

from fastapi import APIRouter
from pydantic import BaseModel

from backend.app.api.config import chart_cache_backend, paystack_use_stub

router = APIRouter(tags=["system"])


class HealthOut(BaseModel):
    status: str
    cache_backend: str
    upstream: str


@router.get("/health", response_model=HealthOut)
def get_health():
    return HealthOut(
        status="ok",
        cache_backend=chart_cache_backend(),
        upstream="stub" if paystack_use_stub() else "paystack",
    )
