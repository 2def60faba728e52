from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import DateTime, Index, JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from backend.app.db import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ChartCacheEntry(Base):
    """
    One cached terminal chart payload, keyed by ``chart:<chartId>:<hash>``.
    """
    __tablename__ = "chart_cache_entries"

    key: Mapped[str] = mapped_column(String(200), primary_key=True)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    __table_args__ = (Index("ix_chart_cache_entries_expires_at", "expires_at"),)
