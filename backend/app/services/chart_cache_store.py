from __future__ import annotations

import json
import logging
import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Optional, Protocol, Tuple

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from backend.app.api.config import chart_cache_backend
from backend.app.models import ChartCacheEntry

logger = logging.getLogger(__name__)


class CacheStore(Protocol):
    def get(self, key: str) -> Optional[Dict[str, Any]]:
        ...

    def set(self, key: str, value: Dict[str, Any], ttl_seconds: int) -> None:
        ...

    def delete_prefix(self, prefix: str) -> int:
        ...


class InMemoryCacheStore:
    """Process-local TTL store. Values are stored as JSON text so callers never share state.

    Routes run in a threadpool, so every access to the entry map holds the lock.
    Expired entries are purged on each write.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: Dict[str, Tuple[float, str]] = {}
        self._lock = threading.Lock()

    def _purge_expired(self, now: float) -> None:
        expired = [key for key, (expires_at, _text) in self._entries.items() if expires_at <= now]
        for key in expired:
            del self._entries[key]

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, text = entry
            if expires_at <= self._clock():
                self._entries.pop(key, None)
                return None
        return json.loads(text)

    def set(self, key: str, value: Dict[str, Any], ttl_seconds: int) -> None:
        text = json.dumps(value)
        with self._lock:
            now = self._clock()
            self._purge_expired(now)
            self._entries[key] = (now + ttl_seconds, text)

    def delete_prefix(self, prefix: str) -> int:
        with self._lock:
            doomed = [key for key in self._entries if key.startswith(prefix)]
            for key in doomed:
                del self._entries[key]
        return len(doomed)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes even for timezone-aware columns.
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class SqlCacheStore:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    def _session(self) -> Session:
        return self._session_factory()

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        with self._session() as db:
            entry = db.execute(select(ChartCacheEntry).where(ChartCacheEntry.key == key)).scalar_one_or_none()
            if entry is None:
                return None
            if _as_utc(entry.expires_at) <= datetime.now(timezone.utc):
                db.delete(entry)
                db.commit()
                return None
            return dict(entry.payload)

    def set(self, key: str, value: Dict[str, Any], ttl_seconds: int) -> None:
        now = datetime.now(timezone.utc)
        with self._session() as db:
            db.merge(
                ChartCacheEntry(
                    key=key,
                    payload=value,
                    expires_at=now + timedelta(seconds=ttl_seconds),
                    created_at=now,
                )
            )
            db.commit()

    def delete_prefix(self, prefix: str) -> int:
        with self._session() as db:
            result = db.execute(
                delete(ChartCacheEntry).where(
                    ChartCacheEntry.key.like(f"{_escape_like(prefix)}%", escape="\\")
                )
            )
            db.commit()
            return int(result.rowcount or 0)


def build_cache_store(backend: Optional[str] = None) -> Optional[CacheStore]:
    kind = (backend or chart_cache_backend()).strip().lower()
    if kind in {"none", "off", "disabled"}:
        return None
    if kind == "sql":
        from backend.app.db import Base, get_engine, get_session_factory

        Base.metadata.create_all(bind=get_engine(), tables=[ChartCacheEntry.__table__])
        return SqlCacheStore(get_session_factory())
    if kind != "memory":
        logger.warning("Unknown CHART_CACHE_BACKEND=%r; falling back to memory", kind)
    return InMemoryCacheStore()
