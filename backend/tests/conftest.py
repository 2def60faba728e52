import os
import pathlib
import sys

import pytest


REPO_ROOT = pathlib.Path(__file__).resolve().parents[2]
sys.path.append(str(REPO_ROOT))


def pytest_configure():
    os.environ.setdefault("CHART_CACHE_BACKEND", "memory")
    os.environ.setdefault("PAYSTACK_USE_STUB", "false")


@pytest.fixture()
def memory_cache():
    from backend.app.services.chart_cache_service import ChartCacheService
    from backend.app.services.chart_cache_store import InMemoryCacheStore

    return ChartCacheService(InMemoryCacheStore(), ttl_seconds=60)


@pytest.fixture()
def sqlite_session_factory():
    from sqlalchemy import create_engine
    from sqlalchemy.orm import sessionmaker
    from sqlalchemy.pool import StaticPool

    from backend.app.db import Base
    from backend.app.models import ChartCacheEntry

    engine = create_engine(
        "sqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine, tables=[ChartCacheEntry.__table__])
    yield sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture()
def api_client(memory_cache):
    from fastapi.testclient import TestClient

    from backend.app.api.deps import get_chart_cache, get_fetcher
    from backend.app.main import app
    from backend.tests.chart_helpers import FakeFetcher, make_transaction

    fetcher = FakeFetcher(
        [make_transaction(1000 + i, f"2024-12-{10 + (i % 3):02d}T10:00:00Z") for i in range(30)]
    )
    app.dependency_overrides[get_fetcher] = lambda: fetcher
    app.dependency_overrides[get_chart_cache] = lambda: memory_cache
    client = TestClient(app)
    client.fetcher = fetcher
    try:
        yield client
    finally:
        app.dependency_overrides.pop(get_fetcher, None)
        app.dependency_overrides.pop(get_chart_cache, None)
