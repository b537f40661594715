from __future__ import annotations

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from metrics_gateway.api import deps
from metrics_gateway.core.config import Settings
from metrics_gateway.factory import create_app
from tests.fakes import FakeMetricRepository


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        _env_file=None,
        env="test",
        debug=True,
        docs_enabled=False,
        cors_origins=["http://localhost"],
        trusted_hosts=["testserver", "localhost"],
        database_url="sqlite+aiosqlite://",
        log_level="DEBUG",
        daily_average_max_days=30,
    )


@pytest.fixture()
def repo() -> FakeMetricRepository:
    return FakeMetricRepository()


@pytest.fixture()
def client(settings: Settings, repo: FakeMetricRepository) -> TestClient:
    app = create_app(settings)
    app.dependency_overrides[deps.get_metric_repository] = lambda: repo
    with TestClient(app) as client:
        yield client


@pytest.fixture()
def day() -> datetime:
    return datetime(2026, 3, 1, tzinfo=timezone.utc)
