from __future__ import annotations

from typing import Any

import pytest
from customs_core.config import get_matcher_policy, get_valuation_policy
from customs_core.packs.loader import clear_pack_cache
from fastapi.testclient import TestClient
from customs_api.main import create_app
from customs_api.settings import get_settings

SAMPLE_ROWS = [
    {
        "tracking_guide": "pa-001",
        "recipient": "Ana Pérez",
        "description": "Laptop Dell",
        "fob_value": "480.00",
        "freight_value": "15.00",
        "insurance_value": "5.00",
    },
    {
        "tracking_guide": "PA-002",
        "recipient": "Luis Gómez",
        "description": "Televisores",
        "fob_value": "80",
    },
    {
        "tracking_guide": "PA-003",
        "recipient": "Carla Ruiz",
        "description": "Laptop Dell",
        "fob_value": "2500.00",
    },
]


class DummyQueue:
    def __init__(self) -> None:
        self.enqueued: list[tuple[str, dict[str, Any]]] = []

    def enqueue(self, func: str, job_id: str, payload: dict[str, Any], **kwargs: Any) -> None:
        self.enqueued.append((job_id, payload))


@pytest.fixture(autouse=True)
def _settings_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URL", "sqlite:///:memory:")
    monkeypatch.setenv("REDIS_URL", "redis://localhost:6379/0")
    monkeypatch.setenv("CUSTOMS_DB_AUTOCREATE", "1")
    for name in ("CUSTOMS_PACKS_ROOT", "CUSTOMS_PACK", "CUSTOMS_BATCH_SIZE", "CUSTOMS_CORS_ORIGINS"):
        monkeypatch.delenv(name, raising=False)
    get_settings.cache_clear()
    get_matcher_policy.cache_clear()
    get_valuation_policy.cache_clear()
    clear_pack_cache()
    yield
    get_settings.cache_clear()
    clear_pack_cache()


@pytest.fixture
def app():
    return create_app()


@pytest.fixture
def client(app):
    with TestClient(app) as client:
        app.state.queue = DummyQueue()
        yield client


@pytest.fixture
def session(client, app):
    session_local = app.state.SessionLocal
    db = session_local()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def sample_rows() -> list[dict[str, Any]]:
    return [dict(row) for row in SAMPLE_ROWS]
