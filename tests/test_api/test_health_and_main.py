"""Tests for the health endpoint, service wiring and the main app."""

from __future__ import annotations

import asyncio

import pytest
from conftest import make_service
from fastapi.testclient import TestClient
from sqlalchemy import text

from studybuddy import __version__
from studybuddy.api.health import HealthStatus, health_check, set_dependencies
from studybuddy.config import Settings
from studybuddy.db.database import create_db_and_tables, make_engine
from studybuddy.embeddings.providers.mock import MockEmbeddingAdapter
from studybuddy.main import app
from studybuddy.memory.cleanup import MemoryCleanupScheduler
from studybuddy.services import create_services


@pytest.fixture(autouse=True)
def reset_health():
    yield
    set_dependencies(None, None, None)


def test_nothing_initialized_is_degraded():
    set_dependencies(None, None, None)
    result = asyncio.run(health_check())
    assert isinstance(result, HealthStatus)
    assert result.status == "degraded"
    assert result.version == __version__
    assert result.checks["database"]["status"] == "warning"
    assert result.checks["embeddings"]["status"] == "warning"
    assert "memory_cleanup" not in result.checks


def test_all_ok_is_healthy(db_engine, store):
    service = make_service({"mock": MockEmbeddingAdapter()}, default="mock")
    cleanup = MemoryCleanupScheduler(store, enabled=False)
    set_dependencies(service, cleanup, db_engine)

    result = asyncio.run(health_check())

    assert result.status == "healthy"
    assert result.checks["database"]["status"] == "ok"
    assert result.checks["embeddings"]["providers"] == {"mock": "healthy"}
    assert result.checks["memory_cleanup"]["enabled"] is False


def test_one_unhealthy_provider_is_degraded(db_engine):
    service = make_service({"mock": MockEmbeddingAdapter(), "voyage": MockEmbeddingAdapter()}, default="mock")
    service.monitor.record_failure("voyage", "down", probe=True)
    set_dependencies(service, None, db_engine)

    result = asyncio.run(health_check())

    assert result.status == "degraded"
    assert result.checks["embeddings"]["status"] == "warning"


def test_all_providers_unhealthy_is_unhealthy(db_engine):
    service = make_service({"mock": MockEmbeddingAdapter()}, default="mock")
    service.monitor.record_failure("mock", "down", probe=True)
    set_dependencies(service, None, db_engine)

    assert asyncio.run(health_check()).status == "unhealthy"


def test_create_services_wires_one_embedding_service(db_engine):
    settings = Settings(
        _env_file=None,
        cohere_api_key="",
        mistral_api_key="",
        google_api_key="",
        voyage_api_key="",
        mock_embeddings_enabled=True,
        embedding_default_provider="mock",
        search_max_limit=10,
        memory_cleanup_enabled=False,
    )
    services = create_services(settings, db_engine)

    assert services.store.embeddings is services.embeddings
    assert services.search.embeddings is services.embeddings
    assert services.search.store is services.store
    assert services.search.max_limit == 10
    assert services.cleanup.enabled is False


def test_root_endpoint():
    resp = TestClient(app).get("/")
    assert resp.status_code == 200
    assert resp.json()["version"] == __version__


def test_file_database_runs_in_wal_mode(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path}/data/memory.db")
    create_db_and_tables(engine)
    with engine.connect() as conn:
        assert conn.execute(text("PRAGMA journal_mode")).scalar() == "wal"
    assert (tmp_path / "data" / "memory.db").exists()
    engine.dispose()
