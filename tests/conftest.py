"""Shared test fixtures for the StudyBuddy memory engine tests."""

import os
import sys

import pytest

# Ensure the repo root is on the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("HEALTH_CHECKS_ENABLED", "false")
os.environ.setdefault("MEMORY_CLEANUP_ENABLED", "false")

from studybuddy.db.database import create_db_and_tables, make_engine
from studybuddy.embeddings.cache import EmbeddingCache
from studybuddy.embeddings.health import ProviderHealthMonitor
from studybuddy.embeddings.providers.mock import MockEmbeddingAdapter
from studybuddy.embeddings.service import EmbeddingService
from studybuddy.memory.repository import MemoryRepository
from studybuddy.memory.store import MemoryStore
from studybuddy.search.engine import SemanticSearchEngine


def make_service(adapters: dict, default: str, fallbacks: list[str] | None = None, **monitor_kwargs) -> EmbeddingService:
    """Build an EmbeddingService around explicit adapters, probes disabled."""
    cache = EmbeddingCache(max_size=100, ttl_minutes=60)
    monitor = ProviderHealthMonitor(adapters, enabled=False, **monitor_kwargs)
    return EmbeddingService(
        adapters,
        monitor=monitor,
        cache=cache,
        default_provider=default,
        fallback_providers=fallbacks or [],
        unit_costs={name: 0.0001 for name in adapters},
        timeout=1.0,
    )


@pytest.fixture
def db_engine():
    """Fresh in-memory SQLite shared across executor threads."""
    engine = make_engine("sqlite://")
    create_db_and_tables(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def repository(db_engine) -> MemoryRepository:
    return MemoryRepository(db_engine)


@pytest.fixture
def mock_adapter() -> MockEmbeddingAdapter:
    return MockEmbeddingAdapter()


@pytest.fixture
def embedding_service(mock_adapter) -> EmbeddingService:
    return make_service({"mock": mock_adapter}, default="mock")


@pytest.fixture
def store(repository, embedding_service) -> MemoryStore:
    return MemoryStore(repository, embeddings=embedding_service)


@pytest.fixture
def search_engine(repository, embedding_service, store) -> SemanticSearchEngine:
    return SemanticSearchEngine(repository, embedding_service, store=store)
