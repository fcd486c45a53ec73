"""Service wiring — builds the engine's collaborating instances explicitly.

Both the FastAPI lifespan and the CLI call create_services; nothing in the
engine reaches for a global service instance.
"""

from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.engine import Engine

from studybuddy.config import Settings
from studybuddy.embeddings.service import EmbeddingService
from studybuddy.memory.cleanup import MemoryCleanupScheduler
from studybuddy.memory.repository import MemoryRepository
from studybuddy.memory.store import MemoryStore
from studybuddy.search.engine import SemanticSearchEngine


@dataclass
class Services:
    embeddings: EmbeddingService
    repository: MemoryRepository
    store: MemoryStore
    search: SemanticSearchEngine
    cleanup: MemoryCleanupScheduler


def create_services(settings: Settings, engine: Engine) -> Services:
    """Factory: embedding service → repository → store → search engine → cleanup."""
    embeddings = EmbeddingService.from_settings(settings)
    repository = MemoryRepository(engine)
    store = MemoryStore(
        repository,
        embeddings=embeddings,
        embed_on_write=settings.memory_embed_on_write,
    )
    search = SemanticSearchEngine(
        repository,
        embeddings,
        store=store,
        default_limit=settings.search_default_limit,
        max_limit=settings.search_max_limit,
        default_min_similarity=settings.search_default_min_similarity,
        candidate_multiplier=settings.search_lexical_candidate_multiplier,
    )
    cleanup = MemoryCleanupScheduler(
        store,
        interval_hours=settings.memory_cleanup_interval_hours,
        batch_size=settings.memory_cleanup_batch_size,
        enabled=settings.memory_cleanup_enabled,
    )
    return Services(
        embeddings=embeddings,
        repository=repository,
        store=store,
        search=search,
        cleanup=cleanup,
    )
