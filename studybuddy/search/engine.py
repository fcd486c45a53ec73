"""SemanticSearchEngine — hybrid vector/lexical memory retrieval.

Search modes:
    vector  — embed the query, find_similar over the user's memories;
              any failure is raised to the caller
    text    — lexical similarity over the user's most relevant memories
    hybrid  — vector first, lexical on any failure (fallback_used=True)

Candidates are the user's universal memories plus, when
``options.conversation_id`` is set, that conversation's session memories.
``options.timeout`` bounds the query embedding and each store call.

Post-filters (both paths): min similarity, tag intersection, stored
relevance floor, sort by similarity, truncate to limit. The context
level filter runs last and only when a level is given.

Empty results are never an error.
"""

from __future__ import annotations

import asyncio
import functools
import logging
import time

from studybuddy.embeddings.service import EmbeddingService
from studybuddy.errors import InvalidInputError, MemoryEngineError, VectorSearchUnavailableError
from studybuddy.memory.repository import MemoryRepository, as_utc
from studybuddy.memory.store import MemoryStore
from studybuddy.models.memory import (
    ConversationMemory,
    SearchOptions,
    SearchResponse,
    SearchResult,
    SearchStats,
)
from studybuddy.search.diversity import apply_context_level
from studybuddy.search.lexical import extract_content, text_similarity

logger = logging.getLogger(__name__)

SIMILARITY_WEIGHT = 0.7
IMPORTANCE_WEIGHT = 0.3
MIN_SIMILARITY_FLOOR = 0.1


def blended_relevance(similarity: float, stored_relevance: float) -> float:
    return round(similarity * SIMILARITY_WEIGHT + stored_relevance * IMPORTANCE_WEIGHT, 4)


def to_search_result(memory: ConversationMemory, similarity: float, search_type: str) -> SearchResult:
    data = memory.interaction_data or {}
    return SearchResult(
        id=memory.id,
        content=extract_content(data),
        similarity=round(similarity, 4),
        relevance_score=blended_relevance(similarity, memory.relevance_score),
        stored_relevance=memory.relevance_score,
        quality_score=memory.quality_score,
        memory_type=memory.memory_type,
        tags=list(data.get("tags") or []),
        topic=data.get("topic"),
        subject=data.get("subject"),
        kind=data.get("kind"),
        priority=data.get("priority"),
        conversation_id=memory.conversation_id,
        session_id=data.get("session_id"),
        search_type=search_type,
        created_at=as_utc(memory.created_at),
        updated_at=as_utc(memory.updated_at),
        interaction_data=data,
    )


class SemanticSearchEngine:
    """Searches a user's memories by meaning, falling back to word overlap."""

    def __init__(
        self,
        repository: MemoryRepository,
        embeddings: EmbeddingService | None,
        store: MemoryStore | None = None,
        default_limit: int = 5,
        max_limit: int = 20,
        default_min_similarity: float = 0.5,
        candidate_multiplier: int = 3,
    ) -> None:
        self.repository = repository
        self.embeddings = embeddings
        self.store = store or MemoryStore(repository, embeddings)
        self.default_limit = default_limit
        self.max_limit = max_limit
        self.default_min_similarity = default_min_similarity
        self.candidate_multiplier = candidate_multiplier

    async def _run(self, fn, *args, timeout: float | None = None, **kwargs):
        loop = asyncio.get_running_loop()
        future = loop.run_in_executor(None, functools.partial(fn, *args, **kwargs))
        if timeout is None:
            return await future
        try:
            return await asyncio.wait_for(future, timeout)
        except asyncio.TimeoutError as e:
            raise MemoryEngineError(f"Memory store call timed out after {timeout}s") from e

    def resolve_limit(self, limit: int | None) -> int:
        return max(1, min(limit or self.default_limit, self.max_limit))

    def resolve_min_similarity(self, value: float | None) -> float:
        if value is None:
            value = self.default_min_similarity
        return max(MIN_SIMILARITY_FLOOR, min(value, 1.0))

    # === Search ===

    async def search(
        self,
        user_id: str,
        query: str,
        options: SearchOptions | None = None,
    ) -> SearchResponse:
        """Search a user's memories.

        Raises:
            InvalidInputError: missing user or query.
            AllProvidersExhaustedError / VectorSearchUnavailableError:
                vector mode only.
            Store errors from the lexical path.
        """
        if not user_id:
            raise InvalidInputError("user_id is required")
        if not query or not query.strip():
            raise InvalidInputError("query is required")
        options = options or SearchOptions()
        limit = self.resolve_limit(options.limit)
        min_similarity = self.resolve_min_similarity(options.min_similarity)

        start = time.monotonic()
        embedding_generated = False
        fallback_used = False

        if options.search_mode == "text":
            results = await self._text_search(user_id, query, limit, min_similarity, options)
        else:
            try:
                results = await self._vector_search(user_id, query, limit, min_similarity, options)
                embedding_generated = True
            except MemoryEngineError as e:
                if options.search_mode == "vector":
                    raise
                logger.warning("Vector search failed, falling back to text search: %s", e)
                fallback_used = True
                results = await self._text_search(user_id, query, limit, min_similarity, options)

        results = apply_context_level(results, options.context_level)

        elapsed_ms = int((time.monotonic() - start) * 1000)
        average = sum(r.similarity for r in results) / len(results) if results else 0.0
        logger.info(
            "Memory search for user %s: %d results in %dms (mode=%s, fallback=%s)",
            user_id, len(results), elapsed_ms, options.search_mode, fallback_used,
        )
        return SearchResponse(
            results=results,
            stats=SearchStats(
                total_found=len(results),
                search_time_ms=elapsed_ms,
                search_mode=options.search_mode,
                min_similarity_applied=min_similarity,
                average_similarity=round(average, 4),
                tags_filter=options.tags or None,
                context_level=options.context_level,
                embedding_generated=embedding_generated,
                fallback_used=fallback_used,
            ),
        )

    async def _vector_search(
        self,
        user_id: str,
        query: str,
        limit: int,
        min_similarity: float,
        options: SearchOptions,
        memory_type: str | None = None,
    ) -> list[SearchResult]:
        if self.embeddings is None:
            raise VectorSearchUnavailableError("No embedding service configured")
        vector, _ = await self.embeddings.embed_query(
            query, provider=options.provider, timeout=options.timeout
        )

        # Over-fetch when post-filters may drop rows
        fetch = limit * self.candidate_multiplier if (options.tags or options.min_relevance) else limit
        try:
            pairs = await self._run(
                self.repository.find_similar,
                user_id,
                vector,
                min_similarity,
                fetch,
                memory_type,
                options.conversation_id,
                timeout=options.timeout,
            )
        except MemoryEngineError:
            raise
        except Exception as e:
            raise VectorSearchUnavailableError(f"Similarity search failed: {e}") from e

        results = [to_search_result(memory, sim, "vector") for memory, sim in pairs]
        return self._post_filter(results, limit, min_similarity, options)

    async def _text_search(
        self,
        user_id: str,
        query: str,
        limit: int,
        min_similarity: float,
        options: SearchOptions,
    ) -> list[SearchResult]:
        candidates = await self._run(
            self.repository.list_candidates,
            user_id,
            limit * self.candidate_multiplier,
            conversation_id=options.conversation_id,
            timeout=options.timeout,
        )
        results = [
            to_search_result(memory, text_similarity(query, extract_content(memory.interaction_data)), "text")
            for memory in candidates
        ]
        return self._post_filter(results, limit, min_similarity, options)

    @staticmethod
    def _post_filter(
        results: list[SearchResult],
        limit: int,
        min_similarity: float,
        options: SearchOptions,
    ) -> list[SearchResult]:
        filtered = [r for r in results if r.similarity >= min_similarity]
        if options.tags:
            wanted = set(options.tags)
            filtered = [r for r in filtered if wanted.intersection(r.tags)]
        if options.min_relevance is not None:
            floor = options.min_relevance
            filtered = [r for r in filtered if r.stored_relevance >= floor]
        filtered.sort(key=lambda r: r.similarity, reverse=True)
        return filtered[:limit]

    # === Universal / dual-layer retrieval ===

    async def get_universal_memories(
        self,
        user_id: str,
        query: str,
        limit: int | None = None,
        min_similarity: float | None = None,
        provider: str | None = None,
    ) -> list[SearchResult]:
        """Universal memories ranked by blended relevance.

        If the vector path fails, the user's top universal memories by
        stored relevance are returned with similarity = stored relevance.
        """
        limit = self.resolve_limit(limit)
        min_similarity = self.resolve_min_similarity(min_similarity)
        try:
            results = await self._vector_search(
                user_id,
                query,
                limit,
                min_similarity,
                SearchOptions(provider=provider),
                memory_type="universal",
            )
        except MemoryEngineError as e:
            logger.warning("Universal vector search failed, using stored relevance: %s", e)
            rows = await self._run(
                self.repository.list_candidates, user_id, limit, memory_type="universal"
            )
            return [to_search_result(row, row.relevance_score, "relevance") for row in rows]
        results.sort(key=lambda r: r.relevance_score, reverse=True)
        return results

    async def recall(
        self,
        user_id: str,
        query: str,
        conversation_id: str | None = None,
        session_limit: int = 10,
        universal_limit: int | None = None,
    ) -> dict:
        """Session memories for the conversation plus universal memories for the query."""
        session_memories = []
        if conversation_id:
            session_memories = await self.store.get_session_memories(
                user_id, conversation_id, session_limit
            )
        universal = await self.get_universal_memories(user_id, query, limit=universal_limit)
        return {
            "session": [to_search_result(m, 1.0, "session") for m in session_memories],
            "universal": universal,
        }

