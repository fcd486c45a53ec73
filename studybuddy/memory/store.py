"""MemoryStore — write, update and fetch conversation memories.

Write path:
    classify tier → score (quality, relevance) → derive expires_at →
    embed universal memories (best effort) → persist in one commit

Scores and expires_at are fixed at write time. Updates merge only the
supplied fields and append provenance (action, updated_at,
previous_update, version).

Repository calls are synchronous and run in the default executor.
"""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Any, Callable

from studybuddy.embeddings.service import EmbeddingService
from studybuddy.errors import InvalidInputError, MemoryEngineError, NotFoundError
from studybuddy.memory.classifier import Classifier, KeywordClassifier
from studybuddy.memory.repository import MemoryRepository, as_utc
from studybuddy.memory.scoring import expires_at, quality_score, relevance_score
from studybuddy.models.memory import (
    ConversationMemory,
    MemoryMetadata,
    MemoryRevision,
    utcnow,
)

logger = logging.getLogger(__name__)

MEMORY_SOURCE = "chat"


class MemoryStore:
    """Async facade over MemoryRepository with classification and scoring."""

    def __init__(
        self,
        repository: MemoryRepository,
        embeddings: EmbeddingService | None = None,
        classifier: Classifier | None = None,
        embed_on_write: bool = True,
        clock: Callable[[], Any] = utcnow,
    ) -> None:
        self.repository = repository
        self.embeddings = embeddings
        self.classifier = classifier or KeywordClassifier()
        self.embed_on_write = embed_on_write
        self.clock = clock

    async def _run(self, fn, *args, **kwargs):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(fn, *args, **kwargs))

    # === Write ===

    async def write(
        self,
        user_id: str,
        conversation_id: str | None,
        content: str,
        response: str | None = None,
        metadata: MemoryMetadata | None = None,
    ) -> str:
        """Persist one interaction and return its id."""
        memory = await self.create(user_id, conversation_id, content, response, metadata)
        return memory.id

    async def create(
        self,
        user_id: str,
        conversation_id: str | None,
        content: str,
        response: str | None = None,
        metadata: MemoryMetadata | None = None,
    ) -> ConversationMemory:
        """Like write, but returns the stored row."""
        if not user_id:
            raise InvalidInputError("user_id is required")
        if not content or not content.strip():
            raise InvalidInputError("content is required")
        metadata = metadata or MemoryMetadata()

        classification = self.classifier.classify(content, response, conversation_id)
        tier = metadata.memory_type or classification.memory_type
        priority = metadata.priority or classification.priority
        retention = metadata.retention or classification.retention
        if tier == "session" and not conversation_id:
            raise InvalidInputError("Session memories require a conversation_id")

        now = self.clock()
        interaction_data = {
            "content": content,
            "response": response,
            "kind": metadata.kind,
            "priority": priority,
            "retention": retention,
            "topic": metadata.topic,
            "subject": metadata.subject,
            "tags": list(metadata.tags),
            "learning_objective": metadata.learning_objective,
            "provider": metadata.provider,
            "model": metadata.model,
            "tokens_used": metadata.tokens_used,
            "processing_time_ms": metadata.processing_time_ms,
            "confidence_score": metadata.confidence_score,
            "context": dict(metadata.context),
            "session_id": metadata.session_id,
            "classification": classification.reason,
            "metadata": {
                "source": MEMORY_SOURCE,
                "version": 1,
                "action": "created",
                "created_at": now.isoformat(),
            },
        }

        memory = ConversationMemory(
            user_id=user_id,
            conversation_id=conversation_id,
            memory_type=tier,
            interaction_data=interaction_data,
            quality_score=quality_score(content, response, metadata),
            relevance_score=relevance_score(content, priority, metadata),
            created_at=now,
            updated_at=now,
            expires_at=expires_at(retention, now),
        )

        if tier == "universal" and self.embed_on_write and self.embeddings is not None:
            await self._attach_embedding(memory, content, response)

        memory = await self._run(self.repository.insert, memory)
        logger.info(
            "Stored %s memory %s for user %s (priority=%s, retention=%s)",
            tier, memory.id, user_id, priority, retention,
        )
        return memory

    async def _attach_embedding(
        self, memory: ConversationMemory, content: str, response: str | None
    ) -> None:
        text = f"{content}\n{response}" if response else content
        try:
            result = await self.embeddings.generate_embeddings([text])
        except MemoryEngineError as e:
            # Row is still reachable through lexical search
            logger.warning("Storing memory without embedding: %s", e)
            return
        memory.embedding = result.embeddings[0]
        memory.embedding_dimensions = result.dimensions
        memory.embedding_provider = result.provider

    # === Update ===

    async def update(
        self,
        memory_id: str,
        user_id: str,
        revisions: MemoryRevision | dict,
    ) -> ConversationMemory:
        """Merge revised fields into an owned memory.

        Raises:
            NotFoundError: memory absent or owned by another user.
        """
        if isinstance(revisions, dict):
            revisions = MemoryRevision(**revisions)
        existing = await self._run(self.repository.get, memory_id, user_id)
        if existing is None:
            raise NotFoundError(f"Memory not found: {memory_id}")

        now = self.clock()
        data = dict(existing.interaction_data or {})
        data.update(revisions.model_dump(exclude_none=True))

        provenance = dict(data.get("metadata") or {})
        previous = provenance.get("updated_at") or as_utc(existing.created_at).isoformat()
        provenance.update(
            {
                "source": provenance.get("source", MEMORY_SOURCE),
                "action": "updated",
                "updated_at": now.isoformat(),
                "previous_update": previous,
                "version": int(provenance.get("version", 1)) + 1,
            }
        )
        data["metadata"] = provenance

        updated = await self._run(self.repository.update, memory_id, user_id, data, now)
        if updated is None:
            raise NotFoundError(f"Memory not found: {memory_id}")
        logger.info("Updated memory %s (version %d)", memory_id, provenance["version"])
        return updated

    # === Reads / removal ===

    async def get(self, memory_id: str, user_id: str) -> ConversationMemory:
        memory = await self._run(self.repository.get, memory_id, user_id)
        if memory is None:
            raise NotFoundError(f"Memory not found: {memory_id}")
        return memory

    async def delete(self, memory_id: str, user_id: str) -> None:
        deleted = await self._run(self.repository.delete, memory_id, user_id)
        if not deleted:
            raise NotFoundError(f"Memory not found: {memory_id}")
        logger.info("Deleted memory %s", memory_id)

    async def get_session_memories(
        self, user_id: str, conversation_id: str, limit: int = 10
    ) -> list[ConversationMemory]:
        if not conversation_id:
            return []
        return await self._run(self.repository.list_session, user_id, conversation_id, limit)

    async def purge_expired(self, now=None, batch_size: int = 100) -> int:
        return await self._run(self.repository.purge_expired, now, batch_size)
