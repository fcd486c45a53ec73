"""MemoryRepository — SQLModel persistence for ConversationMemory rows.

Synchronous: the async MemoryStore and search engine run these
calls in the default executor, one Session per call.

find_similar compares stored vectors with the query vector in Python
(cosine, clamped to [0, 1]); only rows whose stored width matches the
query width are considered.
"""

from __future__ import annotations

import logging
import math
from datetime import datetime, timezone

from sqlalchemy.engine import Engine
from sqlmodel import Session, and_, col, or_, select

from studybuddy.errors import InvalidInputError
from studybuddy.models.memory import ConversationMemory, utcnow

logger = logging.getLogger(__name__)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; every stored timestamp is UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def cosine_similarity(a: list[float], b: list[float]) -> float:
    """Cosine similarity clamped to [0, 1]. Mismatched widths are an input error."""
    if len(a) != len(b):
        raise InvalidInputError(f"Cannot compare vectors of {len(a)} and {len(b)} dimensions")
    dot = sum(x * y for x, y in zip(a, b))
    norm_a = math.sqrt(sum(x * x for x in a))
    norm_b = math.sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return max(0.0, min(1.0, dot / (norm_a * norm_b)))


def _scope(stmt, memory_type: str | None, conversation_id: str | None):
    """One tier when memory_type is given; otherwise universal rows plus the
    session rows of conversation_id. Session rows never leak across conversations.
    """
    if memory_type:
        return stmt.where(ConversationMemory.memory_type == memory_type)
    visible = ConversationMemory.memory_type == "universal"
    if conversation_id:
        visible = or_(
            visible,
            and_(
                ConversationMemory.memory_type == "session",
                ConversationMemory.conversation_id == conversation_id,
            ),
        )
    return stmt.where(visible)


class MemoryRepository:
    """Row-level access to the conversation_memory table."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def insert(self, memory: ConversationMemory) -> ConversationMemory:
        with Session(self.engine) as session:
            session.add(memory)
            session.commit()
            session.refresh(memory)
            session.expunge(memory)
        return memory

    def get(self, memory_id: str, user_id: str | None = None) -> ConversationMemory | None:
        """Fetch a row; with user_id, rows owned by someone else are invisible."""
        with Session(self.engine) as session:
            memory = session.get(ConversationMemory, memory_id)
            if memory is None or (user_id is not None and memory.user_id != user_id):
                return None
            session.expunge(memory)
        return memory

    def update(
        self,
        memory_id: str,
        user_id: str,
        interaction_data: dict,
        updated_at: datetime,
    ) -> ConversationMemory | None:
        """Replace interaction_data and bump updated_at in one commit."""
        with Session(self.engine) as session:
            memory = session.get(ConversationMemory, memory_id)
            if memory is None or memory.user_id != user_id:
                return None
            memory.interaction_data = interaction_data  # reassign so JSON change is tracked
            memory.updated_at = updated_at
            session.add(memory)
            session.commit()
            session.refresh(memory)
            session.expunge(memory)
        return memory

    def delete(self, memory_id: str, user_id: str) -> bool:
        with Session(self.engine) as session:
            memory = session.get(ConversationMemory, memory_id)
            if memory is None or memory.user_id != user_id:
                return False
            session.delete(memory)
            session.commit()
        return True

    def list_session(
        self,
        user_id: str,
        conversation_id: str,
        limit: int = 10,
        now: datetime | None = None,
    ) -> list[ConversationMemory]:
        """Unexpired session memories for exactly (user, conversation), newest first."""
        with Session(self.engine) as session:
            stmt = (
                select(ConversationMemory)
                .where(ConversationMemory.user_id == user_id)
                .where(ConversationMemory.conversation_id == conversation_id)
                .where(ConversationMemory.memory_type == "session")
                .where(ConversationMemory.expires_at > (now or utcnow()))
                .order_by(col(ConversationMemory.created_at).desc())
                .limit(limit)
            )
            rows = session.exec(stmt).all()
            for row in rows:
                session.expunge(row)
        return list(rows)

    def list_candidates(
        self,
        user_id: str,
        limit: int,
        memory_type: str | None = None,
        conversation_id: str | None = None,
        now: datetime | None = None,
    ) -> list[ConversationMemory]:
        """Unexpired memories of a user ordered by stored relevance."""
        with Session(self.engine) as session:
            stmt = (
                select(ConversationMemory)
                .where(ConversationMemory.user_id == user_id)
                .where(ConversationMemory.expires_at > (now or utcnow()))
            )
            stmt = _scope(stmt, memory_type, conversation_id)
            stmt = stmt.order_by(
                col(ConversationMemory.relevance_score).desc(),
                col(ConversationMemory.created_at).desc(),
            ).limit(limit)
            rows = session.exec(stmt).all()
            for row in rows:
                session.expunge(row)
        return list(rows)

    def find_similar(
        self,
        user_id: str,
        query_embedding: list[float],
        min_similarity: float,
        limit: int,
        memory_type: str | None = None,
        conversation_id: str | None = None,
        now: datetime | None = None,
    ) -> list[tuple[ConversationMemory, float]]:
        """Rows with similarity >= min_similarity, most similar first."""
        if not query_embedding:
            raise InvalidInputError("Query embedding is empty")
        with Session(self.engine) as session:
            stmt = (
                select(ConversationMemory)
                .where(ConversationMemory.user_id == user_id)
                .where(ConversationMemory.embedding_dimensions == len(query_embedding))
                .where(ConversationMemory.expires_at > (now or utcnow()))
            )
            stmt = _scope(stmt, memory_type, conversation_id)
            rows = session.exec(stmt).all()
            for row in rows:
                session.expunge(row)

        scored = []
        for row in rows:
            if not row.embedding:
                continue
            similarity = cosine_similarity(query_embedding, row.embedding)
            if similarity >= min_similarity:
                scored.append((row, similarity))
        scored.sort(key=lambda pair: pair[1], reverse=True)
        return scored[:limit]

    def purge_expired(self, now: datetime | None = None, batch_size: int = 100) -> int:
        """Delete rows whose expires_at has passed, batch_size rows per commit."""
        cutoff = now or utcnow()
        total = 0
        while True:
            with Session(self.engine) as session:
                expired = session.exec(
                    select(ConversationMemory)
                    .where(ConversationMemory.expires_at <= cutoff)
                    .limit(batch_size)
                ).all()
                if not expired:
                    break
                for memory in expired:
                    session.delete(memory)
                session.commit()
            total += len(expired)
        if total:
            logger.info("Purged %d expired memories", total)
        return total
