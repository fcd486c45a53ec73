"""Memory models — the persisted memory row and the search/write contracts.

SQLite stores one ConversationMemory row per chat turn:
- session memories: scoped to a conversation, fetched by exact match
- universal memories: fetched by similarity across all conversations

interaction_data holds the structured payload (content, response, topic,
tags, priority, retention, provenance metadata). The optional embedding
column holds the vector as a JSON array together with its width.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, Field
from sqlmodel import JSON, Column, SQLModel
from sqlmodel import Field as SQLField

MemoryTier = Literal["session", "universal"]
Priority = Literal["low", "medium", "high", "critical"]
Retention = Literal["session", "short_term", "long_term", "permanent"]
InteractionKind = Literal[
    "user_query", "ai_response", "learning_interaction", "feedback", "correction", "insight"
]
SearchMode = Literal["vector", "text", "hybrid"]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ConversationMemory(SQLModel, table=True):
    """A single retrievable memory row."""

    __tablename__ = "conversation_memory"

    id: str = SQLField(default_factory=lambda: str(uuid4()), primary_key=True)
    user_id: str = SQLField(index=True)
    conversation_id: str | None = SQLField(default=None, index=True)
    memory_type: str = SQLField(default="session", index=True)  # "session" | "universal"
    interaction_data: dict = SQLField(default_factory=dict, sa_column=Column(JSON))
    quality_score: float = 0.5
    relevance_score: float = 0.5
    embedding: list[float] | None = SQLField(default=None, sa_column=Column(JSON))
    embedding_dimensions: int | None = None
    embedding_provider: str | None = None
    created_at: datetime = SQLField(default_factory=utcnow)
    updated_at: datetime = SQLField(default_factory=utcnow)
    expires_at: datetime = SQLField(default_factory=utcnow, index=True)

    @property
    def tags(self) -> list[str]:
        return list(self.interaction_data.get("tags") or [])

    @property
    def topic(self) -> str | None:
        return self.interaction_data.get("topic")


class MemoryMetadata(BaseModel):
    """Optional write-time metadata supplied by the chat orchestrator."""

    kind: InteractionKind = "ai_response"
    memory_type: MemoryTier | None = None  # Overrides the classifier when set
    priority: Priority | None = None
    retention: Retention | None = None
    topic: str | None = None
    subject: str | None = None
    learning_objective: str | None = None
    provider: str | None = None
    model: str | None = None
    tokens_used: int | None = None
    processing_time_ms: float | None = None
    confidence_score: float | None = Field(default=None, ge=0.0, le=1.0)
    tags: list[str] = Field(default_factory=list)
    context: dict[str, Any] = Field(default_factory=dict)
    session_id: str | None = None


class MemoryRevision(BaseModel):
    """Fields an update may revise. Unset/None fields keep their stored value."""

    content: str | None = None
    response: str | None = None
    kind: InteractionKind | None = None
    priority: Priority | None = None
    topic: str | None = None
    subject: str | None = None
    tags: list[str] | None = None
    context: dict[str, Any] | None = None


class SearchOptions(BaseModel):
    """Search knobs. None means "use the configured default"."""

    limit: int | None = Field(default=None, ge=1)
    min_similarity: float | None = Field(default=None, ge=0.0, le=1.0)
    tags: list[str] | None = None
    min_relevance: float | None = Field(default=None, ge=0.0, le=1.0)  # Stored relevance floor
    context_level: str | None = None  # "light" | "balanced" | "comprehensive"
    search_mode: SearchMode = "hybrid"
    provider: str | None = None
    conversation_id: str | None = None  # Admits that conversation's session memories
    timeout: float | None = Field(default=None, gt=0)  # Seconds, bounds embedding and store calls


class SearchResult(BaseModel):
    """A memory projected with its computed similarity. Not persisted."""

    id: str
    content: str
    similarity: float
    relevance_score: float  # similarity × 0.7 + stored_relevance × 0.3
    stored_relevance: float
    quality_score: float
    memory_type: str
    tags: list[str] = Field(default_factory=list)
    topic: str | None = None
    subject: str | None = None
    kind: str | None = None
    priority: str | None = None
    conversation_id: str | None = None
    session_id: str | None = None
    search_type: str = "vector"  # "vector" | "text" | "relevance"
    created_at: datetime
    updated_at: datetime
    interaction_data: dict = Field(default_factory=dict)


class SearchStats(BaseModel):
    total_found: int
    search_time_ms: int
    search_mode: SearchMode
    min_similarity_applied: float
    average_similarity: float
    tags_filter: list[str] | None = None
    context_level: str | None = None
    embedding_generated: bool = False
    fallback_used: bool = False


class SearchResponse(BaseModel):
    results: list[SearchResult]
    stats: SearchStats

    @property
    def fallback_used(self) -> bool:
        return self.stats.fallback_used
