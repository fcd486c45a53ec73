"""Memory API — write, update, delete and search conversation memories.

POST   /api/v1/memory                         — store one interaction
PATCH  /api/v1/memory/{memory_id}             — revise an owned memory
DELETE /api/v1/memory/{memory_id}?user_id=    — remove an owned memory
POST   /api/v1/memory/search                  — hybrid semantic search
GET    /api/v1/memory/session/{conversation_id}?user_id=&limit=
POST   /api/v1/memory/recall                  — session + universal context
"""

from __future__ import annotations

import logging
from datetime import datetime

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field

from studybuddy.errors import InvalidInputError, MemoryEngineError, NotFoundError
from studybuddy.memory.repository import as_utc
from studybuddy.memory.store import MemoryStore
from studybuddy.models.memory import (
    ConversationMemory,
    MemoryMetadata,
    MemoryRevision,
    SearchOptions,
    SearchResponse,
    SearchResult,
)
from studybuddy.search.engine import SemanticSearchEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/memory", tags=["memory"])

_store: MemoryStore | None = None
_search: SemanticSearchEngine | None = None


def set_dependencies(store: MemoryStore, search: SemanticSearchEngine) -> None:
    global _store, _search
    _store = store
    _search = search


def _get_store() -> MemoryStore:
    if _store is None:
        raise HTTPException(status_code=503, detail="Memory store not initialized")
    return _store


def _get_search() -> SemanticSearchEngine:
    if _search is None:
        raise HTTPException(status_code=503, detail="Search engine not initialized")
    return _search


# === Request / Response models ===


class WriteMemoryRequest(BaseModel):
    user_id: str = Field(min_length=1)
    conversation_id: str | None = None
    content: str = Field(min_length=1, max_length=20000)
    response: str | None = Field(default=None, max_length=50000)
    metadata: MemoryMetadata = Field(default_factory=MemoryMetadata)


class UpdateMemoryRequest(BaseModel):
    user_id: str = Field(min_length=1)
    revisions: MemoryRevision


class SearchMemoryRequest(SearchOptions):
    user_id: str = Field(min_length=1)
    query: str = Field(min_length=1, max_length=2000)


class RecallRequest(BaseModel):
    user_id: str = Field(min_length=1)
    query: str = Field(min_length=1, max_length=2000)
    conversation_id: str | None = None


class MemoryResponse(BaseModel):
    id: str
    user_id: str
    conversation_id: str | None
    memory_type: str
    quality_score: float
    relevance_score: float
    has_embedding: bool
    interaction_data: dict
    created_at: datetime
    updated_at: datetime
    expires_at: datetime


class RecallResponse(BaseModel):
    session: list[SearchResult]
    universal: list[SearchResult]


def _to_response(memory: ConversationMemory) -> MemoryResponse:
    return MemoryResponse(
        id=memory.id,
        user_id=memory.user_id,
        conversation_id=memory.conversation_id,
        memory_type=memory.memory_type,
        quality_score=memory.quality_score,
        relevance_score=memory.relevance_score,
        has_embedding=bool(memory.embedding),
        interaction_data=memory.interaction_data or {},
        created_at=as_utc(memory.created_at),
        updated_at=as_utc(memory.updated_at),
        expires_at=as_utc(memory.expires_at),
    )


# === Endpoints ===


@router.post("", response_model=MemoryResponse, status_code=201)
async def write_memory(request: WriteMemoryRequest) -> MemoryResponse:
    """Classify, score and store one chat interaction."""
    store = _get_store()
    try:
        memory = await store.create(
            request.user_id,
            request.conversation_id,
            request.content,
            request.response,
            request.metadata,
        )
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return _to_response(memory)


@router.post("/search", response_model=SearchResponse)
async def search_memories(request: SearchMemoryRequest) -> SearchResponse:
    """Search a user's memories (vector, text or hybrid)."""
    search = _get_search()
    options = SearchOptions(**request.model_dump(exclude={"user_id", "query"}))
    try:
        return await search.search(request.user_id, request.query, options)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except MemoryEngineError as e:
        logger.error("Memory search failed for user %s: %s", request.user_id, e)
        raise HTTPException(status_code=500, detail=f"Failed to search memories: {e}")


@router.post("/recall", response_model=RecallResponse)
async def recall_memories(request: RecallRequest) -> RecallResponse:
    """Dual-layer context: session memories plus relevant universal memories."""
    search = _get_search()
    context = await search.recall(request.user_id, request.query, request.conversation_id)
    return RecallResponse(**context)


@router.get("/session/{conversation_id}", response_model=list[MemoryResponse])
async def get_session_memories(
    conversation_id: str,
    user_id: str = Query(min_length=1),
    limit: int = Query(default=10, ge=1, le=100),
) -> list[MemoryResponse]:
    """Session memories for one conversation, newest first."""
    store = _get_store()
    memories = await store.get_session_memories(user_id, conversation_id, limit)
    return [_to_response(m) for m in memories]


@router.get("/{memory_id}", response_model=MemoryResponse)
async def get_memory(memory_id: str, user_id: str = Query(min_length=1)) -> MemoryResponse:
    store = _get_store()
    try:
        memory = await store.get(memory_id, user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _to_response(memory)


@router.patch("/{memory_id}", response_model=MemoryResponse)
async def update_memory(memory_id: str, request: UpdateMemoryRequest) -> MemoryResponse:
    """Merge revised fields into a memory and record provenance."""
    store = _get_store()
    try:
        memory = await store.update(memory_id, request.user_id, request.revisions)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _to_response(memory)


@router.delete("/{memory_id}", status_code=204)
async def delete_memory(memory_id: str, user_id: str = Query(min_length=1)) -> None:
    store = _get_store()
    try:
        await store.delete(memory_id, user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
