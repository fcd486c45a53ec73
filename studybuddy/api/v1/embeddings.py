"""Embeddings API — generate vectors and administer providers.

POST /api/v1/embeddings                   — embed texts with fallback
GET  /api/v1/embeddings/usage             — per-provider usage and cost
GET  /api/v1/embeddings/settings          — provider configuration
PUT  /api/v1/embeddings/default-provider  — change the default provider
PUT  /api/v1/embeddings/model             — change a provider's model
POST /api/v1/embeddings/health-check      — probe every provider now
POST /api/v1/embeddings/reset-usage       — zero usage counters
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from studybuddy.embeddings.service import EmbeddingService
from studybuddy.errors import AllProvidersExhaustedError, InvalidInputError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/embeddings", tags=["embeddings"])

_service: EmbeddingService | None = None


def set_dependencies(service: EmbeddingService) -> None:
    global _service
    _service = service


def _get_service() -> EmbeddingService:
    if _service is None:
        raise HTTPException(status_code=503, detail="Embedding service not initialized")
    return _service


# === Request / Response models ===


class EmbedRequest(BaseModel):
    texts: list[str] = Field(min_length=1, max_length=100)
    provider: str | None = None
    model: str | None = None
    timeout: float | None = Field(default=None, gt=0, le=120)


class EmbedResponse(BaseModel):
    embeddings: list[list[float]]
    provider: str
    model: str
    dimensions: int
    cached: bool
    usage: dict


class DefaultProviderRequest(BaseModel):
    provider: str


class ProviderModelRequest(BaseModel):
    provider: str
    model: str


# === Endpoints ===


@router.post("", response_model=EmbedResponse)
async def embed_texts(request: EmbedRequest) -> EmbedResponse:
    service = _get_service()
    try:
        result = await service.generate_embeddings(
            request.texts,
            provider=request.provider,
            model=request.model,
            timeout=request.timeout,
        )
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AllProvidersExhaustedError as e:
        raise HTTPException(status_code=503, detail=str(e))
    data = result.to_dict()
    return EmbedResponse(
        embeddings=data["embeddings"],
        provider=data["provider"],
        model=data["model"],
        dimensions=data["dimensions"],
        cached=data["cached"],
        usage=data["usage"],
    )


@router.get("/usage")
async def get_usage() -> dict:
    return _get_service().get_usage_statistics()


@router.get("/settings")
async def get_settings() -> dict:
    return _get_service().get_provider_settings()


@router.put("/default-provider")
async def set_default_provider(request: DefaultProviderRequest) -> dict:
    service = _get_service()
    try:
        service.set_default_provider(request.provider)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"default_provider": service.default_provider}


@router.put("/model")
async def update_model(request: ProviderModelRequest) -> dict:
    service = _get_service()
    try:
        service.update_provider_model(request.provider, request.model)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"provider": request.provider, "model": request.model}


@router.post("/health-check")
async def run_health_check() -> dict:
    return await _get_service().check_provider_health()


@router.post("/reset-usage")
async def reset_usage() -> dict:
    service = _get_service()
    service.reset_usage_tracking()
    return {"status": "reset"}
