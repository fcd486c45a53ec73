"""Embedding models — orchestrator results and provider health snapshots."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, Field

HealthState = Literal["healthy", "degraded", "unhealthy"]


@dataclass
class EmbeddingUsage:
    """Usage attached to one generate call. Zero on cache hits."""

    request_count: int = 0
    total_characters: int = 0
    cost: float = 0.0  # characters × unit cost, not token-exact


@dataclass
class EmbeddingResult:
    """Aligned vector set returned by EmbeddingService.generate_embeddings."""

    embeddings: list[list[float]]
    provider: str
    model: str
    dimensions: int
    usage: EmbeddingUsage = field(default_factory=EmbeddingUsage)
    cached: bool = False
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "embeddings": self.embeddings,
            "provider": self.provider,
            "model": self.model,
            "dimensions": self.dimensions,
            "usage": {
                "request_count": self.usage.request_count,
                "total_characters": self.usage.total_characters,
                "cost": self.usage.cost,
            },
            "cached": self.cached,
            "timestamp": self.timestamp.isoformat(),
        }


class ProviderHealth(BaseModel):
    """Point-in-time view of one provider's health and usage counters."""

    provider: str
    state: HealthState = "healthy"
    healthy: bool = True
    response_time_ms: int = 0
    last_check: datetime | None = None
    last_error: str | None = None
    consecutive_failures: int = 0
    requests: int = 0
    cost: float = 0.0
    daily_requests: int = 0
    monthly_requests: int = 0
    daily_quota: int = 0
    monthly_quota: int = 0


class CacheStats(BaseModel):
    hits: int
    misses: int
    size: int
    max_size: int
    hit_rate: float = Field(ge=0.0, le=1.0)
