"""Health check endpoint — database and embedding provider status."""

from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel
from sqlalchemy import text

from studybuddy import __version__
from studybuddy.embeddings.service import EmbeddingService
from studybuddy.memory.cleanup import MemoryCleanupScheduler

router = APIRouter()

_service: EmbeddingService | None = None
_cleanup: MemoryCleanupScheduler | None = None
_engine = None


def set_dependencies(
    service: EmbeddingService | None = None,
    cleanup: MemoryCleanupScheduler | None = None,
    engine=None,
) -> None:
    global _service, _cleanup, _engine
    _service = service
    _cleanup = cleanup
    _engine = engine


class HealthStatus(BaseModel):
    status: str  # "healthy" | "degraded" | "unhealthy"
    version: str
    checks: dict[str, dict]
    timestamp: datetime


@router.get("/health", response_model=HealthStatus)
async def health_check() -> HealthStatus:
    checks: dict[str, dict] = {}
    overall_healthy = True
    has_warning = False

    # 1. Database
    if _engine is None:
        checks["database"] = {"status": "warning", "detail": "not initialized"}
        has_warning = True
    else:
        try:
            with _engine.connect() as conn:
                conn.execute(text("SELECT 1")).fetchone()
            checks["database"] = {"status": "ok", "detail": "reachable"}
        except Exception as e:
            checks["database"] = {"status": "error", "detail": str(e)[:200]}
            overall_healthy = False

    # 2. Embedding providers
    if _service is None or not _service.adapters:
        checks["embeddings"] = {"status": "warning", "detail": "no providers configured (text search only)"}
        has_warning = True
    else:
        states = {name: snap.state for name, snap in _service.monitor.snapshot_all().items()}
        usable = [name for name, state in states.items() if state != "unhealthy"]
        if not usable:
            status = "error"
            overall_healthy = False
        elif len(usable) < len(states):
            status = "warning"
            has_warning = True
        else:
            status = "ok"
        checks["embeddings"] = {
            "status": status,
            "detail": f"default={_service.default_provider}",
            "providers": states,
        }

    # 3. Memory cleanup
    if _cleanup is not None:
        checks["memory_cleanup"] = {"status": "ok", **_cleanup.get_status()}

    if not overall_healthy:
        overall = "unhealthy"
    elif has_warning:
        overall = "degraded"
    else:
        overall = "healthy"

    return HealthStatus(
        status=overall,
        version=__version__,
        checks=checks,
        timestamp=datetime.now(timezone.utc),
    )
