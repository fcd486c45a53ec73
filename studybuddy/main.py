"""StudyBuddy memory engine FastAPI application.

Entry point for the HTTP surface:
    uvicorn studybuddy.main:app
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from studybuddy import __version__
from studybuddy.api.health import router as health_router
from studybuddy.api.health import set_dependencies as set_health_deps
from studybuddy.api.v1.embeddings import router as embeddings_router
from studybuddy.api.v1.embeddings import set_dependencies as set_embeddings_deps
from studybuddy.api.v1.memory import router as memory_router
from studybuddy.api.v1.memory import set_dependencies as set_memory_deps
from studybuddy.config import settings
from studybuddy.db.database import create_db_and_tables, engine
from studybuddy.services import create_services

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    create_db_and_tables()

    services = create_services(settings, engine)
    set_embeddings_deps(services.embeddings)
    set_memory_deps(services.store, services.search)
    set_health_deps(services.embeddings, services.cleanup, engine)

    await services.embeddings.start()
    await services.cleanup.start()
    logger.info(
        "Memory engine ready (providers: %s)",
        ", ".join(services.embeddings.adapters) or "none",
    )

    yield

    services.cleanup.stop()
    services.embeddings.stop()


app = FastAPI(
    title="StudyBuddy Memory Engine",
    description="Conversation memory and multi-provider embedding retrieval",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    if isinstance(exc, HTTPException):
        raise exc
    logger.error("Unhandled exception on %s %s: %s", request.method, request.url.path, exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error."},
    )


app.include_router(health_router)
app.include_router(memory_router)
app.include_router(embeddings_router)


@app.get("/")
async def root():
    return {"name": "StudyBuddy Memory Engine", "version": __version__, "status": "running"}
