"""SQLite engine for the memory store.

One table (conversation_memory); embeddings live on the row as JSON arrays.
File databases run in WAL mode so searches keep reading while writes land.
In-memory URLs share a single connection (StaticPool) so every executor
thread sees the same tables.
"""

from __future__ import annotations

import os

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

from studybuddy.config import settings

SQLITE_PRAGMAS = (
    ("journal_mode", "WAL"),
    ("synchronous", "NORMAL"),
    ("busy_timeout", "5000"),  # ms
)


def _is_memory_url(url: str) -> bool:
    return url in ("sqlite://", "sqlite:///:memory:")


def _ensure_sqlite_dir(url: str) -> None:
    if not url.startswith("sqlite:///") or _is_memory_url(url):
        return
    db_dir = os.path.dirname(url[len("sqlite:///"):])
    if db_dir:
        os.makedirs(db_dir, exist_ok=True)


def make_engine(url: str) -> Engine:
    """Engine for ``url``; SQLite connections may be used from executor threads."""
    if not url.startswith("sqlite"):
        return create_engine(url, echo=False)

    _ensure_sqlite_dir(url)
    kwargs: dict = {"connect_args": {"check_same_thread": False}}
    if _is_memory_url(url):
        kwargs["poolclass"] = StaticPool
    new_engine = create_engine(url, echo=False, **kwargs)

    if not _is_memory_url(url):
        @event.listens_for(new_engine, "connect")
        def _apply_pragmas(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            for name, value in SQLITE_PRAGMAS:
                cursor.execute(f"PRAGMA {name}={value}")
            cursor.close()

    return new_engine


engine = make_engine(settings.database_url)


def create_db_and_tables(bind: Engine | None = None) -> None:
    """Create the memory table if it does not exist."""
    from studybuddy.models.memory import ConversationMemory  # noqa: F401

    SQLModel.metadata.create_all(bind or engine)
