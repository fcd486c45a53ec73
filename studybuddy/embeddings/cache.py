"""EmbeddingCache — in-process (texts, provider) → vectors cache.

Entries expire after a fixed TTL and the least recently used entry is
evicted when the cache is full. Entries are never mutated; a repeated
write for the same key replaces the entry wholesale.

Two concurrent misses for the same key may both reach the provider and
both write back. The last write wins, which is harmless because the
vectors for identical inputs converge.
"""

from __future__ import annotations

import hashlib
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass

from studybuddy.models.embedding import CacheStats

DEFAULT_PROVIDER_KEY = "default"


@dataclass(frozen=True)
class CacheEntry:
    embeddings: tuple[tuple[float, ...], ...]
    provider: str
    model: str
    created_at: float


def normalize_texts(texts: list[str]) -> list[str]:
    """Whitespace-normalize texts; order is kept because vectors align to it."""
    return [" ".join(t.split()) for t in texts]


def make_key(texts: list[str], provider: str | None = None) -> str:
    digest = hashlib.sha256("\x1f".join(normalize_texts(texts)).encode("utf-8")).hexdigest()
    return f"{provider or DEFAULT_PROVIDER_KEY}:{digest}"


class EmbeddingCache:
    """Thread-safe TTL + LRU cache.

    Usage:
        cache = EmbeddingCache(max_size=1000, ttl_minutes=60)
        cache.set(["hello"], [[0.1, 0.2]], provider="cohere", model="embed-v3")
        entry = cache.get(["hello"], provider="cohere")
    """

    def __init__(self, max_size: int = 1000, ttl_minutes: float = 60.0) -> None:
        self.max_size = max_size
        self.ttl_seconds = ttl_minutes * 60
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, texts: list[str], provider: str | None = None) -> CacheEntry | None:
        key = make_key(texts, provider)
        now = time.monotonic()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if now - entry.created_at > self.ttl_seconds:
                del self._entries[key]
                self._misses += 1
                return None
            self._entries.move_to_end(key)
            self._hits += 1
            return entry

    def set(
        self,
        texts: list[str],
        embeddings: list[list[float]],
        provider: str | None,
        model: str,
        source_provider: str | None = None,
    ) -> None:
        """Store a complete vector set under (texts, provider-or-default)."""
        key = make_key(texts, provider)
        entry = CacheEntry(
            embeddings=tuple(tuple(v) for v in embeddings),
            provider=source_provider or provider or DEFAULT_PROVIDER_KEY,
            model=model,
            created_at=time.monotonic(),
        )
        with self._lock:
            self._entries[key] = entry
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_size:
                self._entries.popitem(last=False)

    def cleanup(self) -> int:
        """Drop expired entries. Returns the number removed."""
        now = time.monotonic()
        with self._lock:
            expired = [k for k, e in self._entries.items() if now - e.created_at > self.ttl_seconds]
            for key in expired:
                del self._entries[key]
        return len(expired)

    def stats(self) -> CacheStats:
        with self._lock:
            total = self._hits + self._misses
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                size=len(self._entries),
                max_size=self.max_size,
                hit_rate=self._hits / total if total else 0.0,
            )

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
