"""Deterministic offline adapter for development and tests.

Produces hashed bag-of-words vectors: texts sharing words get a positive
cosine similarity, identical texts get identical vectors. No network.
"""

from __future__ import annotations

import asyncio
import hashlib
import math

from studybuddy.embeddings.providers.base import EmbeddingAdapter
from studybuddy.errors import ProviderError


class MockEmbeddingAdapter(EmbeddingAdapter):
    name = "mock"
    default_model = "mock-embed"
    default_dimensions = 1024
    model_dimensions = {"mock-embed": 1024}

    def __init__(
        self,
        api_key: str = "",
        model: str | None = None,
        fail: bool = False,
        delay: float = 0.0,
    ) -> None:
        super().__init__(api_key, model)
        self.fail = fail
        self.delay = delay
        self.calls: list[list[str]] = []

    async def generate(
        self,
        texts: list[str],
        model: str | None = None,
        timeout: float | None = None,
    ) -> list[list[float]]:
        self.calls.append(list(texts))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise ProviderError(self.name, "simulated failure")
        dims = self.expected_dimensions(model)
        return [self._vector(text, dims) for text in texts]

    @staticmethod
    def _vector(text: str, dims: int) -> list[float]:
        vec = [0.0] * dims
        for word in text.lower().split():
            digest = hashlib.sha256(word.encode("utf-8")).digest()
            index = int.from_bytes(digest[:4], "big") % dims
            vec[index] += 1.0
        norm = math.sqrt(sum(v * v for v in vec))
        if norm == 0:
            # Blank text still needs a non-zero vector
            vec[0] = 1.0
            return vec
        return [v / norm for v in vec]
