"""Voyage AI embeddings adapter.

Voyage returns {"data": [{"embedding": [...], "index": i}, ...]}; items are
re-sorted by index before returning so vectors align with the input.
"""

from __future__ import annotations

from studybuddy.embeddings.providers.base import EmbeddingAdapter
from studybuddy.errors import ProviderError

_BASE_URL = "https://api.voyageai.com/v1"


class VoyageAdapter(EmbeddingAdapter):
    name = "voyage"
    default_model = "voyage-multilingual-2"
    default_dimensions = 1024
    model_dimensions = {
        "voyage-multilingual-2": 1024,
        "voyage-2": 1024,
        "voyage-large-2": 1536,
        "voyage-code-2": 1536,
    }

    def __init__(self, api_key: str = "", model: str | None = None, input_type: str = "document") -> None:
        super().__init__(api_key, model)
        self.input_type = input_type

    async def generate(
        self,
        texts: list[str],
        model: str | None = None,
        timeout: float | None = None,
    ) -> list[list[float]]:
        data = await self._post_json(
            f"{_BASE_URL}/embeddings",
            {
                "model": model or self.model,
                "input": texts,
                "input_type": self.input_type,
            },
            timeout,
        )
        items = data.get("data")
        if not isinstance(items, list):
            raise ProviderError(self.name, "invalid response structure from Voyage API")
        vectors = []
        for item in sorted(items, key=lambda i: i.get("index", 0)):
            embedding = item.get("embedding")
            if not isinstance(embedding, list):
                raise ProviderError(self.name, "invalid embedding format in response")
            vectors.append(embedding)
        return vectors
