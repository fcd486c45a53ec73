"""Cohere embed API adapter.

Endpoint: POST https://api.cohere.ai/v1/embed
Response: {"embeddings": [[...], ...]} in input order.
"""

from __future__ import annotations

from studybuddy.embeddings.providers.base import EmbeddingAdapter
from studybuddy.errors import ProviderError

_BASE_URL = "https://api.cohere.ai/v1"


class CohereAdapter(EmbeddingAdapter):
    name = "cohere"
    default_model = "embed-multilingual-v3.0"
    default_dimensions = 1024
    model_dimensions = {
        "embed-multilingual-v3.0": 1024,
        "embed-english-v3.0": 1024,
        "embed-multilingual-light-v3.0": 384,
        "embed-english-light-v3.0": 384,
    }

    def __init__(self, api_key: str = "", model: str | None = None, input_type: str = "search_document") -> None:
        super().__init__(api_key, model)
        self.input_type = input_type

    async def generate(
        self,
        texts: list[str],
        model: str | None = None,
        timeout: float | None = None,
    ) -> list[list[float]]:
        data = await self._post_json(
            f"{_BASE_URL}/embed",
            {
                "model": model or self.model,
                "texts": texts,
                "input_type": self.input_type,
            },
            timeout,
        )
        embeddings = data.get("embeddings")
        if not isinstance(embeddings, list):
            raise ProviderError(self.name, "invalid response structure: missing embeddings")
        return embeddings
