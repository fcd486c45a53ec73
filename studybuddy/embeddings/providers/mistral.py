"""Mistral embeddings API adapter (OpenAI-compatible response shape)."""

from __future__ import annotations

from studybuddy.embeddings.providers.base import EmbeddingAdapter
from studybuddy.errors import ProviderError

_BASE_URL = "https://api.mistral.ai/v1"


class MistralAdapter(EmbeddingAdapter):
    name = "mistral"
    default_model = "mistral-embed"
    default_dimensions = 1024
    model_dimensions = {"mistral-embed": 1024}

    async def generate(
        self,
        texts: list[str],
        model: str | None = None,
        timeout: float | None = None,
    ) -> list[list[float]]:
        data = await self._post_json(
            f"{_BASE_URL}/embeddings",
            {"model": model or self.model, "input": texts},
            timeout,
        )
        items = data.get("data")
        if not isinstance(items, list):
            raise ProviderError(self.name, "invalid response structure: missing data")
        items = sorted(items, key=lambda item: item.get("index", 0))
        return [item.get("embedding") or [] for item in items]
