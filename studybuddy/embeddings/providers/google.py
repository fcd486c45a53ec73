"""Google Generative Language embeddings adapter.

Uses batchEmbedContents with outputDimensionality pinned to 768 so every
model in ``model_dimensions`` produces vectors of the same width.

Auth: API key as query parameter (GOOGLE_API_KEY).
"""

from __future__ import annotations

from studybuddy.embeddings.providers.base import EmbeddingAdapter
from studybuddy.errors import ProviderError

_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
_OUTPUT_DIMENSIONS = 768


class GoogleAdapter(EmbeddingAdapter):
    name = "google"
    default_model = "gemini-embedding-001"
    default_dimensions = _OUTPUT_DIMENSIONS
    model_dimensions = {
        "gemini-embedding-001": _OUTPUT_DIMENSIONS,
        "text-embedding-004": _OUTPUT_DIMENSIONS,
    }

    async def generate(
        self,
        texts: list[str],
        model: str | None = None,
        timeout: float | None = None,
    ) -> list[list[float]]:
        model_name = model or self.model
        payload = {
            "requests": [
                {
                    "model": f"models/{model_name}",
                    "content": {"parts": [{"text": text}]},
                    "taskType": "RETRIEVAL_DOCUMENT",
                    "outputDimensionality": _OUTPUT_DIMENSIONS,
                }
                for text in texts
            ]
        }
        data = await self._post_json(
            f"{_BASE_URL}/models/{model_name}:batchEmbedContents",
            payload,
            timeout,
            headers={"Content-Type": "application/json"},
            params={"key": self.api_key},
        )
        embeddings = data.get("embeddings")
        if not isinstance(embeddings, list):
            raise ProviderError(self.name, "invalid response structure: missing embeddings")
        return [item.get("values") or [] for item in embeddings]
