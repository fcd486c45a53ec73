"""Provider adapter registry keyed by provider id.

Only providers with a configured API key are registered; the mock adapter
is registered when MOCK_EMBEDDINGS_ENABLED is set.
"""

from __future__ import annotations

import logging

from studybuddy.config import Settings
from studybuddy.embeddings.providers.base import EmbeddingAdapter
from studybuddy.embeddings.providers.cohere import CohereAdapter
from studybuddy.embeddings.providers.google import GoogleAdapter
from studybuddy.embeddings.providers.mistral import MistralAdapter
from studybuddy.embeddings.providers.mock import MockEmbeddingAdapter
from studybuddy.embeddings.providers.voyage import VoyageAdapter

logger = logging.getLogger(__name__)

ADAPTER_REGISTRY: dict[str, type[EmbeddingAdapter]] = {
    "cohere": CohereAdapter,
    "mistral": MistralAdapter,
    "google": GoogleAdapter,
    "voyage": VoyageAdapter,
    "mock": MockEmbeddingAdapter,
}


def build_adapters(settings: Settings) -> dict[str, EmbeddingAdapter]:
    """Instantiate one adapter per configured provider."""
    adapters: dict[str, EmbeddingAdapter] = {}
    for name, cls in ADAPTER_REGISTRY.items():
        if name == "mock":
            if settings.mock_embeddings_enabled:
                adapters[name] = cls(model=settings.provider_model(name))
            continue
        api_key = getattr(settings, f"{name}_api_key", "")
        if not api_key:
            logger.info("Embedding provider %s not configured (no API key)", name)
            continue
        adapters[name] = cls(api_key=api_key, model=settings.provider_model(name))
    logger.info("Registered embedding providers: %s", ", ".join(adapters) or "none")
    return adapters


__all__ = [
    "ADAPTER_REGISTRY",
    "CohereAdapter",
    "EmbeddingAdapter",
    "GoogleAdapter",
    "MistralAdapter",
    "MockEmbeddingAdapter",
    "VoyageAdapter",
    "build_adapters",
]
