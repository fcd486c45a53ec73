"""EmbeddingService — multi-provider embedding orchestration.

generate_embeddings walks a priority list of providers:
    1. cache hit for (texts, provider) → returned with zero usage
    2. skip providers the monitor marks unavailable, over quota, or
       without a registered adapter
    3. call the adapter under asyncio.wait_for; validate count and width
    4. on success write the cache, record usage and latency
    5. on failure record it inline and move on
Only AllProvidersExhaustedError reaches the caller.

Cost is an approximation: input characters × provider unit cost.

Usage:
    service = EmbeddingService.from_settings(settings)
    result = await service.generate_embeddings(["photosynthesis"])
"""

from __future__ import annotations

import asyncio
import logging
import time

from studybuddy.config import PROVIDER_NAMES, Settings
from studybuddy.embeddings.cache import EmbeddingCache
from studybuddy.embeddings.health import ProviderHealthMonitor
from studybuddy.embeddings.providers import ADAPTER_REGISTRY, build_adapters
from studybuddy.embeddings.providers.base import EmbeddingAdapter
from studybuddy.errors import (
    AllProvidersExhaustedError,
    InvalidInputError,
    ProviderError,
    QuotaExceededError,
)
from studybuddy.models.embedding import CacheStats, EmbeddingResult, EmbeddingUsage

logger = logging.getLogger(__name__)


class EmbeddingService:
    """Orchestrates embedding generation across providers with fallback."""

    def __init__(
        self,
        adapters: dict[str, EmbeddingAdapter],
        monitor: ProviderHealthMonitor | None = None,
        cache: EmbeddingCache | None = None,
        default_provider: str = "cohere",
        fallback_providers: list[str] | None = None,
        unit_costs: dict[str, float] | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.adapters = adapters
        self.cache = cache or EmbeddingCache()
        self.monitor = monitor or ProviderHealthMonitor(adapters, maintenance=self.cache.cleanup)
        self.default_provider = default_provider
        self.fallback_providers = list(fallback_providers or [])
        self.unit_costs = dict(unit_costs or {})
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> EmbeddingService:
        adapters = build_adapters(settings)
        cache = EmbeddingCache(
            max_size=settings.embedding_cache_max_size,
            ttl_minutes=settings.embedding_cache_ttl_minutes,
        )
        monitor = ProviderHealthMonitor.from_settings(adapters, settings, maintenance=cache.cleanup)
        return cls(
            adapters,
            monitor=monitor,
            cache=cache,
            default_provider=settings.embedding_default_provider,
            fallback_providers=settings.fallback_list(),
            unit_costs={name: settings.provider_unit_cost(name) for name in PROVIDER_NAMES},
            timeout=settings.embedding_timeout_seconds,
        )

    # === Lifecycle ===

    async def start(self) -> None:
        await self.monitor.start()

    def stop(self) -> None:
        self.monitor.stop()

    # === Core ===

    def priority_list(self, provider: str | None = None) -> list[str]:
        """Explicit provider only, else default followed by the fallbacks."""
        if provider:
            return [provider]
        order = [self.default_provider]
        for name in self.fallback_providers:
            if name not in order:
                order.append(name)
        return order

    async def generate_embeddings(
        self,
        texts: list[str],
        provider: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
    ) -> EmbeddingResult:
        """Embed ``texts`` with the first available provider.

        Args:
            texts: Texts to embed, one vector per entry in the same order.
            provider: Explicit provider; disables fallback when set.
            model: Model override, applied to the explicit provider or,
                without one, to the default provider only.
            timeout: Per-call bound in seconds.

        Raises:
            InvalidInputError: empty list or a non-string entry.
            AllProvidersExhaustedError: every candidate failed or was skipped.
        """
        if not isinstance(texts, list):
            raise InvalidInputError("texts must be a list of strings")
        if not texts:
            raise InvalidInputError("At least one text is required")
        if not all(isinstance(t, str) for t in texts):
            raise InvalidInputError("texts must contain only strings")

        cached = self.cache.get(texts, provider)
        if cached is not None:
            widths = {len(v) for v in cached.embeddings}
            if len(widths) != 1:
                raise InvalidInputError("Cached embeddings have inconsistent dimensions")
            return EmbeddingResult(
                embeddings=[list(v) for v in cached.embeddings],
                provider=cached.provider,
                model=cached.model,
                dimensions=widths.pop(),
                usage=EmbeddingUsage(),
                cached=True,
            )

        call_timeout = timeout or self.timeout
        total_chars = sum(len(t) for t in texts)
        last_error: Exception | None = None
        skipped: list[str] = []

        for index, name in enumerate(self.priority_list(provider)):
            adapter = self.adapters.get(name)
            if adapter is None:
                logger.info("Skipping embedding provider %s: not configured", name)
                skipped.append(name)
                continue
            if not self.monitor.is_available(name):
                logger.info("Skipping embedding provider %s: unhealthy", name)
                skipped.append(name)
                continue
            exceeded = self.monitor.quota_exceeded(name)
            if exceeded:
                last_error = QuotaExceededError(name, f"{exceeded} quota exceeded")
                logger.warning("Skipping embedding provider %s: %s", name, last_error.message)
                skipped.append(name)
                continue

            model_name = model if (model and index == 0) else adapter.model
            start = time.monotonic()
            try:
                vectors = await asyncio.wait_for(
                    adapter.generate(texts, model=model_name, timeout=call_timeout),
                    timeout=call_timeout,
                )
                dimensions = self._validate(name, vectors, len(texts), adapter.expected_dimensions(model_name))
            except asyncio.TimeoutError:
                last_error = ProviderError(name, f"timed out after {call_timeout}s")
            except ProviderError as e:
                last_error = e
            except Exception as e:
                last_error = ProviderError(name, str(e) or type(e).__name__)
            else:
                latency_ms = int((time.monotonic() - start) * 1000)
                cost = total_chars * self.unit_costs.get(name, 0.0)
                self.monitor.record_success(name, latency_ms)
                self.monitor.record_usage(name, cost)
                self.cache.set(texts, vectors, provider, model_name, source_provider=name)
                if index > 0:
                    logger.info("Embeddings generated by fallback provider %s", name)
                return EmbeddingResult(
                    embeddings=vectors,
                    provider=name,
                    model=model_name,
                    dimensions=dimensions,
                    usage=EmbeddingUsage(request_count=1, total_characters=total_chars, cost=cost),
                )

            logger.warning("Embedding provider %s failed: %s", name, last_error)
            self.monitor.record_failure(name, str(last_error))

        raise AllProvidersExhaustedError(last_error, skipped)

    @staticmethod
    def _validate(provider: str, vectors: object, expected_count: int, expected_dims: int) -> int:
        if not isinstance(vectors, list) or len(vectors) != expected_count:
            got = len(vectors) if isinstance(vectors, list) else type(vectors).__name__
            raise ProviderError(provider, f"expected {expected_count} embeddings, got {got}")
        for vector in vectors:
            if not isinstance(vector, list) or not vector:
                raise ProviderError(provider, "empty or malformed embedding in response")
            if len(vector) != expected_dims:
                raise ProviderError(
                    provider, f"expected {expected_dims} dimensions, got {len(vector)}"
                )
        return expected_dims

    async def embed_query(
        self, query: str, provider: str | None = None, timeout: float | None = None
    ) -> tuple[list[float], EmbeddingResult]:
        """Embed a single query string."""
        if not isinstance(query, str) or not query.strip():
            raise InvalidInputError("Query text is required")
        result = await self.generate_embeddings([query], provider=provider, timeout=timeout)
        return result.embeddings[0], result

    # === Introspection / admin ===

    def get_usage_statistics(self) -> dict:
        snapshots = self.monitor.snapshot_all()
        return {
            "total_requests": sum(s.requests for s in snapshots.values()),
            "total_cost": round(sum(s.cost for s in snapshots.values()), 6),
            "providers": {name: snap.model_dump(mode="json") for name, snap in snapshots.items()},
            "cache": self.cache_stats().model_dump(),
        }

    def get_provider_settings(self) -> dict:
        order = self.priority_list()
        providers = {}
        for name, cls in ADAPTER_REGISTRY.items():
            adapter = self.adapters.get(name)
            health = self.monitor.snapshot(name) if adapter is not None else None
            model = adapter.model if adapter is not None else cls.default_model
            providers[name] = {
                "enabled": adapter is not None,
                "model": model,
                "dimensions": (adapter or cls()).expected_dimensions(model),
                "priority": order.index(name) + 1 if name in order else None,
                "daily_quota": health.daily_quota if health else 0,
                "monthly_quota": health.monthly_quota if health else 0,
                "unit_cost": self.unit_costs.get(name, 0.0),
            }
        return {
            "default_provider": self.default_provider,
            "fallback_providers": list(self.fallback_providers),
            "providers": providers,
            "monitoring": {
                "enabled": self.monitor.enabled,
                "interval_minutes": self.monitor.interval_seconds / 60,
                "failure_threshold": self.monitor.failure_threshold,
                "recovery_seconds": self.monitor.recovery_seconds,
            },
        }

    def set_default_provider(self, provider: str) -> None:
        if provider not in ADAPTER_REGISTRY:
            raise InvalidInputError(f"Unknown embedding provider: {provider}")
        if provider not in self.adapters:
            raise InvalidInputError(f"Embedding provider not configured: {provider}")
        old = self.default_provider
        self.default_provider = provider
        if provider != old:
            self.cache.clear()  # Default-path entries hold the previous provider's vectors
        logger.info("Default embedding provider changed: %s -> %s", old, provider)

    def update_provider_model(self, provider: str, model: str) -> None:
        adapter = self.adapters.get(provider)
        if adapter is None:
            raise InvalidInputError(f"Embedding provider not configured: {provider}")
        if adapter.model_dimensions and model not in adapter.model_dimensions:
            raise InvalidInputError(f"Unknown model for {provider}: {model}")
        adapter.model = model
        self.cache.clear()  # Cached vectors may come from the previous model
        logger.info("Embedding model for %s set to %s", provider, model)

    def reset_usage_tracking(self) -> None:
        self.monitor.reset_usage()

    def cache_stats(self) -> CacheStats:
        return self.cache.stats()

    async def check_provider_health(self) -> dict:
        snapshots = await self.monitor.probe_all()
        return {name: snap.model_dump(mode="json") for name, snap in snapshots.items()}
