"""Tests for EmbeddingService — fallback, cache, quotas, timeouts."""

from __future__ import annotations

import asyncio

import pytest
from conftest import make_service

from studybuddy.config import Settings
from studybuddy.embeddings.providers.mock import MockEmbeddingAdapter
from studybuddy.embeddings.service import EmbeddingService
from studybuddy.errors import AllProvidersExhaustedError, InvalidInputError, ProviderError


class _ShortAdapter(MockEmbeddingAdapter):
    """Returns vectors of the wrong width."""

    async def generate(self, texts, model=None, timeout=None):
        self.calls.append(list(texts))
        return [[0.1, 0.2] for _ in texts]


class _CountMismatchAdapter(MockEmbeddingAdapter):
    async def generate(self, texts, model=None, timeout=None):
        self.calls.append(list(texts))
        return [[0.1] * 1024]


class _WideAdapter(MockEmbeddingAdapter):
    """Same hashing as the mock, 1536 dimensions."""

    default_dimensions = 1536
    model_dimensions = {"mock-embed": 1536}


class TestPriorityList:
    def test_default_then_fallbacks_without_duplicates(self):
        service = make_service({}, default="cohere", fallbacks=["voyage", "mistral", "cohere", "voyage"])
        assert service.priority_list() == ["cohere", "voyage", "mistral"]

    def test_explicit_provider_only(self):
        service = make_service({}, default="cohere", fallbacks=["voyage"])
        assert service.priority_list("google") == ["google"]


class TestGenerateEmbeddings:
    @pytest.mark.asyncio
    async def test_success_records_usage(self):
        adapter = MockEmbeddingAdapter()
        service = make_service({"mock": adapter}, default="mock")
        result = await service.generate_embeddings(["hello world", "bye"])

        assert result.provider == "mock"
        assert result.dimensions == 1024
        assert len(result.embeddings) == 2
        assert result.cached is False
        assert result.usage.request_count == 1
        assert result.usage.total_characters == len("hello world") + len("bye")
        assert result.usage.cost == pytest.approx(14 * 0.0001)
        snap = service.monitor.snapshot("mock")
        assert snap.requests == 1
        assert snap.state == "healthy"

    @pytest.mark.asyncio
    async def test_empty_input_rejected(self, embedding_service):
        with pytest.raises(InvalidInputError):
            await embedding_service.generate_embeddings([])
        with pytest.raises(InvalidInputError):
            await embedding_service.generate_embeddings([1, None])  # type: ignore[list-item]

    @pytest.mark.asyncio
    async def test_cache_hit_is_free_and_identical(self):
        adapter = MockEmbeddingAdapter()
        service = make_service({"mock": adapter}, default="mock")
        first = await service.generate_embeddings(["photosynthesis"])
        second = await service.generate_embeddings(["photosynthesis"])

        assert second.cached is True
        assert second.embeddings == first.embeddings
        assert second.provider == "mock"
        assert second.usage.request_count == 0
        assert second.usage.cost == 0.0
        assert len(adapter.calls) == 1
        assert service.monitor.snapshot("mock").requests == 1

    @pytest.mark.asyncio
    async def test_falls_back_to_next_provider(self):
        primary = MockEmbeddingAdapter(fail=True)
        secondary = MockEmbeddingAdapter()
        service = make_service({"primary": primary, "secondary": secondary}, default="primary", fallbacks=["secondary"])

        result = await service.generate_embeddings(["x"])

        assert result.provider == "secondary"
        assert service.monitor.snapshot("primary").state == "degraded"
        assert service.monitor.snapshot("primary").consecutive_failures == 1

    @pytest.mark.asyncio
    async def test_explicit_provider_never_falls_back(self):
        primary = MockEmbeddingAdapter(fail=True)
        secondary = MockEmbeddingAdapter()
        service = make_service({"primary": primary, "secondary": secondary}, default="secondary", fallbacks=["secondary"])

        with pytest.raises(AllProvidersExhaustedError):
            await service.generate_embeddings(["x"], provider="primary")
        assert secondary.calls == []

    @pytest.mark.asyncio
    async def test_unhealthy_provider_is_skipped(self):
        primary = MockEmbeddingAdapter()
        secondary = MockEmbeddingAdapter()
        service = make_service({"primary": primary, "secondary": secondary}, default="primary", fallbacks=["secondary"])
        service.monitor.record_failure("primary", "down", probe=True)

        result = await service.generate_embeddings(["x"])

        assert result.provider == "secondary"
        assert primary.calls == []

    @pytest.mark.asyncio
    async def test_over_quota_provider_is_skipped(self):
        primary = MockEmbeddingAdapter()
        secondary = MockEmbeddingAdapter()
        service = make_service(
            {"primary": primary, "secondary": secondary},
            default="primary",
            fallbacks=["secondary"],
            quotas={"primary": (1, 100)},
        )
        await service.generate_embeddings(["first"])
        result = await service.generate_embeddings(["second"])

        assert result.provider == "secondary"
        assert primary.calls == [["first"]]

    @pytest.mark.asyncio
    async def test_exhaustion_names_last_error_and_skipped(self):
        service = make_service(
            {"primary": MockEmbeddingAdapter(fail=True)},
            default="primary",
            fallbacks=["unconfigured"],
        )
        with pytest.raises(AllProvidersExhaustedError) as exc:
            await service.generate_embeddings(["x"])

        assert isinstance(exc.value.last_error, ProviderError)
        assert exc.value.skipped == ["unconfigured"]
        assert "simulated failure" in str(exc.value)

    @pytest.mark.asyncio
    async def test_timeout_counts_as_failure(self):
        slow = MockEmbeddingAdapter(delay=5.0)
        fast = MockEmbeddingAdapter()
        service = make_service({"slow": slow, "fast": fast}, default="slow", fallbacks=["fast"])

        result = await service.generate_embeddings(["x"], timeout=0.01)

        assert result.provider == "fast"
        assert "timed out" in service.monitor.snapshot("slow").last_error

    @pytest.mark.asyncio
    async def test_wrong_dimensions_rejected(self):
        service = make_service({"short": _ShortAdapter()}, default="short")
        with pytest.raises(AllProvidersExhaustedError, match="dimensions"):
            await service.generate_embeddings(["x"])
        assert len(service.cache) == 0

    @pytest.mark.asyncio
    async def test_wrong_count_rejected(self):
        service = make_service({"bad": _CountMismatchAdapter()}, default="bad")
        with pytest.raises(AllProvidersExhaustedError, match="expected 2 embeddings"):
            await service.generate_embeddings(["a", "b"])

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        service = make_service({"slow": MockEmbeddingAdapter(delay=5.0)}, default="slow")
        task = asyncio.create_task(service.generate_embeddings(["x"], timeout=10))
        await asyncio.sleep(0.01)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert service.monitor.snapshot("slow").consecutive_failures == 0

    @pytest.mark.asyncio
    async def test_non_string_entry_rejected(self, embedding_service):
        with pytest.raises(InvalidInputError, match="only strings"):
            await embedding_service.generate_embeddings(["a", 1, "b"])  # type: ignore[list-item]

    @pytest.mark.asyncio
    async def test_embed_query_honours_timeout(self):
        service = make_service({"slow": MockEmbeddingAdapter(delay=5.0)}, default="slow")
        with pytest.raises(AllProvidersExhaustedError, match="timed out after 0.01s"):
            await service.embed_query("what is osmosis", timeout=0.01)

    @pytest.mark.asyncio
    async def test_embed_query(self, embedding_service):
        vector, result = await embedding_service.embed_query("what is osmosis")
        assert len(vector) == 1024
        assert result.embeddings[0] == vector
        with pytest.raises(InvalidInputError):
            await embedding_service.embed_query("   ")


class TestAdmin:
    def test_set_default_provider(self):
        service = make_service({"mock": MockEmbeddingAdapter()}, default="cohere")
        service.set_default_provider("mock")
        assert service.default_provider == "mock"
        with pytest.raises(InvalidInputError):
            service.set_default_provider("nonexistent")
        with pytest.raises(InvalidInputError):
            service.set_default_provider("voyage")  # known but not configured

    @pytest.mark.asyncio
    async def test_set_default_provider_drops_cached_vectors(self):
        service = make_service({"mock": MockEmbeddingAdapter(), "voyage": _WideAdapter()}, default="mock")
        first = await service.generate_embeddings(["hello"])
        assert first.dimensions == 1024

        service.set_default_provider("voyage")
        second = await service.generate_embeddings(["hello"])

        assert second.provider == "voyage"
        assert second.dimensions == 1536
        assert second.cached is False

    @pytest.mark.asyncio
    async def test_update_provider_model_clears_cache(self):
        adapter = MockEmbeddingAdapter()
        service = make_service({"mock": adapter}, default="mock")
        await service.generate_embeddings(["x"])
        service.update_provider_model("mock", "mock-embed")
        assert len(service.cache) == 0
        with pytest.raises(InvalidInputError):
            service.update_provider_model("mock", "gpt-embed")

    @pytest.mark.asyncio
    async def test_usage_statistics_and_reset(self):
        service = make_service({"mock": MockEmbeddingAdapter()}, default="mock")
        await service.generate_embeddings(["abc"])
        stats = service.get_usage_statistics()
        assert stats["total_requests"] == 1
        assert stats["providers"]["mock"]["requests"] == 1
        assert stats["cache"]["size"] == 1

        service.reset_usage_tracking()
        assert service.get_usage_statistics()["total_requests"] == 0

    def test_provider_settings(self):
        service = make_service({"mock": MockEmbeddingAdapter()}, default="mock", fallbacks=["cohere"])
        data = service.get_provider_settings()
        assert data["default_provider"] == "mock"
        assert data["providers"]["mock"]["enabled"] is True
        assert data["providers"]["mock"]["priority"] == 1
        assert data["providers"]["cohere"]["enabled"] is False
        assert data["providers"]["cohere"]["priority"] == 2
        assert data["providers"]["google"]["dimensions"] == 768

    def test_from_settings(self):
        settings = Settings(
            _env_file=None,
            cohere_api_key="",
            mistral_api_key="",
            google_api_key="",
            voyage_api_key="",
            mock_embeddings_enabled=True,
            embedding_default_provider="mock",
            embedding_fallback_providers="voyage,mock",
            embedding_cache_max_size=7,
        )
        service = EmbeddingService.from_settings(settings)
        assert list(service.adapters) == ["mock"]
        assert service.priority_list() == ["mock", "voyage"]
        assert service.cache.max_size == 7
