"""Tests for EmbeddingCache — keying, TTL expiry and LRU eviction."""

from __future__ import annotations

from unittest.mock import patch

from studybuddy.embeddings.cache import EmbeddingCache, make_key, normalize_texts


class TestKeys:
    def test_whitespace_is_normalized(self):
        assert make_key(["hello   world"], "cohere") == make_key([" hello world "], "cohere")

    def test_order_matters(self):
        assert make_key(["a", "b"]) != make_key(["b", "a"])

    def test_provider_is_part_of_key(self):
        assert make_key(["a"], "cohere") != make_key(["a"], "voyage")
        assert make_key(["a"]).startswith("default:")

    def test_normalize_keeps_order(self):
        assert normalize_texts(["b  c", "a"]) == ["b c", "a"]


class TestEmbeddingCache:
    def test_miss_then_hit(self):
        cache = EmbeddingCache(max_size=10)
        assert cache.get(["x"], "mock") is None
        cache.set(["x"], [[0.1, 0.2]], provider="mock", model="m")
        entry = cache.get(["x"], "mock")
        assert entry is not None
        assert entry.embeddings == ((0.1, 0.2),)
        assert entry.model == "m"
        stats = cache.stats()
        assert stats.hits == 1
        assert stats.misses == 1
        assert stats.hit_rate == 0.5

    def test_default_key_records_source_provider(self):
        cache = EmbeddingCache()
        cache.set(["x"], [[1.0]], provider=None, model="m", source_provider="voyage")
        assert cache.get(["x"]).provider == "voyage"
        assert cache.get(["x"], "voyage") is None

    def test_ttl_expiry(self):
        cache = EmbeddingCache(ttl_minutes=1)
        with patch("studybuddy.embeddings.cache.time.monotonic", return_value=1000.0):
            cache.set(["x"], [[1.0]], provider="mock", model="m")
        with patch("studybuddy.embeddings.cache.time.monotonic", return_value=1059.0):
            assert cache.get(["x"], "mock") is not None
        with patch("studybuddy.embeddings.cache.time.monotonic", return_value=1061.0):
            assert cache.get(["x"], "mock") is None
        assert len(cache) == 0

    def test_lru_eviction(self):
        cache = EmbeddingCache(max_size=2)
        cache.set(["a"], [[1.0]], provider="p", model="m")
        cache.set(["b"], [[2.0]], provider="p", model="m")
        cache.get(["a"], "p")  # "b" is now least recently used
        cache.set(["c"], [[3.0]], provider="p", model="m")
        assert cache.get(["b"], "p") is None
        assert cache.get(["a"], "p") is not None
        assert cache.get(["c"], "p") is not None
        assert len(cache) == 2

    def test_cleanup_removes_only_expired(self):
        cache = EmbeddingCache(ttl_minutes=1)
        with patch("studybuddy.embeddings.cache.time.monotonic", return_value=0.0):
            cache.set(["old"], [[1.0]], provider="p", model="m")
        with patch("studybuddy.embeddings.cache.time.monotonic", return_value=50.0):
            cache.set(["new"], [[1.0]], provider="p", model="m")
        with patch("studybuddy.embeddings.cache.time.monotonic", return_value=70.0):
            assert cache.cleanup() == 1
        assert len(cache) == 1

    def test_clear_resets_stats(self):
        cache = EmbeddingCache()
        cache.set(["a"], [[1.0]], provider="p", model="m")
        cache.get(["a"], "p")
        cache.clear()
        stats = cache.stats()
        assert stats.size == 0
        assert stats.hits == 0
        assert stats.hit_rate == 0.0
