"""Tests for KeywordClassifier and write-time scoring."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from studybuddy.memory.classifier import KeywordClassifier
from studybuddy.memory.scoring import RETENTION_WINDOWS, expires_at, quality_score, relevance_score
from studybuddy.models.memory import MemoryMetadata


@pytest.fixture
def classifier():
    return KeywordClassifier()


class TestKeywordClassifier:
    def test_personal_fact_is_universal_high_permanent(self, classifier):
        c = classifier.classify("my name is Alex", None, None)
        assert (c.memory_type, c.priority, c.retention) == ("universal", "high", "permanent")

    def test_personal_fact_wins_even_inside_conversation(self, classifier):
        c = classifier.classify("I prefer visual explanations", "Sure!", "conv-1")
        assert c.memory_type == "universal"
        assert c.reason == "personal"

    def test_durability_marker_in_response(self, classifier):
        c = classifier.classify("what is mitosis", "Key point: cells divide.", "conv-1")
        assert (c.memory_type, c.priority, c.retention) == ("universal", "high", "permanent")

    def test_correction_is_critical(self, classifier):
        c = classifier.classify("that was a mistake in the formula", None, "conv-1")
        assert (c.memory_type, c.priority, c.retention) == ("universal", "critical", "permanent")

    def test_correction_marker_in_response(self, classifier):
        c = classifier.classify("is a tomato a vegetable", "Actually, it is a fruit.", "conv-1")
        assert c.priority == "critical"

    def test_personal_checked_before_correction(self, classifier):
        c = classifier.classify("actually, call me Sam", None, "conv-1")
        assert c.priority == "high"

    def test_plain_turn_in_conversation_is_session(self, classifier):
        c = classifier.classify("explain photosynthesis", "Plants convert light.", "conv-1")
        assert (c.memory_type, c.priority, c.retention) == ("session", "medium", "long_term")

    def test_plain_turn_without_conversation_is_universal(self, classifier):
        c = classifier.classify("explain photosynthesis", None, None)
        assert (c.memory_type, c.priority, c.retention) == ("universal", "medium", "long_term")

    def test_case_insensitive(self, classifier):
        assert classifier.classify("MY NAME IS ALEX", None, "c").memory_type == "universal"


class TestQualityScore:
    def test_base_score(self):
        assert quality_score("short", None, MemoryMetadata()) == 0.5

    def test_response_adds_exactly_point_two(self):
        meta = MemoryMetadata()
        without = quality_score("a long enough message", None, meta)
        with_response = quality_score("a long enough message", "an answer", meta)
        assert with_response - without == pytest.approx(0.2)

    def test_high_confidence_bonus_needs_response(self):
        meta = MemoryMetadata(confidence_score=0.9)
        assert quality_score("short", None, meta) == 0.5
        assert quality_score("short", "ok", meta) == pytest.approx(0.8)

    def test_clamped_to_one(self):
        meta = MemoryMetadata(
            confidence_score=0.95,
            learning_objective="understand osmosis",
            topic="biology",
            processing_time_ms=1200,
            tokens_used=300,
        )
        assert quality_score("a long enough message", "answer", meta) == 1.0


class TestRelevanceScore:
    def test_medium_ai_response(self):
        # 0.3 + 0.2 (medium) + 0.2 (message) + 0.15 (ai_response)
        assert relevance_score("hello", "medium", MemoryMetadata()) == pytest.approx(0.85)

    def test_priority_weights_increase(self):
        meta = MemoryMetadata(kind="user_query")
        scores = [relevance_score("", p, meta) for p in ("low", "medium", "high", "critical")]
        assert scores == sorted(scores)
        assert scores[0] == pytest.approx(0.6)

    def test_capped_at_one(self):
        meta = MemoryMetadata(kind="insight", topic="t", tags=["x"])
        assert relevance_score("msg", "critical", meta) == 1.0


class TestRetention:
    def test_windows(self):
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        assert expires_at("session", now) - now == timedelta(hours=24)
        assert expires_at("short_term", now) - now == timedelta(days=7)
        assert expires_at("long_term", now) - now == timedelta(days=30)
        assert expires_at("permanent", now) - now == timedelta(days=365)

    def test_unknown_falls_back_to_long_term(self):
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        assert expires_at("forever", now) - now == RETENTION_WINDOWS["long_term"]
