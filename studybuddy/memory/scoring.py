"""Write-time memory scores and retention-derived expiry.

Both scores are computed once when a memory is written and are never
recomputed on update.
"""

from __future__ import annotations

from datetime import datetime, timedelta

from studybuddy.models.memory import MemoryMetadata

PRIORITY_WEIGHTS = {"low": 0.1, "medium": 0.2, "high": 0.3, "critical": 0.4}

KIND_WEIGHTS = {
    "user_query": 0.2,
    "ai_response": 0.15,
    "learning_interaction": 0.25,
    "feedback": 0.2,
    "correction": 0.3,
    "insight": 0.35,
}

RETENTION_WINDOWS = {
    "session": timedelta(days=1),
    "short_term": timedelta(days=7),
    "long_term": timedelta(days=30),
    "permanent": timedelta(days=365),
}


def quality_score(content: str, response: str | None, metadata: MemoryMetadata) -> float:
    """How complete and well-formed the interaction is, in [0, 1]."""
    score = 0.5
    if content and len(content) > 10:
        score += 0.1
    if response:
        score += 0.2
        if metadata.confidence_score is not None and metadata.confidence_score > 0.8:
            score += 0.1
    if metadata.learning_objective:
        score += 0.1
    if metadata.topic:
        score += 0.05
    if metadata.processing_time_ms is not None and metadata.processing_time_ms < 5000:
        score += 0.05
    if metadata.tokens_used is not None and metadata.tokens_used < 1000:
        score += 0.05
    return round(max(0.0, min(1.0, score)), 4)


def relevance_score(content: str, priority: str, metadata: MemoryMetadata) -> float:
    """Stored importance used for ranking, capped at 1.0."""
    score = 0.3 + PRIORITY_WEIGHTS.get(priority, PRIORITY_WEIGHTS["medium"])
    if content:
        score += 0.2
    if metadata.topic:
        score += 0.1
    if metadata.tags:
        score += 0.1
    score += KIND_WEIGHTS.get(metadata.kind, 0.1)
    return round(min(1.0, score), 4)


def expires_at(retention: str, now: datetime) -> datetime:
    return now + RETENTION_WINDOWS.get(retention, RETENTION_WINDOWS["long_term"])
