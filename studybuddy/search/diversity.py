"""Context-level filtering of ranked search results.

light          → top 2
balanced       → top 4, then greedy topic diversity
comprehensive  → everything
anything else  → top 3
"""

from __future__ import annotations

from typing import Sequence, TypeVar

from studybuddy.models.memory import SearchResult

T = TypeVar("T", bound=SearchResult)

BALANCED_POOL = 4
BALANCED_MIN_RESULTS = 2
DEFAULT_TOPIC = "general"


def topic_key(result: SearchResult) -> str:
    return result.topic or DEFAULT_TOPIC


def balanced_diversity(results: Sequence[T]) -> list[T]:
    """Accept a result if its topic is new, or fewer than 2 have been chosen."""
    pool = list(results[:BALANCED_POOL])
    seen: set[str] = set()
    chosen: list[T] = []
    for result in pool:
        key = topic_key(result)
        if key not in seen or len(chosen) < BALANCED_MIN_RESULTS:
            seen.add(key)
            chosen.append(result)
    return chosen or pool


def apply_context_level(results: Sequence[T], context_level: str | None) -> list[T]:
    if not context_level:
        return list(results)
    if context_level == "light":
        return list(results[:2])
    if context_level == "balanced":
        return balanced_diversity(results)
    if context_level == "comprehensive":
        return list(results)
    return list(results[:3])
