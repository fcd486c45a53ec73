"""Lexical similarity used when vector search is unavailable.

Score for (query, content), both lowercased:
    - query is a substring of content        → SUBSTRING_SCORE
    - else, over whitespace-split words:
        overlap = query words contained in some content word / query words
        bonus   = FIRST_WORD_BONUS if the first query word occurs in content
        score   = min(MAX_OVERLAP_SCORE, overlap × OVERLAP_WEIGHT + bonus)
    - no overlapping word                    → 0
"""

from __future__ import annotations

SUBSTRING_SCORE = 0.9
MAX_OVERLAP_SCORE = 0.8
OVERLAP_WEIGHT = 0.7
FIRST_WORD_BONUS = 0.1

CONTENT_FIELDS = ("content", "message", "response")


def extract_content(interaction_data: dict | None) -> str:
    """First non-empty of content, message, response."""
    data = interaction_data or {}
    for field in CONTENT_FIELDS:
        value = data.get(field)
        if isinstance(value, str) and value:
            return value
    return ""


def text_similarity(query: str, content: str) -> float:
    if not query or not content:
        return 0.0

    query_lower = query.lower()
    content_lower = content.lower()
    if query_lower in content_lower:
        return SUBSTRING_SCORE

    query_words = query_lower.split()
    content_words = content_lower.split()
    if not query_words:
        return 0.0
    matches = [w for w in query_words if any(w in cw for cw in content_words)]
    if not matches:
        return 0.0

    ratio = len(matches) / len(query_words)
    bonus = FIRST_WORD_BONUS if query_words[0] in content_lower else 0.0
    return min(MAX_OVERLAP_SCORE, ratio * OVERLAP_WEIGHT + bonus)
