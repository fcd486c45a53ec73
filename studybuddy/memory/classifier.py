"""Memory classification — which tier, priority and retention a turn gets.

The Classifier protocol lets callers swap in a model-based classifier;
KeywordClassifier is the default case-insensitive marker heuristic.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

PERSONAL_MARKERS = ("my name", "i am", "call me", "i prefer", "i like", "i learn best")
DURABLE_MESSAGE_MARKERS = ("remember", "important", "key concept", "always", "never forget")
DURABLE_RESPONSE_MARKERS = ("key point", "important to note", "remember that")
CORRECTION_MESSAGE_MARKERS = ("correction", "actually", "mistake")
CORRECTION_RESPONSE_MARKERS = ("correction", "actually", "important distinction")


@dataclass(frozen=True)
class Classification:
    memory_type: str  # "session" | "universal"
    priority: str
    retention: str
    reason: str = ""


class Classifier(Protocol):
    def classify(
        self, content: str, response: str | None, conversation_id: str | None
    ) -> Classification: ...


def _contains_any(text: str, markers: tuple[str, ...]) -> bool:
    return any(marker in text for marker in markers)


class KeywordClassifier:
    """Marker-phrase heuristic.

    Checked in order: personal facts, durability cues, corrections
    (critical); the first match wins. Anything else is a session memory
    when the turn belongs to a conversation.
    """

    def classify(
        self, content: str, response: str | None, conversation_id: str | None
    ) -> Classification:
        message = (content or "").lower()
        reply = (response or "").lower()

        if _contains_any(message, PERSONAL_MARKERS):
            return Classification("universal", "high", "permanent", "personal")
        if _contains_any(message, DURABLE_MESSAGE_MARKERS) or _contains_any(
            reply, DURABLE_RESPONSE_MARKERS
        ):
            return Classification("universal", "high", "permanent", "durable")
        if _contains_any(message, CORRECTION_MESSAGE_MARKERS) or _contains_any(
            reply, CORRECTION_RESPONSE_MARKERS
        ):
            return Classification("universal", "critical", "permanent", "correction")
        if conversation_id:
            return Classification("session", "medium", "long_term", "conversation")
        return Classification("universal", "medium", "long_term", "default")
