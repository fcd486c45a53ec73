"""Error taxonomy for the memory & embedding engine.

ProviderError        → one provider call failed; orchestrator tries the next
QuotaExceededError   → provider skipped; only visible through exhaustion
AllProvidersExhaustedError → every candidate failed or was skipped
InvalidInputError    → empty text list, dimension mismatch (never retried)
VectorSearchUnavailableError → hybrid search drops to lexical mode
NotFoundError        → memory absent or not owned by the caller
"""

from __future__ import annotations


class MemoryEngineError(Exception):
    """Base class for all engine errors."""


class ProviderError(MemoryEngineError):
    """A single embedding provider call failed."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.message = message


class QuotaExceededError(ProviderError):
    """Provider reached its daily or monthly request ceiling."""


class AllProvidersExhaustedError(MemoryEngineError):
    """Every candidate provider failed or was skipped."""

    def __init__(self, last_error: Exception | None, skipped: list[str] | None = None) -> None:
        self.last_error = last_error
        self.skipped = skipped or []
        detail = str(last_error) if last_error else "no provider was attempted"
        message = f"All embedding providers failed. Last error: {detail}"
        if self.skipped:
            message += f" (skipped: {', '.join(self.skipped)})"
        super().__init__(message)


class InvalidInputError(MemoryEngineError, ValueError):
    """Input rejected before any provider or store call."""


class VectorSearchUnavailableError(MemoryEngineError):
    """The vector similarity path could not produce results."""


class NotFoundError(MemoryEngineError, LookupError):
    """Memory does not exist or is not owned by the caller."""
