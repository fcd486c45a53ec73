"""EmbeddingAdapter — uniform texts → vectors interface per provider.

Each adapter isolates one provider's auth, request body and response
shape. Adapters raise ProviderError on any failure; they never fall back
on their own, that is the orchestrator's job.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any

import httpx

from studybuddy.errors import ProviderError

logger = logging.getLogger(__name__)

_DEFAULT_TIMEOUT = 30.0


class EmbeddingAdapter(ABC):
    """Base class for provider adapters.

    Subclasses set ``name``, ``default_model`` and ``model_dimensions`` and
    implement ``generate``.
    """

    name: str = ""
    default_model: str = ""
    default_dimensions: int = 1024
    model_dimensions: dict[str, int] = {}

    def __init__(self, api_key: str = "", model: str | None = None) -> None:
        self.api_key = api_key
        self.model = model or self.default_model

    def expected_dimensions(self, model: str | None = None) -> int:
        """Declared vector width for a model of this provider."""
        return self.model_dimensions.get(model or self.model, self.default_dimensions)

    @abstractmethod
    async def generate(
        self,
        texts: list[str],
        model: str | None = None,
        timeout: float | None = None,
    ) -> list[list[float]]:
        """Embed ``texts`` and return one vector per text, in input order."""

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

    async def _post_json(
        self,
        url: str,
        payload: dict[str, Any],
        timeout: float | None,
        headers: dict[str, str] | None = None,
        params: dict[str, str] | None = None,
    ) -> dict:
        """POST ``payload`` and return the decoded body, mapping failures to ProviderError."""
        try:
            async with httpx.AsyncClient(timeout=timeout or _DEFAULT_TIMEOUT) as client:
                resp = await client.post(
                    url,
                    json=payload,
                    headers=headers if headers is not None else self._headers(),
                    params=params,
                )
                resp.raise_for_status()
                return resp.json()
        except httpx.TimeoutException as e:
            raise ProviderError(self.name, f"request timed out after {timeout}s") from e
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            if status == 401:
                detail = "authentication failed"
            elif status == 429:
                detail = "rate limit exceeded"
            else:
                detail = f"HTTP {status}"
            raise ProviderError(self.name, detail) from e
        except httpx.HTTPError as e:
            raise ProviderError(self.name, f"network error: {e}") from e
        except ValueError as e:
            raise ProviderError(self.name, "response was not valid JSON") from e

    def describe(self) -> dict:
        return {
            "provider": self.name,
            "model": self.model,
            "dimensions": self.expected_dimensions(),
            "models": sorted(self.model_dimensions),
        }
