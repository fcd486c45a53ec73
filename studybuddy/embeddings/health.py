"""Provider Health Monitor — per-provider state, usage counters and quotas.

State machine per provider:
    healthy → degraded (live failure) → unhealthy (failure_threshold
    consecutive failures, or any failed probe). Any success returns the
    provider to healthy. An unhealthy provider is retried once
    recovery_seconds have passed since its last failure, so traffic can
    re-probe it even with periodic probes disabled.

Periodic probes run as an asyncio background task, every registered
adapter concurrently. No lock is held during network I/O; counters are
updated inside short critical sections only.

Usage:
    monitor = ProviderHealthMonitor(adapters, quotas={"cohere": (10000, 100000)})
    await monitor.start()
    ...
    monitor.stop()
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from studybuddy.config import Settings
from studybuddy.embeddings.providers.base import EmbeddingAdapter
from studybuddy.models.embedding import ProviderHealth
from studybuddy.scheduling import PeriodicTask

logger = logging.getLogger(__name__)

HEALTHY = "healthy"
DEGRADED = "degraded"
UNHEALTHY = "unhealthy"

PROBE_TEXTS = ["health check"]


@dataclass
class _ProviderState:
    state: str = HEALTHY
    response_time_ms: int = 0
    last_check: datetime | None = None
    last_error: str | None = None
    last_failure_at: float = 0.0  # monotonic
    consecutive_failures: int = 0
    requests: int = 0
    cost: float = 0.0
    daily_requests: int = 0
    monthly_requests: int = 0
    daily_quota: int = 0
    monthly_quota: int = 0


class ProviderHealthMonitor(PeriodicTask):
    """Tracks health, usage and quotas for each embedding provider."""

    label = "Provider health monitor"

    def __init__(
        self,
        adapters: dict[str, EmbeddingAdapter],
        quotas: dict[str, tuple[int, int]] | None = None,
        failure_threshold: int = 3,
        recovery_seconds: float = 300.0,
        probe_timeout: float = 5.0,
        interval_minutes: float = 5.0,
        enabled: bool = True,
        maintenance: Callable[[], object] | None = None,
    ) -> None:
        super().__init__(interval_minutes * 60, enabled=enabled)
        self.adapters = adapters
        self.failure_threshold = failure_threshold
        self.recovery_seconds = recovery_seconds
        self.probe_timeout = probe_timeout
        self.maintenance = maintenance
        self._lock = threading.Lock()
        self._states: dict[str, _ProviderState] = {}
        for name in adapters:
            daily, monthly = (quotas or {}).get(name, (0, 0))
            self._states[name] = _ProviderState(daily_quota=daily, monthly_quota=monthly)

    @classmethod
    def from_settings(
        cls,
        adapters: dict[str, EmbeddingAdapter],
        settings: Settings,
        maintenance: Callable[[], object] | None = None,
    ) -> ProviderHealthMonitor:
        return cls(
            adapters,
            quotas={name: settings.provider_quota(name) for name in adapters},
            failure_threshold=settings.health_failure_threshold,
            recovery_seconds=settings.health_recovery_seconds,
            probe_timeout=settings.health_probe_timeout_seconds,
            interval_minutes=settings.health_check_interval_minutes,
            enabled=settings.health_checks_enabled,
            maintenance=maintenance,
        )

    def _state(self, provider: str) -> _ProviderState:
        # Caller holds the lock
        state = self._states.get(provider)
        if state is None:
            state = self._states[provider] = _ProviderState()
        return state

    # === Queries used by the orchestrator ===

    def is_available(self, provider: str) -> bool:
        """False while a provider is unhealthy and inside its recovery window."""
        with self._lock:
            state = self._states.get(provider)
            if state is None or state.state != UNHEALTHY:
                return True
            return time.monotonic() - state.last_failure_at >= self.recovery_seconds

    def quota_exceeded(self, provider: str) -> str | None:
        """Return "daily" or "monthly" if that ceiling is reached, else None.

        A quota of 0 means unlimited.
        """
        with self._lock:
            state = self._states.get(provider)
            if state is None:
                return None
            if state.daily_quota and state.daily_requests >= state.daily_quota:
                return "daily"
            if state.monthly_quota and state.monthly_requests >= state.monthly_quota:
                return "monthly"
            return None

    # === Recording ===

    def record_success(self, provider: str, response_time_ms: int) -> None:
        with self._lock:
            state = self._state(provider)
            if state.state != HEALTHY:
                logger.info("Embedding provider %s recovered (was %s)", provider, state.state)
            state.state = HEALTHY
            state.consecutive_failures = 0
            state.response_time_ms = response_time_ms
            state.last_check = datetime.now(timezone.utc)
            state.last_error = None

    def record_failure(self, provider: str, error: str, probe: bool = False) -> None:
        """Record a failed call. A failed probe marks the provider unhealthy at once."""
        with self._lock:
            state = self._state(provider)
            state.consecutive_failures += 1
            state.last_error = error
            state.last_check = datetime.now(timezone.utc)
            state.last_failure_at = time.monotonic()
            if probe or state.consecutive_failures >= self.failure_threshold:
                new_state = UNHEALTHY
            else:
                new_state = DEGRADED
            if new_state != state.state:
                logger.warning(
                    "Embedding provider %s is now %s after %d consecutive failures: %s",
                    provider, new_state, state.consecutive_failures, error,
                )
            state.state = new_state

    def record_usage(self, provider: str, cost: float, requests: int = 1) -> None:
        with self._lock:
            state = self._state(provider)
            state.requests += requests
            state.daily_requests += requests
            state.monthly_requests += requests
            state.cost += cost

    # === Resets (called by an external scheduler or an admin) ===

    def reset_daily(self) -> None:
        with self._lock:
            for state in self._states.values():
                state.daily_requests = 0
        logger.info("Daily embedding quotas reset")

    def reset_monthly(self) -> None:
        with self._lock:
            for state in self._states.values():
                state.monthly_requests = 0
        logger.info("Monthly embedding quotas reset")

    def reset_usage(self) -> None:
        """Zero request and cost counters; health state is kept."""
        with self._lock:
            for state in self._states.values():
                state.requests = 0
                state.cost = 0.0
                state.daily_requests = 0
                state.monthly_requests = 0
        logger.info("Embedding usage tracking reset")

    def reset(self) -> None:
        """Return every provider to a fresh healthy state with zero counters."""
        with self._lock:
            for name, state in self._states.items():
                self._states[name] = _ProviderState(
                    daily_quota=state.daily_quota, monthly_quota=state.monthly_quota
                )

    # === Snapshots ===

    def snapshot(self, provider: str) -> ProviderHealth:
        with self._lock:
            state = self._state(provider)
            return ProviderHealth(
                provider=provider,
                state=state.state,
                healthy=state.state != UNHEALTHY,
                response_time_ms=state.response_time_ms,
                last_check=state.last_check,
                last_error=state.last_error,
                consecutive_failures=state.consecutive_failures,
                requests=state.requests,
                cost=state.cost,
                daily_requests=state.daily_requests,
                monthly_requests=state.monthly_requests,
                daily_quota=state.daily_quota,
                monthly_quota=state.monthly_quota,
            )

    def snapshot_all(self) -> dict[str, ProviderHealth]:
        with self._lock:
            names = list(self._states)
        return {name: self.snapshot(name) for name in names}

    # === Probing ===

    async def probe(self, provider: str) -> ProviderHealth:
        """Send a minimal embedding request and record the outcome."""
        adapter = self.adapters.get(provider)
        if adapter is None:
            return self.snapshot(provider)
        start = time.monotonic()
        try:
            await asyncio.wait_for(
                adapter.generate(PROBE_TEXTS, timeout=self.probe_timeout),
                timeout=self.probe_timeout,
            )
        except asyncio.TimeoutError:
            self.record_failure(provider, f"probe timed out after {self.probe_timeout}s", probe=True)
        except Exception as e:
            self.record_failure(provider, str(e), probe=True)
        else:
            self.record_success(provider, int((time.monotonic() - start) * 1000))
        return self.snapshot(provider)

    async def probe_all(self) -> dict[str, ProviderHealth]:
        """Probe every registered adapter concurrently."""
        names = list(self.adapters)
        results = await asyncio.gather(*(self.probe(name) for name in names))
        return dict(zip(names, results))

    # === Background loop ===

    async def tick(self) -> None:
        await self.probe_all()
        if self.maintenance is not None:
            self.maintenance()

    def get_status(self) -> dict:
        snapshots = self.snapshot_all()
        return {
            "enabled": self.enabled,
            "running": self.is_running,
            "interval_minutes": self.interval_seconds / 60,
            "providers": {name: snap.state for name, snap in snapshots.items()},
        }
