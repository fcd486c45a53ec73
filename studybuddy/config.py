"""StudyBuddy memory engine configuration — providers, quotas, search defaults."""

from typing import Literal

from pydantic_settings import BaseSettings

ProviderName = Literal["cohere", "mistral", "google", "voyage", "mock"]

PROVIDER_NAMES: tuple[str, ...] = ("cohere", "mistral", "google", "voyage", "mock")


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # API Keys (empty = provider not registered)
    cohere_api_key: str = ""
    mistral_api_key: str = ""
    google_api_key: str = ""
    voyage_api_key: str = ""

    # Database
    database_url: str = "sqlite:///data/studybuddy.db"

    # CORS (comma-separated origins)
    cors_origins: str = "http://localhost:3000"

    # Provider ordering
    embedding_default_provider: ProviderName = "cohere"
    embedding_fallback_providers: str = "voyage,mistral,google,cohere"  # Comma-separated
    embedding_timeout_seconds: float = 30.0
    mock_embeddings_enabled: bool = False  # Registers the offline "mock" adapter

    # Models per provider
    model_cohere: str = "embed-multilingual-v3.0"
    model_mistral: str = "mistral-embed"
    model_google: str = "gemini-embedding-001"
    model_voyage: str = "voyage-multilingual-2"
    model_mock: str = "mock-embed"

    # Quotas (requests per day / month)
    quota_daily_cohere: int = 10000
    quota_monthly_cohere: int = 100000
    quota_daily_mistral: int = 5000
    quota_monthly_mistral: int = 50000
    quota_daily_google: int = 20000
    quota_monthly_google: int = 200000
    quota_daily_voyage: int = 10000
    quota_monthly_voyage: int = 100000
    quota_daily_mock: int = 1000000
    quota_monthly_mock: int = 10000000

    # Unit cost per input character (approximation, not token billing)
    cost_per_char_cohere: float = 0.0001
    cost_per_char_mistral: float = 0.00005
    cost_per_char_google: float = 0.00001
    cost_per_char_voyage: float = 0.00012
    cost_per_char_mock: float = 0.0

    # Embedding cache
    embedding_cache_ttl_minutes: float = 60.0
    embedding_cache_max_size: int = 1000

    # Provider health monitoring
    health_checks_enabled: bool = True
    health_check_interval_minutes: float = 5.0
    health_probe_timeout_seconds: float = 5.0
    health_failure_threshold: int = 3  # Consecutive live failures before unhealthy
    health_recovery_seconds: float = 300.0  # Unhealthy providers retried after this

    # Search defaults
    search_default_limit: int = 5
    search_max_limit: int = 20
    search_default_min_similarity: float = 0.5
    search_lexical_candidate_multiplier: int = 3

    # Memory store
    memory_embed_on_write: bool = True
    memory_cleanup_enabled: bool = True
    memory_cleanup_interval_hours: float = 24.0
    memory_cleanup_batch_size: int = 100

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    def fallback_list(self) -> list[str]:
        """Parse the comma-separated fallback chain."""
        return [p.strip() for p in self.embedding_fallback_providers.split(",") if p.strip()]

    def provider_model(self, provider: str) -> str:
        return getattr(self, f"model_{provider}", "")

    def provider_quota(self, provider: str) -> tuple[int, int]:
        """Return (daily, monthly) request ceilings for a provider."""
        return (
            getattr(self, f"quota_daily_{provider}", 0),
            getattr(self, f"quota_monthly_{provider}", 0),
        )

    def provider_unit_cost(self, provider: str) -> float:
        return getattr(self, f"cost_per_char_{provider}", 0.0001)


settings = Settings()
