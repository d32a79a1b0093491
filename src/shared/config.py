"""
Centralized configuration for the Entity Fusion Engine.

Uses pydantic-settings for environment variable management.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ==========================================================================
    # Correlation Scoring
    # ==========================================================================

    # Shared boundary: pairs at or above this join a group, and scores above
    # it are classified as related entities
    fusion_correlation_threshold: float = 0.7
    fusion_same_entity_threshold: float = 0.9

    fusion_exact_name_confidence: float = 0.95
    fusion_fuzzy_match_threshold: float = 0.8
    fusion_type_match_bonus: float = 0.2

    fusion_geo_proximity_meters: float = 1000.0
    fusion_temporal_window_seconds: int = 3600

    # ==========================================================================
    # Fusion Strategies
    # ==========================================================================

    fusion_temporal_decay_rate: float = 0.1  # Per day
    fusion_freshness_horizon_days: float = 30.0

    # ==========================================================================
    # Resource Limits
    # ==========================================================================

    # Pairwise scoring is O(n^2); None disables the guard
    fusion_max_batch_size: int | None = 5000

    # Batches at least this large are scored on a worker pool when one is given
    fusion_parallel_min_batch: int = 200
    fusion_scoring_workers: int = 4

    # Entries kept by the shared entity and correlation caches
    fusion_entity_cache_size: int = 10_000
    fusion_correlation_cache_size: int = 50_000

    # Logging
    log_level: str = "INFO"

    # ==========================================================================
    # Computed Properties
    # ==========================================================================

    @property
    def has_batch_limit(self) -> bool:
        """Check if a maximum batch size is enforced."""
        return self.fusion_max_batch_size is not None


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
