"""Application configuration using pydantic-settings."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="CRAWLER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    database_url: str = "sqlite+aiosqlite:///./crawler_combat.db"

    debug: bool = False

    # Display vocabulary: "classic" or "cyber"
    terminology_mode: str = "classic"

    # Formation capacities
    formation_front_capacity: int = 3
    formation_back_capacity: int = 3

    # Rewards
    default_experience_value: int = 10

    # Fixed seed for reproducible encounters (None = system entropy)
    rng_seed: int | None = None


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
