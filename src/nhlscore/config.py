"""Configuration management for nhlscore."""

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class NhlscoreConfig(BaseSettings):
    """Process-level settings for nhlscore."""

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Root log level for the command line",
        alias="NHLSCORE_LOG_LEVEL",
    )

    verbose: bool = Field(
        default=False,
        description="Log engine internals at DEBUG",
        alias="NHLSCORE_VERBOSE",
    )

    # Engine parameters
    engine_config_path: Path | None = Field(
        default=None,
        description="YAML file with engine parameters (defaults to config/engine.yaml)",
        alias="NHLSCORE_ENGINE_CONFIG_PATH",
    )

    # History selection
    seasons_back: int = Field(
        default=3,
        ge=1,
        description="Number of seasons, current included, to replay for ratings",
        alias="NHLSCORE_SEASONS_BACK",
    )

    # Rating cache
    rating_cache_size: int = Field(
        default=8,
        ge=1,
        description="Rating tables kept in memory by long-running hosts",
        alias="NHLSCORE_RATING_CACHE_SIZE",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )


# Global configuration instance
config = NhlscoreConfig()


def get_config() -> NhlscoreConfig:
    """Get the current configuration."""
    return config


def update_config(**kwargs) -> None:
    """Update configuration settings."""
    global config
    for key, value in kwargs.items():
        if hasattr(config, key):
            setattr(config, key, value)
        else:
            raise ValueError(f"Unknown configuration option: {key}")


def reset_config() -> None:
    """Reset configuration to defaults."""
    global config
    config = NhlscoreConfig()
