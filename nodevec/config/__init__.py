"""Configuration loading for nodevec.

Configuration is loaded from TOML files with environment variable overrides.

Usage:
    from nodevec.config import get_settings

    settings = get_settings()
    store = PgVector.from_settings(settings)
"""

from functools import lru_cache

from nodevec.config.loader import load_config
from nodevec.config.settings import Settings, set_toml_config
from nodevec.observability.logging import setup_logging


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the singleton settings instance.

    The result is cached for the lifetime of the process.
    Call `get_settings.cache_clear()` to reload configuration.
    """
    set_toml_config(load_config())
    return Settings()


def reload_settings() -> Settings:
    """Clear the settings cache and reload configuration."""
    get_settings.cache_clear()
    return get_settings()


def configure_logging(settings: Settings) -> None:
    """Apply the logging section of the settings to structlog."""
    log_config = settings.observability.logging
    setup_logging(
        level=log_config.level,
        format=log_config.format,
        redact_credentials=log_config.redact_credentials,
    )


__all__ = ["Settings", "configure_logging", "get_settings", "reload_settings"]
