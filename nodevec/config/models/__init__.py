"""Configuration section models."""

from nodevec.config.models.observability import LoggingConfig, ObservabilityConfig
from nodevec.config.models.storage import PgVectorSettings

__all__ = ["LoggingConfig", "ObservabilityConfig", "PgVectorSettings"]
