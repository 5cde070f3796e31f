"""Structured logging for nodevec."""

from nodevec.observability.logging import CredentialRedactor, get_logger, setup_logging

__all__ = ["CredentialRedactor", "get_logger", "setup_logging"]
