# ============================================================================
# src/health_vault/utils/__init__.py
# ============================================================================
"""
Utility modules for the health vault.
"""

from .exceptions import (
    HealthVaultError,
    ValidationError,
    ConfigurationError,
    ModelError,
    ModelHTTPError,
    ServiceUnavailableError,
    RateLimitedError,
    ParseError,
    TextExtractionError,
    BatchClosedError,
    NoPendingFileError,
    DocumentNotFoundError,
)
from .logging import setup_logging, setup_logging_from_settings, JsonFormatter, LogAdapter
from .rate_limit import RateLimiter, RateLimitResult

__all__ = [
    "HealthVaultError",
    "ValidationError",
    "ConfigurationError",
    "ModelError",
    "ModelHTTPError",
    "ServiceUnavailableError",
    "RateLimitedError",
    "ParseError",
    "TextExtractionError",
    "BatchClosedError",
    "NoPendingFileError",
    "DocumentNotFoundError",
    "setup_logging",
    "setup_logging_from_settings",
    "JsonFormatter",
    "LogAdapter",
    "RateLimiter",
    "RateLimitResult",
]
