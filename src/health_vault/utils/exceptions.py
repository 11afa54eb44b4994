# ============================================================================
# src/health_vault/utils/exceptions.py
# ============================================================================
"""
Custom exceptions for the health vault.
"""

from typing import Optional


class HealthVaultError(Exception):
    """Base exception for all health vault errors."""
    pass


class ValidationError(HealthVaultError):
    """Required input missing or invalid (empty question, blank date, ...)."""
    pass


class ConfigurationError(HealthVaultError):
    """No model credential or otherwise invalid configuration."""
    pass


class ModelError(HealthVaultError):
    """Error talking to the language model backend."""
    pass


class ModelHTTPError(ModelError):
    """
    A single model request failed.

    status is None when the request never produced an HTTP response
    (connection refused, socket timeout).
    """
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status

    @property
    def retryable(self) -> bool:
        return self.status is not None and (self.status >= 500 or self.status == 429)


class ServiceUnavailableError(ModelError):
    """Model backend unavailable after retries were exhausted."""
    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class RateLimitedError(ServiceUnavailableError):
    """Model backend (or our own limiter) rejected the call with 429."""
    def __init__(self, message: str, status: Optional[int] = 429):
        super().__init__(message, status)


class ParseError(HealthVaultError):
    """Model output could not be turned into a JSON object."""
    pass


class TextExtractionError(HealthVaultError):
    """Error extracting text from an uploaded file."""
    pass


class BatchClosedError(HealthVaultError):
    """Files were submitted to an upload flow that is already closed."""
    pass


class NoPendingFileError(HealthVaultError):
    """confirm/skip called while no file is awaiting a decision."""
    pass


class DocumentNotFoundError(HealthVaultError):
    """Document id not present in the store."""
    def __init__(self, document_id: str):
        super().__init__(f"Document not found: {document_id}")
        self.document_id = document_id
