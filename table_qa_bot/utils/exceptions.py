"""
Custom exceptions for the table QA bot.

Provides specific exception types for better error handling and debugging.
"""

from typing import Optional


class TableQABotError(Exception):
    """Base exception for all table QA bot errors."""

    def __init__(self, message: str, details: Optional[str] = None) -> None:
        self.message = message
        self.details = details
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message}: {self.details}"
        return self.message


class ConfigurationError(TableQABotError):
    """Raised when required configuration is missing or invalid."""
    pass


class DataLoadError(TableQABotError):
    """Raised when data loading fails."""
    pass


class FileValidationError(DataLoadError):
    """Raised when file validation fails."""
    pass


class TableParseError(DataLoadError):
    """Raised when CSV text is empty or not well-formed."""
    pass


class QueryValidationError(TableQABotError):
    """Raised when query validation fails."""
    pass


class NotLoadedError(TableQABotError):
    """Raised when querying before a table has been loaded."""
    pass


class InferenceConnectionError(TableQABotError):
    """Raised when the inference endpoint cannot be reached or returns a terminal status."""

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        status_code: Optional[int] = None,
        body: Optional[str] = None
    ) -> None:
        super().__init__(message, details=details)
        self.status_code = status_code
        self.body = body


class InferenceAuthError(InferenceConnectionError):
    """Raised when the endpoint rejects the bearer token."""
    pass


class InferenceTimeoutError(InferenceConnectionError):
    """Raised when the inference request times out."""
    pass


class RetriesExhaustedError(InferenceConnectionError):
    """Raised when the model is still loading after every allowed attempt."""
    pass


class InferenceProtocolError(TableQABotError):
    """Raised when a successful response does not have the expected shape."""
    pass
