"""
Base Exception Class

This module contains ONLY the base exception class that all other exceptions inherit from.
All specialized exceptions are in their respective themed modules.

Author: Platform Team
Date: 2025-12-08
"""

from typing import Any


class CacheCoreError(Exception):
    """
    Base exception for all cache core errors.

    All custom exceptions inherit from this class to enable:
    - Consistent error handling
    - Request ID correlation
    - Structured error logging
    - Rich context for debugging

    Attributes:
        message: Error message
        request_id: Request ID for correlation (if available)
        details: Additional error details (dict)

    Example:
        raise CacheReadError(
            "Failed to read menu list",
            details={"key": "menu:list:v:3", "operation": "get"}
        )
    """

    def __init__(
        self, message: str, request_id: str | None = None, details: dict[str, Any] | None = None
    ):
        self.message = message
        self.request_id = request_id
        self.details = (details or {}).copy()
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for logging.

        Returns:
            Dict with error_type, message, request_id, and details
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "request_id": self.request_id,
            "details": self.details,
        }

    def with_suggestion(self, suggestion: str) -> "CacheCoreError":
        """Add a suggestion to help operators fix the error."""
        self.details["suggestion"] = suggestion
        return self

    def with_context(self, **context) -> "CacheCoreError":
        """Add additional context to the error details."""
        self.details.update(context)
        return self

    def __repr__(self) -> str:
        details_str = f", details={self.details}" if self.details else ""
        request_id_str = f", request_id='{self.request_id}'" if self.request_id else ""
        return f"{self.__class__.__name__}(message='{self.message}'{request_id_str}{details_str})"

    @classmethod
    def from_exception(
        cls,
        exc: Exception,
        message: str | None = None,
        request_id: str | None = None,
        **details
    ) -> "CacheCoreError":
        """
        Create an error from another exception.

        Useful for wrapping redis-py and SQLAlchemy exceptions with additional context.

        Example:
            >>> try:
            ...     await client.get(key)
            ... except redis.ConnectionError as e:
            ...     raise CacheUnavailableError.from_exception(e, key=key)
        """
        error_message = message or str(exc)
        error_details = {
            "original_error": exc.__class__.__name__,
            "original_message": str(exc),
            **details
        }
        return cls(error_message, request_id=request_id, details=error_details)


# Configuration exception (kept here as it's fundamental)
class ConfigurationError(CacheCoreError):
    """Raised when configuration is invalid or missing."""
    pass
