"""
Custom exceptions for MeteorStack service.

Every exception maps to an HTTP status code and renders as a single
descriptive ``error`` field in the response body.
"""

from typing import Any, Dict, Optional


class MeteorStackException(Exception):
    """Base exception for MeteorStack service."""
    
    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: str = "internal_error",
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}


class ConfigurationError(MeteorStackException):
    """Raised when credentials are missing or tunables are out of range."""
    
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            status_code=500,
            error_code="configuration_error",
            details=details,
        )


class IdentityError(MeteorStackException):
    """Raised when the caller address cannot be turned into a caller key."""
    
    def __init__(self, message: str = "Unable to hash your IP but it's required for security.") -> None:
        super().__init__(
            message=message,
            status_code=403,
            error_code="identity_error",
        )


class RateLimitError(MeteorStackException):
    """Raised when the interval gate or the daily quota rejects a caller."""
    
    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: Optional[int] = None,
        gate: Optional[str] = None,
    ) -> None:
        details: Dict[str, Any] = {}
        if retry_after:
            details["retry_after"] = retry_after
        if gate:
            details["gate"] = gate
            
        super().__init__(
            message=message,
            status_code=429,
            error_code="rate_limit_exceeded",
            details=details,
        )


class DataUnavailableError(MeteorStackException):
    """Raised when the dataset could not be loaded or is empty."""
    
    def __init__(self, message: str = "No meteorites data available.") -> None:
        super().__init__(
            message=message,
            status_code=404,
            error_code="data_unavailable",
        )


class NotFoundError(MeteorStackException):
    """Raised when a lookup matches no record."""
    
    def __init__(self, message: str = "No meteorite found for the given identifier.") -> None:
        super().__init__(
            message=message,
            status_code=404,
            error_code="not_found",
        )


class ValidationError(MeteorStackException):
    """Raised when query parameters are malformed or conflicting."""
    
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(
            message=message,
            status_code=400,
            error_code="validation_error",
            details=details,
        )
