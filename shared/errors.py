"""
Shared error handling for the inventory services.
"""

from typing import Dict, Any, Optional
from pydantic import BaseModel, Field

from shared.logging import request_id_var


class ErrorResponse(BaseModel):
    """Standard error response format."""

    trace_id: Optional[str] = None
    code: str
    message: str
    details: Dict[str, Any] = Field(default_factory=dict)


class InventoryServiceException(Exception):
    """Base exception for inventory services."""

    http_status = 400

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_response(self) -> ErrorResponse:
        """Convert to error response."""
        return ErrorResponse(
            trace_id=request_id_var.get(),
            code=self.code,
            message=self.message,
            details=self.details
        )


class AuthenticationError(InventoryServiceException):
    """Authentication-related errors."""

    http_status = 401

    def __init__(self, message: str = "Authentication failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("AUTHENTICATION_ERROR", message, details)


class ValidationError(InventoryServiceException):
    """Validation-related errors."""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__("VALIDATION_ERROR", message, details)


class ExternalServiceError(InventoryServiceException):
    """External service errors."""

    http_status = 502

    def __init__(
        self,
        service: str,
        message: str = "External service error",
        details: Optional[Dict[str, Any]] = None,
        code: str = "EXTERNAL_SERVICE_ERROR",
    ):
        self.service = service
        super().__init__(code, f"{service}: {message}", details)


class CatalogStoreError(ExternalServiceError):
    """The authoritative catalog store failed; no data is available for the request."""

    def __init__(self, message: str = "Catalog store failure", details: Optional[Dict[str, Any]] = None):
        super().__init__("catalog_store", message, details, code="CATALOG_STORE_ERROR")


class CacheUnavailableError(InventoryServiceException):
    """Blob store could not be reached or timed out."""

    http_status = 503

    def __init__(self, message: str = "Cache unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__("CACHE_UNAVAILABLE", message, details)


class CacheCorruptError(InventoryServiceException):
    """A cached payload exists but cannot be decoded."""

    http_status = 500

    def __init__(self, message: str = "Cache payload corrupt", details: Optional[Dict[str, Any]] = None):
        super().__init__("CACHE_CORRUPT", message, details)
