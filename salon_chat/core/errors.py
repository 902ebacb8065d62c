"""
Exception hierarchy for the salon chat service.

ValidationError and NotFoundError reach the HTTP caller with their status codes.
DependencyError covers every external call (embedding, vector index, catalog,
completion, persistence) and is absorbed by the orchestrator.
"""

from typing import Any, Dict, Optional


class SalonChatError(Exception):
    """Base exception for all salon chat errors."""

    status_code = 500
    error_type = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ValidationError(SalonChatError):
    """Raised when request input is missing or blank."""

    status_code = 400
    error_type = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict[str, Any]] = None) -> None:
        details = details or {}
        if field:
            details["field"] = field
        super().__init__(message, details)


class NotFoundError(SalonChatError):
    """Raised when a requested resource does not exist."""

    status_code = 404
    error_type = "NOT_FOUND"


class SessionNotFoundError(NotFoundError):
    """Raised when a session id is unknown on an explicit history read."""

    def __init__(self, session_id: str, details: Optional[Dict[str, Any]] = None) -> None:
        details = details or {}
        details["session_id"] = session_id
        super().__init__(f"Chat session not found: {session_id}", details)


class DependencyError(SalonChatError):
    """Raised when an external dependency fails or times out."""

    status_code = 503
    error_type = "DEPENDENCY_ERROR"
    retryable = False

    def __init__(self, message: str, dependency: str, details: Optional[Dict[str, Any]] = None) -> None:
        details = details or {}
        details["dependency"] = dependency
        self.dependency = dependency
        super().__init__(message, details)


class StoreError(DependencyError):
    """Raised when a durable write or read against SQLite fails."""

    retryable = True

    def __init__(self, message: str, operation: str, details: Optional[Dict[str, Any]] = None) -> None:
        details = details or {}
        details["operation"] = operation
        super().__init__(message, dependency="store", details=details)


class InternalError(SalonChatError):
    """Raised for unexpected failures."""
