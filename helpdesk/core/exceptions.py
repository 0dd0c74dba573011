"""
Core Exceptions
================

Custom exceptions for the help-desk service.

These exceptions define domain-specific errors that are raised by the ticket
engine and translated to transport responses at the application boundary.
"""

from typing import Optional, Iterable


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""


class RepositoryException(ApplicationException):
    """Raised when the underlying ticket store fails."""


class ValidationException(ApplicationException):
    """Exception for missing or malformed input."""

    def __init__(
        self,
        message: str,
        fields: Optional[Iterable[str]] = None,
        details: Optional[dict] = None
    ):
        self.fields = list(fields or [])
        details = dict(details or {})
        if self.fields:
            details.setdefault("fields", self.fields)
        super().__init__(message, details)


class ResourceNotFoundException(ApplicationException):
    """Exception when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"{resource_type}"
        if resource_id:
            message += f" with id '{resource_id}'"
        message += " not found"
        super().__init__(message, details)


class AccessDeniedException(DomainException):
    """Raised when a principal is not allowed to perform an operation."""

    def __init__(
        self,
        message: str = "Access denied",
        principal_id: Optional[str] = None,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.principal_id = principal_id
        self.resource_id = resource_id
        super().__init__(message, details)


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class ConflictException(DomainException):
    """Raised when a write was derived from a record that has since changed."""

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(f"{resource_type} '{resource_id}' was modified concurrently, retry the request", details)
