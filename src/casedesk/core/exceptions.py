"""
Core Exceptions
================

Custom exceptions for the application following clean architecture principles.

These exceptions define domain-specific errors that can be caught and handled
appropriately at the application boundaries.
"""

from typing import Optional


class ApplicationException(Exception):
    """Base exception for all application errors."""

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """Base exception for domain logic violations."""


class RepositoryException(ApplicationException):
    """Base exception for repository/data access errors."""


class PersistenceConflictException(RepositoryException):
    """Raised when a write collides with a uniqueness constraint."""


class ValidationException(ApplicationException):
    """Exception for validation errors."""


class UnauthorizedException(ApplicationException):
    """Caller identity is missing."""


class ForbiddenException(UnauthorizedException):
    """Caller identity is known but lacks the required role or ownership."""


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


class ConfigurationException(ApplicationException):
    """Exception for configuration errors."""


class ExternalServiceException(ApplicationException):
    """Base exception for external service failures."""

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}", details)


class EmbeddingUnavailableException(ExternalServiceException):
    """The embedding backend could not produce a vector."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("Embedding Service", message, details)


class GenerativeTextUnavailableException(ExternalServiceException):
    """
    The generative backend produced no usable text.

    `reason` is one of the attempt outcomes that aborted the model loop
    (bad_request, auth_failure, transport_error) or "exhausted" when every
    configured model was tried.
    """

    def __init__(
        self,
        message: str,
        reason: str,
        model: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.reason = reason
        self.model = model
        super().__init__(
            "Generative Text Service",
            message,
            details or {"reason": reason, "model": model}
        )
