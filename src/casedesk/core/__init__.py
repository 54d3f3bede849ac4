"""
Core Module
============

Shared core utilities and abstractions used across the application.

This module contains framework-agnostic code that defines the fundamental
building blocks of the system.
"""

from casedesk.core.exceptions import (
    ApplicationException,
    DomainException,
    RepositoryException,
    PersistenceConflictException,
    ValidationException,
    UnauthorizedException,
    ForbiddenException,
    ResourceNotFoundException,
    ConfigurationException,
    ExternalServiceException,
    EmbeddingUnavailableException,
    GenerativeTextUnavailableException,
)

__all__ = [
    "ApplicationException",
    "DomainException",
    "RepositoryException",
    "PersistenceConflictException",
    "ValidationException",
    "UnauthorizedException",
    "ForbiddenException",
    "ResourceNotFoundException",
    "ConfigurationException",
    "ExternalServiceException",
    "EmbeddingUnavailableException",
    "GenerativeTextUnavailableException",
]
