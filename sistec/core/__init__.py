"""
Core
====

Framework-free pieces shared by every bounded context. For now this is
the exception taxonomy; each exception knows its HTTP status.
"""

from sistec.core.exceptions import (
    ApplicationException,
    DomainException,
    InvalidTransitionException,
    TransitionConflictException,
    ConflictException,
    RepositoryException,
    ValidationException,
    AuthenticationException,
    PermissionDeniedException,
    ResourceNotFoundException,
    ConfigurationException,
    ExternalServiceException,
    LLMException,
)

__all__ = [
    "ApplicationException",
    "DomainException",
    "InvalidTransitionException",
    "TransitionConflictException",
    "ConflictException",
    "RepositoryException",
    "ValidationException",
    "AuthenticationException",
    "PermissionDeniedException",
    "ResourceNotFoundException",
    "ConfigurationException",
    "ExternalServiceException",
    "LLMException",
]
