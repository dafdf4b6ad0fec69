"""
Core Exceptions
================

Error taxonomy of the help-desk service.

Every exception carries the HTTP status it maps to, so the API boundary
can turn any of them into the standard response envelope without a
lookup table.
"""

from typing import Optional


class ApplicationException(Exception):
    """Root of every error the service raises on purpose."""

    status_code: int = 500

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class DomainException(ApplicationException):
    """A business rule of the ticket lifecycle was broken."""

    status_code = 400


class InvalidTransitionException(DomainException):
    """The requested status change is not an edge of the lifecycle graph."""

    def __init__(
        self,
        ticket_id: int,
        current_status: str,
        target_status: str,
        message: Optional[str] = None
    ):
        self.ticket_id = ticket_id
        self.current_status = current_status
        self.target_status = target_status
        super().__init__(
            message or f"Chamado {ticket_id} está '{current_status}' e não pode ir para '{target_status}'",
            {
                "ticket_id": ticket_id,
                "current_status": current_status,
                "target_status": target_status,
            }
        )


class TransitionConflictException(DomainException):
    """Another writer changed the ticket status between read and write."""

    status_code = 409

    def __init__(self, ticket_id: int, expected_status: str):
        self.ticket_id = ticket_id
        self.expected_status = expected_status
        super().__init__(
            f"Chamado {ticket_id} foi alterado por outra operação; tente novamente",
            {"ticket_id": ticket_id, "expected_status": expected_status}
        )


class ConflictException(ApplicationException):
    """A unique resource already exists."""

    status_code = 409


class RepositoryException(ApplicationException):
    """Persistence failed below the domain layer."""


class ValidationException(ApplicationException):
    """Input is well formed but not acceptable (blank field, short reason)."""

    status_code = 400


class AuthenticationException(ApplicationException):
    """The request carries no (or an unknown) user identity."""

    status_code = 401


class PermissionDeniedException(ApplicationException):
    """The acting user lacks the access level or ownership required."""

    status_code = 403


class ResourceNotFoundException(ApplicationException):
    """Ticket, user or report lookup came back empty."""

    status_code = 404

    def __init__(
        self,
        resource_type: str,
        resource_id: Optional[str] = None,
        details: Optional[dict] = None
    ):
        self.resource_type = resource_type
        self.resource_id = resource_id
        message = f"Não encontrado: {resource_type}"
        if resource_id:
            message += f" {resource_id}"
        super().__init__(
            message,
            details or {"resource_type": resource_type, "resource_id": resource_id}
        )


class ConfigurationException(ApplicationException):
    """Settings are missing or inconsistent (e.g. no provider key)."""


class ExternalServiceException(ApplicationException):
    """A third-party dependency answered badly or not at all."""

    def __init__(
        self,
        service_name: str,
        message: str,
        details: Optional[dict] = None
    ):
        self.service_name = service_name
        super().__init__(f"{service_name}: {message}", details)


class LLMException(ExternalServiceException):
    """The generative AI provider failed; triage treats it as a fallback."""

    def __init__(self, message: str, details: Optional[dict] = None):
        super().__init__("LLM", message, details)
