"""
Tickets API Dependencies
========================

Resolves the acting user from the ``X-User-Email`` header and enforces
access levels and ticket ownership before any lifecycle operation runs.
"""

from dataclasses import dataclass
from typing import Any, Callable, Optional

from fastapi import Depends, Header, Request

from sistec.core import AuthenticationException, PermissionDeniedException
from sistec.infrastructure.database import get_session_context
from sistec.tickets.application import TicketLifecycleService
from sistec.tickets.domain import AccessLevel
from sistec.tickets.infrastructure import SQLAlchemyUserRepository

USER_HEADER = "X-User-Email"


@dataclass(frozen=True)
class CurrentUser:
    """The authenticated user of a request."""
    id: int
    name: str
    email: str
    access_level: int

    def has_level(self, level: int) -> bool:
        return self.access_level >= level

    def owns(self, ticket: Any) -> bool:
        return ticket.opened_by_id == self.id


async def get_current_user(
    x_user_email: Optional[str] = Header(default=None, alias=USER_HEADER),
) -> CurrentUser:
    """Look up the user named by the request header. 401 if missing or unknown."""
    if not x_user_email or not x_user_email.strip():
        raise AuthenticationException("Usuário não autenticado")

    async with get_session_context() as session:
        user = await SQLAlchemyUserRepository(session).get_by_email(x_user_email)
    if user is None or not user.active:
        raise AuthenticationException("Usuário não encontrado ou inativo")

    return CurrentUser(id=user.id, name=user.name, email=user.email, access_level=user.access_level)


def require_level(level: AccessLevel) -> Callable:
    """Dependency factory: 403 unless the user's access level is at least ``level``."""

    async def checker(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        if not user.has_level(level):
            raise PermissionDeniedException(
                "Acesso negado: nível de permissão insuficiente",
                {"required_level": int(level), "user_level": user.access_level},
            )
        return user

    return checker


def ensure_can_view(user: CurrentUser, ticket: Any) -> None:
    """Level-1 users only see their own tickets."""
    if user.access_level <= AccessLevel.USUARIO and not user.owns(ticket):
        raise PermissionDeniedException("Acesso negado: chamado pertence a outro usuário")


def ensure_owner(user: CurrentUser, ticket: Any) -> None:
    if not user.owns(ticket):
        raise PermissionDeniedException("Apenas o usuário que abriu o chamado pode realizar esta ação")


def get_lifecycle_service(request: Request) -> TicketLifecycleService:
    """Lifecycle service built at startup and stored on app state."""
    service = getattr(request.app.state, "lifecycle_service", None)
    if service is None:
        raise RuntimeError("Lifecycle service not initialized")
    return service
