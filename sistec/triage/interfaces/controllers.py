"""
Triage Controllers (API Routes)
===============================

AI connectivity check for managers and administrators.
"""

from fastapi import APIRouter, Depends, Request

from sistec.shared.api import ApiResponse, envelope
from sistec.tickets.domain import AccessLevel
from sistec.tickets.interfaces.dependencies import CurrentUser, require_level
from sistec.triage.application import ConnectionCheckService
from sistec.shared.infrastructure.logging import get_context_logger

router = APIRouter(prefix="/chamados/test", tags=["Triagem IA"])


def get_connection_check(request: Request) -> ConnectionCheckService:
    settings = request.app.state.settings
    return ConnectionCheckService(
        getattr(request.app.state, "llm_client", None),
        timeout_seconds=settings.llm_timeout_seconds,
    )


@router.get(
    "/gemini",
    response_model=ApiResponse[dict],
    summary="Check the AI provider connection",
)
async def test_ai_connection(
    request: Request,
    user: CurrentUser = Depends(require_level(AccessLevel.GERENTE)),
    checker: ConnectionCheckService = Depends(get_connection_check),
):
    result = await checker.check()

    logger = get_context_logger(__name__, getattr(request.state, "correlation_id", None))
    logger.info("AI connection tested", extra={"success": result["success"], "user_id": user.id})

    if result["success"]:
        return envelope(200, "Conexão com a IA funcionando", result)
    return envelope(503, "Falha na conexão com a IA", result)


triage_router = router
