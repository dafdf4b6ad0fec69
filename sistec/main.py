"""
Sistec Help-Desk - Main Application
===================================

IT help-desk ticket service with AI-assisted triage.

Modules:
- Tickets: ticket lifecycle state machine, audit trail, feedback, reports
- Triage: AI classification and automated resolution of approved tickets

Clean Architecture Layers:
- Interfaces: FastAPI controllers
- Application: Services and DTOs
- Domain: Statuses, transition graph, verdicts
- Infrastructure: Database, LLM, scheduler
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional, Tuple

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

# Configuration and Core
from sistec.config import Settings, settings
from sistec.core import ApplicationException, ConfigurationException

# Infrastructure
from sistec.infrastructure.database import (
    init_database,
    close_database,
    create_tables,
    get_session_context,
)
from sistec.infrastructure.llm import ILLMClient, UnconfiguredLLMClient, build_llm_client

# Tickets module
from sistec.tickets.application import SessionScope, TicketLifecycleService
from sistec.tickets.infrastructure import (
    SQLAlchemyTicketRepository,
    SQLAlchemyResolutionReportRepository,
)
from sistec.tickets.interfaces import tickets_router

# Triage module
from sistec.triage.application import (
    ClassificationService,
    ResolutionService,
    TriageOrchestrator,
)
from sistec.triage.infrastructure import TriageScheduler
from sistec.triage.interfaces import triage_router

# Shared
from sistec.shared.api import envelope
from sistec.shared.api.middleware import (
    CorrelationIDMiddleware,
    LoggingMiddleware,
    application_exception_handler,
    validation_exception_handler,
    global_exception_handler,
)
from sistec.shared.infrastructure.logging import setup_logging, get_logger

logger = get_logger(__name__)


def build_services(
    config: Settings,
    llm_client: ILLMClient,
    session_scope: SessionScope = get_session_context,
) -> Tuple[TicketLifecycleService, TriageOrchestrator]:
    """Wire the lifecycle service and the triage orchestrator."""
    lifecycle = TicketLifecycleService(
        session_scope=session_scope,
        repository_factory=SQLAlchemyTicketRepository,
        report_repository_factory=SQLAlchemyResolutionReportRepository,
    )
    orchestrator = TriageOrchestrator(
        lifecycle,
        ClassificationService(
            llm_client,
            timeout_seconds=config.llm_timeout_seconds,
            temperature=config.llm_temperature,
        ),
        ResolutionService(
            llm_client,
            timeout_seconds=config.llm_timeout_seconds,
            max_tokens=config.llm_max_tokens,
            temperature=config.llm_temperature,
        ),
        history_limit=config.triage_history_limit,
    )
    return lifecycle, orchestrator


def _init_llm_client(config: Settings) -> ILLMClient:
    try:
        return build_llm_client(config)
    except ConfigurationException as e:
        logger.warning(
            "LLM client not configured - every ticket will be routed to analysts",
            extra={"provider": config.llm_provider, "error": e.message}
        )
        return UnconfiguredLLMClient(e.message)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Boot order: logging, database, LLM client, services, scheduler, then
    recovery of triage runs a previous process left unfinished. Shutdown
    stops the scheduler before the engine is disposed.
    """
    # === Startup ===
    setup_logging(settings.log_level, settings.environment)
    logger.info("Starting Sistec help-desk service", extra={
        "version": settings.app_version,
        "environment": settings.environment
    })

    init_database()

    database_ready = True
    if settings.create_tables_on_startup:
        try:
            await create_tables()
        except Exception as e:
            database_ready = False
            logger.warning(f"Database not available - running in degraded mode: {e}")

    llm_client = _init_llm_client(settings)
    lifecycle, orchestrator = build_services(settings, llm_client)

    scheduler = TriageScheduler(orchestrator.run, delay_seconds=settings.triage_delay_seconds)
    scheduler.start()
    lifecycle.set_dispatcher(scheduler)

    if settings.triage_recovery_on_startup and database_ready:
        try:
            await scheduler.recover(orchestrator.pending_ticket_ids)
        except Exception as e:
            logger.warning(f"Pending triage recovery failed: {e}")

    app.state.settings = settings
    app.state.llm_client = llm_client
    app.state.lifecycle_service = lifecycle
    app.state.triage_orchestrator = orchestrator
    app.state.triage_scheduler = scheduler

    logger.info("Sistec help-desk service started")

    yield

    # === Shutdown ===
    logger.info("Shutting down Sistec help-desk service")
    scheduler.stop()
    await close_database()
    logger.info("Sistec help-desk service shutdown complete")


def create_app(use_lifespan: bool = True) -> FastAPI:
    """
    Build the FastAPI application.

    Tests pass ``use_lifespan=False`` and populate ``app.state`` themselves.
    """
    app = FastAPI(
        title="Sistec Help-Desk API",
        description=(
            "Ticket lifecycle and AI triage for the Sistec IT help desk.\n\n"
            "Every request identifies the acting user with the `X-User-Email` header; "
            "every response uses the `{status, message, data}` envelope."
        ),
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan if use_lifespan else None,
    )
    app.state.settings = settings

    # === CORS Middleware ===
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # === Tracing, access logs, error envelope ===
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(CorrelationIDMiddleware)
    app.add_exception_handler(ApplicationException, application_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    # === Routers ===
    app.include_router(triage_router)
    app.include_router(tickets_router)

    @app.get("/health", tags=["Health"])
    async def health_check(request: Request):
        """503 when the database is unreachable; scheduler and LLM state are informative."""
        checks = {"database": "connected"}
        try:
            async with get_session_context() as session:
                await session.execute(text("SELECT 1"))
        except Exception as e:
            checks["database"] = f"error: {e}"

        scheduler: Optional[TriageScheduler] = getattr(request.app.state, "triage_scheduler", None)
        checks["triage_scheduler"] = "running" if scheduler and scheduler.is_running else "stopped"

        llm_client = getattr(request.app.state, "llm_client", None)
        if llm_client is None or isinstance(llm_client, UnconfiguredLLMClient):
            checks["llm_client"] = "not_configured"
        else:
            checks["llm_client"] = "available"

        healthy = checks["database"] == "connected"
        return envelope(
            200 if healthy else 503,
            "healthy" if healthy else "degraded",
            {
                "version": settings.app_version,
                "environment": settings.environment,
                "checks": checks,
            },
        )

    @app.get("/", tags=["Root"])
    async def root():
        """Service identity and links."""
        return envelope(200, "Sistec Help-Desk API", {
            "service": settings.app_name,
            "version": settings.app_version,
            "architecture": "Clean Architecture / Modular Monolith",
            "docs": "/docs",
            "health": "/health",
        })

    return app


app = create_app()


# === Development Entry Point ===

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "sistec.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.environment == "development",
        log_level="info"
    )
