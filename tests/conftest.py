import asyncio
import os

# Settings are read at import time
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("LLM_PROVIDER", "mock")
os.environ.setdefault("TRIAGE_RECOVERY_ON_STARTUP", "false")

import httpx
import pytest

from sistec.config import settings
from sistec.core import LLMException
from sistec.infrastructure.database import (
    close_database,
    create_tables,
    drop_tables,
    get_session_context,
    init_database,
)
from sistec.infrastructure.llm import ChatCompletionResult, ILLMClient
from sistec.main import build_services, create_app
from sistec.tickets.application import ITriageDispatcher
from sistec.tickets.infrastructure import UserModel

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

IA_VERDICT = (
    '{"complexidade": "BAIXA", "indice_impacto_alcance": "BAIXO", "recomendacao": "IA", '
    '"justificativa": "Problema comum", "solucao_conhecida": true, '
    '"tempo_estimado_minutos": 10, "tags": ["senha"]}'
)
ANALYST_VERDICT = (
    '{"complexidade": "ALTA", "indice_impacto_alcance": "ALTO", "recomendacao": "ANALISTA", '
    '"justificativa": "Requer acesso físico", "solucao_conhecida": false, '
    '"tempo_estimado_minutos": 120, "tags": ["hardware"]}'
)
SOLUTION = "1. Reinicie o roteador.\n2. Teste a conexão novamente."


class RecordingDispatcher(ITriageDispatcher):
    """Collects scheduled ticket IDs instead of running triage."""

    def __init__(self):
        self.scheduled = []

    def schedule(self, ticket_id: int) -> None:
        self.scheduled.append(ticket_id)


class ScriptedLLMClient(ILLMClient):
    """
    Replies from per-operation queues. A queued exception is raised, a
    queued coroutine function is awaited for its reply.
    """

    def __init__(self):
        self.replies = {}
        self.calls = []
        self.temperatures = []

    def script(self, operation, *replies):
        self.replies.setdefault(operation, []).extend(replies)
        return self

    async def chat_completion(self, messages, temperature=0.3, max_tokens=1000, operation="chat_completion"):
        self.calls.append(operation)
        self.temperatures.append(temperature)
        queue = self.replies.get(operation) or []
        if not queue:
            raise LLMException(f"No scripted reply for {operation}")
        reply = queue.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        if callable(reply):
            reply = await reply()
        return ChatCompletionResult(
            content=reply, model="scripted", prompt_tokens=1, completion_tokens=1, latency_ms=0
        )


def slow_reply(seconds, content=IA_VERDICT):
    async def reply():
        await asyncio.sleep(seconds)
        return content
    return reply


@pytest.fixture
async def database():
    init_database(TEST_DATABASE_URL)
    await create_tables()
    yield
    await drop_tables()
    await close_database()


@pytest.fixture
async def users(database):
    """One user per access level plus a second requester."""
    specs = {
        "requester": ("Maria Souza", "maria@sistec.local", 1),
        "other_requester": ("João Lima", "joao@sistec.local", 1),
        "analyst": ("Ana Analista", "ana@sistec.local", 2),
        "ticket_manager": ("Gustavo Gestor", "gustavo@sistec.local", 3),
        "manager": ("Gerda Gerente", "gerda@sistec.local", 4),
        "admin": ("Adão Admin", "adao@sistec.local", 5),
    }
    created = {}
    async with get_session_context() as session:
        for key, (name, email, level) in specs.items():
            user = UserModel(name=name, email=email, access_level=level)
            session.add(user)
            created[key] = user
        await session.flush()
    return created


@pytest.fixture
def dispatcher():
    return RecordingDispatcher()


@pytest.fixture
def llm():
    return ScriptedLLMClient()


@pytest.fixture
def services(database, llm, dispatcher):
    lifecycle, orchestrator = build_services(settings, llm)
    lifecycle.set_dispatcher(dispatcher)
    return lifecycle, orchestrator


@pytest.fixture
def lifecycle(services):
    return services[0]


@pytest.fixture
def orchestrator(services):
    return services[1]


@pytest.fixture
def app(services, llm):
    lifecycle, orchestrator = services
    application = create_app(use_lifespan=False)
    application.state.llm_client = llm
    application.state.lifecycle_service = lifecycle
    application.state.triage_orchestrator = orchestrator
    return application


@pytest.fixture
async def client(app, users):
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


def as_user(user):
    return {"X-User-Email": user.email}


async def open_ticket(lifecycle, user, description="Sem acesso à internet desde ontem", priority="media"):
    return await lifecycle.create(
        opened_by_id=user.id,
        category="Rede",
        problem="sem-internet",
        description=description,
        priority=priority,
    )
