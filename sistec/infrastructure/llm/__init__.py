"""
Generative AI Clients
=====================

Triage and resolution talk to the model through ``ILLMClient`` only.

Both real providers go through the ``openai`` SDK: OpenAI directly and
Gemini via Google's OpenAI-compatible endpoint. ``MockLLMClient`` serves
local runs, and ``UnconfiguredLLMClient`` keeps the service up when the
selected provider has no key.
"""

import json
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from openai import AsyncOpenAI

from sistec.config import Settings, settings as default_settings
from sistec.core import ConfigurationException, LLMException
from sistec.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

GEMINI_OPENAI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"


@dataclass
class ChatCompletionResult:
    content: str
    model: str
    prompt_tokens: int
    completion_tokens: int
    latency_ms: int

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class ILLMClient(ABC):
    """Single-call chat interface; implementations raise LLMException on failure."""

    @abstractmethod
    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: int = 1000,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        """
        Args:
            messages: ``{"role", "content"}`` dicts, oldest first
            operation: Label for logs (triage, resolution, connection_test)
        """


class OpenAILLMClient(ILLMClient):
    """Async chat client over any OpenAI-compatible API."""

    provider = "openai"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        base_url: Optional[str] = None
    ):
        api_key = api_key or default_settings.openai_api_key
        if not api_key:
            raise ConfigurationException(f"{self.provider} API key not configured")

        self._model = model or default_settings.llm_model
        # Retries are off: the triage timeout bounds the whole call
        self._client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout_seconds or default_settings.llm_timeout_seconds,
            max_retries=0,
        )

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: int = 1000,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        started = time.perf_counter()
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens
            )
        except Exception as e:
            raise LLMException(
                f"{self.provider} request failed: {e}",
                {"operation": operation, "provider": self.provider}
            ) from e

        usage = response.usage
        result = ChatCompletionResult(
            content=response.choices[0].message.content or "",
            model=self._model,
            prompt_tokens=usage.prompt_tokens if usage else 0,
            completion_tokens=usage.completion_tokens if usage else 0,
            latency_ms=int((time.perf_counter() - started) * 1000),
        )
        logger.info(
            "LLM call completed",
            extra={
                "provider": self.provider,
                "model": result.model,
                "operation": operation,
                "latency_ms": result.latency_ms,
                "prompt_tokens": result.prompt_tokens,
                "completion_tokens": result.completion_tokens,
            }
        )
        return result


class GeminiLLMClient(OpenAILLMClient):
    """Gemini models served from ``GEMINI_OPENAI_BASE_URL``."""

    provider = "gemini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        timeout_seconds: Optional[float] = None
    ):
        # Never borrow the OpenAI key for Google
        api_key = api_key or default_settings.gemini_api_key
        if not api_key:
            raise ConfigurationException("gemini API key not configured")

        super().__init__(
            api_key=api_key,
            model=model,
            timeout_seconds=timeout_seconds,
            base_url=GEMINI_OPENAI_BASE_URL,
        )


_MOCK_REPLIES = {
    "triage": json.dumps({
        "complexidade": "BAIXA",
        "indice_impacto_alcance": "BAIXO",
        "recomendacao": "IA",
        "justificativa": "Mock: problema comum com solução padronizada.",
        "solucao_conhecida": True,
        "tempo_estimado_minutos": 15,
        "tags": ["mock"]
    }, ensure_ascii=False),
    "resolution": (
        "**Solução:**\n"
        "1. Reinicie o equipamento.\n"
        "2. Verifique se o problema persiste.\n\n"
        "**Como testar:** Repita a operação que falhou.\n\n"
        "**Se não funcionar:** Entre em contato com o suporte para assistência especializada."
    ),
    "connection_test": "OK",
}


class MockLLMClient(ILLMClient):
    """Canned replies keyed by operation; no network."""

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: int = 1000,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        content = _MOCK_REPLIES.get(operation, "Resposta simulada.")
        return ChatCompletionResult(
            content=content,
            model="mock-model",
            prompt_tokens=100,
            completion_tokens=len(content.split()),
            latency_ms=0
        )


class UnconfiguredLLMClient(ILLMClient):
    """
    Placeholder for a provider without credentials.

    Every call raises, so each approved ticket falls back to an analyst.
    """

    def __init__(self, reason: str):
        self.reason = reason

    async def chat_completion(
        self,
        messages: List[dict],
        temperature: float = 0.3,
        max_tokens: int = 1000,
        operation: str = "chat_completion"
    ) -> ChatCompletionResult:
        raise LLMException(f"LLM client not configured: {self.reason}", {"operation": operation})


def build_llm_client(config: Optional[Settings] = None) -> ILLMClient:
    """
    Client for ``config.llm_provider``.

    Raises:
        ConfigurationException: If the selected provider has no API key
    """
    config = config or default_settings
    if config.llm_provider == "mock":
        return MockLLMClient()

    client_class = OpenAILLMClient if config.llm_provider == "openai" else GeminiLLMClient
    api_key = config.openai_api_key if config.llm_provider == "openai" else config.gemini_api_key
    return client_class(
        api_key=api_key,
        model=config.llm_model,
        timeout_seconds=config.llm_timeout_seconds,
    )
