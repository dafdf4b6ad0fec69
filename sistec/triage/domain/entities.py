"""
Triage Domain Entities
======================

Pure business objects for AI triage and automated resolution.

The classifier is asked for a JSON verdict; ``extract_verdict`` pulls the
first-to-last brace span out of the reply and validates it. Anything that
does not validate is an ``LLMException`` and the caller falls back to
human handling.
"""

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError, field_validator

from sistec.core import LLMException

GENERATION_MAX_CHARS = 1200
PERSISTENCE_MAX_CHARS = 4000

FALLBACK_JUSTIFICATION = "Erro na análise automática - encaminhando para analista humano"
FIRST_TICKET_HISTORY = "Primeiro chamado do usuário"

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class Recommendation(str, Enum):
    """Who should handle the ticket."""
    IA = "IA"               # automate
    ANALISTA = "ANALISTA"   # assign to a human


class TriageOutcome(str, Enum):
    """Where a triage run left the ticket."""
    AWAITING_RESPONSE = "awaiting_response"
    WITH_ANALYST = "with_analyst"
    SKIPPED = "skipped"


class TriageVerdict(BaseModel):
    """
    Classification verdict returned by the AI.

    Only ``recomendacao`` is mandatory; the supporting fields default to
    the neutral values used by the fallback verdict.
    """
    complexidade: str = "MEDIA"
    indice_impacto_alcance: str = "MEDIO"
    recomendacao: Recommendation
    justificativa: str = ""
    solucao_conhecida: bool = False
    tempo_estimado_minutos: Optional[int] = Field(default=None, ge=0)
    tags: List[str] = Field(default_factory=list)

    @field_validator("recomendacao", mode="before")
    @classmethod
    def normalize_recommendation(cls, v: Any) -> Any:
        return v.strip().upper() if isinstance(v, str) else v

    @field_validator("complexidade", "indice_impacto_alcance", mode="before")
    @classmethod
    def normalize_level(cls, v: Any) -> Any:
        return v.strip().upper() if isinstance(v, str) else v

    @property
    def automate(self) -> bool:
        return self.recomendacao == Recommendation.IA

    @classmethod
    def fallback(cls) -> "TriageVerdict":
        """Low-confidence verdict used whenever classification fails."""
        return cls(
            complexidade="MEDIA",
            indice_impacto_alcance="MEDIO",
            recomendacao=Recommendation.ANALISTA,
            justificativa=FALLBACK_JUSTIFICATION,
            solucao_conhecida=False,
            tempo_estimado_minutos=60,
            tags=["erro_ia"],
        )


def extract_verdict(text: Optional[str]) -> TriageVerdict:
    """
    Parse a verdict embedded in free text.

    Raises:
        LLMException: No JSON object, invalid JSON, or a payload that does
            not validate as a verdict
    """
    match = _JSON_OBJECT.search(text or "")
    if not match:
        raise LLMException("Resposta da IA não contém JSON válido")

    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise LLMException(f"Failed to parse triage response: {e}")

    if not isinstance(payload, dict):
        raise LLMException("Triage response is not a JSON object")

    try:
        return TriageVerdict.model_validate(payload)
    except ValidationError as e:
        raise LLMException(f"Invalid triage verdict: {e.error_count()} error(s)")


@dataclass
class TriageContext:
    """
    Ticket data handed to the AI.

    ``history`` holds the opening user's most recent other tickets.
    """
    ticket_id: int
    title: str
    category: str
    problem: str
    description: str
    priority: str
    user: str
    history: List[Dict[str, Any]] = field(default_factory=list)

    def history_text(self) -> str:
        if not self.history:
            return FIRST_TICKET_HISTORY
        return json.dumps(self.history, ensure_ascii=False, default=str)


class TriagePromptBuilder:
    """Builds the classification prompt."""

    SYSTEM_PROMPT = (
        "Você é um sistema de triagem de chamados de TI. "
        "Responda APENAS com um JSON válido."
    )

    @classmethod
    def build_messages(cls, context: TriageContext) -> List[dict]:
        prompt = f"""Analise o seguinte chamado e forneça uma classificação:

DADOS DO CHAMADO:
- ID: {context.ticket_id}
- Título: {context.title}
- Categoria: {context.category}
- Problema: {context.problem}
- Descrição: {context.description}
- Prioridade: {context.priority}
- Usuário: {context.user}
- Histórico do usuário: {context.history_text()}

Por favor, analise e retorne APENAS um JSON válido com a seguinte estrutura:
{{
  "complexidade": "BAIXA|MEDIA|ALTA",
  "indice_impacto_alcance": "BAIXO|MEDIO|ALTO|CRITICO",
  "recomendacao": "IA|ANALISTA",
  "justificativa": "Explicação detalhada da decisão",
  "solucao_conhecida": true/false,
  "tempo_estimado_minutos": 30,
  "tags": ["tag1", "tag2", "tag3"]
}}

Critérios para recomendação:
- IA: Para problemas comuns, bem documentados, com soluções padronizadas
- ANALISTA: Para problemas complexos, específicos, ou que requerem diagnóstico manual"""

        return [
            {"role": "system", "content": cls.SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]


class ResolutionPromptBuilder:
    """Builds the solution generation prompt."""

    SYSTEM_PROMPT = "Você é um especialista em suporte técnico de TI."

    @classmethod
    def build_messages(cls, context: TriageContext, verdict: TriageVerdict) -> List[dict]:
        prompt = f"""Forneça uma solução PRÁTICA e DIRETA:

DADOS DO CHAMADO:
- Título: {context.title}
- Categoria: {context.category}
- Problema: {context.problem}
- Descrição: {context.description}
- Prioridade: {context.priority}
- Análise de Triagem: {verdict.model_dump_json()}

INSTRUÇÕES IMPORTANTES:
- Responda em português brasileiro
- Use linguagem simples e clara
- MÁXIMO 800 CARACTERES
- Seja direto e objetivo
- Forneça apenas os passos essenciais
- Use formatação clara com numeração

ESTRUTURA OBRIGATÓRIA:
**Solução:**
1. [Primeiro passo específico]
2. [Segundo passo específico]
3. [Terceiro passo se necessário]

**Como testar:** [Uma frase sobre como confirmar se funcionou]

**Se não funcionar:** Entre em contato com o suporte para assistência especializada."""

        return [
            {"role": "system", "content": cls.SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]


CONNECTION_TEST_PROMPT = "Responda apenas 'OK' se você está funcionando corretamente."
