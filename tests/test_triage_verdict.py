import pytest

from sistec.core import LLMException
from sistec.triage.domain import (
    FALLBACK_JUSTIFICATION,
    Recommendation,
    ResolutionPromptBuilder,
    TriageContext,
    TriagePromptBuilder,
    TriageVerdict,
    extract_verdict,
)


def make_context(history=None):
    return TriageContext(
        ticket_id=7,
        title="Sem internet",
        category="Rede",
        problem="sem-internet",
        description="Sem acesso à internet desde ontem",
        priority="Alta",
        user="Maria Souza",
        history=history or [],
    )


def test_verdict_embedded_in_prose_is_extracted():
    reply = 'Segue a análise:\n```json\n{"recomendacao": "ia", "complexidade": "baixa"}\n```\nAbraços'
    verdict = extract_verdict(reply)
    assert verdict.recomendacao == Recommendation.IA
    assert verdict.complexidade == "BAIXA"
    assert verdict.automate


def test_missing_optional_fields_take_defaults():
    verdict = extract_verdict('{"recomendacao": "ANALISTA"}')
    assert verdict.recomendacao == Recommendation.ANALISTA
    assert verdict.tags == []
    assert not verdict.automate


@pytest.mark.parametrize("reply", [
    "",
    None,
    "sem json aqui",
    "{recomendacao: IA}",
    '{"complexidade": "BAIXA"}',
    '{"recomendacao": "TALVEZ"}',
    '{"recomendacao": "IA", "tempo_estimado_minutos": -5}',
])
def test_unusable_replies_raise(reply):
    with pytest.raises(LLMException):
        extract_verdict(reply)


def test_fallback_verdict():
    verdict = TriageVerdict.fallback()
    assert verdict.recomendacao == Recommendation.ANALISTA
    assert verdict.complexidade == "MEDIA"
    assert verdict.indice_impacto_alcance == "MEDIO"
    assert verdict.justificativa == FALLBACK_JUSTIFICATION
    assert verdict.solucao_conhecida is False
    assert verdict.tempo_estimado_minutos == 60
    assert verdict.tags == ["erro_ia"]


def test_first_ticket_history_text():
    assert make_context().history_text() == "Primeiro chamado do usuário"


def test_triage_prompt_carries_ticket_and_history():
    context = make_context(history=[{"id_chamado": 3, "status": "Resolvido", "data_abertura": None}])
    messages = TriagePromptBuilder.build_messages(context)
    content = "\n".join(m["content"] for m in messages)
    assert "Sem internet" in content
    assert "Maria Souza" in content
    assert "Resolvido" in content


def test_resolution_prompt_carries_verdict():
    verdict = TriageVerdict(recomendacao="IA", complexidade="BAIXA", justificativa="Basta reiniciar o roteador")
    messages = ResolutionPromptBuilder.build_messages(make_context(), verdict)
    content = "\n".join(m["content"] for m in messages)
    assert "Basta reiniciar o roteador" in content
